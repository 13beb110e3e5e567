"""Documentation retrieval for the planning stage."""

from orchestrapi.retrieval.autorag import AutoRagRetriever
from orchestrapi.retrieval.catalog import CatalogRetriever
from orchestrapi.retrieval.schemas import DocumentChunk

__all__ = ["AutoRagRetriever", "CatalogRetriever", "DocumentChunk"]
