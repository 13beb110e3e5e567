"""Cloudflare AutoRAG search over the exported API documentation.

The index holds one document per API operation (see
scripts/export_rag_documents.py). Search goes through the Cloudflare REST
API rather than a Workers binding.
"""

import logging
from typing import Any, Optional

import httpx

from orchestrapi.retrieval.schemas import DocumentChunk

logger = logging.getLogger(__name__)

CLOUDFLARE_API_BASE = "https://api.cloudflare.com/client/v4"
QUERY_PREFIX = "TMDB API documentation for: "


class AutoRagRetriever:
    """Retriever backed by a Cloudflare AutoRAG index.

    Args:
        account_id: Cloudflare account id
        api_token: API token with AutoRAG read access
        index_name: AutoRAG instance name
        max_results: max_num_results sent with each search
        score_threshold: ranking_options.score_threshold
    """

    def __init__(
        self,
        account_id: str,
        api_token: str,
        index_name: str,
        max_results: int = 10,
        score_threshold: float = 0.2,
        timeout: float = 30.0,
        client: Optional[httpx.Client] = None,
    ):
        self.account_id = account_id
        self.api_token = api_token
        self.index_name = index_name
        self.max_results = max_results
        self.score_threshold = score_threshold
        self._client = client or httpx.Client(timeout=httpx.Timeout(timeout))

    @property
    def search_url(self) -> str:
        return (
            f"{CLOUDFLARE_API_BASE}/accounts/{self.account_id}"
            f"/autorag/rags/{self.index_name}/search"
        )

    def search(self, query: str) -> list[DocumentChunk]:
        payload = {
            "query": f"{QUERY_PREFIX}{query}",
            "max_num_results": self.max_results,
            "rewrite_query": True,
            "ranking_options": {"score_threshold": self.score_threshold},
        }
        response = self._client.post(
            self.search_url,
            json=payload,
            headers={"Authorization": f"Bearer {self.api_token}"},
        )
        response.raise_for_status()
        body = response.json()

        if not body.get("success", True):
            raise RuntimeError(f"AutoRAG search failed: {body.get('errors')}")

        chunks = [_to_chunk(item) for item in (body.get("result") or {}).get("data") or []]
        logger.info(f"AutoRAG returned {len(chunks)} chunks for query: {query[:80]}")
        return chunks


def _to_chunk(item: dict[str, Any]) -> DocumentChunk:
    parts = item.get("content") or []
    text = "\n".join(p.get("text", "") for p in parts if isinstance(p, dict))
    return DocumentChunk(text=text, score=float(item.get("score") or 0.0))
