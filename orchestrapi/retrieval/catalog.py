"""Offline retriever over the local tool catalog.

Used when no AutoRAG credentials are configured. Matches query words
against operation names and summaries; the score is the fraction of query
words that matched.
"""

import logging
import re

from orchestrapi.retrieval.schemas import DocumentChunk
from orchestrapi.tools.registry import ToolRegistry

logger = logging.getLogger(__name__)

_WORD_RE = re.compile(r"[a-z0-9]+")
_STOPWORDS = frozenset(
    "a an and are by for from in is me of on or show the to what which who with".split()
)


def _terms(text: str) -> set[str]:
    return {w for w in _WORD_RE.findall(text.lower()) if w not in _STOPWORDS}


class CatalogRetriever:
    def __init__(self, registry: ToolRegistry, max_results: int = 10):
        self.registry = registry
        self.max_results = max_results

    def search(self, query: str) -> list[DocumentChunk]:
        query_terms = _terms(query)
        if not query_terms:
            return []

        scored: list[tuple[float, str]] = []
        for summary in self.registry.list_summaries():
            tool_terms = _terms(summary.name.replace("-", " ") + " " + summary.summary)
            overlap = len(query_terms & tool_terms)
            if overlap:
                scored.append((overlap / len(query_terms), summary.name))

        scored.sort(key=lambda item: -item[0])
        chunks = [
            DocumentChunk(text=self.registry.describe(name), score=score)
            for score, name in scored[: self.max_results]
        ]
        logger.info(f"Catalog search matched {len(chunks)} operations")
        return chunks
