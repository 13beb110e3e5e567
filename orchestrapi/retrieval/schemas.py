"""Schemas for retrieved documentation."""

from pydantic import BaseModel


class DocumentChunk(BaseModel):
    """One piece of API documentation with its relevance score."""

    text: str
    score: float = 0.0
