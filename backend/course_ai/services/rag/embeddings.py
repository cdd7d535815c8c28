"""
Embedding Client

Thin async wrapper around a LangChain embeddings model. The production
instance is OpenAI text-embedding-3-small, which maps any text to a
1536-dim vector; chunks about the same concept land close together in that
space, which is what the similarity search relies on.
"""

import logging

from langchain_core.embeddings import Embeddings
from langchain_openai import OpenAIEmbeddings

from course_ai.core.config import Settings
from course_ai.core.errors import ServiceError, processing_error, validation_error

logger = logging.getLogger(__name__)


class EmbeddingClient:
    """Turns text into a fixed-length vector."""

    def __init__(self, embeddings: Embeddings, dimensions: int = 1536):
        self._embeddings = embeddings
        self._dimensions = dimensions

    @classmethod
    def from_settings(cls, settings: Settings) -> "EmbeddingClient":
        embeddings = OpenAIEmbeddings(
            model=settings.embedding_model,
            openai_api_key=settings.openai_api_key,
        )
        return cls(embeddings, dimensions=settings.embedding_dimensions)

    @property
    def dimensions(self) -> int:
        return self._dimensions

    async def embed(self, text: str) -> list[float]:
        """
        Embed one piece of text.

        Raises:
            ServiceError(VALIDATION): text is empty or whitespace only
            ServiceError(PROCESSING): the provider failed or returned no vector
        """
        if not text or not text.strip():
            raise validation_error("Cannot generate embedding for empty text")

        try:
            vector = await self._embeddings.aembed_query(text)
        except ServiceError:
            raise
        except Exception as e:
            raise processing_error(f"Failed to generate embedding: {e}") from e

        if not vector:
            raise processing_error("Embedding provider returned an empty vector")

        return list(vector)
