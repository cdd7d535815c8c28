"""
RAG Retriever Service

Finds handout chunks that are semantically close to a query and returns
them as one context string for the LLM prompt.

How retrieval works:
1. The query string is converted into a vector with the embedding client.
2. The subject's collection is searched for the nearest vectors (cosine).
3. Results are restricted to points whose payload code matches the subject.
4. The chunk texts are joined with blank lines and returned.

Every LLM task gets its grounding text through get_relevant_context, and
treats a context shorter than its threshold as "not in the document".
"""

import logging

from course_ai.core.errors import ServiceError, processing_error
from course_ai.services.rag.embeddings import EmbeddingClient
from course_ai.services.rag.vector_store import VectorIndex

logger = logging.getLogger(__name__)

# Shorter contexts are treated as insufficient evidence
MIN_CONTEXT_CHAT = 50
MIN_CONTEXT_TASK = 100


def code_filter(code: str) -> dict:
    return {"code": code}


class RetrievalService:
    def __init__(self, embeddings: EmbeddingClient, index: VectorIndex):
        self.embeddings = embeddings
        self.index = index

    async def get_relevant_context(self, code: str, query: str, limit: int = 10) -> str:
        """
        Retrieve the most relevant chunk texts of a subject for a query.

        Args:
            code: Subject code (collection name and payload filter)
            query: Natural language query to embed
            limit: Maximum number of chunks

        Returns:
            Chunk texts joined by blank lines, or "" when nothing matched.
        """
        try:
            query_embedding = await self.embeddings.embed(query)
            hits = await self.index.search(
                code,
                query_embedding,
                limit=limit,
                where=code_filter(code),
            )
        except ServiceError:
            raise
        except Exception as e:
            raise processing_error(f"Failed to get relevant context: {e}") from e

        texts = [hit.payload.get("text") for hit in hits]
        texts = [text for text in texts if text]

        if not texts:
            logger.info("[RAG] No results in '%s' for: %.80s", code, query)
            return ""

        logger.debug("[RAG] Retrieved %d chunks from '%s'", len(texts), code)
        return "\n\n".join(texts)

    async def get_full_text(self, code: str, limit: int = 1000) -> str:
        """All stored chunk texts of a subject, in chunk order."""
        try:
            payloads = await self.index.scroll(code, limit=limit, where=code_filter(code))
        except ServiceError:
            raise
        except Exception as e:
            raise processing_error(f"Failed to read stored chunks: {e}") from e

        payloads.sort(key=lambda payload: payload.get("chunkIndex", 0))
        texts = [payload.get("text") for payload in payloads]
        return "\n\n".join(text for text in texts if text)
