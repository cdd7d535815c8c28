"""
RAG (Retrieval-Augmented Generation) Pipeline

Grounds every LLM answer in the subject's own handout by:
1. Ingesting the handout PDF into a per-subject chroma collection
2. Retrieving the chunks closest to a query at request time
3. Injecting those chunks into the task prompt
"""

from course_ai.services.rag.embeddings import EmbeddingClient
from course_ai.services.rag.ingest import IngestionPipeline, IngestionResult
from course_ai.services.rag.retriever import RetrievalService
from course_ai.services.rag.vector_store import SearchHit, VectorIndex, VectorPoint

__all__ = [
    "EmbeddingClient",
    "IngestionPipeline",
    "IngestionResult",
    "RetrievalService",
    "SearchHit",
    "VectorIndex",
    "VectorPoint",
]
