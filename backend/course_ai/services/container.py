"""
Service wiring.

All external clients (embeddings, chroma, OpenAI) are constructed once at
startup from settings and handed to the services that use them. Routers get
the container through a FastAPI dependency, so tests swap in fakes with
dependency_overrides instead of patching module globals.
"""

from dataclasses import dataclass

from course_ai.core.config import Settings
from course_ai.services.llm.streamer import CompletionStreamer
from course_ai.services.query_router import QueryRouter
from course_ai.services.rag.embeddings import EmbeddingClient
from course_ai.services.rag.ingest import IngestionPipeline
from course_ai.services.rag.retriever import RetrievalService
from course_ai.services.rag.vector_store import VectorIndex
from course_ai.services.tutor import TutorService


@dataclass
class ServiceContainer:
    embeddings: EmbeddingClient
    index: VectorIndex
    retrieval: RetrievalService
    streamer: CompletionStreamer
    tutor: TutorService
    router: QueryRouter
    ingestion: IngestionPipeline


def build_services(
    settings: Settings,
    embeddings: EmbeddingClient | None = None,
    index: VectorIndex | None = None,
    streamer: CompletionStreamer | None = None,
) -> ServiceContainer:
    """Wire every service; any of the three external clients may be supplied."""
    embeddings = embeddings or EmbeddingClient.from_settings(settings)
    index = index or VectorIndex.from_settings(settings)
    streamer = streamer or CompletionStreamer.from_settings(settings)

    retrieval = RetrievalService(embeddings, index)
    tutor = TutorService(retrieval, streamer)
    return ServiceContainer(
        embeddings=embeddings,
        index=index,
        retrieval=retrieval,
        streamer=streamer,
        tutor=tutor,
        router=QueryRouter(tutor),
        ingestion=IngestionPipeline(embeddings, index, settings),
    )
