"""
Handout Ingestion Pipeline

Turns one uploaded PDF into searchable vectors for a subject.

How it works:
1. GUARD   – a subject that already has embeddings is rejected (one ingestion per code)
2. EXTRACT – PyMuPDF reads the text of every page (in a worker thread)
3. CHECK   – the text must look like prose (enough length, mostly letters)
4. SPLIT   – fixed 800-char windows with 100-char overlap
5. INDEX   – the subject's chroma collection is created if absent
6. EMBED   – chunks are embedded a few at a time; a failed chunk is skipped
7. STORE   – all points are upserted in one call

If anything from step 2 on fails, the collection is deleted again (best
effort) before the error is re-raised, so a retry starts clean.
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timezone

from course_ai.core.config import Settings
from course_ai.core.errors import processing_error
from course_ai.services.rag.chunker import DocumentChunk, build_chunks, is_valid_text
from course_ai.services.rag.embeddings import EmbeddingClient
from course_ai.services.rag.extractor import extract_text_from_pdf
from course_ai.services.rag.vector_store import VectorIndex, VectorPoint, make_point_id
from course_ai.services.subjects import SubjectRepository

logger = logging.getLogger(__name__)


@dataclass
class IngestionResult:
    success: bool
    collection_created: bool = False
    point_count: int = 0
    already_ingested: bool = False


class IngestionPipeline:
    def __init__(self, embeddings: EmbeddingClient, index: VectorIndex, settings: Settings):
        self.embeddings = embeddings
        self.index = index
        self.chunk_size = settings.chunk_size
        self.chunk_overlap = settings.chunk_overlap
        self.batch_size = max(1, settings.embedding_batch_size)
        self.min_text_length = settings.min_text_length

    async def ingest(
        self,
        subjects: SubjectRepository,
        code: str,
        course_id: str,
        user_id: str,
        data: bytes,
    ) -> IngestionResult:
        """
        Run the full pipeline for one handout.

        Returns an IngestionResult with already_ingested=True (and nothing
        else touched) when the subject was embedded before.
        """
        if await subjects.has_embeddings(code):
            logger.info("[Ingest] Embeddings already exist for '%s', skipping", code)
            return IngestionResult(success=False, already_ingested=True)

        collection_created = False
        try:
            text = await asyncio.to_thread(extract_text_from_pdf, data)
            if not is_valid_text(text, self.min_text_length):
                raise processing_error("PDF does not contain sufficient valid text")

            chunks = build_chunks(text, code, self.chunk_size, self.chunk_overlap)
            if not chunks:
                raise processing_error("Failed to create text chunks")
            logger.info("[Ingest] '%s': %d chars -> %d chunks", code, len(text), len(chunks))

            await self.index.create_collection(code, self.embeddings.dimensions)
            collection_created = True

            points = await self._embed_chunks(chunks, course_id, user_id)
            if not points:
                raise processing_error("Failed to generate any embeddings")

            await self.index.upsert(code, points)
        except Exception:
            logger.exception("[Ingest] Ingestion failed for '%s'", code)
            await self._cleanup(code)
            raise

        await subjects.mark_embeddings(code, course_id)
        logger.info("[Ingest] '%s': stored %d of %d chunks", code, len(points), len(chunks))

        return IngestionResult(
            success=True,
            collection_created=collection_created,
            point_count=len(points),
        )

    async def _embed_chunks(
        self,
        chunks: list[DocumentChunk],
        course_id: str,
        user_id: str,
    ) -> list[VectorPoint]:
        """Embed chunks batch by batch, keeping chunk order and skipping failures."""
        points = []
        for start in range(0, len(chunks), self.batch_size):
            batch = chunks[start:start + self.batch_size]
            vectors = await asyncio.gather(
                *(self.embeddings.embed(chunk.text) for chunk in batch),
                return_exceptions=True,
            )
            for chunk, vector in zip(batch, vectors):
                if isinstance(vector, BaseException):
                    logger.warning("[Ingest] Failed to embed chunk %d: %s", chunk.index, vector)
                    continue
                points.append(self._build_point(chunk, vector, course_id, user_id))

            logger.debug(
                "[Ingest] Embedded %d/%d chunks", min(start + self.batch_size, len(chunks)), len(chunks)
            )
        return points

    @staticmethod
    def _build_point(
        chunk: DocumentChunk,
        vector: list[float],
        course_id: str,
        user_id: str,
    ) -> VectorPoint:
        return VectorPoint(
            id=make_point_id(chunk.source_code, chunk.index),
            vector=vector,
            payload={
                "courseId": course_id,
                "userId": user_id,
                "text": chunk.text,
                "code": chunk.source_code,
                "chunkIndex": chunk.index,
                "timestamp": datetime.now(timezone.utc).isoformat(),
            },
        )

    async def _cleanup(self, code: str) -> None:
        try:
            await self.index.delete_collection(code)
            logger.info("[Ingest] Removed partial collection '%s'", code)
        except Exception as e:
            logger.error("[Ingest] Cleanup of collection '%s' failed: %s", code, e)
