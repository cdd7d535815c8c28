"""Tests for the handout ingestion pipeline."""

import asyncio
import time
from unittest.mock import patch

import pytest

from conftest import SAMPLE_TEXT, FakeEmbeddings, FakeSubjectRepository, make_pdf
from course_ai.core.errors import ErrorKind, ServiceError
from course_ai.services.rag.embeddings import EmbeddingClient
from course_ai.services.rag.ingest import IngestionPipeline
from course_ai.services.rag.vector_store import make_point_id


@pytest.fixture
def pipeline(embedding_client, fake_index, settings):
    return IngestionPipeline(embedding_client, fake_index, settings)


class TestIngest:
    async def test_successful_ingestion(self, pipeline, fake_index, subjects, sample_pdf):
        result = await pipeline.ingest(subjects, "CS101", "course-1", "user-1", sample_pdf)

        assert result.success
        assert result.collection_created
        assert result.point_count == len(fake_index.collections["CS101"]) > 1
        assert "CS101" in subjects.embedded
        assert fake_index.call_names() == ["create_collection", "upsert"]
        assert fake_index.calls[0] == ("create_collection", "CS101", 3)

    async def test_points_carry_payload_and_deterministic_ids(
        self, pipeline, fake_index, subjects, sample_pdf
    ):
        await pipeline.ingest(subjects, "CS101", "course-1", "user-1", sample_pdf)

        points = fake_index.collections["CS101"]
        for i, point in enumerate(points):
            assert point.id == make_point_id("CS101", i)
            assert point.payload["chunkIndex"] == i
            assert point.payload["code"] == "CS101"
            assert point.payload["courseId"] == "course-1"
            assert point.payload["userId"] == "user-1"
            assert point.payload["text"]
            assert point.payload["timestamp"]

    async def test_already_ingested_touches_nothing(self, pipeline, fake_embeddings, fake_index, sample_pdf):
        subjects = FakeSubjectRepository(embedded={"CS101"})

        result = await pipeline.ingest(subjects, "CS101", "course-1", "user-1", sample_pdf)

        assert result.already_ingested
        assert not result.success
        assert fake_index.calls == []
        assert fake_embeddings.calls == []

    async def test_failed_chunks_are_skipped(self, fake_index, settings, subjects):
        # Only the page containing the marker produces failing chunks
        pdf = make_pdf([SAMPLE_TEXT * 3, "FAIL " * 10 + SAMPLE_TEXT])
        pipeline = IngestionPipeline(EmbeddingClient(FakeEmbeddings(), 3), fake_index, settings)

        result = await pipeline.ingest(subjects, "CS101", "course-1", "user-1", pdf)

        stored = fake_index.collections["CS101"]
        assert result.success
        assert 0 < len(stored) == result.point_count
        assert all("FAIL" not in point.payload["text"] for point in stored)
        # Chunk indexes keep their original positions
        indexes = [point.payload["chunkIndex"] for point in stored]
        assert indexes == sorted(indexes)

    async def test_all_chunks_failing_cleans_up(self, fake_index, settings, subjects, sample_pdf):
        pipeline = IngestionPipeline(EmbeddingClient(FakeEmbeddings(fail_all=True), 3), fake_index, settings)

        with pytest.raises(ServiceError) as exc_info:
            await pipeline.ingest(subjects, "CS101", "course-1", "user-1", sample_pdf)

        assert exc_info.value.kind == ErrorKind.PROCESSING
        assert fake_index.call_names() == ["create_collection", "delete_collection"]
        assert "CS101" not in subjects.embedded

    async def test_upsert_failure_cleans_up_and_reraises(self, pipeline, fake_index, subjects, sample_pdf):
        fake_index.fail_upsert = True

        with pytest.raises(RuntimeError):
            await pipeline.ingest(subjects, "CS101", "course-1", "user-1", sample_pdf)

        assert fake_index.call_names()[-1] == "delete_collection"
        assert "CS101" not in fake_index.collections
        assert "CS101" not in subjects.embedded

    async def test_cleanup_failure_keeps_original_error(self, pipeline, fake_index, subjects, sample_pdf):
        fake_index.fail_upsert = True
        fake_index.fail_delete = True

        with pytest.raises(RuntimeError, match="upsert failed"):
            await pipeline.ingest(subjects, "CS101", "course-1", "user-1", sample_pdf)

    async def test_text_too_short_is_rejected(self, pipeline, fake_index, subjects):
        with pytest.raises(ServiceError) as exc_info:
            await pipeline.ingest(subjects, "CS101", "course-1", "user-1", make_pdf(["Too short."]))

        assert exc_info.value.kind == ErrorKind.PROCESSING
        assert "create_collection" not in fake_index.call_names()

    async def test_unreadable_pdf(self, pipeline, subjects):
        with pytest.raises(ServiceError) as exc_info:
            await pipeline.ingest(subjects, "CS101", "course-1", "user-1", b"not a pdf")

        assert exc_info.value.kind == ErrorKind.PROCESSING

    async def test_extraction_runs_off_the_event_loop(self, pipeline, subjects, sample_pdf):
        def slow_extract(data):
            time.sleep(0.3)
            return SAMPLE_TEXT * 3

        ticks = []

        async def ticker():
            loop = asyncio.get_running_loop()
            while True:
                ticks.append(loop.time())
                await asyncio.sleep(0.02)

        ticking = asyncio.create_task(ticker())
        try:
            with patch("course_ai.services.rag.ingest.extract_text_from_pdf", slow_extract):
                result = await pipeline.ingest(subjects, "CS101", "course-1", "user-1", sample_pdf)
        finally:
            ticking.cancel()

        assert result.success
        gaps = [later - earlier for earlier, later in zip(ticks, ticks[1:])]
        assert len(ticks) > 5
        assert max(gaps) < 0.2
