"""
Vector Index Client

Wraps a chromadb client behind the five operations the AI module needs:
create collection, upsert, similarity search, payload scroll and delete.

Each subject code gets its own collection in cosine space. The chunk text is
stored as the chroma document and merged back into the payload on read, so
callers always see payload["text"].

chromadb's client is synchronous; every call is pushed to a worker thread
so the event loop keeps streaming tokens for other requests meanwhile.
"""

import asyncio
import logging
import uuid
from dataclasses import dataclass, field
from typing import Any

import chromadb

from course_ai.core.config import Settings
from course_ai.core.errors import ServiceError, not_found_error

logger = logging.getLogger(__name__)

# Namespace for deterministic point ids: uuid5(namespace, "<code>:<chunkIndex>")
POINT_ID_NAMESPACE = uuid.UUID("6f1c2a52-8c1e-4d8b-9a0e-3b5d2f7c4e10")


def make_point_id(code: str, chunk_index: int) -> str:
    """Collision-free id for a chunk: same (code, index) always maps to the same id."""
    return str(uuid.uuid5(POINT_ID_NAMESPACE, f"{code}:{chunk_index}"))


@dataclass
class VectorPoint:
    id: str
    vector: list[float]
    payload: dict[str, Any] = field(default_factory=dict)


@dataclass
class SearchHit:
    score: float
    payload: dict[str, Any]


class VectorIndex:
    """Per-subject collection store backed by chromadb."""

    def __init__(self, client):
        self._client = client

    @classmethod
    def from_settings(cls, settings: Settings) -> "VectorIndex":
        if settings.chroma_host:
            client = chromadb.HttpClient(host=settings.chroma_host, port=settings.chroma_port)
            logger.info("[RAG] Using chroma server at %s:%s", settings.chroma_host, settings.chroma_port)
        else:
            client = chromadb.PersistentClient(path=settings.chroma_persist_dir)
            logger.info("[RAG] Using local chroma store at %s", settings.chroma_persist_dir)
        return cls(client)

    # ── Collection lifecycle ─────────────────────────────────────────────────

    async def create_collection(self, name: str, dimensions: int) -> None:
        """Create the collection if absent; an existing collection is not an error."""
        await asyncio.to_thread(
            self._client.get_or_create_collection,
            name=name,
            metadata={"hnsw:space": "cosine", "dimensions": dimensions},
        )

    async def delete_collection(self, name: str) -> None:
        await asyncio.to_thread(self._client.delete_collection, name=name)

    async def count(self, name: str) -> int:
        """Number of points in a collection, 0 if the collection does not exist."""
        try:
            collection = await self._get_collection(name)
        except ServiceError:
            return 0
        return await asyncio.to_thread(collection.count)

    async def _get_collection(self, name: str):
        try:
            return await asyncio.to_thread(self._client.get_collection, name=name)
        except Exception as e:
            # chromadb raises ValueError or NotFoundError depending on version
            raise not_found_error(f"Collection '{name}' not found") from e

    # ── Points ───────────────────────────────────────────────────────────────

    async def upsert(self, name: str, points: list[VectorPoint]) -> None:
        if not points:
            return
        collection = await self._get_collection(name)

        ids = []
        embeddings = []
        documents = []
        metadatas = []
        for point in points:
            metadata = {k: v for k, v in point.payload.items() if k != "text" and v is not None}
            ids.append(point.id)
            embeddings.append(point.vector)
            documents.append(point.payload.get("text", ""))
            metadatas.append(metadata)

        await asyncio.to_thread(
            collection.upsert,
            ids=ids,
            embeddings=embeddings,
            documents=documents,
            metadatas=metadatas,
        )

    async def search(
        self,
        name: str,
        vector: list[float],
        limit: int = 10,
        where: dict | None = None,
        min_score: float | None = None,
    ) -> list[SearchHit]:
        """
        Nearest points to vector, best first.

        score is cosine similarity (1 - cosine distance); hits scoring below
        min_score are dropped when min_score is given.
        """
        collection = await self._get_collection(name)
        result = await asyncio.to_thread(
            collection.query,
            query_embeddings=[vector],
            n_results=limit,
            where=where,
            include=["documents", "metadatas", "distances"],
        )
        # Each field is a list of per-query lists; we always send one query
        docs_list = result["documents"][0] if result.get("documents") else []
        metas_list = result["metadatas"][0] if result.get("metadatas") else []
        dists_list = result["distances"][0] if result.get("distances") else []

        hits = []
        for text, meta, distance in zip(docs_list, metas_list, dists_list):
            score = 1.0 - float(distance)
            if min_score is not None and score < min_score:
                continue
            payload = dict(meta or {})
            payload["text"] = text
            hits.append(SearchHit(score=score, payload=payload))

        hits.sort(key=lambda hit: hit.score, reverse=True)
        return hits

    async def scroll(
        self,
        name: str,
        limit: int = 1000,
        where: dict | None = None,
    ) -> list[dict[str, Any]]:
        """Dump up to limit payloads, in no particular order."""
        collection = await self._get_collection(name)
        result = await asyncio.to_thread(
            collection.get,
            where=where,
            limit=limit,
            include=["documents", "metadatas"],
        )
        docs_list = result.get("documents") or []
        metas_list = result.get("metadatas") or []

        payloads = []
        for text, meta in zip(docs_list, metas_list):
            payload = dict(meta or {})
            payload["text"] = text
            payloads.append(payload)
        return payloads
