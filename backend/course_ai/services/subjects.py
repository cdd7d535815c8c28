"""
Subject Repository

The ingestion pipeline only needs three things from the subject store: has
this code been embedded, mark it embedded, and remember where the handout
file lives. SubjectRepository is that narrow interface; SqlSubjectRepository
implements it over the subjects table.
"""

from typing import Protocol

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from course_ai.models.subject import Subject


class SubjectRepository(Protocol):
    async def has_embeddings(self, code: str) -> bool: ...

    async def mark_embeddings(self, code: str, course_id: str | None = None) -> None: ...

    async def set_handout_path(self, code: str, path: str) -> None: ...


class SqlSubjectRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def _get(self, code: str) -> Subject | None:
        result = await self.db.execute(select(Subject).where(Subject.code == code))
        return result.scalar_one_or_none()

    async def _get_or_create(self, code: str, course_id: str | None = None) -> Subject:
        subject = await self._get(code)
        if not subject:
            subject = Subject(code=code, course_id=course_id, has_embedding=False)
            self.db.add(subject)
            await self.db.flush()
        return subject

    async def has_embeddings(self, code: str) -> bool:
        subject = await self._get(code)
        return bool(subject and subject.has_embedding)

    async def mark_embeddings(self, code: str, course_id: str | None = None) -> None:
        subject = await self._get_or_create(code, course_id)
        subject.has_embedding = True
        if course_id and not subject.course_id:
            subject.course_id = course_id
        await self.db.commit()

    async def set_handout_path(self, code: str, path: str) -> None:
        subject = await self._get_or_create(code)
        subject.handout_path = path
        await self.db.commit()
