import uuid
from datetime import datetime
from sqlalchemy import Boolean, DateTime, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from course_ai.core.database import Base, utcnow


class Subject(Base):
    """
    The slice of a subject record the AI module reads and writes.

    Subjects are owned by the CRUD layer; rows are created here only when a
    handout is ingested for a code the CRUD layer has not registered yet.
    """

    __tablename__ = "subjects"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    code: Mapped[str] = mapped_column(String(64), unique=True, index=True, nullable=False)
    course_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    has_embedding: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    handout_path: Mapped[str | None] = mapped_column(String(500), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )
