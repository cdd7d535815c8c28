import uuid
from datetime import datetime
from enum import Enum
from sqlalchemy import (
    JSON,
    DateTime,
    Enum as SQLEnum,
    Float,
    Integer,
    String,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column

from course_ai.core.database import Base, utcnow


class ChatStage(str, Enum):
    UPLOAD = "UPLOAD"
    SUMMARY = "SUMMARY"
    CHAT = "CHAT"
    QUIZ = "QUIZ"
    WEAK_TOPICS = "WEAK_TOPICS"


class ExamType(str, Enum):
    MIDTERM = "MIDTERM"
    FINAL_TERM = "FINAL_TERM"

    @classmethod
    def parse(cls, value) -> "ExamType | None":
        """Accept "MIDTERM", "Midterm", "final term", "FINAL_TERM" and the like."""
        if not isinstance(value, str):
            return None
        key = value.strip().upper().replace(" ", "_").replace("-", "_")
        if key == "FINALTERM":
            key = "FINAL_TERM"
        try:
            return cls(key)
        except ValueError:
            return None


class AiChatSession(Base):
    __tablename__ = "ai_chat_sessions"
    __table_args__ = (
        UniqueConstraint("user_id", "code", name="uq_session_user_code"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    code: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    stage: Mapped[ChatStage] = mapped_column(
        SQLEnum(ChatStage), default=ChatStage.SUMMARY, nullable=False, index=True
    )
    attempts: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    last_score: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    # List of {"topic", "score", "wrongCount", "lastSeenAt"} dicts, insertion ordered
    weak_topics: Mapped[list[dict]] = mapped_column(JSON, default=list, nullable=False)
    exam_type: Mapped[ExamType | None] = mapped_column(SQLEnum(ExamType), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )
