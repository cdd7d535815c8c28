"""
Session State Tracker

Keeps one AiChatSession per (user, subject code): the user's stage in the
upload -> summary -> chat -> quiz -> weak topics progression, quiz attempts,
last score and per-topic weakness scores.

Weak topic scoring:
- a topic is created the first time it is answered wrong, at score 0
- wrong answer:   score - 10 (floored at 0), wrongCount + 1
- correct answer: score + 5 (capped at 100); unknown topics are ignored
"""

import logging
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from course_ai.models.chat_session import AiChatSession, ChatStage, ExamType

logger = logging.getLogger(__name__)

WRONG_PENALTY = 10.0
CORRECT_REWARD = 5.0
MIN_SCORE = 0.0
MAX_SCORE = 100.0

# A quiz that leaves any topic below this score moves the user to WEAK_TOPICS
WEAK_TOPIC_THRESHOLD = 50.0


def clamp(value: float, min_val: float = MIN_SCORE, max_val: float = MAX_SCORE) -> float:
    """Clamp a value between min and max."""
    return max(min_val, min(max_val, value))


def update_weak_topics(
    weak_topics: list[dict],
    topic: str,
    is_correct: bool,
    now: datetime | None = None,
) -> list[dict]:
    """Return a new weak topic list with one answer applied."""
    now = now or datetime.now(timezone.utc)
    topic = topic.strip()
    updated = [dict(entry) for entry in weak_topics]

    for entry in updated:
        if entry["topic"] != topic:
            continue
        if is_correct:
            entry["score"] = clamp(entry.get("score", 0.0) + CORRECT_REWARD)
        else:
            entry["wrongCount"] = entry.get("wrongCount", 0) + 1
            entry["score"] = clamp(entry.get("score", 0.0) - WRONG_PENALTY)
        entry["lastSeenAt"] = now.isoformat()
        return updated

    if not is_correct:
        updated.append(
            {
                "topic": topic,
                "score": MIN_SCORE,
                "wrongCount": 1,
                "lastSeenAt": now.isoformat(),
            }
        )
    return updated


def weakest_topics(session: AiChatSession, limit: int = 5) -> list[dict]:
    """Weak topics by ascending score; equal scores keep insertion order."""
    return sorted(session.weak_topics or [], key=lambda entry: entry.get("score", 0.0))[:limit]


class SessionStateTracker:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_session(self, user_id: str, code: str) -> AiChatSession | None:
        result = await self.db.execute(
            select(AiChatSession).where(
                AiChatSession.user_id == user_id,
                AiChatSession.code == code,
            )
        )
        return result.scalar_one_or_none()

    async def find_or_create(
        self,
        user_id: str,
        code: str,
        exam_type: ExamType | None = None,
    ) -> AiChatSession:
        """
        Get the user's session for a subject, creating it on first use.

        Creation relies on the (user_id, code) unique constraint: when a
        concurrent request inserted the row first, that row is returned.
        """
        session = await self.get_session(user_id, code)
        if session:
            return session

        session = AiChatSession(
            user_id=user_id,
            code=code,
            stage=ChatStage.SUMMARY,
            attempts=0,
            last_score=0.0,
            weak_topics=[],
            exam_type=exam_type,
        )
        self.db.add(session)
        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            logger.info("[Session] Concurrent create for %s/%s, reusing existing", user_id, code)
            existing = await self.get_session(user_id, code)
            if existing is None:
                raise
            return existing

        await self.db.refresh(session)
        logger.info("[Session] Created session for %s/%s (exam=%s)", user_id, code, exam_type)
        return session

    async def record_answer(
        self,
        session: AiChatSession,
        topic: str,
        is_correct: bool,
    ) -> AiChatSession:
        # Assign a new list so the JSON column is flagged dirty
        session.weak_topics = update_weak_topics(session.weak_topics or [], topic, is_correct)
        await self.db.commit()
        return session

    async def record_quiz_result(self, session: AiChatSession, score: float) -> AiChatSession:
        session.attempts = (session.attempts or 0) + 1
        session.last_score = clamp(score)
        has_weak_topic = any(
            entry.get("score", 0.0) < WEAK_TOPIC_THRESHOLD for entry in session.weak_topics or []
        )
        session.stage = ChatStage.WEAK_TOPICS if has_weak_topic else ChatStage.QUIZ
        await self.db.commit()
        return session

    def weakest_topics(self, session: AiChatSession, limit: int = 5) -> list[dict]:
        return weakest_topics(session, limit)
