"""
Query Router

Dispatches one chat-style request to the tutor task named by its
queryType. Requests are independent of each other; only EXAM_STAGE touches
persisted state (it opens the user's session for the subject).
"""

import logging
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from course_ai.core.errors import validation_error
from course_ai.models.chat_session import ExamType
from course_ai.services.llm.channel import TokenSink
from course_ai.services.session_tracker import SessionStateTracker
from course_ai.services.tutor import TutorService

logger = logging.getLogger(__name__)

INVALID_QUIZ_DATA = "Invalid quiz data provided."
INVALID_TOPIC = "Invalid topic provided."


class QueryType(str, Enum):
    GENERAL = "GENERAL"
    GEN_QUIZ = "GEN_QUIZ"
    QUIZ_CHECK = "QUIZ_CHECK"
    WEAK_TOPIC_TEACH = "WEAK_TOPIC_TEACH"
    EXAM_STAGE = "EXAM_STAGE"


class QueryRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_id: str = Field(alias="userId")
    course_id: str = Field(alias="courseId")
    code: str
    # Kept as a plain string: unknown types get an informational reply, not a 4xx
    query_type: str = Field(alias="queryType")
    message: str | None = None
    body: Any = None


def validate_query_request(request: QueryRequest) -> None:
    """Boundary checks, run before any retrieval or model call."""
    for field_name, value in (
        ("userId", request.user_id),
        ("courseId", request.course_id),
        ("code", request.code),
        ("queryType", request.query_type),
    ):
        if not value or not value.strip():
            raise validation_error(f"{field_name} is required and must be a string")

    if request.query_type == QueryType.GENERAL.value and (
        not request.message or not request.message.strip()
    ):
        raise validation_error("message is required for GENERAL queries")

    if request.query_type == QueryType.QUIZ_CHECK.value and request.body is None:
        raise validation_error("body is required for QUIZ_CHECK queries")


class QueryRouter:
    def __init__(self, tutor: TutorService):
        self.tutor = tutor

    async def dispatch(
        self,
        request: QueryRequest,
        sink: TokenSink,
        tracker: SessionStateTracker | None = None,
    ) -> None:
        try:
            query_type = QueryType(request.query_type)
        except ValueError:
            logger.info("[Router] Unknown query type: %s", request.query_type)
            sink.write(f"Unknown query type: {request.query_type}")
            return

        code = request.code
        body = request.body

        if query_type == QueryType.GENERAL:
            await self.tutor.stream_chat(code, request.message or "", sink)

        elif query_type == QueryType.GEN_QUIZ:
            await self.tutor.generate_quiz(code, sink)

        elif query_type == QueryType.QUIZ_CHECK:
            if not isinstance(body, list):
                sink.write(INVALID_QUIZ_DATA)
            else:
                await self.tutor.analyze_weak_topics(code, body, sink)

        elif query_type == QueryType.WEAK_TOPIC_TEACH:
            if not body or not isinstance(body, str) or not body.strip():
                sink.write(INVALID_TOPIC)
            else:
                await self.tutor.teach_topic(code, body, sink)

        elif query_type == QueryType.EXAM_STAGE:
            exam_type = ExamType.parse(body)
            if tracker is not None:
                await tracker.find_or_create(request.user_id, code, exam_type)
            await self.tutor.list_exam_topics(code, exam_type, sink)
