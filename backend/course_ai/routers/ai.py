import logging
import os
import uuid

import aiofiles
from fastapi import APIRouter, Depends, File, Form, Query, UploadFile, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from course_ai.core.config import get_settings
from course_ai.core.dependencies import get_services, get_session_tracker, get_subject_repository
from course_ai.core.errors import not_found_error, validation_error
from course_ai.services.container import ServiceContainer
from course_ai.services.llm.channel import BufferSink, TokenChannel
from course_ai.services.llm.models import QuizAnswer, QuizQuestion, QuizResult
from course_ai.services.query_router import QueryRequest, validate_query_request
from course_ai.services.quiz import parse_quiz_response, score_quiz
from course_ai.services.session_tracker import SessionStateTracker
from course_ai.services.subjects import SubjectRepository
from course_ai.routers.streaming import open_token_stream

logger = logging.getLogger(__name__)

router = APIRouter()
settings = get_settings()

PDF_CONTENT_TYPE = "application/pdf"
NO_SUMMARY_DOCUMENTS = "No documents found to summarize."


# Schemas
class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class UploadHandoutResponse(BaseModel):
    success: bool
    message: str
    hasEmbedding: bool = False
    courseId: str | None = None


class GenerateQuizRequest(_CamelModel):
    user_id: str | None = Field(None, alias="userId")
    course_id: str | None = Field(None, alias="courseId")
    code: str | None = None


class SubmitQuizRequest(_CamelModel):
    quiz: list[QuizAnswer]
    mcqs: list[QuizQuestion]
    # Optional: record the result in the user's session for this subject
    user_id: str | None = Field(None, alias="userId")
    code: str | None = None
    topic: str | None = None


class SubmitQuizResponse(BaseModel):
    success: bool
    score: float
    correctCount: int
    total: int
    results: list[QuizResult]


class TopicExplanationRequest(_CamelModel):
    user_id: str | None = Field(None, alias="userId")
    course_id: str | None = Field(None, alias="courseId")
    topic: str | None = None
    code: str | None = None


class AssistantRequest(_CamelModel):
    user_id: str | None = Field(None, alias="userId")
    course_id: str | None = Field(None, alias="courseId")
    code: str | None = None
    message: str | None = None


class WeakTopicResponse(BaseModel):
    topic: str
    score: float
    wrongCount: int
    lastSeenAt: str | None = None


class WeakTopicsResponse(BaseModel):
    success: bool
    stage: str
    attempts: int
    lastScore: float
    weakTopics: list[WeakTopicResponse]


class VectorStatusResponse(BaseModel):
    code: str
    available: bool
    chunkCount: int


def _require(value: str | None, name: str) -> str:
    if not value or not isinstance(value, str) or not value.strip():
        raise validation_error(f"{name} is required and must be a string")
    return value.strip()


# Endpoints
@router.post("/upload", response_model=UploadHandoutResponse)
async def upload_handout(
    file: UploadFile | None = File(None),
    courseId: str | None = Form(None),
    userId: str | None = Form(None),
    code: str | None = Form(None),
    services: ServiceContainer = Depends(get_services),
    subjects: SubjectRepository = Depends(get_subject_repository),
):
    """Upload a handout PDF and build the subject's vector embeddings."""
    if file is None:
        raise validation_error("PDF file is required")
    course_id = _require(courseId, "courseId")
    user_id = _require(userId, "userId")
    code = _require(code, "code")

    if file.content_type != PDF_CONTENT_TYPE:
        raise validation_error("Only PDF files are allowed")

    data = await file.read()
    if len(data) > settings.max_upload_size:
        raise validation_error(
            f"File size must be less than {settings.max_upload_size // (1024 * 1024)}MB"
        )

    # Save handout to disk
    os.makedirs(settings.upload_dir, exist_ok=True)
    handout_path = os.path.join(settings.upload_dir, f"{code}_{uuid.uuid4().hex}.pdf")
    async with aiofiles.open(handout_path, "wb") as f:
        await f.write(data)

    try:
        result = await services.ingestion.ingest(subjects, code, course_id, user_id, data)
    except Exception:
        # Clean up saved handout on failure
        if os.path.exists(handout_path):
            os.remove(handout_path)
        raise

    if result.already_ingested:
        os.remove(handout_path)
        return JSONResponse(
            status_code=status.HTTP_409_CONFLICT,
            content=UploadHandoutResponse(
                success=False,
                message="Embeddings already exist for this subject",
            ).model_dump(),
        )

    await subjects.set_handout_path(code, handout_path)

    return UploadHandoutResponse(
        success=True,
        message=f"PDF processed and embeddings created successfully ({result.point_count} chunks)",
        hasEmbedding=True,
        courseId=course_id,
    )


@router.post("/chat-doc/stream")
async def stream_chat_with_document(
    data: QueryRequest,
    services: ServiceContainer = Depends(get_services),
    tracker: SessionStateTracker = Depends(get_session_tracker),
):
    """Stream the answer to a chat-style request as plain text tokens."""
    validate_query_request(data)

    async def produce(channel: TokenChannel) -> None:
        await services.router.dispatch(data, channel, tracker)

    return await open_token_stream(produce)


@router.post("/assistant/stream")
async def stream_assistant(
    data: AssistantRequest,
    services: ServiceContainer = Depends(get_services),
):
    """Student-support assistant answering from the subject's handout."""
    code = _require(data.code, "code")
    message = _require(data.message, "message")

    async def produce(channel: TokenChannel) -> None:
        await services.tutor.assistant_chat(code, message, channel)

    return await open_token_stream(produce)


@router.get("/summary/stream")
async def stream_summary(
    userId: str | None = Query(None),
    courseId: str | None = Query(None),
    code: str | None = Query(None),
    services: ServiceContainer = Depends(get_services),
):
    """Stream the stored handout text of a subject, in chunk order."""
    code = _require(code, "code")

    async def produce(channel: TokenChannel) -> None:
        text = await services.retrieval.get_full_text(code)
        channel.write(text or NO_SUMMARY_DOCUMENTS)

    return await open_token_stream(produce)


@router.post("/quizzes")
async def generate_quiz(
    data: GenerateQuizRequest,
    services: ServiceContainer = Depends(get_services),
):
    """Generate a quiz and return it parsed (buffered, not streamed)."""
    code = _require(data.code, "code")

    sink = BufferSink()
    await services.tutor.generate_quiz(code, sink)

    mcqs = parse_quiz_response(sink.text)
    if mcqs is None:
        return {
            "success": False,
            "message": "Failed to generate valid quiz",
            "rawResponse": sink.text,
        }
    return {"success": True, "mcqs": mcqs}


@router.post("/quiz/topic/submit", response_model=SubmitQuizResponse)
async def submit_quiz(
    data: SubmitQuizRequest,
    tracker: SessionStateTracker = Depends(get_session_tracker),
):
    """Score quiz answers against the MCQs they were given for."""
    if not data.quiz:
        raise validation_error("quiz array cannot be empty")
    if not data.mcqs:
        raise validation_error("mcqs array cannot be empty")

    result = score_quiz(data.quiz, data.mcqs)

    if data.user_id and data.code:
        session = await tracker.find_or_create(data.user_id, data.code)
        if data.topic and data.topic.strip():
            for item in result.results:
                if item.correctAnswer is None:
                    continue
                await tracker.record_answer(session, data.topic, item.correct)
        await tracker.record_quiz_result(session, result.score)

    return SubmitQuizResponse(success=True, **result.model_dump())


@router.post("/topic/explanation")
async def explain_topic(
    data: TopicExplanationRequest,
    services: ServiceContainer = Depends(get_services),
):
    """Explain a topic from the handout (buffered, not streamed)."""
    if not data.code or not data.topic or not data.topic.strip():
        raise validation_error("code and topic are required")

    sink = BufferSink()
    await services.tutor.teach_topic(data.code, data.topic, sink)
    return {"success": True, "explanation": sink.text}


@router.get("/sessions/weak-topics", response_model=WeakTopicsResponse)
async def get_weak_topics(
    userId: str | None = Query(None),
    code: str | None = Query(None),
    limit: int = Query(5, ge=1, le=50),
    tracker: SessionStateTracker = Depends(get_session_tracker),
):
    """The user's weakest topics for a subject, lowest score first."""
    user_id = _require(userId, "userId")
    code = _require(code, "code")

    session = await tracker.get_session(user_id, code)
    if not session:
        raise not_found_error("Session not found")

    return WeakTopicsResponse(
        success=True,
        stage=session.stage.value,
        attempts=session.attempts,
        lastScore=session.last_score,
        weakTopics=[WeakTopicResponse(**entry) for entry in tracker.weakest_topics(session, limit)],
    )


@router.get("/status/{code}", response_model=VectorStatusResponse)
async def vector_status(
    code: str,
    services: ServiceContainer = Depends(get_services),
):
    """Check whether a subject has embeddings in the vector store."""
    count = await services.index.count(code)
    return VectorStatusResponse(code=code, available=count > 0, chunkCount=count)
