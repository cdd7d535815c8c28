"""
Tutor Service

The document-grounded LLM tasks. Each one follows the same recipe:

1. Retrieve the handout context for a task-specific query
2. Refuse with a fixed sentence when the context is too short to ground an
   answer (the model is never called in that case)
3. Build the task prompt
4. Stream the completion into the caller's token sink
"""

import logging

from course_ai.core.errors import ServiceError, processing_error
from course_ai.models.chat_session import ExamType
from course_ai.services.llm import prompts
from course_ai.services.llm.channel import TokenSink
from course_ai.services.llm.streamer import CompletionStreamer
from course_ai.services.rag.chunker import sanitize_input
from course_ai.services.rag.retriever import MIN_CONTEXT_CHAT, MIN_CONTEXT_TASK, RetrievalService

logger = logging.getLogger(__name__)

# Fixed replies when retrieval finds too little
CHAT_REFUSAL = "I couldn't find relevant information in the document to answer your question."
QUIZ_REFUSAL = "Not enough content in the document to generate a quiz."
ANALYSIS_REFUSAL = "I couldn't find relevant content in the document for analysis."
TEACH_REFUSAL = "I couldn't find information about this topic in the document."
NO_WRONG_ANSWERS = "No incorrect answers provided for analysis."

# Fixed retrieval queries
QUIZ_QUERY = "Important concepts and definitions discussed in this document"
TABLE_OF_CONTENTS_QUERY = """
Extract all lecture, lesson, or topic titles with their serial numbers.

Rules:
- Prefer "Table of Contents" if present.
- If no Table of Contents exists, extract headings such as
  Lesson, Lecture, Unit, or main topic titles in order.
- Preserve original numbering if available.
"""


class TutorService:
    def __init__(self, retrieval: RetrievalService, streamer: CompletionStreamer):
        self.retrieval = retrieval
        self.streamer = streamer

    async def _run(
        self,
        task: str,
        code: str,
        query: str,
        limit: int,
        min_context: int,
        refusal: str,
        build_prompt,
        sink: TokenSink,
    ) -> None:
        try:
            context = await self.retrieval.get_relevant_context(code, query, limit)
            if not context or len(context) < min_context:
                logger.info("[Tutor] %s for '%s': insufficient context (%d chars)", task, code, len(context))
                sink.write(refusal)
                return

            await self.streamer.stream(build_prompt(context), sink)
        except ServiceError as e:
            raise processing_error(f"Failed to {task}: {e.message}") from e
        except Exception as e:
            raise processing_error(f"Failed to {task}: {e}") from e

    async def stream_chat(self, code: str, message: str, sink: TokenSink) -> None:
        question = sanitize_input(message)
        await self._run(
            "stream chat", code, question, 10, MIN_CONTEXT_CHAT, CHAT_REFUSAL,
            lambda context: prompts.general_chat_prompt(question, context),
            sink,
        )

    async def assistant_chat(self, code: str, message: str, sink: TokenSink) -> None:
        question = sanitize_input(message)
        await self._run(
            "answer question", code, question, 10, MIN_CONTEXT_CHAT, CHAT_REFUSAL,
            lambda context: prompts.assistant_prompt(question, context),
            sink,
        )

    async def generate_quiz(self, code: str, sink: TokenSink) -> None:
        await self._run(
            "generate quiz", code, QUIZ_QUERY, 15, MIN_CONTEXT_TASK, QUIZ_REFUSAL,
            prompts.quiz_prompt,
            sink,
        )

    async def analyze_weak_topics(self, code: str, wrong_answers: list, sink: TokenSink) -> None:
        if not wrong_answers:
            sink.write(NO_WRONG_ANSWERS)
            return

        analysis_query = prompts.build_analysis_query(wrong_answers)
        await self._run(
            "analyze weak topics", code, analysis_query, 15, MIN_CONTEXT_TASK, ANALYSIS_REFUSAL,
            lambda context: prompts.weak_topic_analysis_prompt(analysis_query, context),
            sink,
        )

    async def teach_topic(self, code: str, topic: str, sink: TokenSink) -> None:
        topic = sanitize_input(topic)
        await self._run(
            "teach weak topic", code, topic, 10, MIN_CONTEXT_TASK, TEACH_REFUSAL,
            lambda context: prompts.teach_topic_prompt(topic, context),
            sink,
        )

    async def list_exam_topics(self, code: str, exam_type: ExamType | None, sink: TokenSink) -> None:
        await self._run(
            "list exam topics", code, TABLE_OF_CONTENTS_QUERY, 15, MIN_CONTEXT_TASK, QUIZ_REFUSAL,
            lambda context: prompts.exam_stage_prompt(exam_type, context),
            sink,
        )
