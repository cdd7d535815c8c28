from course_ai.models.subject import Subject
from course_ai.models.chat_session import AiChatSession, ChatStage, ExamType

__all__ = [
    "Subject",
    "AiChatSession",
    "ChatStage",
    "ExamType",
]
