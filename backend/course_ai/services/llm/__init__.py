"""
LLM layer: prompt templates, the streaming completion client and the token
sinks it writes into.
"""

from course_ai.services.llm.channel import BufferSink, TokenChannel, TokenSink
from course_ai.services.llm.streamer import NO_RESPONSE_MESSAGE, CompletionStreamer

__all__ = [
    "BufferSink",
    "TokenChannel",
    "TokenSink",
    "CompletionStreamer",
    "NO_RESPONSE_MESSAGE",
]
