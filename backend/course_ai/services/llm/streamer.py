"""
OpenAI Chat Completions Streamer

Drives a streaming chat completion and relays every delta to a token sink
as soon as it arrives:
- client.chat.completions.create(stream=True)
- chunk.choices[0].delta.content per event
"""

import logging

from openai import AsyncOpenAI

from course_ai.core.config import Settings
from course_ai.core.errors import processing_error
from course_ai.services.llm.channel import TokenSink

logger = logging.getLogger(__name__)

NO_RESPONSE_MESSAGE = "No response generated. Please try again."


class CompletionStreamer:
    """Streams chat completions into a TokenSink."""

    def __init__(self, client: AsyncOpenAI, model: str):
        self.client = client
        self.model = model

    @classmethod
    def from_settings(cls, settings: Settings) -> "CompletionStreamer":
        return cls(AsyncOpenAI(api_key=settings.openai_api_key), settings.chat_model)

    async def stream(
        self,
        messages: list[dict],
        sink: TokenSink,
        temperature: float = 0.2,
    ) -> None:
        """
        Stream one completion into sink, token by token, in arrival order.

        Writes NO_RESPONSE_MESSAGE once if the model produced nothing. Stops
        reading as soon as the sink is closed. Transport errors surface as
        ServiceError(PROCESSING); there is no retry.
        """
        emitted = 0
        try:
            stream = await self.client.chat.completions.create(
                model=self.model,
                messages=messages,
                temperature=temperature,
                stream=True,
            )

            async for chunk in stream:
                if sink.closed:
                    logger.info("[LLM] Sink closed after %d tokens, stopping", emitted)
                    return
                if not chunk.choices:
                    continue
                token = chunk.choices[0].delta.content
                if token:
                    emitted += 1
                    sink.write(token)
        except Exception as e:
            raise processing_error(f"Completion stream failed: {e}") from e

        logger.debug("[LLM] model=%s streamed %d tokens", self.model, emitted)
        if emitted == 0 and not sink.closed:
            sink.write(NO_RESPONSE_MESSAGE)
