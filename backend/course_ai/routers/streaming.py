"""
Chunked plain-text token streaming.

open_token_stream runs a producer as a background task that writes tokens
into a TokenChannel, and returns a StreamingResponse that relays them.

Error policy: the response is only created once the first token (or the end
of the stream) is available. A producer that fails before writing anything
therefore still yields a proper JSON error. After the first token the
headers are out, so a failure is logged and the stream just ends.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable

from fastapi.responses import StreamingResponse

from course_ai.services.llm.channel import TokenChannel

logger = logging.getLogger(__name__)

STREAM_HEADERS = {
    "Cache-Control": "no-cache",
    "X-Content-Type-Options": "nosniff",
}

# Strong references to running producers until they finish
_producers: set[asyncio.Task] = set()


async def _produce(channel: TokenChannel, producer: Callable[[TokenChannel], Awaitable[None]]) -> None:
    try:
        await producer(channel)
    except Exception as e:
        if channel.tokens_written:
            logger.exception("[Stream] Producer failed after %d tokens", channel.tokens_written)
        channel.fail(e)
    finally:
        channel.close()


async def open_token_stream(
    producer: Callable[[TokenChannel], Awaitable[None]],
) -> StreamingResponse:
    channel = TokenChannel()
    task = asyncio.create_task(_produce(channel, producer))
    _producers.add(task)
    task.add_done_callback(_producers.discard)

    first = await channel.receive()
    if first is None and channel.error is not None:
        # Nothing sent yet: let the exception handlers build a JSON error
        raise channel.error

    async def body():
        try:
            if first is not None:
                yield first
                async for token in channel:
                    yield token
        finally:
            # Client gone or stream done: the producer stops at its next write check
            channel.close()

    return StreamingResponse(
        body(),
        media_type="text/plain; charset=utf-8",
        headers=STREAM_HEADERS,
    )
