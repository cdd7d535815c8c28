"""
Token sinks.

The completion streamer pushes tokens into a sink one at a time. A sink
reports whether it is still open; producers check that before every write,
so nothing is written after the client went away or the stream ended.

- TokenChannel: producer/consumer channel between a producer task and the
  HTTP response body
- BufferSink:   collects everything into a string for buffered endpoints
"""

import asyncio
from typing import Protocol

_END = object()


class TokenSink(Protocol):
    @property
    def closed(self) -> bool: ...

    def write(self, token: str) -> None: ...


class BufferSink:
    def __init__(self):
        self._parts: list[str] = []

    @property
    def closed(self) -> bool:
        return False

    def write(self, token: str) -> None:
        self._parts.append(token)

    @property
    def text(self) -> str:
        return "".join(self._parts)


class TokenChannel:
    """
    Unbounded async channel of tokens.

    write() never blocks, so the producer forwards every token the moment it
    arrives. receive() returns None once the channel is closed and drained.
    If the producer failed, fail() records the exception for the consumer.
    """

    def __init__(self):
        self._queue: asyncio.Queue = asyncio.Queue()
        self._closed = False
        self.error: BaseException | None = None
        self.tokens_written = 0

    @property
    def closed(self) -> bool:
        return self._closed

    def write(self, token: str) -> None:
        if self._closed:
            return
        self.tokens_written += 1
        self._queue.put_nowait(token)

    def fail(self, error: BaseException) -> None:
        self.error = error
        self.close()

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._queue.put_nowait(_END)

    async def receive(self) -> str | None:
        item = await self._queue.get()
        if item is _END:
            # Keep the end marker for any later receive() call
            self._queue.put_nowait(_END)
            return None
        return item

    def __aiter__(self):
        return self

    async def __anext__(self) -> str:
        token = await self.receive()
        if token is None:
            raise StopAsyncIteration
        return token
