"""Tests for the completion streamer, token sinks and the streaming response helper."""

import asyncio

import pytest

from conftest import RecordingSink
from course_ai.core.errors import ErrorKind, ServiceError, processing_error
from course_ai.routers.streaming import open_token_stream
from course_ai.services.llm.channel import BufferSink, TokenChannel
from course_ai.services.llm.streamer import NO_RESPONSE_MESSAGE

MESSAGES = [{"role": "user", "content": "hi"}]


class TestCompletionStreamer:
    async def test_tokens_are_written_in_arrival_order(self, streamer_factory):
        streamer = streamer_factory(["Nor", "mal", " forms", "."])
        sink = RecordingSink()

        await streamer.stream(MESSAGES, sink)

        assert sink.tokens == ["Nor", "mal", " forms", "."]

    async def test_request_is_a_streaming_completion(self, streamer_factory):
        streamer = streamer_factory(["ok"])

        await streamer.stream(MESSAGES, RecordingSink(), temperature=0.7)

        call = streamer.client.chat.completions.calls[0]
        assert call == {"model": "test-model", "messages": MESSAGES, "temperature": 0.7, "stream": True}

    async def test_empty_deltas_are_skipped(self, streamer_factory):
        streamer = streamer_factory(["a", "", None, "b"])
        sink = RecordingSink()

        await streamer.stream(MESSAGES, sink)

        assert sink.tokens == ["a", "b"]

    async def test_no_tokens_writes_fallback_once(self, streamer_factory):
        streamer = streamer_factory([])
        sink = RecordingSink()

        await streamer.stream(MESSAGES, sink)

        assert sink.tokens == [NO_RESPONSE_MESSAGE]

    async def test_stops_when_sink_closes(self, streamer_factory):
        streamer = streamer_factory(["a", "b", "c", "d"])
        sink = RecordingSink(close_after=2)

        await streamer.stream(MESSAGES, sink)

        assert sink.tokens == ["a", "b"]

    async def test_create_failure_is_a_processing_error(self, streamer_factory):
        streamer = streamer_factory(create_error=ConnectionError("refused"))

        with pytest.raises(ServiceError) as exc_info:
            await streamer.stream(MESSAGES, RecordingSink())

        assert exc_info.value.kind == ErrorKind.PROCESSING

    async def test_mid_stream_failure_keeps_written_tokens(self, streamer_factory):
        streamer = streamer_factory(["partial"], error=TimeoutError("read timeout"))
        sink = RecordingSink()

        with pytest.raises(ServiceError):
            await streamer.stream(MESSAGES, sink)

        assert sink.tokens == ["partial"]


class TestTokenChannel:
    async def test_receive_in_order_then_none(self):
        channel = TokenChannel()
        channel.write("a")
        channel.write("b")
        channel.close()

        assert await channel.receive() == "a"
        assert await channel.receive() == "b"
        assert await channel.receive() is None
        assert await channel.receive() is None

    async def test_writes_after_close_are_dropped(self):
        channel = TokenChannel()
        channel.close()
        channel.write("late")

        assert channel.closed
        assert channel.tokens_written == 0
        assert [token async for token in channel] == []

    async def test_fail_records_error_and_closes(self):
        channel = TokenChannel()
        error = processing_error("boom")

        channel.fail(error)

        assert channel.closed
        assert channel.error is error
        assert await channel.receive() is None

    def test_buffer_sink_collects_text(self):
        sink = BufferSink()
        sink.write("QUIZ_")
        sink.write("JSON:")

        assert not sink.closed
        assert sink.text == "QUIZ_JSON:"


async def _drain(response) -> str:
    parts = []
    async for part in response.body_iterator:
        parts.append(part)
    return "".join(parts)


class TestOpenTokenStream:
    async def test_relays_every_token(self):
        async def producer(channel):
            for token in ["one ", "two ", "three"]:
                channel.write(token)
                await asyncio.sleep(0)

        response = await open_token_stream(producer)

        assert response.media_type == "text/plain; charset=utf-8"
        assert response.headers["cache-control"] == "no-cache"
        assert await _drain(response) == "one two three"

    async def test_failure_before_first_token_is_raised(self):
        async def producer(channel):
            raise processing_error("retrieval failed")

        with pytest.raises(ServiceError) as exc_info:
            await open_token_stream(producer)

        assert exc_info.value.message == "retrieval failed"

    async def test_failure_after_first_token_ends_stream(self):
        async def producer(channel):
            channel.write("partial")
            await asyncio.sleep(0)
            raise processing_error("model went away")

        response = await open_token_stream(producer)

        assert await _drain(response) == "partial"

    async def test_producer_without_output_gives_empty_body(self):
        async def producer(channel):
            return None

        response = await open_token_stream(producer)

        assert await _drain(response) == ""
