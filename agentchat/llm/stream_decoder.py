"""
Stream Decoder - turns a raw server-sent-events byte feed into stream events.

Framing: bytes are decoded incrementally as UTF-8 (invalid sequences
replaced), buffered, and split into event blocks at blank lines. Each
`data:` line carries either a JSON chunk or the `[DONE]` sentinel.

Guarantees: text deltas are emitted in arrival order, followed by exactly
one terminal event. History is committed at most once, only on successful
completion (sentinel seen or feed closed cleanly).
"""

import codecs
import enum
import logging
from typing import AsyncIterable, Callable, List, Optional

import httpx
from pydantic import ValidationError

from ..models.chat import StreamChunk, TokenUsage
from ..models.events import DoneEvent, ErrorEvent, StreamEvent, TextDeltaEvent
from .channel import EventSink

logger = logging.getLogger(__name__)

DONE_SENTINEL = "[DONE]"


class DecoderState(str, enum.Enum):
    ACCUMULATING = "accumulating"
    DISPATCH = "dispatch"
    COMPLETE = "complete"
    FAILED = "failed"
    CANCELLED = "cancelled"  # consumer went away

    @property
    def terminal(self) -> bool:
        return self in (DecoderState.COMPLETE, DecoderState.FAILED, DecoderState.CANCELLED)


class EventStreamBuffer:
    """Splits an incremental byte feed into blank-line delimited blocks."""

    def __init__(self):
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._buffer = ""

    def feed(self, chunk: bytes) -> List[str]:
        """
        Append bytes and return every block completed so far.

        A multi-byte character split across chunks is held back by the
        incremental decoder until its remaining bytes arrive.
        """
        self._buffer += self._decoder.decode(chunk)
        # A trailing "\r" stays put until its "\n" arrives
        self._buffer = self._buffer.replace("\r\n", "\n")

        blocks = []
        while True:
            pos = self._buffer.find("\n\n")
            if pos < 0:
                break
            blocks.append(self._buffer[:pos])
            self._buffer = self._buffer[pos + 2:]
        return blocks

    def remainder(self) -> str:
        """Flush the decoder and return bytes never closed by a blank line."""
        self._buffer += self._decoder.decode(b"", final=True)
        rest, self._buffer = self._buffer, ""
        return rest


def iter_data_payloads(block: str):
    """Yield the trimmed payload of every `data:` line in a block."""
    for line in block.split("\n"):
        if line.startswith("data:"):
            yield line[5:].strip()


class StreamDecoder:
    """
    State machine over one streamed exchange.

    Args:
        sink: Where events are delivered
        on_complete: Called once with the full assistant text when the stream
            completes successfully (commits the turn to history)
    """

    def __init__(
        self,
        sink: EventSink,
        on_complete: Optional[Callable[[str], None]] = None,
    ):
        self.sink = sink
        self.on_complete = on_complete
        self.state = DecoderState.ACCUMULATING
        self.full_content = ""
        self.usage: Optional[TokenUsage] = None
        self.delta_count = 0
        self._buffer = EventStreamBuffer()

    async def _emit(self, event: StreamEvent) -> bool:
        delivered = await self.sink.send(event)
        if not delivered and not self.state.terminal:
            logger.info("Stream consumer went away, abandoning stream")
            self.state = DecoderState.CANCELLED
        return delivered

    async def run(self, feed: AsyncIterable[bytes]) -> DecoderState:
        """
        Consume the byte feed until the sentinel, the end of the feed, or a
        read failure.

        Returns:
            DecoderState: The terminal state reached
        """
        try:
            async for chunk in feed:
                for block in self._buffer.feed(chunk):
                    self.state = DecoderState.DISPATCH
                    await self._dispatch(block)
                    if self.state.terminal:
                        return self.state
                    self.state = DecoderState.ACCUMULATING
        except (httpx.HTTPError, httpx.StreamError) as e:
            logger.error(f"Stream read error: {e}", exc_info=True)
            await self.fail(f"Stream read error: {e}")
            return self.state

        leftover = self._buffer.remainder()
        if leftover.strip():
            logger.debug(f"Discarding unterminated stream tail: {leftover[:200]!r}")
        # Feed closed without the sentinel: finish as if it had been sent
        await self.finish()
        return self.state

    async def _dispatch(self, block: str) -> None:
        for data in iter_data_payloads(block):
            if data == DONE_SENTINEL:
                await self.finish()
                return

            try:
                chunk = StreamChunk.model_validate_json(data)
            except (ValidationError, ValueError):
                logger.debug(f"Skipping unparseable stream payload: {data[:200]!r}")
                continue

            if chunk.usage is not None:
                self.usage = chunk.usage.to_token_usage()

            delta = chunk.delta_content
            if not delta:
                continue
            self.full_content += delta
            self.delta_count += 1
            if not await self._emit(TextDeltaEvent(text=delta)):
                return

    async def finish(self) -> None:
        """Commit history and emit Done. No-op once terminal."""
        if self.state.terminal:
            return
        self.state = DecoderState.COMPLETE
        if self.on_complete is not None:
            self.on_complete(self.full_content)
        await self._emit(DoneEvent(usage=self.usage))

    async def fail(self, message: str) -> None:
        """Emit a single Error event without committing history. No-op once terminal."""
        if self.state.terminal:
            return
        self.state = DecoderState.FAILED
        await self._emit(ErrorEvent(message=message))
