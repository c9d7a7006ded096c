"""
Event Channel - bounded delivery of stream events from producer to consumer.

A full channel stalls the producer (backpressure). When the consumer closes
its end, any pending or future send returns False instead of blocking.
"""

import asyncio
from typing import AsyncIterator, Optional, Protocol

from ..models.events import StreamEvent, is_terminal


class EventSink(Protocol):
    """Anything the decoder can deliver events to."""

    async def send(self, event: StreamEvent) -> bool:
        """Deliver one event. Returns False if nobody is listening anymore."""
        ...


class EventChannel:
    """
    Bounded single-consumer event channel.

    Usage:
        channel = EventChannel(capacity=100)
        async for event in channel:   # stops after the terminal event
            forward(event)
    """

    def __init__(self, capacity: int = 100):
        self._queue: "asyncio.Queue[StreamEvent]" = asyncio.Queue(maxsize=capacity)
        self._closed = asyncio.Event()

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    async def send(self, event: StreamEvent) -> bool:
        if self._closed.is_set():
            return False
        try:
            self._queue.put_nowait(event)
            return True
        except asyncio.QueueFull:
            pass

        # Full: wait for room, unless the consumer goes away first
        put_task = asyncio.ensure_future(self._queue.put(event))
        closed_task = asyncio.ensure_future(self._closed.wait())
        try:
            await asyncio.wait({put_task, closed_task}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            closed_task.cancel()
            if not put_task.done():
                put_task.cancel()
        return put_task.done() and not put_task.cancelled()

    async def recv(self) -> Optional[StreamEvent]:
        """Next event, or None once the channel is closed and drained."""
        if not self._queue.empty():
            return self._queue.get_nowait()
        if self._closed.is_set():
            return None

        get_task = asyncio.ensure_future(self._queue.get())
        closed_task = asyncio.ensure_future(self._closed.wait())
        try:
            await asyncio.wait({get_task, closed_task}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            closed_task.cancel()
            if not get_task.done():
                get_task.cancel()
        if get_task.done() and not get_task.cancelled():
            return get_task.result()
        return None

    def close(self) -> None:
        """Stop the channel: release a blocked producer and end iteration once drained."""
        self._closed.set()

    async def __aiter__(self) -> AsyncIterator[StreamEvent]:
        while True:
            event = await self.recv()
            if event is None:
                return
            yield event
            if is_terminal(event):
                return
