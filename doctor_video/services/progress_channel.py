"""Server-sent event channel for render progress.

This module provides:
- ProgressChannel: ordered event queue for one job, consumed by the HTTP
  response as an async iterator of SSE frames
- Keep-alive comments while the encoder is quiet, so proxies do not drop
  the idle connection during long renders

A channel carries any number of ``progress`` events and exactly one terminal
event (``complete`` or ``error``). It closes itself right after the terminal
event; anything sent afterwards is dropped.
"""

import asyncio
import logging
import time
from typing import AsyncIterator, Optional

from doctor_video.schemas.events import (
    EVENT_NAMES,
    CompleteEvent,
    ErrorEvent,
    JobEvent,
    ProgressEvent,
    format_sse,
)

logger = logging.getLogger(__name__)

KEEPALIVE_FRAME = ": keep-alive\n\n"


class ProgressChannel:
    """One-directional event stream for a single render job."""

    def __init__(self, keepalive_interval: float = 15.0):
        self.keepalive_interval = keepalive_interval
        self.events: list[JobEvent] = []
        self._queue: asyncio.Queue[Optional[str]] = asyncio.Queue()
        self._keepalive_task: Optional[asyncio.Task] = None
        self._last_sent = time.monotonic()
        self._terminal: Optional[str] = None
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def terminal_event(self) -> Optional[str]:
        """Name of the terminal event sent, if any."""
        return self._terminal

    @property
    def keepalive_active(self) -> bool:
        return self._keepalive_task is not None and not self._keepalive_task.done()

    def open(self) -> None:
        """Start the keep-alive timer. Must be called from a running event loop."""
        if self._closed or self._keepalive_task is not None:
            return
        self._last_sent = time.monotonic()
        self._keepalive_task = asyncio.get_running_loop().create_task(self._keepalive_loop())

    def progress(self, percent: int, status: str) -> bool:
        percent = max(0, min(100, int(percent)))
        return self._send(ProgressEvent(percent=percent, status=status))

    def complete(self, url: str, name: str) -> bool:
        return self._send(CompleteEvent(url=url, name=name), terminal=True)

    def error(self, message: str) -> bool:
        return self._send(ErrorEvent(error=message), terminal=True)

    def close(self) -> None:
        """Close the channel and stop the keep-alive timer. Idempotent."""
        if self._closed:
            return
        self._closed = True
        if self._keepalive_task is not None:
            self._keepalive_task.cancel()
        self._queue.put_nowait(None)

    async def stream(self) -> AsyncIterator[str]:
        """Yield SSE frames until the channel closes.

        The channel is closed when the consumer stops iterating, including
        when the client disconnects and the response generator is cancelled.
        """
        try:
            while True:
                frame = await self._queue.get()
                if frame is None:
                    break
                yield frame
        finally:
            self.close()

    def _send(self, event: JobEvent, terminal: bool = False) -> bool:
        name = EVENT_NAMES[type(event)]
        if self._closed:
            logger.debug(f"[SSE] Dropping {name} event, channel closed")
            return False
        self._queue.put_nowait(format_sse(event))
        self.events.append(event)
        self._last_sent = time.monotonic()
        if terminal:
            self._terminal = name
            self.close()
        return True

    async def _keepalive_loop(self) -> None:
        while not self._closed:
            idle = time.monotonic() - self._last_sent
            if idle >= self.keepalive_interval:
                self._queue.put_nowait(KEEPALIVE_FRAME)
                self._last_sent = time.monotonic()
                wait = self.keepalive_interval
            else:
                wait = self.keepalive_interval - idle
            await asyncio.sleep(wait)
