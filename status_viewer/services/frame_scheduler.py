"""Next-frame scheduling for the playback timer."""
from __future__ import annotations

import asyncio
import time
from typing import Callable, Protocol

from ..config import get_settings

FrameCallback = Callable[[], None]


class FrameHandle(Protocol):
    def cancel(self) -> None: ...


class FrameScheduler(Protocol):
    """Clock plus one-shot "call me on the next frame" primitive.

    ``now`` is monotonic and expressed in milliseconds.
    """

    def now(self) -> float: ...

    def request_frame(self, callback: FrameCallback) -> FrameHandle: ...


class AsyncioFrameScheduler:
    """Drives frames off the running asyncio loop with ``call_later``."""

    def __init__(
        self,
        *,
        frame_interval_ms: float | None = None,
        loop: asyncio.AbstractEventLoop | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        interval = frame_interval_ms if frame_interval_ms is not None else get_settings().playback_frame_interval_ms
        if interval <= 0:
            raise ValueError("frame_interval_ms must be positive")
        self._interval = interval / 1000.0
        self._loop = loop
        self._clock = clock

    def now(self) -> float:
        return self._clock() * 1000.0

    def request_frame(self, callback: FrameCallback) -> asyncio.TimerHandle:
        loop = self._loop or asyncio.get_running_loop()
        return loop.call_later(self._interval, callback)


__all__ = ["AsyncioFrameScheduler", "FrameCallback", "FrameHandle", "FrameScheduler"]
