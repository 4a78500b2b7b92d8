"""
Cancellable delayed callbacks and a debouncer built on them.

The arbitrator never owns an event loop. It asks a Scheduler for a delayed
call and cancels the handle when a newer event arrives. Hosts pick the
scheduler matching their loop: asyncio, Tk, or a manual clock they pump
themselves (tests use the manual clock).
"""

from __future__ import annotations

import asyncio
import itertools
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, Protocol

Callback = Callable[[], Any]


class Handle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    def call_later(self, delay: float, callback: Callback) -> Handle: ...


class AsyncioScheduler:
    """Schedules on an asyncio loop; the running loop is looked up at call time."""

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None):
        self._loop = loop

    def call_later(self, delay: float, callback: Callback) -> Handle:
        loop = self._loop or asyncio.get_running_loop()
        return loop.call_later(delay, callback)


@dataclass
class _TkHandle:
    widget: Any
    after_id: str

    def cancel(self) -> None:
        self.widget.after_cancel(self.after_id)


class TkScheduler:
    """Schedules through a Tk widget's `after`/`after_cancel`."""

    def __init__(self, widget: Any):
        self.widget = widget

    def call_later(self, delay: float, callback: Callback) -> Handle:
        after_id = self.widget.after(max(0, int(delay * 1000)), callback)
        return _TkHandle(self.widget, after_id)


@dataclass
class _ManualHandle:
    deadline: float
    seq: int
    callback: Callback
    cancelled: bool = False

    def cancel(self) -> None:
        self.cancelled = True


@dataclass
class ManualScheduler:
    """
    Virtual clock. Nothing runs until advance() is called.

    Callbacks due within the advanced span run in deadline order (ties in
    scheduling order). Callbacks scheduled while advancing run too if their
    deadline falls inside the span.
    """
    now: float = 0.0
    _queue: list[_ManualHandle] = field(default_factory=list)
    _counter: itertools.count = field(default_factory=itertools.count)

    def call_later(self, delay: float, callback: Callback) -> Handle:
        handle = _ManualHandle(self.now + max(0.0, delay), next(self._counter), callback)
        self._queue.append(handle)
        return handle

    @property
    def pending(self) -> int:
        """Number of scheduled, not cancelled callbacks."""
        return sum(1 for h in self._queue if not h.cancelled)

    def advance(self, seconds: float) -> int:
        """Move the clock forward, running due callbacks. Returns how many ran."""
        target = self.now + seconds
        ran = 0
        while True:
            self._queue = [h for h in self._queue if not h.cancelled]
            due = [h for h in self._queue if h.deadline <= target]
            if not due:
                break
            handle = min(due, key=lambda h: (h.deadline, h.seq))
            self._queue.remove(handle)
            self.now = handle.deadline
            handle.callback()
            ran += 1
        self.now = target
        return ran

    def run_all(self) -> int:
        """Run everything pending, however far in the future."""
        ran = 0
        while self.pending:
            latest = max(h.deadline for h in self._queue if not h.cancelled)
            ran += self.advance(max(0.0, latest - self.now))
        return ran


class Debouncer:
    """
    Coalesces bursts: only the last scheduled callback runs, `delay` seconds
    after the last schedule() call.
    """

    def __init__(self, scheduler: Scheduler, delay: float):
        self.scheduler = scheduler
        self.delay = delay
        self._handle: Handle | None = None
        self._callback: Callback | None = None

    @property
    def pending(self) -> bool:
        return self._callback is not None

    def schedule(self, callback: Callback) -> None:
        """(Re)arm the timer; a not-yet-fired callback is dropped."""
        self.cancel()
        # Only remember the callback once the scheduler accepted it
        self._handle = self.scheduler.call_later(self.delay, self._fire)
        self._callback = callback

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
        self._handle = None
        self._callback = None

    def flush(self) -> bool:
        """Run the pending callback now. Returns False if nothing was pending."""
        if self._callback is None:
            return False
        callback = self._callback
        self.cancel()
        callback()
        return True

    def _fire(self) -> None:
        callback = self._callback
        self._handle = None
        self._callback = None
        if callback is not None:
            callback()
