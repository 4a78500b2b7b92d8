"""
Tests for schedulers and the debouncer.
"""

import asyncio

import pytest
from qmlsync.scheduling import AsyncioScheduler, Debouncer, ManualScheduler, TkScheduler


class FakeTkWidget:
    def __init__(self):
        self.scheduled = {}
        self.cancelled = []
        self._next = 0

    def after(self, ms, callback):
        self._next += 1
        after_id = f"after#{self._next}"
        self.scheduled[after_id] = (ms, callback)
        return after_id

    def after_cancel(self, after_id):
        self.cancelled.append(after_id)


class TestManualScheduler:
    def test_nothing_runs_until_advanced(self):
        clock = ManualScheduler()
        calls = []
        clock.call_later(0.1, lambda: calls.append("a"))
        assert calls == []
        assert clock.pending == 1
        assert clock.advance(0.05) == 0
        assert clock.advance(0.06) == 1
        assert calls == ["a"]
        assert clock.pending == 0

    def test_deadline_order_then_scheduling_order(self):
        clock = ManualScheduler()
        calls = []
        clock.call_later(0.2, lambda: calls.append("late"))
        clock.call_later(0.1, lambda: calls.append("first"))
        clock.call_later(0.1, lambda: calls.append("second"))
        clock.advance(1)
        assert calls == ["first", "second", "late"]

    def test_cancelled_callbacks_do_not_run(self):
        clock = ManualScheduler()
        calls = []
        handle = clock.call_later(0.1, lambda: calls.append("x"))
        handle.cancel()
        clock.advance(1)
        assert calls == []

    def test_callbacks_scheduled_while_advancing(self):
        clock = ManualScheduler()
        calls = []
        clock.call_later(0.1, lambda: clock.call_later(0.1, lambda: calls.append(clock.now)))
        clock.advance(0.5)
        assert calls == [pytest.approx(0.2)]
        assert clock.now == pytest.approx(0.5)

    def test_run_all(self):
        clock = ManualScheduler()
        calls = []
        clock.call_later(10, lambda: calls.append(1))
        clock.call_later(100, lambda: calls.append(2))
        assert clock.run_all() == 2
        assert calls == [1, 2]


class TestAsyncioScheduler:
    def test_requires_running_loop(self):
        with pytest.raises(RuntimeError):
            AsyncioScheduler().call_later(0.01, lambda: None)

    def test_runs_on_running_loop(self):
        calls = []

        async def scenario():
            scheduler = AsyncioScheduler()
            scheduler.call_later(0.01, lambda: calls.append("a"))
            cancelled = scheduler.call_later(0.01, lambda: calls.append("b"))
            cancelled.cancel()
            await asyncio.sleep(0.05)

        asyncio.run(scenario())
        assert calls == ["a"]


class TestTkScheduler:
    def test_after_and_cancel(self):
        widget = FakeTkWidget()
        scheduler = TkScheduler(widget)
        handle = scheduler.call_later(0.15, lambda: None)
        assert list(widget.scheduled.values())[0][0] == 150
        handle.cancel()
        assert widget.cancelled == ["after#1"]


class TestDebouncer:
    def test_burst_runs_only_last(self):
        clock = ManualScheduler()
        debouncer = Debouncer(clock, 0.15)
        calls = []
        for i in range(5):
            debouncer.schedule(lambda i=i: calls.append(i))
            clock.advance(0.05)
        assert calls == []
        assert debouncer.pending
        clock.advance(0.15)
        assert calls == [4]
        assert not debouncer.pending

    def test_cancel(self):
        clock = ManualScheduler()
        debouncer = Debouncer(clock, 0.15)
        calls = []
        debouncer.schedule(lambda: calls.append(1))
        debouncer.cancel()
        clock.advance(1)
        assert calls == []
        assert not debouncer.pending

    def test_flush_runs_now_once(self):
        clock = ManualScheduler()
        debouncer = Debouncer(clock, 0.15)
        calls = []
        debouncer.schedule(lambda: calls.append(1))
        assert debouncer.flush() is True
        assert calls == [1]
        clock.advance(1)
        assert calls == [1]
        assert debouncer.flush() is False

    def test_failed_schedule_leaves_nothing_pending(self):
        debouncer = Debouncer(AsyncioScheduler(), 0.15)
        with pytest.raises(RuntimeError):
            debouncer.schedule(lambda: None)
        assert not debouncer.pending
