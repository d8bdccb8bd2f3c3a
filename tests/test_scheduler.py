"""
Tests for the virtual-clock task scheduler.
"""

import pytest

from infall.scheduler import TaskScheduler


class TestTaskScheduler:

    def test_fires_when_due(self):
        fired = []
        sched = TaskScheduler()
        handle = sched.call_later(1.0, lambda: fired.append(sched.now))

        assert sched.advance(0.5) == 0
        assert handle.pending
        assert sched.advance(0.5) == 1
        assert fired == [1.0]
        assert handle.fired
        assert not handle.pending

    def test_due_time_order(self):
        order = []
        sched = TaskScheduler()
        sched.call_later(3.0, lambda: order.append("c"))
        sched.call_later(1.0, lambda: order.append("a"))
        sched.call_later(2.0, lambda: order.append("b"))
        sched.call_later(1.0, lambda: order.append("a2"))

        assert sched.advance(5.0) == 4
        assert order == ["a", "a2", "b", "c"]

    def test_cancel(self):
        fired = []
        sched = TaskScheduler()
        handle = sched.call_later(1.0, lambda: fired.append(1))
        handle.cancel()
        handle.cancel()

        assert handle.cancelled
        assert sched.pending == 0
        assert sched.advance(2.0) == 0
        assert fired == []

    def test_pending_and_next_due(self):
        sched = TaskScheduler(start=10.0)
        assert sched.next_due() is None
        first = sched.call_later(2.0, lambda: None)
        sched.call_later(5.0, lambda: None)

        assert sched.pending == 2
        assert sched.next_due() == pytest.approx(12.0)
        first.cancel()
        assert sched.next_due() == pytest.approx(15.0)

    def test_zero_delay_runs_on_next_advance(self):
        fired = []
        sched = TaskScheduler()
        sched.call_later(0.0, lambda: fired.append(True))
        assert fired == []
        sched.advance(0.0)
        assert fired == [True]

    def test_callback_may_reschedule(self):
        fired = []
        sched = TaskScheduler()

        def first():
            fired.append("first")
            sched.call_later(0.0, lambda: fired.append("second"))

        sched.call_later(1.0, first)
        assert sched.advance(1.0) == 2
        assert fired == ["first", "second"]

    @pytest.mark.parametrize("bad", [-1.0, float("nan")])
    def test_invalid_delay(self, bad):
        sched = TaskScheduler()
        with pytest.raises(ValueError):
            sched.call_later(bad, lambda: None)
        with pytest.raises(ValueError):
            sched.advance(bad)
