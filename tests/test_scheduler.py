"""Unit tests for the custom Scheduler class."""
from __future__ import annotations

import threading
import time
from concurrent.futures import ThreadPoolExecutor

import pytest

from survey_chatbot.scheduler import Scheduler


class TestScheduler:
    """Verify Scheduler executes callbacks and handles edge-cases."""

    def test_schedule_executes_callback_after_delay(self):
        """Callback should run after the specified delay using the executor."""
        executed = threading.Event()

        def _callback(arg: str) -> None:  # noqa: D401 – simple test function
            assert arg == "hello"
            executed.set()

        with ThreadPoolExecutor(max_workers=2) as executor:
            sched = Scheduler(executor)
            sched.schedule(0.05, _callback, "hello")  # 50 ms delay

            assert executed.wait(1.0), "Scheduled callback did not execute in time"
            sched.shutdown()

    def test_keyword_arguments_are_forwarded(self):
        received = {}
        done = threading.Event()

        def _callback(*, user_id):
            received["user_id"] = user_id
            done.set()

        with ThreadPoolExecutor(max_workers=1) as executor:
            sched = Scheduler(executor)
            sched.schedule(0, _callback, user_id="U1")
            assert done.wait(1.0)
            sched.shutdown()
        assert received == {"user_id": "U1"}

    def test_schedule_negative_delay_raises(self):
        with ThreadPoolExecutor(max_workers=1) as executor:
            sched = Scheduler(executor)
            with pytest.raises(ValueError):
                sched.schedule(-1, lambda: None)
            sched.shutdown()

    def test_cancel_prevents_execution(self):
        fired = threading.Event()
        with ThreadPoolExecutor(max_workers=1) as executor:
            sched = Scheduler(executor)
            task_id = sched.schedule(0.1, fired.set)
            assert sched.pending_count() == 1

            assert sched.cancel(task_id) is True
            assert sched.pending_count() == 0
            time.sleep(0.3)
            assert not fired.is_set()
            sched.shutdown()

    def test_cancel_after_run_returns_false(self):
        fired = threading.Event()
        with ThreadPoolExecutor(max_workers=1) as executor:
            sched = Scheduler(executor)
            task_id = sched.schedule(0, fired.set)
            assert fired.wait(1.0)
            assert sched.cancel(task_id) is False
            assert sched.cancel(12345) is False
            sched.shutdown()

    def test_cancel_one_keeps_others(self):
        fired = []
        done = threading.Event()

        def _record(name):
            fired.append(name)
            done.set()

        with ThreadPoolExecutor(max_workers=1) as executor:
            sched = Scheduler(executor)
            first = sched.schedule(0.05, _record, "first")
            sched.schedule(0.1, _record, "second")
            sched.cancel(first)
            assert done.wait(1.0)
            sched.shutdown()
        assert fired == ["second"]

    def test_shutdown_stops_background_thread(self):
        with ThreadPoolExecutor(max_workers=1) as executor:
            sched = Scheduler(executor)
            assert sched._thread.is_alive()
            sched.shutdown()
            assert not sched._thread.is_alive()
