"""Lightweight task scheduler for non-blocking timed callbacks.

The Scheduler keeps one background daemon thread that sleeps until the next
task is due, then submits it to a shared ThreadPoolExecutor. The chat app
uses it to expire idle survey sessions.

• schedule() – run a callable after a delay (seconds); returns a task id.
• cancel()   – drop a pending task; returns *False* if it already ran.
• shutdown() – stop the background thread.
"""
from __future__ import annotations

import heapq
import itertools
import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, Dict, Tuple

logger = logging.getLogger(__name__)


class _ScheduledItem:
    """Internal container for a scheduled callback."""

    __slots__ = ("run_at", "task_id", "callback", "args", "kwargs")

    def __init__(
        self,
        run_at: float,
        task_id: int,
        callback: Callable[..., Any],
        args: Tuple[Any, ...],
        kwargs: Dict[str, Any],
    ) -> None:
        self.run_at = run_at
        self.task_id = task_id
        self.callback = callback
        self.args = args
        self.kwargs = kwargs

    # Heap ordering by run_at then task_id ensures stability.
    def __lt__(self, other: "_ScheduledItem") -> bool:
        return (self.run_at, self.task_id) < (other.run_at, other.task_id)


class Scheduler:
    """A minimal, thread-safe scheduler for delayed callbacks."""

    def __init__(self, executor: ThreadPoolExecutor) -> None:
        self._executor = executor
        self._lock = threading.Condition()
        self._queue: list[_ScheduledItem] = []
        self._pending: set[int] = set()
        self._task_counter = itertools.count()
        self._running = True
        self._thread = threading.Thread(target=self._run, daemon=True, name="scheduler")
        self._thread.start()
        logger.info("Scheduler started.")

    # ---------------------------------------------------------------------
    # Public API
    # ---------------------------------------------------------------------
    def schedule(
        self,
        delay_seconds: float,
        callback: Callable[..., Any],
        *args: Any,
        **kwargs: Any,
    ) -> int:
        """Schedule *callback* to be executed after *delay_seconds*.

        Returns a unique integer task id.
        """
        if delay_seconds < 0:
            raise ValueError("delay_seconds must be non-negative")
        run_at = time.monotonic() + delay_seconds
        task_id = next(self._task_counter)
        item = _ScheduledItem(run_at, task_id, callback, args, kwargs)
        with self._lock:
            heapq.heappush(self._queue, item)
            self._pending.add(task_id)
            self._lock.notify()
        return task_id

    def cancel(self, task_id: int) -> bool:
        """Cancel a pending task. Returns *True* if it had not run yet."""
        with self._lock:
            if task_id not in self._pending:
                return False
            self._pending.discard(task_id)
            # Lazy deletion: the loop skips items no longer pending.
            self._lock.notify()
            return True

    def pending_count(self) -> int:
        with self._lock:
            return len(self._pending)

    def shutdown(self) -> None:
        """Stop the scheduler and wait for the background thread to finish."""
        with self._lock:
            self._running = False
            self._lock.notify()
        self._thread.join()
        logger.info("Scheduler shut down.")

    # ------------------------------------------------------------------
    # Internal loop
    # ------------------------------------------------------------------
    def _run(self) -> None:  # noqa: D401 – simple private method
        """Background thread: dispatch tasks when due."""
        while True:
            with self._lock:
                while self._running and not self._queue:
                    self._lock.wait()
                if not self._running:
                    break
                next_item = self._queue[0]
                if next_item.task_id not in self._pending:
                    heapq.heappop(self._queue)
                    continue
                delay = next_item.run_at - time.monotonic()
                if delay > 0:
                    # Sleep until due or until new task arrives / shutdown.
                    self._lock.wait(timeout=delay)
                    continue
                heapq.heappop(self._queue)
                self._pending.discard(next_item.task_id)
            # Submit outside the lock to avoid deadlocks.
            try:
                self._executor.submit(next_item.callback, *next_item.args, **next_item.kwargs)
            except Exception:  # pragma: no cover – log and keep going
                logger.exception(
                    "Error submitting scheduled task %s", next_item.task_id
                )
