"""Deferred callback schedulers used to pace the computer's turn."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from heapq import heappop, heappush
from typing import Callable, Protocol

TaskCallback = Callable[[], None]


class Scheduler(Protocol):
    """Anything able to run a callback later and cancel it by handle."""

    def call_later(self, delay_seconds: float, callback: TaskCallback) -> int:
        ...

    def cancel(self, task_id: int) -> None:
        ...


@dataclass
class _Task:
    task_id: int
    due_seconds: float
    callback: TaskCallback
    cancelled: bool = False


class ManualScheduler:
    """Virtual-clock scheduler; callbacks run only when the clock is advanced."""

    def __init__(self) -> None:
        self._now_seconds = 0.0
        self._next_task_id = 1
        self._tasks: dict[int, _Task] = {}
        self._queue: list[tuple[float, int]] = []

    @property
    def now_seconds(self) -> float:
        return self._now_seconds

    @property
    def pending(self) -> int:
        """Return count of queued, uncancelled tasks."""
        return sum(1 for task in self._tasks.values() if not task.cancelled)

    def next_due(self) -> float | None:
        due = [task.due_seconds for task in self._tasks.values() if not task.cancelled]
        return min(due) if due else None

    def call_later(self, delay_seconds: float, callback: TaskCallback) -> int:
        if delay_seconds < 0.0:
            raise ValueError("delay_seconds must be >= 0")
        task_id = self._next_task_id
        self._next_task_id += 1
        task = _Task(task_id, self._now_seconds + delay_seconds, callback)
        self._tasks[task_id] = task
        heappush(self._queue, (task.due_seconds, task_id))
        return task_id

    def cancel(self, task_id: int) -> None:
        task = self._tasks.get(task_id)
        if task is not None:
            task.cancelled = True

    def advance(self, delta_seconds: float) -> int:
        """Move the clock forward and run every callback now due."""
        if delta_seconds < 0.0:
            raise ValueError("delta_seconds must be >= 0")
        self._now_seconds += delta_seconds
        executed = 0
        while self._queue and self._queue[0][0] <= self._now_seconds:
            _, task_id = heappop(self._queue)
            task = self._tasks.pop(task_id, None)
            if task is None or task.cancelled:
                continue
            task.callback()
            executed += 1
        return executed

    def run_pending(self) -> int:
        """Advance straight to each queued task until none remain."""
        executed = 0
        while (due := self.next_due()) is not None:
            executed += self.advance(max(0.0, due - self._now_seconds))
        return executed


class AsyncioScheduler:
    """Scheduler backed by an asyncio event loop's ``call_later``."""

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self._loop = loop or asyncio.get_running_loop()
        self._next_task_id = 1
        self._handles: dict[int, asyncio.TimerHandle] = {}

    @property
    def pending(self) -> int:
        return len(self._handles)

    def call_later(self, delay_seconds: float, callback: TaskCallback) -> int:
        task_id = self._next_task_id
        self._next_task_id += 1

        def _run() -> None:
            self._handles.pop(task_id, None)
            callback()

        self._handles[task_id] = self._loop.call_later(delay_seconds, _run)
        return task_id

    def cancel(self, task_id: int) -> None:
        handle = self._handles.pop(task_id, None)
        if handle is not None:
            handle.cancel()
