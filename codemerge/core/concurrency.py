#!/usr/bin/env python3
"""
Bounded concurrency for I/O tasks.

A fixed-size pool of in-flight slots pulls work from a FIFO queue. As soon as
one task settles the next queued task starts; there are no batch boundaries.
Every task settles independently: a failure is captured in its own result and
never cancels or blocks its siblings.
"""

import asyncio
import functools
import inspect
import time
from collections import deque
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Deque, Dict, Iterable, List, Optional, Set, Union

from .errors import QueueClearedError
from codemerge.utils import get_logger

logger = get_logger("concurrency-limiter")

Action = Callable[[], Union[Awaitable[Any], Any]]


@dataclass(frozen=True)
class ProgressEvent:
    """Reported after each task settles, in completion order"""
    completed: int
    total: int
    percent: int
    index: int


ProgressCallback = Callable[[ProgressEvent], None]


@dataclass
class TaskResult:
    """Outcome of one task: ``value`` when ok, ``error`` otherwise"""
    ok: bool
    value: Any = None
    error: Optional[BaseException] = None


@dataclass
class _QueuedTask:
    action: Action
    future: asyncio.Future
    added_at: float


class ConcurrencyLimiter:
    """
    Executes tasks with at most ``concurrency`` of them in flight.

    Instances are meant to be shared by all reads of one logical invocation.
    All bookkeeping happens on the event loop thread, so no locking is needed.
    """

    def __init__(self, concurrency: int = 8, task_timeout: Optional[float] = None):
        """
        Args:
            concurrency: Maximum number of simultaneously executing tasks
            task_timeout: Optional per-task timeout in seconds. None (default)
                means a hung task holds its slot indefinitely.
        """
        if concurrency < 1:
            raise ValueError(f"concurrency must be at least 1, got {concurrency}")
        if task_timeout is not None and task_timeout <= 0:
            raise ValueError(f"task_timeout must be positive, got {task_timeout}")

        self.concurrency = concurrency
        self.task_timeout = task_timeout
        self._pending: Deque[_QueuedTask] = deque()
        self._in_flight = 0
        self._running: Set[asyncio.Future] = set()
        self.reset_stats()

    @property
    def in_flight(self) -> int:
        return self._in_flight

    @property
    def pending(self) -> int:
        return len(self._pending)

    def submit(self, action: Action) -> asyncio.Future:
        """
        Queue a task and start it as soon as a slot is free.

        Args:
            action: Zero-argument callable returning an awaitable (or a value)

        Returns:
            Future settled with the task's value or exception
        """
        future = asyncio.get_running_loop().create_future()
        self._pending.append(_QueuedTask(action, future, time.monotonic()))
        self._stats['total'] += 1
        self._pump()
        return future

    async def run(self,
                  actions: Iterable[Action],
                  progress_callback: Optional[ProgressCallback] = None) -> List[TaskResult]:
        """
        Run all actions through the pool.

        Args:
            actions: Zero-argument callables
            progress_callback: Called after each task settles

        Returns:
            One TaskResult per action; result[i] corresponds to actions[i]
        """
        actions = list(actions)
        total = len(actions)
        if total == 0:
            return []

        results: List[Optional[TaskResult]] = [None] * total
        completed = 0

        def settle(index: int, future: asyncio.Future):
            nonlocal completed
            if future.cancelled():
                results[index] = TaskResult(ok=False, error=asyncio.CancelledError())
            elif future.exception() is not None:
                results[index] = TaskResult(ok=False, error=future.exception())
            else:
                results[index] = TaskResult(ok=True, value=future.result())

            completed += 1
            if progress_callback is not None:
                event = ProgressEvent(
                    completed=completed,
                    total=total,
                    percent=round(completed / total * 100),
                    index=index,
                )
                try:
                    progress_callback(event)
                except Exception as e:
                    logger.warning(f"Progress callback failed: {e}")

        futures = []
        for index, action in enumerate(actions):
            future = self.submit(action)
            future.add_done_callback(functools.partial(settle, index))
            futures.append(future)

        await asyncio.gather(*futures, return_exceptions=True)
        return results

    def clear(self) -> int:
        """
        Reject every queued task that has not started yet.

        Tasks already executing are not interrupted.

        Returns:
            Number of tasks cleared
        """
        count = 0
        while self._pending:
            queued = self._pending.popleft()
            if not queued.future.done():
                queued.future.set_exception(QueueClearedError("Task queue cleared"))
                count += 1

        self._stats['cleared'] += count
        if count:
            logger.info(f"Cleared {count} queued tasks")
        return count

    def get_stats(self) -> Dict[str, Any]:
        """Get processing statistics"""
        stats = self._stats
        start, end = stats['start_time'], stats['end_time']
        if start is None:
            duration = 0.0
        else:
            duration = (end if end is not None else time.monotonic()) - start

        finished = stats['completed'] + stats['failed']
        return {
            'total': stats['total'],
            'completed': stats['completed'],
            'failed': stats['failed'],
            'cleared': stats['cleared'],
            'in_flight': self._in_flight,
            'pending': len(self._pending),
            'duration': duration,
            'tasks_per_second': finished / duration if duration > 0 else 0.0,
            'success_rate': stats['completed'] / finished if finished else 0.0,
        }

    def reset_stats(self):
        self._stats = {
            'total': 0,
            'completed': 0,
            'failed': 0,
            'cleared': 0,
            'start_time': None,
            'end_time': None,
        }

    def _pump(self):
        """Start queued tasks while slots are free"""
        while self._in_flight < self.concurrency and self._pending:
            queued = self._pending.popleft()
            if queued.future.done():
                # Cancelled by its submitter before it started
                continue

            if self._stats['start_time'] is None or self._stats['end_time'] is not None:
                self._stats['start_time'] = time.monotonic()
                self._stats['end_time'] = None

            self._in_flight += 1
            task = asyncio.ensure_future(self._execute(queued))
            self._running.add(task)
            task.add_done_callback(self._running.discard)

    async def _execute(self, queued: _QueuedTask):
        wait_time = time.monotonic() - queued.added_at
        logger.trace(f"Task started after waiting {wait_time:.3f}s ({self._in_flight}/{self.concurrency} in flight)")

        try:
            outcome = queued.action()
            if inspect.isawaitable(outcome):
                if self.task_timeout is not None:
                    outcome = await asyncio.wait_for(outcome, self.task_timeout)
                else:
                    outcome = await outcome
        except asyncio.CancelledError:
            if not queued.future.done():
                queued.future.cancel()
            raise
        except Exception as e:
            self._stats['failed'] += 1
            if not queued.future.done():
                queued.future.set_exception(e)
        else:
            self._stats['completed'] += 1
            if not queued.future.done():
                queued.future.set_result(outcome)
        finally:
            self._in_flight -= 1
            if not self._pending and self._in_flight == 0:
                self._stats['end_time'] = time.monotonic()
            self._pump()
