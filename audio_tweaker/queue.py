from __future__ import annotations

import asyncio
import logging
from collections import deque
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Deque, Set

from audio_tweaker.models import QueueStatus

log = logging.getLogger("audio_tweaker.queue")

JobFactory = Callable[[], Awaitable[Any]]


class JobDiscardedError(RuntimeError):
    """Raised into the future of a job removed by ``clear`` before it started."""


@dataclass
class _PendingJob:
    factory: JobFactory
    future: "asyncio.Future[Any]"


class ProcessingQueue:
    """FIFO job queue with at most ``concurrency`` jobs executing at once.

    Counters are only mutated between awaits on the event loop thread, so
    ``pause``/``resume``/``clear``/``status`` are plain synchronous calls.
    Pausing holds back new starts; running jobs always finish.
    """

    def __init__(self, concurrency: int = 2):
        if concurrency < 1:
            raise ValueError("invalid_concurrency: concurrency must be at least 1.")
        self.concurrency = concurrency
        self._pending: Deque[_PendingJob] = deque()
        self._active = 0
        self._paused = False
        self._tasks: Set["asyncio.Task[None]"] = set()

    @property
    def paused(self) -> bool:
        return self._paused

    def submit(self, factory: JobFactory) -> "asyncio.Future[Any]":
        """Queue a coroutine factory; the returned future resolves with its result."""
        future = asyncio.get_running_loop().create_future()
        self._pending.append(_PendingJob(factory=factory, future=future))
        self._drain()
        return future

    def _drain(self) -> None:
        while not self._paused and self._active < self.concurrency and self._pending:
            item = self._pending.popleft()
            if item.future.done():
                continue
            self._active += 1
            task = asyncio.get_running_loop().create_task(self._run(item))
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)

    async def _run(self, item: _PendingJob) -> None:
        try:
            result = await item.factory()
        except Exception as exc:
            if not item.future.done():
                item.future.set_exception(exc)
        else:
            if not item.future.done():
                item.future.set_result(result)
        finally:
            self._active -= 1
            self._drain()

    def pause(self) -> None:
        if not self._paused:
            log.info("Queue paused with %d pending, %d active", len(self._pending), self._active)
        self._paused = True

    def resume(self) -> None:
        if self._paused:
            log.info("Queue resumed with %d pending", len(self._pending))
        self._paused = False
        if self._pending:
            self._drain()

    def clear(self) -> int:
        """Discard every job that has not started yet; returns how many were dropped."""
        dropped = 0
        while self._pending:
            item = self._pending.popleft()
            if not item.future.done():
                item.future.set_exception(JobDiscardedError("Job removed from queue before it started"))
                dropped += 1
        if dropped:
            log.info("Queue cleared: %d pending job(s) discarded", dropped)
        return dropped

    def status(self) -> QueueStatus:
        return QueueStatus(
            pending=len(self._pending),
            active=self._active,
            paused=self._paused,
            concurrency=self.concurrency,
        )
