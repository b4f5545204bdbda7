"""Queue interface and in-process implementation.

The relay only needs ``enqueue`` to be non-blocking and ``get`` to hand job
ids to the worker. Swap ``InProcessQueue`` for a broker-backed class with
the same contract in deployments that have one.
"""

import asyncio
from abc import ABC, abstractmethod

from .errors import QueueUnavailable


class JobQueue(ABC):
    """Abstract queue/task-runner contract."""

    @abstractmethod
    def enqueue(self, job_id: str) -> None:
        """Add a job id without blocking. Raises QueueUnavailable."""
        ...

    @abstractmethod
    async def get(self) -> str:
        """Wait for the next job id."""
        ...

    @abstractmethod
    def open(self) -> None:
        ...

    @abstractmethod
    def close(self) -> None:
        ...


class InProcessQueue(JobQueue):
    """Bounded asyncio queue. Enqueue fails fast when full or closed."""

    def __init__(self, maxsize: int = 100):
        self._queue: asyncio.Queue[str] = asyncio.Queue(maxsize=maxsize)
        self._open = False

    @property
    def is_open(self) -> bool:
        return self._open

    def qsize(self) -> int:
        return self._queue.qsize()

    def open(self) -> None:
        self._open = True

    def close(self) -> None:
        self._open = False

    def enqueue(self, job_id: str) -> None:
        if not self._open:
            raise QueueUnavailable("queue is closed")
        try:
            self._queue.put_nowait(job_id)
        except asyncio.QueueFull:
            raise QueueUnavailable(f"queue is full ({self._queue.maxsize} pending)")

    async def get(self) -> str:
        return await self._queue.get()
