"""
Job worker - consumes queued job ids and runs the long-running operation.

Owns every status transition after creation.
"""

import asyncio
from typing import Any, Optional, Protocol

import structlog

from .errors import InvalidTransition, ProcessingFailure
from .jobs import JobState, JobStore
from .queue import JobQueue


logger = structlog.get_logger(__name__)


class Invoker(Protocol):
    def invoke(self, input: dict[str, Any]) -> dict[str, Any]:
        ...


class Worker:
    """
    Runs ``concurrency`` asyncio tasks pulling from the queue.

    The invoker is synchronous and runs in a thread so the event loop keeps
    serving submissions and status requests. Failures are recorded on the
    job; nothing is retried here.
    """

    def __init__(
        self,
        store: JobStore,
        queue: JobQueue,
        invoker: Invoker,
        concurrency: int = 1,
    ):
        self.store = store
        self.queue = queue
        self.invoker = invoker
        self.concurrency = max(1, concurrency)
        self._tasks: list[asyncio.Task] = []

    @property
    def running(self) -> bool:
        return any(not t.done() for t in self._tasks)

    async def start(self) -> None:
        self.queue.open()
        self._tasks = [
            asyncio.create_task(self._loop(i), name=f"job-worker-{i}")
            for i in range(self.concurrency)
        ]
        logger.info("worker_started", concurrency=self.concurrency)

    async def stop(self) -> None:
        self.queue.close()
        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks = []
        logger.info("worker_stopped")

    async def _loop(self, index: int) -> None:
        while True:
            job_id = await self.queue.get()
            try:
                await self.process(job_id)
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception("worker_error", worker=index, job_id=job_id)

    async def process(self, job_id: str) -> Optional[str]:
        """
        Run one job to a terminal state.

        Returns:
            Final status value, or None if the job was skipped
        """
        job = self.store.get(job_id)
        if job is None or job.status is not JobState.QUEUED:
            logger.info("job_skipped", job_id=job_id, status=job.status.value if job else None)
            return None

        try:
            self.store.mark_in_progress(job_id)
        except InvalidTransition:
            return None

        try:
            result = await asyncio.to_thread(self.invoker.invoke, job.input)
        except Exception as e:
            failure = ProcessingFailure(f"{type(e).__name__}: {e}")
            logger.warning("job_failed", job_id=job_id, error=str(failure))
            self.store.mark_failed(job_id, str(failure))
            return JobState.FAILED.value

        try:
            self.store.mark_complete(job_id, result)
        except (TypeError, ValueError, OSError) as e:
            # Result could not be recorded; the job must still end
            failure = ProcessingFailure(f"{type(e).__name__}: {e}")
            logger.warning("job_result_rejected", job_id=job_id, error=str(failure))
            self.store.mark_failed(job_id, str(failure))
            return JobState.FAILED.value

        return JobState.COMPLETE.value
