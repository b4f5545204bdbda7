"""Submission endpoint logic: create a job, enqueue it, return at once."""

from typing import Any, Optional

import structlog

from job_relay.ops.errors import QueueUnavailable, SubmissionFailure
from job_relay.ops.jobs import Job, JobStore
from job_relay.ops.queue import JobQueue


logger = structlog.get_logger(__name__)


class SubmissionService:
    """
    Creates exactly one job per accepted request.

    Create-then-enqueue is compensated: when the queue refuses the id the
    job is discarded again, so no queued job is left without a queue entry.
    """

    def __init__(self, store: JobStore, queue: JobQueue):
        self.store = store
        self.queue = queue

    def submit(self, input: Optional[dict[str, Any]] = None) -> Job:
        """
        Accept one request.

        Raises:
            SubmissionFailure: If the store or the queue is unavailable
        """
        try:
            job = self.store.create(input)
        except OSError as e:
            logger.error("submission_failed", stage="store", error=str(e))
            raise SubmissionFailure(f"job store unavailable: {e}") from e

        try:
            self.queue.enqueue(job.id)
        except QueueUnavailable as e:
            try:
                self.store.discard(job.id)
            except OSError:
                logger.exception("compensation_failed", job_id=job.id)
            logger.error("submission_failed", stage="queue", job_id=job.id, error=str(e))
            raise SubmissionFailure(f"job queue unavailable: {e}") from e

        logger.info("job_enqueued", job_id=job.id)
        return job
