"""
Job store for long-running requests.

Keeps an in-memory registry of jobs backed by an append-only JSONL state
file, enforces forward-only status transitions and fans every transition
out to the push subscriptions of that job.
"""

import asyncio
import copy
import json
import threading
import uuid
from dataclasses import dataclass, asdict
from datetime import datetime, timedelta, timezone
from enum import Enum
from pathlib import Path
from typing import Optional

import structlog

from .errors import InvalidTransition, JobNotFound


logger = structlog.get_logger(__name__)


class JobState(str, Enum):
    QUEUED = "queued"
    IN_PROGRESS = "in-progress"
    COMPLETE = "complete"
    FAILED = "failed"


TERMINAL_STATES = frozenset({JobState.COMPLETE, JobState.FAILED})

_RANK = {
    JobState.QUEUED: 0,
    JobState.IN_PROGRESS: 1,
    JobState.COMPLETE: 2,
    JobState.FAILED: 2,
}


def utc_now() -> str:
    """Current UTC time as an ISO-8601 string."""
    return datetime.now(timezone.utc).isoformat()


@dataclass
class Job:
    """One long-running request tracked from submission to terminal outcome."""

    id: str
    status: JobState
    submitted_at: str
    input: dict = None               # Accepted request payload
    result: Optional[dict] = None    # Only when complete
    error: Optional[str] = None      # Only when failed
    started_at: Optional[str] = None
    finished_at: Optional[str] = None

    def __post_init__(self):
        if self.input is None:
            self.input = {}
        self.status = JobState(self.status)

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATES

    def to_dict(self) -> dict:
        """Convert to dict for JSON serialization."""
        data = asdict(self)
        data["status"] = self.status.value
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "Job":
        """Create from dict."""
        return cls(**data)

    def event_payload(self) -> dict:
        """Public view sent to clients: status plus result or error."""
        payload = {"id": self.id, "status": self.status.value}
        if self.status is JobState.COMPLETE:
            payload["result"] = self.result
        elif self.status is JobState.FAILED:
            payload["error"] = self.error
        return payload


class Subscription:
    """
    Listener for status changes of a single job.

    Transitions are buffered in a bounded queue. When the buffer overflows
    the subscription is marked broken and receives nothing more; the reader
    is expected to fall back to pull.
    """

    def __init__(self, job_id: str, maxsize: int = 16):
        self.job_id = job_id
        self.id = uuid.uuid4().hex
        self.broken = False
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=maxsize)

    def deliver(self, job: Job) -> None:
        if self.broken:
            return
        try:
            self._queue.put_nowait(job)
        except asyncio.QueueFull:
            self.broken = True
            logger.warning("subscription_overflow", job_id=self.job_id, subscription=self.id)

    async def next(self, timeout: Optional[float] = None) -> Optional[Job]:
        """
        Wait for the next transition.

        Returns None when ``timeout`` elapses without one.
        """
        try:
            return await asyncio.wait_for(self._queue.get(), timeout=timeout)
        except asyncio.TimeoutError:
            return None


class JobStore:
    """
    Durable job registry.

    The submission path owns ``create``; the worker owns every transition;
    readers only receive snapshot copies.
    """

    def __init__(self, state_file: Path, channel_buffer: int = 16):
        """
        Initialize job store.

        Args:
            state_file: Path to JSONL file for job state
            channel_buffer: Max pending events per subscription
        """
        self.state_file = Path(state_file)
        self.state_file.parent.mkdir(parents=True, exist_ok=True)
        self.channel_buffer = channel_buffer

        self._jobs: dict[str, Job] = {}
        self._subscribers: dict[str, dict[str, Subscription]] = {}
        self._lock = threading.RLock()

        self._load_state()

    def _load_state(self) -> None:
        """Replay the state file; the last record per id wins."""
        if not self.state_file.exists():
            return

        with open(self.state_file, "r", encoding="utf-8") as f:
            for lineno, line in enumerate(f, start=1):
                line = line.strip()
                if not line:
                    continue

                try:
                    data = json.loads(line)
                except json.JSONDecodeError:
                    logger.warning("state_line_skipped", file=str(self.state_file), line=lineno)
                    continue

                if data.get("deleted"):
                    self._jobs.pop(data["id"], None)
                    continue

                job = Job.from_dict(data)
                self._jobs[job.id] = job

        logger.info("state_loaded", file=str(self.state_file), jobs=len(self._jobs))

    def _append_state(self, record: dict) -> None:
        """Append one record to the state file."""
        with open(self.state_file, "a", encoding="utf-8") as f:
            f.write(json.dumps(record) + "\n")

    def create(self, input: Optional[dict] = None) -> Job:
        """
        Create a new job in ``queued`` state.

        The record is persisted before it becomes visible, so a failed write
        leaves no trace.

        Raises:
            OSError: If the state file cannot be written
        """
        job = Job(
            id=uuid.uuid4().hex,
            status=JobState.QUEUED,
            submitted_at=utc_now(),
            input=dict(input or {}),
        )

        with self._lock:
            self._append_state(job.to_dict())
            self._jobs[job.id] = job

        logger.info("job_created", job_id=job.id)
        return copy.deepcopy(job)

    def get(self, job_id: str) -> Optional[Job]:
        """
        Get a snapshot of a job by ID.

        Returns:
            Job copy if found, None otherwise
        """
        with self._lock:
            job = self._jobs.get(job_id)
            return copy.deepcopy(job) if job else None

    def list(self, status: Optional[str] = None) -> list[Job]:
        """
        List job snapshots, newest first.

        Args:
            status: Filter by status (queued, in-progress, complete, failed)
        """
        with self._lock:
            jobs = [copy.deepcopy(j) for j in self._jobs.values()]

        if status:
            wanted = JobState(status)
            jobs = [j for j in jobs if j.status is wanted]

        jobs.sort(key=lambda j: j.submitted_at, reverse=True)
        return jobs

    def mark_in_progress(self, job_id: str) -> Job:
        return self._transition(job_id, JobState.IN_PROGRESS)

    def mark_complete(self, job_id: str, result: dict) -> Job:
        return self._transition(job_id, JobState.COMPLETE, result=result)

    def mark_failed(self, job_id: str, error: str) -> Job:
        return self._transition(job_id, JobState.FAILED, error=error)

    def _transition(
        self,
        job_id: str,
        target: JobState,
        result: Optional[dict] = None,
        error: Optional[str] = None,
    ) -> Job:
        with self._lock:
            job = self._jobs.get(job_id)
            if job is None:
                raise JobNotFound(job_id)

            if job.is_terminal or _RANK[target] <= _RANK[job.status]:
                raise InvalidTransition(job_id, job.status.value, target.value)

            updated = copy.deepcopy(job)
            updated.status = target
            now = utc_now()
            if target is JobState.IN_PROGRESS:
                updated.started_at = now
            else:
                updated.finished_at = now
                updated.result = result if target is JobState.COMPLETE else None
                updated.error = error if target is JobState.FAILED else None

            self._append_state(updated.to_dict())
            self._jobs[job_id] = updated

            snapshot = copy.deepcopy(updated)
            for sub in list(self._subscribers.get(job_id, {}).values()):
                sub.deliver(snapshot)

        logger.info("job_transition", job_id=job_id, status=target.value)
        return copy.deepcopy(updated)

    def discard(self, job_id: str) -> bool:
        """
        Remove a job.

        Used to compensate a failed enqueue and by external retention
        policies. Returns True if a job was removed.

        Raises:
            OSError: If the tombstone cannot be written; the job is still
                removed from this process
        """
        with self._lock:
            if job_id not in self._jobs:
                return False
            # Gone from memory even if the tombstone cannot be written
            del self._jobs[job_id]
            self._append_state({"id": job_id, "deleted": True})

        logger.info("job_discarded", job_id=job_id)
        return True

    def purge_finished(self, max_age_hours: float) -> int:
        """
        Remove terminal jobs that finished more than ``max_age_hours`` ago.

        Returns:
            Number of jobs removed
        """
        cutoff = datetime.now(timezone.utc) - timedelta(hours=max_age_hours)
        removed = 0

        for job in self.list():
            if not job.is_terminal or not job.finished_at:
                continue
            finished = datetime.fromisoformat(job.finished_at)
            if finished.tzinfo is None:
                finished = finished.replace(tzinfo=timezone.utc)
            if finished < cutoff and self.discard(job.id):
                removed += 1

        return removed

    def subscribe(self, job_id: str) -> tuple[Subscription, Job]:
        """
        Register a listener for one job.

        The returned snapshot is taken under the same lock as the
        registration, so no transition falls between the two.

        Raises:
            JobNotFound: If the job does not exist
        """
        with self._lock:
            job = self._jobs.get(job_id)
            if job is None:
                raise JobNotFound(job_id)
            sub = Subscription(job_id, maxsize=self.channel_buffer)
            self._subscribers.setdefault(job_id, {})[sub.id] = sub
            return sub, copy.deepcopy(job)

    def unsubscribe(self, sub: Subscription) -> None:
        with self._lock:
            subs = self._subscribers.get(sub.job_id)
            if not subs:
                return
            subs.pop(sub.id, None)
            if not subs:
                del self._subscribers[sub.job_id]

    def subscriber_count(self, job_id: Optional[str] = None) -> int:
        with self._lock:
            if job_id is not None:
                return len(self._subscribers.get(job_id, {}))
            return sum(len(s) for s in self._subscribers.values())
