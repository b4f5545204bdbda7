"""
Job lifecycle: store, queue and worker.

Provides background job execution with persistent status tracking.
"""

from .jobs import Job, JobState, JobStore, Subscription, TERMINAL_STATES
from .queue import JobQueue, InProcessQueue
from .worker import Worker

__all__ = [
    "Job",
    "JobState",
    "JobStore",
    "Subscription",
    "TERMINAL_STATES",
    "JobQueue",
    "InProcessQueue",
    "Worker",
]
