"""Error types shared by the store, queue, worker and API layers."""


class RelayError(Exception):
    """Base exception for job relay errors."""
    pass


class JobNotFound(RelayError):
    def __init__(self, job_id: str):
        super().__init__(f"Job {job_id} not found")
        self.job_id = job_id


class InvalidTransition(RelayError):
    def __init__(self, job_id: str, current: str, target: str):
        super().__init__(f"Job {job_id}: cannot transition from {current} to {target}")
        self.job_id = job_id
        self.current = current
        self.target = target


class QueueUnavailable(RelayError):
    """Queue is full, closed, or not started."""
    pass


class SubmissionFailure(RelayError):
    """Request was not accepted: the store or the queue is unavailable."""
    pass


class ProcessingFailure(RelayError):
    """Failure reported by the worker; recorded on the job as ``failed``."""
    pass


class ChannelFailure(RelayError):
    """Push channel could not be opened or kept; clients fall back to pull."""
    pass
