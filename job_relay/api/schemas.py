"""
Pydantic schemas for FastAPI endpoints.
"""

from pydantic import BaseModel, Field
from typing import Optional, List, Dict, Any

from job_relay.ops.jobs import Job


class JobSubmitRequest(BaseModel):
    """Request model for POST /api/jobs."""

    prompt: str = Field(..., min_length=1, description="Prompt for the long-running generation")
    options: Dict[str, Any] = Field(default_factory=dict, description="Generation overrides (temperature, max_new_tokens, top_p, top_k)")

    def to_input(self) -> Dict[str, Any]:
        return {"prompt": self.prompt, "options": self.options}


class JobAcceptedResponse(BaseModel):
    """Response model for POST /api/jobs."""

    id: str = Field(..., description="Job ID for tracking")
    status: str = Field(..., description="Job status at acceptance (queued)")
    status_url: str = Field(..., description="Server-rendered status page")
    events_url: str = Field(..., description="Server-Sent Events stream")


class JobStatusResponse(BaseModel):
    """Response model for GET /api/jobs/{id}."""

    id: str = Field(..., description="Job ID")
    status: str = Field(..., description="Job status: queued, in-progress, complete, failed")
    submitted_at: str = Field(..., description="ISO timestamp of submission")
    started_at: Optional[str] = Field(default=None, description="ISO timestamp when processing started")
    finished_at: Optional[str] = Field(default=None, description="ISO timestamp when job finished")
    result: Optional[Dict[str, Any]] = Field(default=None, description="Result, only when complete")
    error: Optional[str] = Field(default=None, description="Error, only when failed")

    @classmethod
    def from_job(cls, job: Job) -> "JobStatusResponse":
        return cls(
            id=job.id,
            status=job.status.value,
            submitted_at=job.submitted_at,
            started_at=job.started_at,
            finished_at=job.finished_at,
            result=job.result,
            error=job.error,
        )


class JobListResponse(BaseModel):
    """Response model for GET /api/jobs."""

    jobs: List[JobStatusResponse] = Field(..., description="List of jobs")


class HealthResponse(BaseModel):
    """Response model for /health endpoint."""

    status: str = Field(..., description="Service status")
    components: Dict[str, bool] = Field(default_factory=dict, description="Component availability")
    open_channels: int = Field(default=0, description="Open push channels")
