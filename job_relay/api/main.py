"""Main FastAPI application and server startup."""

from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional

import structlog
import uvicorn
from fastapi import Depends, FastAPI, Form, HTTPException, Request, status
from fastapi.responses import HTMLResponse, RedirectResponse, Response, StreamingResponse

from job_relay.config.settings import Settings
from job_relay.generation import GeneratorInvoker, build_generator
from job_relay.ops import InProcessQueue, JobStore, Worker
from job_relay.ops.errors import ChannelFailure, JobNotFound, QueueUnavailable, SubmissionFailure
from job_relay.ops.jobs import JobState
from job_relay.ops.telemetry import configure_logging
from .adapter import decide, detect_capability, respond
from .notifier import SSE_HEADERS, StatusNotifier
from .pages import events_url, render_form, render_not_found, render_unavailable, status_url
from .schemas import (
    HealthResponse,
    JobAcceptedResponse,
    JobListResponse,
    JobStatusResponse,
    JobSubmitRequest,
)
from .submission import SubmissionService


logger = structlog.get_logger(__name__)

# Global state for dependencies (initialized on startup)
_store: Optional[JobStore] = None
_queue: Optional[InProcessQueue] = None
_worker: Optional[Worker] = None
_notifier: Optional[StatusNotifier] = None
_submission: Optional[SubmissionService] = None


def _recover(store: JobStore, queue: InProcessQueue) -> None:
    """Settle jobs left behind by a previous run.

    Queued jobs lost their queue entry and are enqueued again, oldest first.
    Jobs that were in progress cannot resume and are marked failed.
    """
    for job in store.list(status=JobState.IN_PROGRESS.value):
        store.mark_failed(job.id, "Interrupted: the service restarted while this request was running")

    for job in reversed(store.list(status=JobState.QUEUED.value)):
        try:
            queue.enqueue(job.id)
        except QueueUnavailable:
            logger.warning("requeue_skipped", job_id=job.id)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Wire store, queue, worker and notifier; stop the worker on shutdown."""
    global _store, _queue, _worker, _notifier, _submission

    settings = Settings()
    configure_logging(settings.log.level, settings.log.json_output)

    _store = JobStore(
        Path(settings.paths.state_file),
        channel_buffer=settings.notifier.channel_buffer,
    )
    _queue = InProcessQueue(maxsize=settings.queue.maxsize)
    invoker = GeneratorInvoker(build_generator(settings.generator))
    _worker = Worker(_store, _queue, invoker, concurrency=settings.worker.concurrency)
    _notifier = StatusNotifier(
        _store,
        refresh_seconds=settings.notifier.refresh_seconds,
        heartbeat_seconds=settings.notifier.heartbeat_seconds,
        max_channels=settings.notifier.max_channels,
    )
    _submission = SubmissionService(_store, _queue)

    await _worker.start()

    _recover(_store, _queue)

    logger.info("service_started", backend=settings.generator.backend)

    yield

    await _worker.stop()
    _store = _queue = _worker = _notifier = _submission = None
    logger.info("service_stopped")


app = FastAPI(
    title="Job Relay API",
    description="Accepts long-running generation requests and reports their status by page refresh or Server-Sent Events",
    version="0.1.0",
    lifespan=lifespan,
)


def get_store() -> JobStore:
    """Dependency to get the job store."""
    if _store is None:
        raise HTTPException(status_code=503, detail="Job store not initialized")
    return _store


def get_notifier() -> StatusNotifier:
    """Dependency to get the status notifier."""
    if _notifier is None:
        raise HTTPException(status_code=503, detail="Status notifier not initialized")
    return _notifier


def get_submission() -> SubmissionService:
    """Dependency to get the submission service."""
    if _submission is None:
        raise HTTPException(status_code=503, detail="Submission service not initialized")
    return _submission


@app.get("/health", response_model=HealthResponse)
async def health():
    """Health check endpoint."""
    return HealthResponse(
        status="ok",
        components={
            "store": _store is not None,
            "queue": _queue is not None and _queue.is_open,
            "worker": _worker is not None and _worker.running,
        },
        open_channels=_notifier.open_channels if _notifier else 0,
    )


# ===== Baseline (no-script) surface =====


@app.get("/", response_class=HTMLResponse)
async def index():
    """Submission form."""
    return HTMLResponse(render_form())


@app.post("/jobs")
async def submit_form(
    request: Request,
    prompt: str = Form(""),
    enhanced: Optional[str] = Form(None),
    submission: SubmissionService = Depends(get_submission),
    notifier: StatusNotifier = Depends(get_notifier),
):
    """
    Accept a form submission.

    Plain clients are redirected to the status page; clients that declare
    push capability get a 202 acknowledgment with the event stream URL.
    """
    if not prompt.strip():
        return HTMLResponse(render_form(error="Please enter a prompt."), status_code=400)

    push_capable = detect_capability(request.headers, enhanced)

    try:
        job = submission.submit({"prompt": prompt, "options": {}})
    except SubmissionFailure as e:
        if push_capable:
            raise HTTPException(status_code=503, detail=str(e))
        return HTMLResponse(render_unavailable(str(e)), status_code=503)

    route = decide(job.id, push_capable, notifier)
    logger.info("job_routed", job_id=job.id, mode=route.mode)
    return respond(route, job)


@app.get("/jobs/{job_id}", response_class=HTMLResponse)
async def job_page(job_id: str, notifier: StatusNotifier = Depends(get_notifier)):
    """Pull mode: rendered status page."""
    job = notifier.store.get(job_id)
    if job is None:
        return HTMLResponse(render_not_found(job_id), status_code=404)
    return HTMLResponse(
        notifier.render(job),
        headers={"Cache-Control": "no-store"},
    )


@app.get("/jobs/{job_id}/events")
async def job_events(
    job_id: str,
    request: Request,
    notifier: StatusNotifier = Depends(get_notifier),
):
    """
    Push mode: Server-Sent Events for one job.

    Events are named after the job status and carry
    ``{"id", "status", "result"|"error"}``; the stream ends after the
    terminal event. When no channel can be opened the client is sent to
    the status page instead.
    """
    try:
        channel = notifier.open_channel(job_id)
    except JobNotFound:
        raise HTTPException(status_code=404, detail=f"Job not found: {job_id}")
    except ChannelFailure as e:
        logger.info("channel_fallback", job_id=job_id, reason=str(e))
        return RedirectResponse(status_url(job_id), status_code=status.HTTP_303_SEE_OTHER)

    return StreamingResponse(
        channel.events(request.is_disconnected),
        media_type="text/event-stream",
        headers=SSE_HEADERS,
    )


# ===== JSON API =====


@app.post("/api/jobs", response_model=JobAcceptedResponse, status_code=status.HTTP_202_ACCEPTED)
async def submit_api(
    payload: JobSubmitRequest,
    response: Response,
    submission: SubmissionService = Depends(get_submission),
):
    """Accept a JSON submission; never waits for the worker."""
    try:
        job = submission.submit(payload.to_input())
    except SubmissionFailure as e:
        raise HTTPException(status_code=503, detail=str(e))

    response.headers["Location"] = status_url(job.id)

    return JobAcceptedResponse(
        id=job.id,
        status=job.status.value,
        status_url=status_url(job.id),
        events_url=events_url(job.id),
    )


@app.get("/api/jobs/{job_id}", response_model=JobStatusResponse)
async def job_status(job_id: str, store: JobStore = Depends(get_store)):
    """Get status of a job."""
    job = store.get(job_id)
    if not job:
        raise HTTPException(status_code=404, detail=f"Job not found: {job_id}")
    return JobStatusResponse.from_job(job)


@app.get("/api/jobs", response_model=JobListResponse)
async def job_list(status: Optional[str] = None, store: JobStore = Depends(get_store)):
    """
    List jobs, newest first.

    Query params:
        status: Filter by status (queued, in-progress, complete, failed)
    """
    if status is not None and status not in {s.value for s in JobState}:
        raise HTTPException(status_code=400, detail=f"Invalid status: {status}")
    return JobListResponse(jobs=[JobStatusResponse.from_job(j) for j in store.list(status=status)])


def run():
    """Run the development server."""
    uvicorn.run("job_relay.api.main:app", host="0.0.0.0", port=8000, reload=True)


if __name__ == "__main__":
    run()
