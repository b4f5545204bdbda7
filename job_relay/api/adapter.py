"""
Client adapter: per-request choice between pull and push delivery.

A single decision function returns a tagged route; the route is turned into
the HTTP response the client needs to follow it.
"""

from dataclasses import dataclass
from typing import Literal, Mapping, Optional, Union

import structlog
from fastapi import status
from fastapi.responses import JSONResponse, RedirectResponse, Response

from job_relay.ops.jobs import Job
from .notifier import StatusNotifier
from .pages import events_url, status_url


logger = structlog.get_logger(__name__)

CAPABILITY_HEADER = "x-client-capability"
_TRUTHY = {"1", "true", "yes", "on", "push"}


@dataclass(frozen=True)
class PullRoute:
    """Redirect to the server-rendered status page."""
    job_id: str
    location: str
    mode: Literal["pull"] = "pull"


@dataclass(frozen=True)
class PushRoute:
    """Acknowledge and let the client subscribe to the event stream."""
    job_id: str
    events_url: str
    status_url: str
    mode: Literal["push"] = "push"


Route = Union[PullRoute, PushRoute]


def detect_capability(headers: Mapping[str, str], enhanced: Optional[str] = None) -> bool:
    """
    True when the request declares it can consume a push channel.

    Declared by ``X-Client-Capability: push``, an ``Accept`` header listing
    ``text/event-stream``, or a truthy ``enhanced`` form field.
    """
    lowered = {k.lower(): v for k, v in headers.items()}

    declared = lowered.get(CAPABILITY_HEADER, "")
    if "push" in {token.strip().lower() for token in declared.split(",")}:
        return True

    if "text/event-stream" in lowered.get("accept", "").lower():
        return True

    return (enhanced or "").strip().lower() in _TRUTHY


def decide(job_id: str, push_capable: bool, notifier: StatusNotifier) -> Route:
    """
    Pick the delivery mode for one request.

    Push is chosen only when declared and a channel can still be opened;
    everything else degrades to pull for the same job.
    """
    if push_capable and notifier.can_open():
        return PushRoute(
            job_id=job_id,
            events_url=events_url(job_id),
            status_url=status_url(job_id),
        )

    if push_capable:
        logger.info("channel_fallback", job_id=job_id, reason="channel limit reached")

    return PullRoute(job_id=job_id, location=status_url(job_id))


def respond(route: Route, job: Job) -> Response:
    """Build the acknowledgment for a freshly submitted job."""
    if isinstance(route, PullRoute):
        return RedirectResponse(route.location, status_code=status.HTTP_303_SEE_OTHER)

    return JSONResponse(
        status_code=status.HTTP_202_ACCEPTED,
        content={
            "id": job.id,
            "status": job.status.value,
            "mode": route.mode,
            "events_url": route.events_url,
            "status_url": route.status_url,
        },
        headers={"Location": route.status_url},
    )
