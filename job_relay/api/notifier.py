"""
Status notifier: pull pages and push (Server-Sent Events) channels.

Read-only with respect to jobs. A push channel observes exactly one job and
ends after that job's terminal event.
"""

import json
from typing import AsyncIterator, Awaitable, Callable, Optional

import structlog

from job_relay.ops.errors import ChannelFailure, JobNotFound
from job_relay.ops.jobs import Job, JobStore, Subscription
from .pages import render_status, status_url


logger = structlog.get_logger(__name__)

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",  # Disable nginx buffering
}

KEEP_ALIVE = ": keep-alive\n\n"


def format_event(job: Job) -> str:
    """Encode a job snapshot as one SSE event named after its status."""
    return f"event: {job.status.value}\ndata: {json.dumps(job.event_payload())}\n\n"


def format_fallback(job_id: str) -> str:
    data = {"id": job_id, "status_url": status_url(job_id)}
    return f"event: fallback\ndata: {json.dumps(data)}\n\n"


class Channel:
    """
    One push channel for one job.

    Nothing is subscribed or counted until ``events()`` starts, so a
    stream that is never iterated holds no resources.
    """

    def __init__(self, notifier: "StatusNotifier", job_id: str):
        self.notifier = notifier
        self.job_id = job_id
        self.subscription: Optional[Subscription] = None
        self.closed = False

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        if self.subscription is not None:
            self.notifier._release(self)

    async def events(
        self,
        is_disconnected: Optional[Callable[[], Awaitable[bool]]] = None,
    ) -> AsyncIterator[str]:
        """
        Yield SSE frames until the job is terminal or the client leaves.

        A job that is already terminal yields its terminal event at once.
        Otherwise one event is yielded per later status change, with
        keep-alive comments in between. A lost event, a vanished job or a
        full channel table ends the stream with a ``fallback`` event that
        points at the pull page.
        """
        try:
            snapshot = self.notifier._attach(self)
            if snapshot.is_terminal:
                yield format_event(snapshot)
                return

            while True:
                if self.subscription.broken:
                    raise ChannelFailure(f"events for job {self.job_id} were dropped")

                job = await self.subscription.next(timeout=self.notifier.heartbeat_seconds)
                if job is None:
                    if is_disconnected is not None and await is_disconnected():
                        return
                    if self.notifier.store.get(self.job_id) is None:
                        raise ChannelFailure(f"job {self.job_id} is gone")
                    yield KEEP_ALIVE
                    continue

                yield format_event(job)
                if job.is_terminal:
                    return
        except ChannelFailure as e:
            logger.info("channel_fallback", job_id=self.job_id, reason=str(e))
            yield format_fallback(self.job_id)
        finally:
            self.close()


class StatusNotifier:
    """Serves job status in pull (rendered page) or push (event stream) form."""

    def __init__(
        self,
        store: JobStore,
        refresh_seconds: int = 5,
        heartbeat_seconds: float = 15.0,
        max_channels: int = 500,
    ):
        self.store = store
        self.refresh_seconds = refresh_seconds
        self.heartbeat_seconds = heartbeat_seconds
        self.max_channels = max_channels
        self._open: dict[str, Channel] = {}

    @property
    def open_channels(self) -> int:
        return len(self._open)

    def can_open(self) -> bool:
        return self.open_channels < self.max_channels

    def render(self, job: Job) -> str:
        """Pull mode: fully rendered status document."""
        return render_status(job, refresh_seconds=self.refresh_seconds)

    def open_channel(self, job_id: str) -> Channel:
        """
        Push mode: prepare a channel for one job.

        The subscription itself is taken when the channel starts streaming.

        Raises:
            JobNotFound: If the job does not exist
            ChannelFailure: If no more channels can be opened
        """
        if not self.can_open():
            raise ChannelFailure(f"channel limit reached ({self.max_channels})")
        if self.store.get(job_id) is None:
            raise JobNotFound(job_id)
        return Channel(self, job_id)

    def _attach(self, channel: Channel) -> Job:
        """Subscribe a starting channel and count it as open."""
        if not self.can_open():
            raise ChannelFailure(f"channel limit reached ({self.max_channels})")
        try:
            subscription, snapshot = self.store.subscribe(channel.job_id)
        except JobNotFound:
            raise ChannelFailure(f"job {channel.job_id} is gone")

        channel.subscription = subscription
        self._open[subscription.id] = channel
        logger.info("channel_opened", job_id=channel.job_id, open=self.open_channels)
        return snapshot

    def _release(self, channel: Channel) -> None:
        self.store.unsubscribe(channel.subscription)
        self._open.pop(channel.subscription.id, None)
        logger.info("channel_closed", job_id=channel.job_id, open=self.open_channels)
