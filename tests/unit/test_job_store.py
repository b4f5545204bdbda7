"""
Unit tests for job_relay/ops/jobs.py

Tests JobStore transitions, JSONL persistence and per-job subscriptions.
"""
import json

import pytest

from job_relay.ops.errors import InvalidTransition, JobNotFound
from job_relay.ops.jobs import Job, JobState, JobStore


def test_create_job_is_queued(store):
    """A new job starts queued with no result or error."""
    job = store.create({"prompt": "hello"})

    assert job.status is JobState.QUEUED
    assert job.input == {"prompt": "hello"}
    assert job.result is None
    assert job.error is None
    assert job.submitted_at
    assert store.get(job.id).status is JobState.QUEUED


def test_job_ids_are_unique(store):
    ids = {store.create({"prompt": str(i)}).id for i in range(20)}
    assert len(ids) == 20


def test_get_returns_snapshot(store):
    """Mutating a returned job must not leak into the store."""
    job = store.create({"prompt": "hello"})

    snapshot = store.get(job.id)
    snapshot.status = JobState.COMPLETE
    snapshot.input["prompt"] = "changed"

    stored = store.get(job.id)
    assert stored.status is JobState.QUEUED
    assert stored.input["prompt"] == "hello"


def test_get_unknown_returns_none(store):
    assert store.get("missing") is None


def test_forward_transitions_to_complete(store):
    """queued → in-progress → complete, with timestamps and result."""
    job = store.create({"prompt": "p"})

    running = store.mark_in_progress(job.id)
    assert running.status is JobState.IN_PROGRESS
    assert running.started_at is not None

    done = store.mark_complete(job.id, {"text": "answer"})
    assert done.status is JobState.COMPLETE
    assert done.result == {"text": "answer"}
    assert done.error is None
    assert done.finished_at is not None


def test_failed_job_records_error(store):
    job = store.create({"prompt": "p"})
    store.mark_in_progress(job.id)

    failed = store.mark_failed(job.id, "RuntimeError: boom")

    assert failed.status is JobState.FAILED
    assert failed.error == "RuntimeError: boom"
    assert failed.result is None


def test_queued_job_can_fail_directly(store):
    job = store.create({"prompt": "p"})
    assert store.mark_failed(job.id, "never started").status is JobState.FAILED


@pytest.mark.parametrize(
    "setup, attempt",
    [
        (["in_progress"], "in_progress"),
        (["in_progress", "complete"], "in_progress"),
        (["in_progress", "complete"], "failed"),
        (["in_progress", "failed"], "complete"),
        (["failed"], "in_progress"),
    ],
)
def test_non_forward_transitions_rejected(store, setup, attempt):
    """Status never regresses, repeats or leaves a terminal state."""
    job = store.create({"prompt": "p"})
    steps = {
        "in_progress": lambda: store.mark_in_progress(job.id),
        "complete": lambda: store.mark_complete(job.id, {"text": "x"}),
        "failed": lambda: store.mark_failed(job.id, "err"),
    }
    for step in setup:
        steps[step]()
    before = store.get(job.id)

    with pytest.raises(InvalidTransition):
        steps[attempt]()

    assert store.get(job.id) == before


def test_transition_unknown_job(store):
    with pytest.raises(JobNotFound):
        store.mark_in_progress("missing")


def test_every_change_is_appended(store, state_file):
    job = store.create({"prompt": "p"})
    store.mark_in_progress(job.id)
    store.mark_complete(job.id, {"text": "x"})

    lines = state_file.read_text().strip().split("\n")
    assert [json.loads(line)["status"] for line in lines] == [
        "queued",
        "in-progress",
        "complete",
    ]


def test_reload_restores_last_state(store, state_file):
    """A new store over the same file sees the latest record per job."""
    done = store.create({"prompt": "a"})
    store.mark_in_progress(done.id)
    store.mark_complete(done.id, {"text": "x"})
    waiting = store.create({"prompt": "b"})

    reloaded = JobStore(state_file=state_file)

    assert reloaded.get(done.id).status is JobState.COMPLETE
    assert reloaded.get(done.id).result == {"text": "x"}
    assert reloaded.get(waiting.id).status is JobState.QUEUED


def test_discard_survives_reload(store, state_file):
    job = store.create({"prompt": "a"})

    assert store.discard(job.id) is True
    assert store.discard(job.id) is False
    assert store.get(job.id) is None
    assert JobStore(state_file=state_file).get(job.id) is None


def test_malformed_line_is_skipped(store, state_file):
    job = store.create({"prompt": "a"})
    with open(state_file, "a", encoding="utf-8") as f:
        f.write('{"id": "trunc\n')

    reloaded = JobStore(state_file=state_file)
    assert reloaded.get(job.id) is not None


def test_list_filters_by_status(store):
    a = store.create({"prompt": "a"})
    b = store.create({"prompt": "b"})
    store.mark_in_progress(b.id)

    assert {j.id for j in store.list()} == {a.id, b.id}
    assert [j.id for j in store.list(status="queued")] == [a.id]
    assert [j.id for j in store.list(status="in-progress")] == [b.id]


def test_purge_finished_removes_only_old_terminal_jobs(store):
    old = store.create({"prompt": "old"})
    store.mark_in_progress(old.id)
    store.mark_complete(old.id, {"text": "x"})
    store._jobs[old.id].finished_at = "2024-01-01T00:00:00+00:00"

    recent = store.create({"prompt": "recent"})
    store.mark_in_progress(recent.id)
    store.mark_failed(recent.id, "err")

    pending = store.create({"prompt": "pending"})

    assert store.purge_finished(max_age_hours=1) == 1
    assert store.get(old.id) is None
    assert store.get(recent.id) is not None
    assert store.get(pending.id) is not None


def test_event_payload_shapes():
    queued = Job(id="j", status="queued", submitted_at="t")
    assert queued.event_payload() == {"id": "j", "status": "queued"}

    done = Job(id="j", status="complete", submitted_at="t", result={"text": "x"})
    assert done.event_payload() == {"id": "j", "status": "complete", "result": {"text": "x"}}

    failed = Job(id="j", status="failed", submitted_at="t", error="boom")
    assert failed.event_payload() == {"id": "j", "status": "failed", "error": "boom"}


class TestSubscriptions:
    """Per-job fan-out of transitions."""

    @pytest.mark.asyncio
    async def test_subscriber_receives_transitions(self, store):
        job = store.create({"prompt": "p"})
        sub, snapshot = store.subscribe(job.id)
        assert snapshot.status is JobState.QUEUED

        store.mark_in_progress(job.id)
        store.mark_complete(job.id, {"text": "x"})

        first = await sub.next(timeout=1)
        second = await sub.next(timeout=1)
        assert first.status is JobState.IN_PROGRESS
        assert second.status is JobState.COMPLETE
        assert second.result == {"text": "x"}

    @pytest.mark.asyncio
    async def test_subscriber_sees_only_its_job(self, store):
        mine = store.create({"prompt": "mine"})
        other = store.create({"prompt": "other"})
        sub, _ = store.subscribe(mine.id)

        store.mark_in_progress(other.id)
        store.mark_complete(other.id, {"text": "other"})

        assert await sub.next(timeout=0.05) is None

    @pytest.mark.asyncio
    async def test_overflow_marks_subscription_broken(self, state_file):
        store = JobStore(state_file=state_file, channel_buffer=1)
        job = store.create({"prompt": "p"})
        sub, _ = store.subscribe(job.id)

        store.mark_in_progress(job.id)
        assert sub.broken is False
        store.mark_complete(job.id, {"text": "x"})

        assert sub.broken is True
        # The job itself is unaffected
        assert store.get(job.id).status is JobState.COMPLETE

    def test_subscribe_unknown_job(self, store):
        with pytest.raises(JobNotFound):
            store.subscribe("missing")

    def test_unsubscribe_is_idempotent(self, store):
        job = store.create({"prompt": "p"})
        sub, _ = store.subscribe(job.id)
        assert store.subscriber_count(job.id) == 1

        store.unsubscribe(sub)
        store.unsubscribe(sub)

        assert store.subscriber_count(job.id) == 0
        assert store.subscriber_count() == 0
