"""
Unit tests for the relay-jobs CLI helpers.
"""

import json

from job_relay.cli.relay_jobs import list_jobs, purge_jobs, show_job


def test_list_jobs_prints_each_job(store, capsys):
    a = store.create({"prompt": "a"})
    b = store.create({"prompt": "b"})
    store.mark_failed(b.id, "boom")

    assert list_jobs(store) == 0
    out = capsys.readouterr().out
    assert a.id in out and b.id in out
    assert "2 job(s)" in out

    list_jobs(store, status="failed")
    out = capsys.readouterr().out
    assert b.id in out and a.id not in out


def test_show_job(store, capsys):
    job = store.create({"prompt": "a"})

    assert show_job(store, job.id) == 0
    assert json.loads(capsys.readouterr().out)["status"] == "queued"

    assert show_job(store, "missing") == 1


def test_purge_jobs(store, capsys):
    job = store.create({"prompt": "a"})
    store.mark_failed(job.id, "boom")
    store._jobs[job.id].finished_at = "2024-01-01T00:00:00+00:00"

    assert purge_jobs(store, 24) == 0
    assert "Removed 1" in capsys.readouterr().out
    assert store.get(job.id) is None
