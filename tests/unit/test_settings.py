"""Unit test for settings configuration."""

import os

import pytest

from job_relay.config.settings import Settings


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch, tmp_path):
    """Run without a stray .env file or JOB_RELAY_* variables."""
    monkeypatch.chdir(tmp_path)
    for name in list(os.environ):
        if name.startswith("JOB_RELAY_"):
            monkeypatch.delenv(name)


def test_default_settings():
    """Test that default settings are correctly configured."""
    settings = Settings()
    assert settings.paths.state_file == "data/jobs/jobs.jsonl"
    assert settings.queue.maxsize == 100
    assert settings.worker.concurrency == 1
    assert settings.notifier.refresh_seconds == 5
    assert settings.notifier.max_channels == 500
    assert settings.generator.backend == "mock"
    assert settings.log.level == "INFO"


def test_environment_overrides(monkeypatch):
    """Nested fields are read from JOB_RELAY_<SECTION>__<FIELD>."""
    monkeypatch.setenv("JOB_RELAY_GENERATOR__BACKEND", "ollama")
    monkeypatch.setenv("JOB_RELAY_NOTIFIER__MAX_CHANNELS", "3")
    monkeypatch.setenv("JOB_RELAY_PATHS__STATE_FILE", "/tmp/x.jsonl")

    settings = Settings()

    assert settings.generator.backend == "ollama"
    assert settings.notifier.max_channels == 3
    assert settings.paths.state_file == "/tmp/x.jsonl"


def test_env_file_is_read(tmp_path):
    (tmp_path / ".env").write_text("JOB_RELAY_WORKER__CONCURRENCY=4\n", encoding="utf-8")
    assert Settings().worker.concurrency == 4
