"""Test configuration and fixtures."""

import json
import time
from pathlib import Path

import pytest

from job_relay.ops.jobs import JobStore


class EchoInvoker:
    """Returns the prompt back; records every input it saw."""

    def __init__(self, delay: float = 0.0):
        self.delay = delay
        self.calls = []

    def invoke(self, input: dict) -> dict:
        self.calls.append(input)
        if self.delay:
            time.sleep(self.delay)
        return {"text": f"echo: {input.get('prompt', '')}", "model": "echo"}


class FailingInvoker:
    def invoke(self, input: dict) -> dict:
        raise ValueError("model exploded")


@pytest.fixture
def state_file(tmp_path) -> Path:
    return tmp_path / "jobs" / "jobs.jsonl"


@pytest.fixture
def store(state_file) -> JobStore:
    """Fresh job store backed by a temporary state file."""
    return JobStore(state_file=state_file)


@pytest.fixture
def echo_invoker() -> EchoInvoker:
    return EchoInvoker()


@pytest.fixture
def slow_invoker() -> EchoInvoker:
    """Stands in for a model call that takes half a second."""
    return EchoInvoker(delay=0.5)


@pytest.fixture
def failing_invoker() -> FailingInvoker:
    return FailingInvoker()


@pytest.fixture
def parse_sse():
    """Parse SSE text into (event, data) pairs, skipping comments."""

    def _parse(text: str) -> list[tuple[str, dict]]:
        events = []
        for block in text.split("\n\n"):
            event_type, data = None, None
            for line in block.splitlines():
                if line.startswith("event:"):
                    event_type = line.split(":", 1)[1].strip()
                elif line.startswith("data:"):
                    data = json.loads(line.split(":", 1)[1].strip())
            if event_type is not None:
                events.append((event_type, data))
        return events

    return _parse
