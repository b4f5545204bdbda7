"""Application settings and configuration schema."""

from typing import Literal

from pydantic import BaseModel
from pydantic_settings import BaseSettings, SettingsConfigDict


class Paths(BaseModel):
    """File and directory paths configuration."""
    state_file: str = "data/jobs/jobs.jsonl"


class QueueCfg(BaseModel):
    """Configuration for the in-process queue."""
    maxsize: int = 100


class WorkerCfg(BaseModel):
    """Configuration for the job worker."""
    concurrency: int = 1


class NotifierCfg(BaseModel):
    """Configuration for pull pages and push channels."""
    refresh_seconds: int = 5
    heartbeat_seconds: float = 15.0
    max_channels: int = 500
    channel_buffer: int = 16


class GeneratorCfg(BaseModel):
    """Configuration for the long-running operation."""
    backend: Literal["mock", "ollama"] = "mock"
    model: str = "llama3"
    base_url: str = "http://localhost:11434"
    timeout: int = 120
    mock_latency: float = 0.0


class LogCfg(BaseModel):
    """Configuration for structured logging."""
    level: str = "INFO"
    json_output: bool = True


class Settings(BaseSettings):
    """Main application settings.

    Overridable from the environment, e.g. ``JOB_RELAY_GENERATOR__BACKEND=ollama``.
    """
    model_config = SettingsConfigDict(
        env_prefix="JOB_RELAY_",
        env_nested_delimiter="__",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    paths: Paths = Paths()
    queue: QueueCfg = QueueCfg()
    worker: WorkerCfg = WorkerCfg()
    notifier: NotifierCfg = NotifierCfg()
    generator: GeneratorCfg = GeneratorCfg()
    log: LogCfg = LogCfg()
