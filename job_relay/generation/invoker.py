"""Adapter between job input and a text generator."""

from typing import Any

from job_relay.generation.generator import BaseGenerator, GenerationConfig, MockGenerator
from job_relay.generation.ollama_generator import OllamaGenerator


class GeneratorInvoker:
    """
    Runs one generation for one job.

    Job input: ``{"prompt": str, "options": {...}}``; options override
    ``GenerationConfig`` fields. Synchronous; the worker calls it in a thread.
    """

    def __init__(self, generator: BaseGenerator):
        self.generator = generator

    def invoke(self, input: dict[str, Any]) -> dict[str, Any]:
        prompt = (input or {}).get("prompt")
        if not prompt:
            raise ValueError("job input has no prompt")

        config = GenerationConfig.from_options(input.get("options"))
        response = self.generator.generate(prompt, config)
        return {
            "text": response.text,
            "model": response.model_used,
            "processing_time": round(response.processing_time, 3),
        }


def build_generator(cfg) -> BaseGenerator:
    """Create the generator named by ``cfg.backend`` (GeneratorCfg)."""
    if cfg.backend == "ollama":
        return OllamaGenerator(model=cfg.model, base_url=cfg.base_url, timeout=cfg.timeout)
    if cfg.backend == "mock":
        return MockGenerator(latency=cfg.mock_latency)
    raise ValueError(f"Unknown generator backend: {cfg.backend}")
