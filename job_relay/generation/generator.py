"""Text generators used as the long-running operation behind a job."""
from __future__ import annotations
from typing import Optional
from dataclasses import dataclass, fields
from abc import ABC, abstractmethod
import time


@dataclass
class GenerationConfig:
    """Configuration for text generation."""
    max_new_tokens: int = 512
    temperature: float = 0.7
    top_p: float = 0.9
    top_k: int = 50

    @classmethod
    def from_options(cls, options: Optional[dict]) -> "GenerationConfig":
        """Build a config from request options, ignoring unknown keys."""
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in (options or {}).items() if k in known})


@dataclass
class GeneratedResponse:
    """Container for generated response with metadata."""
    text: str
    confidence: float
    model_used: str
    prompt_length: int
    response_length: int
    processing_time: float = 0.0


class BaseGenerator(ABC):
    """Abstract base class for text generators."""

    @abstractmethod
    def generate(self, prompt: str, config: Optional[GenerationConfig] = None) -> GeneratedResponse:
        """Generate text based on the given prompt."""
        pass

    @abstractmethod
    def is_available(self) -> bool:
        """Check if the generator is available and ready to use."""
        pass


class MockGenerator(BaseGenerator):
    """Deterministic generator for tests and offline runs."""

    def __init__(self, latency: float = 0.0):
        """
        Args:
            latency: Seconds to sleep per call, to mimic a slow model
        """
        self.latency = latency
        self.mock_responses = {
            "machine learning": "Machine learning is a subset of artificial intelligence that enables computers to learn and make decisions from data without being explicitly programmed.",
            "deep learning": "Deep learning is a specialized subset of machine learning that uses neural networks with multiple layers to model and understand complex patterns in data.",
            "progressive enhancement": "Progressive enhancement builds a baseline that works without client-side scripting and layers richer behavior on top for capable clients.",
            "default": "Based on the provided input, this is a generated response that addresses your request.",
        }

    def _match(self, prompt: str) -> str:
        prompt_lower = prompt.lower()
        for keyword, response in self.mock_responses.items():
            if keyword != "default" and keyword in prompt_lower:
                return response
        return self.mock_responses["default"]

    def generate(self, prompt: str, config: Optional[GenerationConfig] = None) -> GeneratedResponse:
        """Generate a mock response based on keywords in the prompt."""
        start_time = time.time()
        if self.latency:
            time.sleep(self.latency)

        response_text = self._match(prompt)
        return GeneratedResponse(
            text=response_text,
            confidence=0.8,
            model_used="mock_generator",
            prompt_length=len(prompt),
            response_length=len(response_text),
            processing_time=time.time() - start_time,
        )

    def is_available(self) -> bool:
        """Mock generator is always available."""
        return True
