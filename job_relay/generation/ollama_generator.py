"""
Ollama generator adapter for local LLM inference.

Implements BaseGenerator interface for Ollama REST API.
"""

import time
from typing import Optional

import requests
import structlog

from job_relay.generation.generator import (
    BaseGenerator,
    GeneratedResponse,
    GenerationConfig,
)


logger = structlog.get_logger(__name__)


class OllamaGenerator(BaseGenerator):
    """
    Generator that uses Ollama for local LLM inference.

    Ollama must be running locally (default: http://localhost:11434).
    Availability is checked lazily so the service can start before the
    model server does; jobs submitted meanwhile fail with a clear error.
    """

    def __init__(
        self,
        model: str = "llama3",
        base_url: str = "http://localhost:11434",
        timeout: int = 120,
    ):
        """
        Initialize Ollama generator.

        Args:
            model: Ollama model name (e.g., "llama3", "mistral", "phi")
            base_url: Ollama API base URL
            timeout: Request timeout in seconds
        """
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    def is_available(self) -> bool:
        """Check if Ollama server is running."""
        try:
            response = requests.get(f"{self.base_url}/api/tags", timeout=5)
            return response.status_code == 200
        except requests.exceptions.RequestException:
            return False

    def generate(
        self,
        prompt: str,
        config: Optional[GenerationConfig] = None,
    ) -> GeneratedResponse:
        """
        Generate text using Ollama (non-streaming).

        Raises:
            RuntimeError: If generation fails
        """
        start_time = time.time()
        config = config or GenerationConfig()

        payload = {
            "model": self.model,
            "prompt": prompt,
            "stream": False,
            "options": {
                "temperature": config.temperature,
                "num_predict": config.max_new_tokens,
                "top_p": config.top_p,
                "top_k": config.top_k,
            },
        }

        try:
            response = requests.post(
                f"{self.base_url}/api/generate",
                json=payload,
                timeout=self.timeout,
            )
        except requests.exceptions.Timeout:
            raise RuntimeError(
                f"Ollama request timed out after {self.timeout}s. "
                f"Try a shorter prompt or increase timeout."
            )
        except requests.exceptions.RequestException as e:
            raise RuntimeError(
                f"Ollama request failed: {e}. "
                f"Check if Ollama is running at {self.base_url}."
            )

        if response.status_code != 200:
            raise RuntimeError(
                f"Ollama API returned status {response.status_code}: {response.text}"
            )

        response_text = response.json().get("response", "").strip()
        processing_time = time.time() - start_time
        logger.debug("ollama_generated", model=self.model, seconds=round(processing_time, 3))

        return GeneratedResponse(
            text=response_text,
            confidence=0.9,  # Ollama doesn't provide confidence scores
            model_used=self.model,
            prompt_length=len(prompt),
            response_length=len(response_text),
            processing_time=processing_time,
        )
