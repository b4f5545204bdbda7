"""Long-running operation invoked by the worker."""
from .generator import (
    BaseGenerator, GenerationConfig, GeneratedResponse, MockGenerator
)
from .ollama_generator import OllamaGenerator
from .invoker import GeneratorInvoker, build_generator

__all__ = [
    'BaseGenerator', 'GenerationConfig', 'GeneratedResponse', 'MockGenerator',
    'OllamaGenerator', 'GeneratorInvoker', 'build_generator',
]
