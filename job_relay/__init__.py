"""Progressive-enhancement job relay for long-running LLM calls."""

__version__ = "0.1.0"
