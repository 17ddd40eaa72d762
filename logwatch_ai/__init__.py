"""LLM-backed log analysis: provider adapters, retries and response validation."""

__version__ = "0.1.0"
