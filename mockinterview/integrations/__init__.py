"""
External integrations.

Modules:
- gemini_client: Generative Language API (questions, scoring, summaries)
"""
from .gemini_client import GeminiClient, GenerationConfig, extract_json

__all__ = ["GeminiClient", "GenerationConfig", "extract_json"]
