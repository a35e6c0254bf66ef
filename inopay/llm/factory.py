"""
LLM provider factory.
"""

from inopay.config import settings
from inopay.llm import LLMProvider


def get_provider(provider_name: str = "") -> LLMProvider:
    """Returns the configured LLM provider."""
    name = provider_name or settings.LLM_PROVIDER
    if name == "gemini":
        from inopay.llm.gemini import GeminiProvider
        return GeminiProvider()
    raise ValueError(f"Unknown LLM provider: {name}")
