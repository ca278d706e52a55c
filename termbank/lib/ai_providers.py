"""
AI provider abstraction for the similarity oracle.

The expansion engine only needs short text completions (a pairwise
similarity judgement returned as JSON), so providers expose the SDK client
and model name and let ``llm_utils.call_llm_sync`` do the dispatch.

Environment Variables:
    AI_PROVIDER: "openai", "anthropic", or "mock" (default: "openai")
    OPENAI_API_KEY / OPENAI_EXTRACTION_MODEL (default: "gpt-4o-mini")
    ANTHROPIC_API_KEY / ANTHROPIC_EXTRACTION_MODEL (default: "claude-sonnet-4-20250514")
"""

import logging
import os
from abc import ABC, abstractmethod
from typing import Optional

logger = logging.getLogger(__name__)


def _load_api_key(provider: str, explicit_key: Optional[str] = None, env_var: Optional[str] = None) -> Optional[str]:
    """
    Load API key: explicit parameter first, then environment variable.

    Args:
        provider: Provider name ('openai' or 'anthropic')
        explicit_key: API key passed explicitly to constructor
        env_var: Environment variable name (e.g., 'OPENAI_API_KEY')

    Returns:
        API key if found, None otherwise
    """
    if explicit_key:
        logger.debug(f"Using explicit API key for {provider}")
        return explicit_key

    if env_var:
        key = os.getenv(env_var)
        if key:
            logger.debug(f"Loaded API key for {provider} from environment variable: {env_var}")
            return key

    logger.debug(f"No API key found for {provider}")
    return None


class AIProvider(ABC):
    """Abstract base class for AI providers"""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Get the name of this provider"""
        pass


class OpenAIProvider(AIProvider):
    """OpenAI provider for GPT models"""

    def __init__(
        self,
        api_key: Optional[str] = None,
        extraction_model: Optional[str] = None,
    ):
        from openai import OpenAI

        self.api_key = _load_api_key("openai", api_key, "OPENAI_API_KEY")
        if not self.api_key:
            raise ValueError(
                "OpenAI API key not found. Either:\n"
                "  1. Set OPENAI_API_KEY environment variable\n"
                "  2. Add to .env file (development only)"
            )

        self.client = OpenAI(api_key=self.api_key)
        self.extraction_model = extraction_model or os.getenv("OPENAI_EXTRACTION_MODEL", "gpt-4o-mini")

    def get_provider_name(self) -> str:
        return "OpenAI"


class AnthropicProvider(AIProvider):
    """Anthropic provider for Claude models"""

    def __init__(
        self,
        api_key: Optional[str] = None,
        extraction_model: Optional[str] = None,
    ):
        from anthropic import Anthropic

        self.api_key = _load_api_key("anthropic", api_key, "ANTHROPIC_API_KEY")
        if not self.api_key:
            raise ValueError(
                "Anthropic API key not found. Either:\n"
                "  1. Set ANTHROPIC_API_KEY environment variable\n"
                "  2. Add to .env file (development only)"
            )

        self.client = Anthropic(api_key=self.api_key)
        self.extraction_model = extraction_model or os.getenv("ANTHROPIC_EXTRACTION_MODEL", "claude-sonnet-4-20250514")

    def get_provider_name(self) -> str:
        return "Anthropic"


def get_provider(provider_name: Optional[str] = None) -> AIProvider:
    """
    Factory function to get the configured AI provider.

    Args:
        provider_name: Name of provider ("openai", "anthropic", or "mock")
                      If None, reads from AI_PROVIDER env var (default: "openai")

    Returns:
        Configured AIProvider instance
    """
    provider_name = (provider_name or os.getenv("AI_PROVIDER", "openai")).lower()

    if provider_name == "openai":
        return OpenAIProvider()
    elif provider_name == "anthropic":
        return AnthropicProvider()
    elif provider_name == "mock":
        from .mock_ai_provider import MockAIProvider
        return MockAIProvider()
    else:
        raise ValueError(f"Unknown AI provider: {provider_name}. Use 'openai', 'anthropic', or 'mock'")

