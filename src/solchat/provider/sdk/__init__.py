"""SDK wrappers for AI providers."""

from .anthropic import AnthropicSDK
from .openai import OpenAISDK

__all__ = ["AnthropicSDK", "OpenAISDK"]
