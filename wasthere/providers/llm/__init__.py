"""Vision LLM provider adapters: Gemini (REST via httpx), OpenAI, Anthropic."""

from wasthere.providers.llm.anthropic_provider import AnthropicLLMProvider
from wasthere.providers.llm.gemini_provider import GeminiLLMProvider
from wasthere.providers.llm.openai_provider import OpenAILLMProvider

__all__ = ["AnthropicLLMProvider", "GeminiLLMProvider", "OpenAILLMProvider"]
