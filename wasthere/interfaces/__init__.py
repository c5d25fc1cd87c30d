"""Provider interfaces (abstract base classes) for WasThere."""

from wasthere.interfaces.llm_provider import ILLMProvider

__all__ = ["ILLMProvider"]
