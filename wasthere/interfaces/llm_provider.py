"""Abstract base class for vision LLM providers.

Defines the contract for any large-language-model backend that can read a
flyer image and answer an extraction prompt.  Implementations wrap the
Gemini REST API, OpenAI or Anthropic; the flyer analyzer only ever talks to
this interface.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


# Concrete implementations: GeminiLLMProvider, OpenAILLMProvider, AnthropicLLMProvider
# Located in: wasthere/providers/llm/
class ILLMProvider(ABC):
    """Contract for vision-capable LLM services used to read flyers."""

    @abstractmethod
    async def vision_extract(self, image_bytes: bytes, prompt: str, mime_type: str) -> str:
        """Analyse an image and return the model's text answer.

        Parameters
        ----------
        image_bytes:
            Raw bytes of the flyer image.
        prompt:
            Natural-language instruction describing what to extract.
        mime_type:
            MIME type of *image_bytes* (``image/jpeg``, ``image/png``, ...).

        Returns
        -------
        str
            The model's text response; may be empty if the model returned
            no text.

        Raises
        ------
        wasthere.utils.errors.LLMError
            If the API call fails.
        """

    @abstractmethod
    def supports_vision(self) -> bool:
        """Return ``True`` if this provider's configured model accepts images."""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a short identifier such as ``"gemini"`` or ``"openai"``."""

    @abstractmethod
    def get_model_name(self) -> str:
        """Return the model identifier requests are sent to."""

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` if the provider has credentials configured.

        Does not contact the remote service.
        """

    @abstractmethod
    async def validate_credentials(self) -> bool:
        """Perform a lightweight API call to confirm credentials are valid.

        Unlike :meth:`is_available`, this contacts the remote service.
        """

    async def aclose(self) -> None:
        """Release network clients held by the provider."""
