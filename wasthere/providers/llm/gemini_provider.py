"""Google Gemini LLM provider adapter.

Talks to the Generative Language REST API directly with ``httpx`` rather
than through an SDK.  A vision request is a single ``generateContent`` call
whose one user turn carries two parts: the text prompt and the flyer as an
``inline_data`` part (base64 bytes plus MIME type).

Response shape (trimmed)::

    {"candidates": [{"content": {"parts": [{"text": "..."}]}}],
     "usageMetadata": {"promptTokenCount": 1290, "candidatesTokenCount": 210}}

Gemini is the default provider because flyer text extraction was tuned
against ``gemini-2.5-flash``.
"""

from __future__ import annotations

import base64
from typing import Any

import httpx
import structlog

from wasthere.config.settings import Settings
from wasthere.interfaces.llm_provider import ILLMProvider
from wasthere.utils.errors import LLMError

logger = structlog.get_logger(logger_name=__name__)


class GeminiLLMProvider(ILLMProvider):
    """LLM provider backed by the Gemini ``generateContent`` endpoint.

    An ``httpx.AsyncClient`` may be injected (tests pass one built on
    ``httpx.MockTransport``); otherwise one is created per provider.
    """

    def __init__(self, settings: Settings, http_client: httpx.AsyncClient | None = None) -> None:
        self._api_key = settings.gemini_api_key
        self._model = settings.gemini_model
        self._base_url = settings.gemini_base_url.rstrip("/")
        self._client = http_client or httpx.AsyncClient(
            timeout=httpx.Timeout(settings.llm_timeout_seconds, connect=5.0)
        )

    # ------------------------------------------------------------------
    # ILLMProvider implementation
    # ------------------------------------------------------------------

    async def vision_extract(self, image_bytes: bytes, prompt: str, mime_type: str) -> str:
        """Send the prompt and image in one ``generateContent`` request."""
        if not self.is_available():
            raise LLMError(
                message="Gemini API key is not configured",
                provider_name=self.get_provider_name(),
            )

        payload = {
            "contents": [
                {
                    "role": "user",
                    "parts": [
                        {"text": prompt},
                        {
                            "inline_data": {
                                "mime_type": mime_type,
                                "data": base64.b64encode(image_bytes).decode("utf-8"),
                            }
                        },
                    ],
                }
            ]
        }
        url = f"{self._base_url}/models/{self._model}:generateContent"

        try:
            response = await self._client.post(url, json=payload, headers=self._headers())
            response.raise_for_status()
        except httpx.TimeoutException as exc:
            raise LLMError(
                message=f"Gemini request timed out ({self._model})",
                provider_name=self.get_provider_name(),
            ) from exc
        except httpx.HTTPStatusError as exc:
            raise LLMError(
                message=f"Gemini API error {exc.response.status_code}: {_error_detail(exc.response)}",
                provider_name=self.get_provider_name(),
            ) from exc
        except httpx.HTTPError as exc:
            raise LLMError(
                message=f"Gemini request failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        try:
            body: dict[str, Any] = response.json()
        except ValueError as exc:
            raise LLMError(
                message="Gemini returned a non-JSON response",
                provider_name=self.get_provider_name(),
            ) from exc

        candidates = body.get("candidates") or []
        if not candidates:
            raise LLMError(
                message="Gemini returned no candidates",
                provider_name=self.get_provider_name(),
            )

        parts = (candidates[0].get("content") or {}).get("parts") or []
        text = "".join(part.get("text", "") for part in parts if isinstance(part, dict))

        usage = body.get("usageMetadata") or {}
        logger.info(
            "gemini_vision_extract",
            model=self._model,
            prompt_tokens=usage.get("promptTokenCount"),
            output_tokens=usage.get("candidatesTokenCount"),
        )
        return text

    def supports_vision(self) -> bool:
        return True

    def is_available(self) -> bool:
        """Return ``True`` if a Gemini API key is configured."""
        return bool(self._api_key)

    async def validate_credentials(self) -> bool:
        """List models to check the key without spending tokens."""
        if not self.is_available():
            return False
        try:
            response = await self._client.get(f"{self._base_url}/models", headers=self._headers())
        except httpx.HTTPError:
            return False
        return response.status_code == 200

    def get_provider_name(self) -> str:
        return "gemini"

    def get_model_name(self) -> str:
        return self._model

    async def aclose(self) -> None:
        await self._client.aclose()

    def _headers(self) -> dict[str, str]:
        return {"x-goog-api-key": self._api_key}


def _error_detail(response: httpx.Response) -> str:
    """Pull ``error.message`` out of a Gemini error body, falling back to raw text."""
    try:
        return str(response.json()["error"]["message"])
    except (ValueError, KeyError, TypeError):
        return response.text[:200]
