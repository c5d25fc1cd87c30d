"""Custom exception hierarchy for WasThere.

All application exceptions inherit from :class:`WasThereError`, which
carries an optional ``provider_name`` so error handlers can identify which
external service (e.g. "gemini", "openai", "anthropic") caused the failure.

    WasThereError            (base -- catch-all for any WasThere error)
    +-- ConfigurationError   (startup / invalid settings)
    +-- LLMError             (any LLM API call failure)
    +-- FlyerImageError      (unreadable or unsupported flyer image)
    +-- FlyerAnalysisError   (flyer conversion could not be completed)

The year-inference and fuzzy-matching services never raise these for bad
input: they return ``None`` / ``0.0`` instead.  The hierarchy is for the
I/O-bound parts of a flyer conversion.
"""


class WasThereError(Exception):
    """Base exception for all WasThere errors.

    The ``__str__`` method prefixes the provider name in brackets for
    structured log output, e.g. ``[gemini] Quota exceeded``.
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        provider_name: str | None = None,
    ) -> None:
        self._message = message
        self._provider_name = provider_name
        super().__init__(self._message)

    @property
    def message(self) -> str:
        return self._message

    @property
    def provider_name(self) -> str | None:
        return self._provider_name

    def __str__(self) -> str:
        if self._provider_name:
            return f"[{self._provider_name}] {self._message}"
        return self._message


class ConfigurationError(WasThereError):
    """Raised when configuration is invalid or missing at startup."""

    def __init__(
        self,
        message: str = "Invalid or missing configuration",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class LLMError(WasThereError):
    """Raised when an LLM API call fails or returns an unusable response."""

    def __init__(
        self,
        message: str = "LLM API call failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class FlyerImageError(WasThereError):
    """Raised when a flyer image cannot be read, verified or re-encoded."""

    def __init__(
        self,
        message: str = "Flyer image could not be loaded",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class FlyerAnalysisError(WasThereError):
    """Raised when a flyer conversion cannot continue (e.g. nothing to reconcile)."""

    def __init__(
        self,
        message: str = "Flyer analysis failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)
