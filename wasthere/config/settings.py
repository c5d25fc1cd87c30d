"""Application settings loaded from environment variables via pydantic-settings.

Values come from, in priority order:

  1. **Environment variables** — e.g. ``GEMINI_API_KEY=...``
  2. **.env file** — key=value lines in the working directory's ``.env``
  3. The defaults below.

Field ``gemini_api_key`` maps to env var ``GEMINI_API_KEY``; matching is
case-insensitive.  ``.env`` is git-ignored; ``.env.example`` lists the keys.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """WasThere application settings.

    Environment variables override defaults. Loaded from .env file when present.
    """

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # === Vision LLM providers ===
    # Empty string = "not configured"; main.build_llm_provider skips
    # providers without a key.
    gemini_api_key: str = ""
    gemini_model: str = "gemini-2.5-flash"
    gemini_base_url: str = "https://generativelanguage.googleapis.com/v1beta"
    openai_api_key: str = ""
    openai_base_url: str = ""
    openai_vision_model: str = "gpt-4o"
    anthropic_api_key: str = ""
    anthropic_model: str = "claude-sonnet-4-20250514"
    llm_timeout_seconds: float = 60.0

    # === Flyer conversion ===
    conversion_logs_dir: str = "logs"
    fuzzy_min_similarity: float = 0.8

    # === App config ===
    app_env: str = "development"
    log_level: str = "INFO"

    def get_available_llm_providers(self) -> list[str]:
        """Return the LLM provider names that have API keys configured, in selection order."""
        providers: list[str] = []
        if self.gemini_api_key:
            providers.append("gemini")
        if self.anthropic_api_key:
            providers.append("anthropic")
        if self.openai_api_key:
            providers.append("openai")
        return providers
