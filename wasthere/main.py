"""WasThere service wiring.

Builds the flyer conversion services from :class:`Settings` and the YAML
config with constructor injection, so the CLI (and anything scripting
against the package) gets a consistent set of collaborators.
"""

from __future__ import annotations

from typing import Any

from wasthere.config.loader import load_config
from wasthere.config.settings import Settings
from wasthere.interfaces.llm_provider import ILLMProvider
from wasthere.providers.llm.anthropic_provider import AnthropicLLMProvider
from wasthere.providers.llm.gemini_provider import GeminiLLMProvider
from wasthere.providers.llm.openai_provider import OpenAILLMProvider
from wasthere.services.conversion_logger import FlyerConversionLogger
from wasthere.services.entity_reconciler import EntityReconciler
from wasthere.services.flyer_analyzer import FlyerAnalyzer
from wasthere.services.fuzzy_matcher import FuzzyMatchingService
from wasthere.services.year_inference import DateYearInferenceService

# ---------------------------------------------------------------------------
# LLM provider selection
# ---------------------------------------------------------------------------


def build_llm_provider(app_settings: Settings) -> ILLMProvider:
    """Select the first LLM provider with an API key configured.

    Priority order: Gemini -> Anthropic -> OpenAI.  With no key at all the
    Gemini provider is returned anyway; it reports itself unavailable and
    the analyzer fails with "LLM provider is not configured".
    """
    if app_settings.gemini_api_key:
        return GeminiLLMProvider(settings=app_settings)
    if app_settings.anthropic_api_key:
        return AnthropicLLMProvider(settings=app_settings)
    if app_settings.openai_api_key:
        return OpenAILLMProvider(settings=app_settings)
    return GeminiLLMProvider(settings=app_settings)


# ---------------------------------------------------------------------------
# Service factories
# ---------------------------------------------------------------------------


def build_year_inference(config: dict[str, Any]) -> DateYearInferenceService:
    """Create the year inference service from the ``year_inference`` section."""
    years = config.get("year_inference", {})
    return DateYearInferenceService(
        preferred_start=years.get("preferred_start", 1995),
        preferred_end=years.get("preferred_end", 2010),
        search_start=years.get("search_start", 1990),
        search_end=years.get("search_end", 2025),
    )


def build_services(
    custom_settings: Settings | None = None,
    config: dict[str, Any] | None = None,
    llm_provider: ILLMProvider | None = None,
) -> dict[str, Any]:
    """Construct all conversion services with injected dependencies.

    Parameters
    ----------
    custom_settings:
        Application settings; read from the environment when omitted.
    config:
        Resolved configuration; loaded via :func:`load_config` when omitted.
    llm_provider:
        Provider override, mainly for tests; otherwise chosen by
        :func:`build_llm_provider`.

    Returns
    -------
    dict
        Service instances keyed by role name.
    """
    s = custom_settings or Settings()
    cfg = config if config is not None else load_config(settings=s)

    llm = llm_provider or build_llm_provider(s)
    year_inference = build_year_inference(cfg)
    fuzzy_matcher = FuzzyMatchingService()
    conversion_logger = FlyerConversionLogger(
        cfg.get("conversion_logs", {}).get("dir", s.conversion_logs_dir)
    )
    flyer_analyzer = FlyerAnalyzer(
        llm_provider=llm,
        year_inference=year_inference,
        conversion_logger=conversion_logger,
        max_image_dim=cfg.get("analysis", {}).get("max_image_dim", 2048),
    )
    entity_reconciler = EntityReconciler(
        fuzzy_matcher=fuzzy_matcher,
        min_similarity=cfg.get("matching", {}).get("min_similarity", s.fuzzy_min_similarity),
    )

    return {
        "llm_provider": llm,
        "year_inference": year_inference,
        "fuzzy_matcher": fuzzy_matcher,
        "conversion_logger": conversion_logger,
        "flyer_analyzer": flyer_analyzer,
        "entity_reconciler": entity_reconciler,
        "config": cfg,
        "settings": s,
    }
