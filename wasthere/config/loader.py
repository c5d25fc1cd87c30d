"""YAML configuration loader with environment variable overrides.

Configuration is loaded in layers (later layers override earlier):

  1. config/config.yaml  — static defaults checked into the repo
  2. .env file           — local developer overrides (not committed)
  3. Environment vars    — set at deploy time

``load_config`` reads the YAML file first, then deep-merges the values
derived from :class:`Settings` on top.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml

from wasthere.config.settings import Settings
from wasthere.utils.errors import ConfigurationError

# Used when config.yaml is missing or leaves a section out.
DEFAULT_CONFIG: dict[str, Any] = {
    "year_inference": {
        "preferred_start": 1995,
        "preferred_end": 2010,
        "search_start": 1990,
        "search_end": 2025,
    },
    "matching": {
        "min_similarity": 0.8,
    },
    "analysis": {
        "max_concurrent": 2,
        "max_image_dim": 2048,
    },
    "conversion_logs": {
        "dir": "logs",
    },
}


def load_config(path: str = "config/config.yaml", settings: Settings | None = None) -> dict:
    """Load YAML config and merge with environment-based Settings.

    Args:
        path: Path to the YAML configuration file.  A missing file is not an
              error; the built-in defaults are used.
        settings: Settings instance to merge; a fresh one is read from the
                  environment when omitted.

    Returns:
        Fully resolved configuration dictionary.

    Raises:
        ConfigurationError: The YAML file exists but is not a mapping.
    """
    config: dict[str, Any] = {}
    _deep_merge(config, _copy(DEFAULT_CONFIG))

    config_path = Path(path)
    if config_path.exists():
        with open(config_path, encoding="utf-8") as f:
            yaml_config = yaml.safe_load(f) or {}
        if not isinstance(yaml_config, dict):
            raise ConfigurationError(f"{config_path} must contain a mapping at the top level")
        _deep_merge(config, yaml_config)

    settings = settings or Settings()
    env_overrides: dict[str, Any] = {
        "app": {
            "env": settings.app_env,
        },
        "llm": {
            "available_providers": settings.get_available_llm_providers(),
            "gemini_model": settings.gemini_model,
            "openai_vision_model": settings.openai_vision_model,
            "anthropic_model": settings.anthropic_model,
        },
        "logging": {
            "level": settings.log_level,
        },
    }
    # These also live in config.yaml; only an explicit env/.env value wins.
    if "fuzzy_min_similarity" in settings.model_fields_set:
        env_overrides["matching"] = {"min_similarity": settings.fuzzy_min_similarity}
    if "conversion_logs_dir" in settings.model_fields_set:
        env_overrides["conversion_logs"] = {"dir": settings.conversion_logs_dir}

    _deep_merge(config, env_overrides)
    return config


def _copy(value: Any) -> Any:
    if isinstance(value, dict):
        return {key: _copy(item) for key, item in value.items()}
    return value


def _deep_merge(base: dict, overrides: dict) -> None:
    """Recursively merge overrides into base dict, mutating base in place."""
    for key, value in overrides.items():
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            _deep_merge(base[key], value)
        else:
            base[key] = value
