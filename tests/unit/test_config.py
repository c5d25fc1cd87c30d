"""Unit tests for Settings and the YAML config loader."""

from __future__ import annotations

from pathlib import Path

import pytest

from wasthere.config.loader import DEFAULT_CONFIG, load_config
from wasthere.config.settings import Settings
from wasthere.utils.errors import ConfigurationError


# ======================================================================
# Settings
# ======================================================================


class TestSettings:
    def test_defaults(self, settings_factory) -> None:
        s = settings_factory()
        assert s.gemini_model == "gemini-2.5-flash"
        assert s.fuzzy_min_similarity == 0.8
        assert s.get_available_llm_providers() == []

    def test_provider_order(self, settings_factory) -> None:
        s = settings_factory(openai_api_key="sk", anthropic_api_key="an", gemini_api_key="gm")
        assert s.get_available_llm_providers() == ["gemini", "anthropic", "openai"]

    def test_env_vars_override_defaults(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("GEMINI_API_KEY", "from-env")
        monkeypatch.setenv("FUZZY_MIN_SIMILARITY", "0.9")

        s = Settings(_env_file=None)
        assert s.gemini_api_key == "from-env"
        assert s.fuzzy_min_similarity == 0.9


# ======================================================================
# load_config
# ======================================================================


class TestLoadConfig:
    def test_missing_file_uses_defaults(self, tmp_path: Path, settings_factory) -> None:
        config = load_config(str(tmp_path / "missing.yaml"), settings_factory())

        assert config["year_inference"] == DEFAULT_CONFIG["year_inference"]
        assert config["analysis"]["max_concurrent"] == 2

    def test_yaml_values_merged_over_defaults(self, tmp_path: Path, settings_factory) -> None:
        path = tmp_path / "config.yaml"
        path.write_text("year_inference:\n  preferred_start: 2000\n", encoding="utf-8")

        config = load_config(str(path), settings_factory())

        assert config["year_inference"]["preferred_start"] == 2000
        assert config["year_inference"]["preferred_end"] == 2010

    def test_defaults_not_mutated(self, tmp_path: Path, settings_factory) -> None:
        path = tmp_path / "config.yaml"
        path.write_text("analysis:\n  max_concurrent: 8\n", encoding="utf-8")

        load_config(str(path), settings_factory())
        assert DEFAULT_CONFIG["analysis"]["max_concurrent"] == 2

    def test_settings_override_yaml(self, tmp_path: Path, settings_factory) -> None:
        path = tmp_path / "config.yaml"
        path.write_text("matching:\n  min_similarity: 0.5\n", encoding="utf-8")

        config = load_config(
            str(path),
            settings_factory(
                fuzzy_min_similarity=0.85, gemini_api_key="gm", conversion_logs_dir="/tmp/cl"
            ),
        )

        assert config["matching"]["min_similarity"] == 0.85
        assert config["llm"]["available_providers"] == ["gemini"]
        assert config["conversion_logs"]["dir"] == "/tmp/cl"

    def test_yaml_only_values_not_replaced_by_setting_defaults(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.delenv("FUZZY_MIN_SIMILARITY", raising=False)
        monkeypatch.delenv("CONVERSION_LOGS_DIR", raising=False)
        path = tmp_path / "config.yaml"
        path.write_text(
            "matching:\n  min_similarity: 0.95\nconversion_logs:\n  dir: archive-logs\n",
            encoding="utf-8",
        )

        config = load_config(str(path), Settings(_env_file=None))

        assert config["matching"]["min_similarity"] == 0.95
        assert config["conversion_logs"]["dir"] == "archive-logs"

    def test_env_var_beats_yaml(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("FUZZY_MIN_SIMILARITY", "0.7")
        path = tmp_path / "config.yaml"
        path.write_text("matching:\n  min_similarity: 0.95\n", encoding="utf-8")

        config = load_config(str(path), Settings(_env_file=None))
        assert config["matching"]["min_similarity"] == 0.7

    def test_empty_file_is_fine(self, tmp_path: Path, settings_factory) -> None:
        path = tmp_path / "config.yaml"
        path.write_text("", encoding="utf-8")
        assert load_config(str(path), settings_factory())["matching"]["min_similarity"] == 0.8

    def test_non_mapping_rejected(self, tmp_path: Path, settings_factory) -> None:
        path = tmp_path / "config.yaml"
        path.write_text("- just\n- a list\n", encoding="utf-8")

        with pytest.raises(ConfigurationError, match="mapping"):
            load_config(str(path), settings_factory())

    def test_repo_config_file_loads(self, settings_factory) -> None:
        repo_config = Path(__file__).resolve().parents[2] / "config" / "config.yaml"
        config = load_config(str(repo_config), settings_factory())

        assert config["year_inference"]["search_start"] == 1990
        assert config["year_inference"]["search_end"] == 2025
