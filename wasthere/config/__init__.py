"""Configuration module — exports Settings and load_config."""

from wasthere.config.loader import load_config
from wasthere.config.settings import Settings

__all__ = ["Settings", "load_config"]
