"""Configuration: pydantic-settings ``Settings`` and the YAML loader."""

from asash.config.loader import load_settings
from asash.config.settings import Settings

__all__ = ["Settings", "load_settings"]
