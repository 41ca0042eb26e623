"""YAML configuration loader with environment variable overrides.

Configuration is layered:

  1. Environment variables  -- set at deploy time, always win
  2. ``.env`` file          -- local values, also beat the YAML file
  3. ``config/config.yaml`` -- static defaults checked into the repo
  4. :class:`Settings` field defaults

``load_settings`` flattens the YAML sections onto :class:`Settings` field
names (``chunking.window_size`` -> ``chunk_window_size``).  Credentials
belong in the environment or ``.env``, never in the YAML file.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic_settings import DotEnvSettingsSource, EnvSettingsSource

from asash.config.settings import Settings

# YAML section -> prefix added to each key to form the Settings field name.
_SECTION_PREFIXES: dict[str, str] = {
    "embedding": "embedding_",
    "generation": "generation_",
    "chunking": "chunk_",
    "retrieval": "",
    "limits": "",
    "storage": "",
    "chat": "chat_",
    "app": "app_",
}


def load_config(path: str = "config/config.yaml") -> dict[str, Any]:
    """Read the YAML file, returning ``{}`` when it does not exist."""
    config_path = Path(path)
    if not config_path.exists():
        return {}
    with open(config_path, encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def flatten_config(config: dict[str, Any]) -> dict[str, Any]:
    """Map nested YAML sections onto flat :class:`Settings` field names.

    Keys that already carry their prefix (``app.log_level``) are kept as
    is; unknown keys are dropped so a stale YAML file cannot break startup.
    """
    known = set(Settings.model_fields)
    flat: dict[str, Any] = {}
    for section, values in config.items():
        if not isinstance(values, dict):
            if section in known:
                flat[section] = values
            continue
        prefix = _SECTION_PREFIXES.get(section, f"{section}_")
        for key, value in values.items():
            for candidate in (f"{prefix}{key}", key):
                if candidate in known:
                    flat[candidate] = value
                    break
    return flat


def load_settings(path: str = "config/config.yaml") -> Settings:
    """Build :class:`Settings` from YAML defaults overlaid by the environment.

    Init kwargs normally beat both the environment and ``.env`` in
    pydantic-settings, so YAML values for fields either of them sets are
    dropped before construction.
    """
    yaml_values = flatten_config(load_config(path))
    env_set = set(EnvSettingsSource(Settings)()) | set(DotEnvSettingsSource(Settings)())
    overrides = {
        key: value for key, value in yaml_values.items() if key not in env_set
    }
    return Settings(**overrides)
