"""
Configuration for the command line tools.

Settings come from a YAML file ($FOLDERTREE_CONFIG or ~/.foldertree/config.yaml)
merged over DEFAULTS, then environment overrides. The result is a Box, so
both ``settings.loglevel`` and ``settings["loglevel"]`` work.

Example config.yaml:
    loglevel: DEBUG
    output_format: yaml
    strict: true
"""

import os
from pathlib import Path
from typing import Optional

import yaml
from box import Box

DEFAULTS = {
    "loglevel": "INFO",
    "logfile": None,
    "output_format": "json",   # json | yaml, used by `show`
    "strict": False,           # no-op results exit with 1
    "indent": 2,
}

ENV_OVERRIDES = {
    "FOLDERTREE_LOGLEVEL": "loglevel",
    "FOLDERTREE_LOGFILE": "logfile",
}


def default_config_path() -> Path:
    env_path = os.environ.get("FOLDERTREE_CONFIG")
    if env_path:
        return Path(env_path)
    return Path(os.path.expanduser("~/.foldertree/config.yaml"))


def load_settings(path: Optional[str | Path] = None) -> Box:
    """Return the merged settings. A missing file just means defaults."""
    config_path = Path(path) if path is not None else default_config_path()
    settings = Box(DEFAULTS, default_box=False)

    if config_path.exists():
        try:
            payload = yaml.safe_load(config_path.read_text()) or {}
        except yaml.YAMLError as exc:
            raise ValueError(f"Invalid config file {config_path}: {exc}") from exc
        if not isinstance(payload, dict):
            raise ValueError(f"Config file {config_path} must contain a mapping")
        settings.merge_update(payload)

    for env_var, key in ENV_OVERRIDES.items():
        value = os.environ.get(env_var)
        if value:
            settings[key] = value

    if settings.output_format not in ("json", "yaml"):
        raise ValueError(f"Unsupported output_format: {settings.output_format!r}")
    return settings
