"""Grocery preferences loading with defaults and CLI override merging."""

from __future__ import annotations

import copy
from pathlib import Path

import yaml

DEFAULT_COOKING_DIR = "03. Resources/Cooking"
PREFERENCES_FILE = "grocery-preferences.yaml"

DEFAULTS = {
    "planning": {
        "week_plan": "week-plan.yaml",
        "min_planned_servings": 0.25,
    },
    "normalizer": {
        "command": "claude",
        "model": "haiku",
        "timeout": 120,
    },
    "grocery": {
        "note": "Lista della spesa.md",
    },
}


def deep_merge(base: dict, override: dict) -> dict:
    """Recursively merge override into base, returning a new dict."""
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def load_config(vault_path: Path) -> dict:
    """Load grocery preferences from YAML file, falling back to defaults."""
    config_path = vault_path / DEFAULT_COOKING_DIR / PREFERENCES_FILE

    if config_path.exists():
        with open(config_path, encoding="utf-8") as f:
            user_config = yaml.safe_load(f) or {}
        return deep_merge(copy.deepcopy(DEFAULTS), user_config)

    return copy.deepcopy(DEFAULTS)


def apply_cli_overrides(config: dict, **overrides: object) -> dict:
    """Apply CLI argument overrides to config.

    Supports flat keys that map into nested config:
      model -> normalizer.model
      timeout -> normalizer.timeout
      plan -> planning.week_plan
      note -> grocery.note
    """
    if overrides.get("model") is not None:
        config["normalizer"]["model"] = overrides["model"]
    if overrides.get("timeout") is not None:
        config["normalizer"]["timeout"] = int(overrides["timeout"])  # type: ignore[call-overload]
    if overrides.get("plan") is not None:
        config["planning"]["week_plan"] = str(overrides["plan"])
    if overrides.get("note") is not None:
        config["grocery"]["note"] = str(overrides["note"])

    return config
