#!/usr/bin/env python3
# CUI // SP-PROPIN
"""Estimator settings from args/estimate_config.yaml.

Missing files or keys fall back to DEFAULT_SETTINGS; an unreadable file
is logged and ignored so configuration never blocks generation.
"""

import copy
import logging
import os
from pathlib import Path

import yaml

logger = logging.getLogger("wbs_engine.estimate.config")

BASE_DIR = Path(__file__).resolve().parent.parent.parent
CONFIG_PATH = Path(os.environ.get(
    "WBS_ENGINE_ESTIMATE_CONFIG", str(BASE_DIR / "args" / "estimate_config.yaml")
))

DEFAULT_SETTINGS = {
    "generation": {
        "function": "wbs_generation",
        "max_tokens": 16384,
        "temperature": 0.3,
        "excerpt_chars": 500,
        "mock_on_upstream_error": False,
    },
    "mock": {
        "base_hours": {"shall": 120, "should": 60, "may": 60, "will": 60},
        "option_year_ratios": [0.25, 0.15, 0.10, 0.10],
        "max_roles": 3,
    },
    "staffing": {
        "billable_hours_per_month": 160,
        "months_per_period": 12,
        "standard_annual_hours": 2080,
    },
}


def _merge(base: dict, override: dict, path: str = "") -> dict:
    """Overlay ``override`` on ``base``. A section must stay a mapping."""
    merged = copy.deepcopy(base)
    for key, value in (override or {}).items():
        name = f"{path}{key}"
        if isinstance(merged.get(key), dict):
            if isinstance(value, dict):
                merged[key] = _merge(merged[key], value, f"{name}.")
            else:
                logger.warning("Estimate config section %r is not a mapping; using defaults", name)
        else:
            merged[key] = value
    return merged


def load_settings(path=None) -> dict:
    """Return DEFAULT_SETTINGS overlaid with the YAML file, if readable."""
    config_path = Path(path) if path else CONFIG_PATH
    if not config_path.exists():
        return copy.deepcopy(DEFAULT_SETTINGS)
    try:
        with open(config_path, "r", encoding="utf-8") as fh:
            data = yaml.safe_load(fh) or {}
    except (OSError, yaml.YAMLError) as exc:
        logger.warning("Could not read estimate config %s: %s; using defaults", config_path, exc)
        return copy.deepcopy(DEFAULT_SETTINGS)
    if not isinstance(data, dict):
        logger.warning("Estimate config %s is not a mapping; using defaults", config_path)
        return copy.deepcopy(DEFAULT_SETTINGS)
    return _merge(DEFAULT_SETTINGS, data)
