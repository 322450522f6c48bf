# budget_tracker/config.py
from __future__ import annotations

import os
from pathlib import Path
from typing import Dict

import yaml

DEFAULT_CONFIG: Dict[str, object] = {
    "db_path": "budgetbuddy.db",
    "user_id": None,
    "log_level": "INFO",
    "default_monthly_budget": 21000,
    "default_categories": [
        {"name": "Food & Dining", "monthly_limit": 3000, "color": "#FF6B6B", "icon": "restaurant"},
        {"name": "Shopping", "monthly_limit": 2000, "color": "#4ECDC4", "icon": "shopping_bag"},
        {"name": "Housing", "monthly_limit": 8000, "color": "#45B7D1", "icon": "home"},
        {"name": "Transportation", "monthly_limit": 1500, "color": "#FFA07A", "icon": "directions_car"},
        {"name": "Utilities", "monthly_limit": 2000, "color": "#98D8C8", "icon": "bolt"},
        {"name": "Healthcare", "monthly_limit": 1500, "color": "#F7DC6F", "icon": "favorite"},
        {"name": "Entertainment", "monthly_limit": 1000, "color": "#BB8FCE", "icon": "movie"},
        {"name": "Others", "monthly_limit": 2000, "color": "#85929E", "icon": "credit_card"},
    ],
}


def _merge_defaults(current: Dict[str, object], defaults: Dict[str, object]) -> Dict[str, object]:
    """Merge missing default keys into the current config recursively."""
    merged = dict(current)
    for key, value in defaults.items():
        if key not in merged:
            merged[key] = value
        elif isinstance(value, dict) and isinstance(merged[key], dict):
            merged[key] = _merge_defaults(merged[key], value)
    return merged


def load_config(path: str | Path | None = None) -> Dict[str, object]:
    """Load a YAML config file, falling back to defaults for missing keys.

    ``BUDGETBUDDY_LOG_LEVEL`` in the environment overrides ``log_level``.
    """
    config: Dict[str, object] = dict(DEFAULT_CONFIG)
    if path is not None and Path(path).exists():
        with Path(path).open("r", encoding="utf-8") as fp:
            data = yaml.safe_load(fp) or {}
        if not isinstance(data, dict):
            raise ValueError(f"Config file {path} must contain a mapping")
        config = _merge_defaults(data, DEFAULT_CONFIG)
    level = os.environ.get("BUDGETBUDDY_LOG_LEVEL")
    if level:
        config["log_level"] = level
    return config
