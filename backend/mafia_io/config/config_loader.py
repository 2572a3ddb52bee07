from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from mafia_io.config.config_validator import ConfigValidator

logger = logging.getLogger(__name__)

RULES_PATH_ENV = "MAFIA_GAME_RULES_PATH"

_BUILTIN_RULES: Dict[str, Dict[str, Any]] = {
    "lobby": {
        "default_capacity": 10,
        "max_capacity": 20,
        "code_length": 4,
        "code_alphabet": "ABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789",
        "message_history_limit": 200,
        "max_chat_length": 500,
    },
    "rules": {
        "min_players": 3,
        "mafia_divisor": 4,
        "reveal_role_on_elimination": True,
    },
    "timeout": {
        "night_action_seconds": 30,
        "day_vote_seconds": 0,
        "ended_retention_seconds": 60,
    },
}


def load_game_rules(path: Optional[str] = None) -> Dict[str, Any]:
    raw = _read_rules_file(_resolve_path(path))
    merged: Dict[str, Any] = {}
    for section, defaults in _BUILTIN_RULES.items():
        node = raw.get(section) or {}
        if not isinstance(node, dict):
            raise ValueError(f"section '{section}' must be a mapping")
        unknown = sorted(set(node) - set(defaults))
        if unknown:
            raise ValueError(f"unknown keys in section '{section}': {unknown}")
        merged[section] = {**defaults, **node}

    result = ConfigValidator.validate_rules(merged)
    merged["warnings"] = result.warnings
    for warning in result.warnings:
        logger.warning("[GameRules] %s", warning)
    return merged


def _resolve_path(path: Optional[str]) -> Path:
    if path:
        return Path(path)
    from_env = os.getenv(RULES_PATH_ENV)
    if from_env:
        return Path(from_env)
    return Path(__file__).resolve().parents[2] / "config" / "game_rules.yaml"


def _read_rules_file(config_path: Path) -> Dict[str, Any]:
    if not config_path.exists():
        logger.info("[GameRules] %s not found, using built-in rules", config_path)
        return {}
    raw = yaml.safe_load(config_path.read_text(encoding="utf-8")) or {}
    if not isinstance(raw, dict):
        raise ValueError(f"game rules file must contain a mapping: {config_path}")
    return raw
