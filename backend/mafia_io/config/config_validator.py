from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List


@dataclass(slots=True)
class ValidationResult:
    ok: bool
    warnings: List[str]


class ConfigValidator:
    MIN_QUORUM = 3
    MIN_CODE_LENGTH = 3

    @classmethod
    def validate_rules(cls, rules: Dict[str, Dict[str, Any]]) -> ValidationResult:
        lobby = rules["lobby"]
        game = rules["rules"]
        timeout = rules["timeout"]

        min_players = int(game["min_players"])
        if min_players < cls.MIN_QUORUM:
            raise ValueError(f"min_players must be >= {cls.MIN_QUORUM}")
        if int(game["mafia_divisor"]) < 2:
            raise ValueError("mafia_divisor must be >= 2")

        default_capacity = int(lobby["default_capacity"])
        max_capacity = int(lobby["max_capacity"])
        if max_capacity < min_players:
            raise ValueError("max_capacity must be >= min_players")
        if not (min_players <= default_capacity <= max_capacity):
            raise ValueError("default_capacity must be between min_players and max_capacity")

        if int(lobby["code_length"]) < cls.MIN_CODE_LENGTH:
            raise ValueError(f"code_length must be >= {cls.MIN_CODE_LENGTH}")
        alphabet = str(lobby["code_alphabet"])
        if len(set(alphabet)) < 2 or not alphabet.isalnum():
            raise ValueError("code_alphabet must contain at least two distinct alphanumeric characters")
        if alphabet != alphabet.upper():
            raise ValueError("code_alphabet must be upper case")
        if int(lobby["message_history_limit"]) < 0:
            raise ValueError("message_history_limit must be >= 0")
        if int(lobby["max_chat_length"]) < 1:
            raise ValueError("max_chat_length must be >= 1")

        for key in ("night_action_seconds", "day_vote_seconds", "ended_retention_seconds"):
            if float(timeout[key]) < 0:
                raise ValueError(f"{key} must be >= 0")

        warnings: List[str] = []
        if float(timeout["night_action_seconds"]) == 0:
            warnings.append("night timer disabled; an idle night role stalls the game until it acts")
        if len(set(alphabet)) ** int(lobby["code_length"]) < max_capacity * 100:
            warnings.append("lobby code space is small; code generation may retry often")
        return ValidationResult(ok=True, warnings=warnings)
