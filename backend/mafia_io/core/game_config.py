from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from mafia_io.config.config_loader import load_game_rules


@dataclass(slots=True)
class TimeoutConfig:
    night_action_seconds: float = 30
    # 0 disables the timer
    day_vote_seconds: float = 0
    ended_retention_seconds: float = 60


@dataclass(slots=True)
class RuleConfig:
    min_players: int = 3
    mafia_divisor: int = 4
    reveal_role_on_elimination: bool = True


@dataclass(slots=True)
class LobbyConfig:
    default_capacity: int = 10
    max_capacity: int = 20
    code_length: int = 4
    code_alphabet: str = "ABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789"
    message_history_limit: int = 200
    max_chat_length: int = 500


@dataclass(slots=True)
class GameConfig:
    lobby: LobbyConfig = field(default_factory=LobbyConfig)
    rules: RuleConfig = field(default_factory=RuleConfig)
    timeout: TimeoutConfig = field(default_factory=TimeoutConfig)
    warnings: List[str] = field(default_factory=list)

    @property
    def min_players(self) -> int:
        return self.rules.min_players

    def to_dict(self) -> Dict[str, Any]:
        return {
            "min_players": self.rules.min_players,
            "mafia_divisor": self.rules.mafia_divisor,
            "reveal_role_on_elimination": self.rules.reveal_role_on_elimination,
            "default_capacity": self.lobby.default_capacity,
            "max_capacity": self.lobby.max_capacity,
            "night_action_seconds": self.timeout.night_action_seconds,
            "day_vote_seconds": self.timeout.day_vote_seconds,
            "warnings": self.warnings,
        }


def default_game_config(path: Optional[str] = None) -> GameConfig:
    loaded = load_game_rules(path)
    return GameConfig(
        lobby=LobbyConfig(**loaded["lobby"]),
        rules=RuleConfig(**loaded["rules"]),
        timeout=TimeoutConfig(**loaded["timeout"]),
        warnings=loaded.get("warnings", []),
    )
