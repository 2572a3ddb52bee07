from mafia_io.config.config_loader import load_game_rules
from mafia_io.config.config_validator import ConfigValidator

__all__ = ["load_game_rules", "ConfigValidator"]
