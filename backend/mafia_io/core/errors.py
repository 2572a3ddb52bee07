"""Rejection reasons for inbound commands.

Every error here is local and recoverable: the command that raised it is
dropped and the session is left exactly as it was. ``GameError`` derives from
``ValueError`` so transport code can keep mapping ``ValueError`` to a client
error.
"""

from __future__ import annotations


class GameError(ValueError):
    code = "game_error"

    def __init__(self, message: str = "") -> None:
        super().__init__(message or self.code)
        self.message = message or self.code

    def to_dict(self) -> dict:
        return {"code": self.code, "message": self.message}


class NotFound(GameError):
    code = "not_found"


class Full(GameError):
    code = "full"


class QuorumNotMet(GameError):
    code = "quorum_not_met"


class NotHost(GameError):
    code = "not_host"


class WrongPhase(GameError):
    code = "wrong_phase"


class NotAlive(GameError):
    code = "not_alive"


class WrongRole(GameError):
    code = "wrong_role"


class InsufficientPlayers(GameError):
    code = "insufficient_players"


class AlreadyActed(GameError):
    code = "already_acted"


class AlreadyInSession(GameError):
    code = "already_in_session"


class InvalidCommand(GameError):
    code = "invalid_command"
