from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional

from mafia_io.core.models import Role, SessionSnapshot


class SkillStrategy(ABC):
    role: Role

    @abstractmethod
    def validate(self, snapshot: SessionSnapshot, actor_id: str, target_id: Optional[str]) -> None:
        pass

    @abstractmethod
    def apply(self, snapshot: SessionSnapshot, actor_id: str, target_id: Optional[str]) -> Optional[dict]:
        pass

    @abstractmethod
    def submitted(self, snapshot: SessionSnapshot) -> bool:
        """Whether this role's part of the night is settled."""
