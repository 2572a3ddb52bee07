from __future__ import annotations

from abc import ABC, abstractmethod
from typing import FrozenSet

from mafia_io.core.models import Phase


class BasePhaseState(ABC):
    phase: Phase

    @abstractmethod
    def next_phases(self) -> FrozenSet[Phase]:
        pass

    def can_transition_to(self, target: Phase) -> bool:
        return target in self.next_phases()


class LobbyState(BasePhaseState):
    phase = Phase.LOBBY

    def next_phases(self) -> FrozenSet[Phase]:
        return frozenset({Phase.NIGHT})


class NightState(BasePhaseState):
    phase = Phase.NIGHT

    def next_phases(self) -> FrozenSet[Phase]:
        return frozenset({Phase.DAY, Phase.ENDED})


class DayState(BasePhaseState):
    phase = Phase.DAY

    def next_phases(self) -> FrozenSet[Phase]:
        return frozenset({Phase.NIGHT, Phase.ENDED})


class EndedState(BasePhaseState):
    phase = Phase.ENDED

    def next_phases(self) -> FrozenSet[Phase]:
        return frozenset()


STATE_REGISTRY = {
    Phase.LOBBY: LobbyState(),
    Phase.NIGHT: NightState(),
    Phase.DAY: DayState(),
    Phase.ENDED: EndedState(),
}
