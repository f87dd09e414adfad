"""Device records - immutable snapshots of emulator and simulator state."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any


class SimulatorState(Enum):
    """Boot state reported by simctl."""

    BOOTED = "Booted"
    SHUTDOWN = "Shutdown"
    UNKNOWN = "Unknown"

    @classmethod
    def parse(cls, raw: str | None) -> SimulatorState:
        """Map a raw simctl state name, falling back to UNKNOWN."""
        for state in cls:
            if state.value == raw:
                return state
        return cls.UNKNOWN


@dataclass(frozen=True)
class AndroidDevice:
    """One line of `adb devices` output."""

    id: str
    is_online: bool

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "is_online": self.is_online}


@dataclass(frozen=True)
class IosSimulator:
    """One simulator from `xcrun simctl list --json devices`."""

    id: str
    name: str
    system: str
    state: SimulatorState

    @property
    def is_booted(self) -> bool:
        return self.state is SimulatorState.BOOTED

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "system": self.system,
            "state": self.state.value,
        }
