from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Union


@dataclass(frozen=True)
class Override:
    """User-entered values; switches the history to manual mode."""
    update: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ClearOverride:
    """Leave manual mode so live sources drive the history again."""


@dataclass(frozen=True)
class LiveUpdate:
    """Values delivered by a live source (push feed)."""
    update: Dict[str, Any] = field(default_factory=dict)


SensorCommand = Union[Override, ClearOverride, LiveUpdate]


def command_from_manual_payload(update: Mapping[str, Any]) -> SensorCommand:
    """Maps a manual edit onto a command; an empty edit means 'go back live'."""
    if not update:
        return ClearOverride()
    return Override(dict(update))
