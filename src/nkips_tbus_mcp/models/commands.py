"""Commands accepted by the router driver.

``RouterCommand`` is a closed union: the driver resolves each member to a
handler and refuses anything else.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Hashable, Union

from ..protocol.commands import Level


@dataclass(frozen=True)
class CrosspointCommand:
    """One crosspoint take: route ``source`` to ``destination`` on ``level``.

    Destination and source are 1-based.
    """

    level: Level
    destination: int
    source: int


@dataclass(frozen=True)
class DirectCrosspoint:
    """Encode and send a crosspoint immediately."""

    level: Level
    destination: int
    source: int

    def to_crosspoint(self) -> CrosspointCommand:
        return CrosspointCommand(self.level, self.destination, self.source)


@dataclass(frozen=True)
class StageLevel:
    controller_id: Hashable
    level: Level


@dataclass(frozen=True)
class StageDestination:
    controller_id: Hashable
    destination: int


@dataclass(frozen=True)
class StageSource:
    controller_id: Hashable
    source: int


@dataclass(frozen=True)
class CommitStaged:
    """Take whatever ``controller_id`` has staged."""

    controller_id: Hashable


RouterCommand = Union[DirectCrosspoint, StageLevel, StageDestination, StageSource, CommitStaged]


class StagingField(Enum):
    """Staged fields, in the order a commit checks them."""

    LEVEL = "level"
    DESTINATION = "destination"
    SOURCE = "source"


@dataclass(frozen=True)
class StagingIncomplete:
    """A commit was requested before every field was staged."""

    missing: StagingField

    @property
    def message(self) -> str:
        return f"No {self.missing.value.capitalize()} Selected"
