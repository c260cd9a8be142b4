"""Per-controller staging of multi-stage crosspoints.

A controller (a button bank, a panel, anything with a stable id) selects the
level, destination and source in separate calls, then asks for a take.
"""

from __future__ import annotations

import logging
import threading
from collections import OrderedDict
from dataclasses import dataclass, replace
from typing import Hashable

from .models.commands import CrosspointCommand, StagingField, StagingIncomplete
from .protocol.commands import Level

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StagingEntry:
    level: Level | None = None
    destination: int | None = None
    source: int | None = None


class StagingStore:
    """Holds partially built selections keyed by controller id.

    Entries persist after a take unless ``clear_on_take`` is set. The store
    holds at most ``max_entries`` controllers; the least recently touched
    entry is dropped when a new controller would exceed that.
    """

    def __init__(self, max_entries: int = 256, clear_on_take: bool = False) -> None:
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self._max_entries = max_entries
        self._clear_on_take = clear_on_take
        self._entries: OrderedDict[Hashable, StagingEntry] = OrderedDict()
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, controller_id: Hashable) -> bool:
        return controller_id in self._entries

    def _merge(self, controller_id: Hashable, **changes) -> StagingEntry:
        with self._lock:
            entry = self._entries.pop(controller_id, None) or StagingEntry()
            entry = replace(entry, **changes)
            self._entries[controller_id] = entry
            while len(self._entries) > self._max_entries:
                evicted, _ = self._entries.popitem(last=False)
                logger.debug("Staging entry for controller %r evicted", evicted)
            return entry

    def set_level(self, controller_id: Hashable, level: Level | int | str) -> StagingEntry:
        return self._merge(controller_id, level=Level.parse(level))

    def set_destination(self, controller_id: Hashable, destination: int) -> StagingEntry:
        return self._merge(controller_id, destination=destination)

    def set_source(self, controller_id: Hashable, source: int) -> StagingEntry:
        return self._merge(controller_id, source=source)

    def get(self, controller_id: Hashable) -> StagingEntry | None:
        return self._entries.get(controller_id)

    def try_commit(self, controller_id: Hashable) -> CrosspointCommand | StagingIncomplete:
        """Read the staged selection for a take.

        Returns:
            The complete ``CrosspointCommand``, or ``StagingIncomplete`` naming
            the first missing field in level, destination, source order.
        """
        with self._lock:
            entry = self._entries.get(controller_id) or StagingEntry()
            if entry.level is None:
                return StagingIncomplete(StagingField.LEVEL)
            if entry.destination is None:
                return StagingIncomplete(StagingField.DESTINATION)
            if entry.source is None:
                return StagingIncomplete(StagingField.SOURCE)

            if self._clear_on_take:
                del self._entries[controller_id]
            else:
                self._entries.move_to_end(controller_id)
            return CrosspointCommand(entry.level, entry.destination, entry.source)

    def clear(self, controller_id: Hashable | None = None) -> None:
        """Forget one controller's selection, or every selection."""
        with self._lock:
            if controller_id is None:
                self._entries.clear()
            else:
                self._entries.pop(controller_id, None)
