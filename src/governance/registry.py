"""In-memory slot registry with one re-entrant lock per slot.

Slots are independent units of concurrency: mutations on one slot are
serialized by its lock, while different slots proceed in parallel.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterable, Iterator
from contextlib import contextmanager

from ambassador.errors import SlotNotFound
from ambassador.governance.models import Slot

logger = logging.getLogger(__name__)


class SlotRegistry:
    """Holds the live ``Slot`` objects for one tenant."""

    def __init__(self, slots: Iterable[Slot] = ()) -> None:
        self._slots: dict[str, Slot] = {}
        self._locks: dict[str, threading.RLock] = {}
        self._guard = threading.Lock()
        for slot in slots:
            self.add(slot)

    def __contains__(self, slot_id: object) -> bool:
        return slot_id in self._slots

    def __len__(self) -> int:
        return len(self._slots)

    def add(self, slot: Slot) -> None:
        with self._guard:
            if slot.slot_id in self._slots:
                raise ValueError(f"Slot {slot.slot_id!r} already registered")
            self._slots[slot.slot_id] = slot
            self._locks[slot.slot_id] = threading.RLock()

    def get(self, slot_id: str) -> Slot:
        try:
            return self._slots[slot_id]
        except KeyError:
            raise SlotNotFound(slot_id) from None

    def lock_for(self, slot_id: str) -> threading.RLock:
        try:
            return self._locks[slot_id]
        except KeyError:
            raise SlotNotFound(slot_id) from None

    @contextmanager
    def locked(self, slot_id: str) -> Iterator[Slot]:
        """Hold the slot's lock and yield the current slot object."""
        with self.lock_for(slot_id):
            yield self.get(slot_id)

    def commit(self, slot: Slot) -> Slot:
        """Copy a working version of a slot onto the registered instance.

        The registered object keeps its identity, so state machines and
        callers holding it observe the new values.  Callers must hold the
        slot's lock.
        """
        live = self._slots.get(slot.slot_id)
        if live is None:
            raise SlotNotFound(slot.slot_id)
        if live is not slot:
            for name in type(slot).model_fields:
                setattr(live, name, getattr(slot, name))
        return live

    def remove(self, slot_id: str) -> Slot:
        with self.lock_for(slot_id), self._guard:
            slot = self._slots.pop(slot_id)
            self._locks.pop(slot_id)
        logger.info("Removed slot %s from registry", slot_id)
        return slot

    def slots(self) -> list[Slot]:
        return list(self._slots.values())
