"""
Slot Pool — ordered, resizable collection of slots.
Grows by appending fresh slots, shrinks by dropping the tail.
"""

from __future__ import annotations
from typing import List, Optional
from core.aggregate import SlotAggregate
from qrng.models import Slot, PoolInvariantError
import logging

logger = logging.getLogger(__name__)


class SlotPool:
    """
    Owns every slot. Indices run 0..N-1 and existing slots never move.
    A removed slot is gone for good; growing again creates new objects.
    """

    def __init__(self, size: int = 0):
        self._slots: List[Slot] = []
        if size:
            self.resize(size)

    def __len__(self) -> int:
        return len(self._slots)

    def current_slots(self) -> List[Slot]:
        """Snapshot of the slots at the instant of the call."""
        return list(self._slots)

    def get(self, index: int) -> Optional[Slot]:
        if 0 <= index < len(self._slots):
            return self._slots[index]
        return None

    def owns(self, slot: Slot) -> bool:
        """True while this exact slot object is still part of the pool."""
        return self.get(slot.index) is slot

    def resize(self, new_size: int):
        """Grow or shrink to new_size. Pending slots are dropped like any other."""
        if isinstance(new_size, bool) or not isinstance(new_size, int):
            raise PoolInvariantError(f"Slot count must be an integer, got {new_size!r}")
        if new_size < 0:
            raise PoolInvariantError(f"Slot count must be >= 0, got {new_size}")

        old_size = len(self._slots)
        if new_size > old_size:
            for index in range(old_size, new_size):
                self._slots.append(Slot(index=index, aggregate=SlotAggregate()))
        elif new_size < old_size:
            dropped = self._slots[new_size:]
            del self._slots[new_size:]
            in_flight = sum(1 for s in dropped if s.pending)
            if in_flight:
                logger.info(f"[SLOTS] Dropped {in_flight} slot(s) with requests still in flight")

        if new_size != old_size:
            logger.info(f"[SLOTS] Resized {old_size} → {new_size}")

    def summary(self) -> List[dict]:
        return [
            {
                "index": s.index,
                "value": s.aggregate.value,
                "pending": s.pending,
            }
            for s in self._slots
        ]
