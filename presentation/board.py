"""
Slot Board — in-memory render state for the dashboard page.
One tile per slot: a random fill color, a label and a pulse height.
"""

from __future__ import annotations
import random
import time
from dataclasses import dataclass, field
from typing import Callable, List, Optional
from qrng.models import RenderInstruction
import logging

logger = logging.getLogger(__name__)

BASE_HEIGHT = 100
PULSE_HEIGHT = 110
PULSE_SEC = 0.5
LOADING_LABEL = "loading.."


def random_color(rng: Optional[random.Random] = None) -> str:
    """Random #rrggbb fill."""
    rng = rng or random
    return f"#{rng.randrange(0x1000000):06x}"


@dataclass
class SlotTile:
    index: int
    color: str
    label: str = LOADING_LABEL
    value: Optional[float] = None
    sign: Optional[str] = None
    renders: int = 0
    rendered_at: Optional[float] = None

    def height(self, now: float) -> int:
        if self.rendered_at is not None and now - self.rendered_at < PULSE_SEC:
            return PULSE_HEIGHT
        return BASE_HEIGHT

    def to_dict(self, now: float) -> dict:
        return {
            "index": self.index,
            "color": self.color,
            "label": self.label,
            "value": self.value,
            "sign": self.sign,
            "height": self.height(now),
            "renders": self.renders,
        }


@dataclass
class SlotBoard:
    """
    Presentation sink backing the dashboard.
    Resizes like the slot pool: surviving tiles keep their state,
    new tiles are appended and removed ones trimmed at the tail.
    """
    tiles: List[SlotTile] = field(default_factory=list)
    rng: random.Random = field(default_factory=random.Random)
    clock: Callable[[], float] = time.monotonic

    def resize(self, count: int) -> None:
        del self.tiles[count:]
        for i in range(len(self.tiles), count):
            self.tiles.append(SlotTile(index=i, color=random_color(self.rng)))
        logger.debug(f"[BOARD] {count} tile(s)")

    def render(self, instruction: RenderInstruction) -> None:
        if not 0 <= instruction.slot_index < len(self.tiles):
            logger.debug(f"[BOARD] Render for missing slot {instruction.slot_index} ignored")
            return

        tile = self.tiles[instruction.slot_index]
        tile.value = instruction.value
        tile.sign = instruction.sign
        tile.label = instruction.label
        tile.rendered_at = self.clock()
        tile.renders += 1

    def snapshot(self) -> List[dict]:
        now = self.clock()
        return [tile.to_dict(now) for tile in self.tiles]
