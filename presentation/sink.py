"""
Presentation sinks — consumers of per-slot render instructions.
The scheduler only knows this narrow interface.
"""

from __future__ import annotations
from typing import Iterable, List, Protocol
from qrng.models import RenderInstruction
import logging

logger = logging.getLogger(__name__)


class PresentationSink(Protocol):
    def render(self, instruction: RenderInstruction) -> None:
        """Redraw one slot. Must be a no-op for an index that no longer exists."""
        ...

    def resize(self, count: int) -> None:
        """Rebuild for a new slot count."""
        ...


class LoggingSink:
    """Logs every render instruction."""

    def render(self, instruction: RenderInstruction) -> None:
        logger.info(f"[RENDER] Slot {instruction.slot_index}: {instruction.label}")

    def resize(self, count: int) -> None:
        logger.debug(f"[RENDER] {count} slot(s)")


class CompositeSink:
    """Fans each call out to several sinks, in order."""

    def __init__(self, sinks: Iterable[PresentationSink]):
        self.sinks: List[PresentationSink] = list(sinks)

    def render(self, instruction: RenderInstruction) -> None:
        for sink in self.sinks:
            sink.render(instruction)

    def resize(self, count: int) -> None:
        for sink in self.sinks:
            sink.resize(count)
