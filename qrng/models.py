"""
Data models for the QRNG slot poller.
Slots, cycle bookkeeping records, render instructions and error types.
"""

from __future__ import annotations
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from core.aggregate import SlotAggregate


class SchedulerState(Enum):
    IDLE = "IDLE"
    CYCLE_IN_FLIGHT = "CYCLE_IN_FLIGHT"
    ARMED = "ARMED"


class SettleOutcome(Enum):
    APPLIED = "APPLIED"
    FAILED = "FAILED"
    STALE_APPLIED = "STALE_APPLIED"      # Superseded cycle, slot not yet touched by the new one
    STALE_DISCARD = "STALE_DISCARD"      # Removed slot, or slot already touched by a newer cycle


class PollerError(Exception):
    """Base class for poller errors."""


class TransportError(PollerError):
    """A sample could not be fetched or parsed."""


class PoolInvariantError(PollerError, ValueError):
    """Rejected slot pool resize."""


@dataclass(frozen=True)
class AggregateView:
    """Result of folding one sample into a slot aggregate."""
    value: float
    sign: Optional[str] = None      # ">" / "<", None on the first fold
    is_first: bool = False


@dataclass(eq=False)
class Slot:
    """One display unit and its rolling aggregate. Identity is the object itself."""
    index: int
    aggregate: "SlotAggregate"
    pending: bool = False
    issued_cycle: Optional[int] = None      # Token of the cycle that last requested a sample
    applied_cycle: Optional[int] = None     # Token of the newest cycle folded into the aggregate


@dataclass
class Cycle:
    """Completion barrier for one fan-out round."""
    token: int
    total: int
    settled: int = 0
    failed: int = 0
    started_at: float = field(default_factory=time.monotonic)

    @property
    def is_complete(self) -> bool:
        return self.settled == self.total

    @property
    def elapsed(self) -> float:
        return time.monotonic() - self.started_at


@dataclass(frozen=True)
class RenderInstruction:
    """What a presentation sink needs to redraw one slot."""
    slot_index: int
    value: float
    sign: Optional[str]
    is_first: bool

    @property
    def label(self) -> str:
        if self.is_first or self.sign is None:
            return f"{self.value:g}"
        return f"{self.sign} {self.value:.2f}"
