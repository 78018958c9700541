"""
Slot Aggregate — rolling mean by repeated halving.

    first sample:  value = sample
    afterwards:    value = (value + sample) / 2

This weights the newest sample at 0.5 and is not a cumulative average.
"""

from __future__ import annotations
from typing import Optional
from qrng.models import AggregateView


class SlotAggregate:
    """Running per-slot value. Folded one sample at a time."""

    def __init__(self, value: Optional[float] = None):
        self.value = value

    @property
    def is_empty(self) -> bool:
        return self.value is None

    def fold(self, sample: float) -> AggregateView:
        """Fold a sample in and report the new value with its comparison sign."""
        sample = float(sample)
        if self.value is None:
            self.value = sample
            return AggregateView(value=sample, sign=None, is_first=True)

        self.value = (self.value + sample) / 2
        sign = ">" if sample > self.value else "<"
        return AggregateView(value=self.value, sign=sign, is_first=False)

    def __repr__(self) -> str:
        return f"SlotAggregate(value={self.value!r})"
