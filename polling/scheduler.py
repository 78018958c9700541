"""
Poll Cycle Scheduler — fan-out / fan-in polling across the slot pool.

One cycle sends a request for every slot, waits until every request has
settled (success or failure), then arms a one-shot timer for the next cycle.

    IDLE ──start()──► CYCLE_IN_FLIGHT ──all settled──► ARMED ──timer──► CYCLE_IN_FLIGHT
      ▲                                                                     │
      └────────────────────── restart() / stop() ◄──────────────────────────┘

All bookkeeping runs on the event loop thread, so no locks are needed.
"""

from __future__ import annotations
import asyncio
import itertools
from typing import Any, Dict, Optional, Protocol, Set
from qrng.models import (
    Cycle,
    RenderInstruction,
    SchedulerState,
    SettleOutcome,
    Slot,
    TransportError,
)
from polling.slot_pool import SlotPool
from presentation.sink import PresentationSink
import logging

logger = logging.getLogger(__name__)


class SampleSource(Protocol):
    async def fetch_sample(self) -> float:
        ...


class PollCycleScheduler:
    """
    Drives polling cycles over a SlotPool.

    Results that arrive for a superseded cycle are applied only if the slot
    is still in the pool and no newer cycle has already updated it; they
    never count toward the current cycle's completion.
    """

    def __init__(
        self,
        pool: SlotPool,
        source: SampleSource,
        sink: PresentationSink,
        interval_sec: float = 5.0,
    ):
        self.pool = pool
        self.source = source
        self.sink = sink
        self.interval_sec = interval_sec

        self._state = SchedulerState.IDLE
        self._cycle: Optional[Cycle] = None
        self._last_cycle: Optional[Cycle] = None
        self._timer: Optional[asyncio.TimerHandle] = None
        self._tokens = itertools.count(1)
        self._tasks: Set[asyncio.Task] = set()
        self._stopped = False
        self.cycles_completed = 0

    @property
    def state(self) -> SchedulerState:
        return self._state

    @property
    def active_cycle(self) -> Optional[Cycle]:
        return self._cycle

    @property
    def in_flight(self) -> int:
        """Requests not yet settled, including those of superseded cycles."""
        return len(self._tasks)

    # ─── Control ───

    def start(self):
        """Begin polling. Must be called from inside the running event loop."""
        if self._stopped:
            logger.warning("[POLL] start() ignored, scheduler is stopped")
            return
        if self._state is not SchedulerState.IDLE:
            logger.warning(f"[POLL] start() ignored, scheduler is {self._state.value}")
            return
        self._issue_cycle()

    def restart(self):
        """Drop the armed timer and the active cycle, then poll the current slots now."""
        self._cancel_timer()
        if self._cycle is not None:
            logger.info(
                f"[POLL] Cycle #{self._cycle.token} superseded "
                f"({self._cycle.settled}/{self._cycle.total} settled)"
            )
        self._cycle = None
        self._state = SchedulerState.IDLE
        self.start()

    def set_slot_count(self, count: int):
        """
        Resize the pool and restart polling.
        A rejected count raises PoolInvariantError and changes nothing.
        Ignored once the scheduler has been stopped.
        """
        if self._stopped:
            logger.warning(f"[POLL] Slot count {count!r} ignored, scheduler is stopped")
            return
        self.pool.resize(count)
        try:
            self.sink.resize(count)
        except Exception as e:
            logger.error(f"[POLL] Sink resize failed: {e}", exc_info=True)
        self.restart()

    async def stop(self):
        """Stop scheduling for good and cancel outstanding requests."""
        self._stopped = True
        self._cancel_timer()
        self._cycle = None
        self._state = SchedulerState.IDLE

        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        logger.info(f"[POLL] Stopped after {self.cycles_completed} cycle(s)")

    def last_cycle_summary(self) -> Dict[str, Any]:
        return {
            "state": self._state.value,
            "interval_sec": self.interval_sec,
            "cycles_completed": self.cycles_completed,
            "in_flight": self.in_flight,
            "active": _cycle_dict(self._cycle),
            "last": _cycle_dict(self._last_cycle),
        }

    # ─── Cycle ───

    def _issue_cycle(self):
        loop = asyncio.get_running_loop()
        slots = self.pool.current_slots()
        cycle = Cycle(token=next(self._tokens), total=len(slots))
        self._cycle = cycle
        self._state = SchedulerState.CYCLE_IN_FLIGHT

        if not slots:
            self._complete(cycle)
            return

        for slot in slots:
            slot.pending = True
            slot.issued_cycle = cycle.token
            task = loop.create_task(self._poll_slot(cycle, slot))
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)

        logger.info(f"[POLL] Cycle #{cycle.token}: {cycle.total} request(s) sent")

    async def _poll_slot(self, cycle: Cycle, slot: Slot):
        try:
            sample = await self.source.fetch_sample()
        except TransportError as e:
            self._settle(cycle, slot, error=e)
        except Exception as e:
            logger.error(f"[POLL] Slot {slot.index}: unexpected source error: {e}", exc_info=True)
            self._settle(cycle, slot, error=e)
        else:
            self._settle(cycle, slot, sample=sample)

    def _settle(
        self,
        cycle: Cycle,
        slot: Slot,
        sample: Optional[float] = None,
        error: Optional[Exception] = None,
    ) -> SettleOutcome:
        """Record one completion. Counts toward the cycle only if it is still active."""
        active = cycle is self._cycle
        if slot.issued_cycle == cycle.token:
            slot.pending = False

        if not self.pool.owns(slot):
            outcome = SettleOutcome.STALE_DISCARD
            logger.debug(f"[POLL] Slot {slot.index} was removed, result of cycle #{cycle.token} dropped")
        elif error is not None:
            outcome = SettleOutcome.FAILED
            logger.warning(f"[POLL] Slot {slot.index}: fetch failed ({error}). Keeping last value.")
        elif not active and slot.applied_cycle is not None and slot.applied_cycle > cycle.token:
            outcome = SettleOutcome.STALE_DISCARD
            logger.debug(
                f"[POLL] Slot {slot.index}: late result of cycle #{cycle.token} dropped, "
                f"cycle #{slot.applied_cycle} already applied"
            )
        else:
            self._apply(cycle, slot, sample)
            outcome = SettleOutcome.APPLIED if active else SettleOutcome.STALE_APPLIED

        if active:
            cycle.settled += 1
            if outcome is SettleOutcome.FAILED:
                cycle.failed += 1
            if cycle.is_complete:
                self._complete(cycle)
        return outcome

    def _apply(self, cycle: Cycle, slot: Slot, sample: float):
        view = slot.aggregate.fold(sample)
        slot.applied_cycle = cycle.token
        logger.debug(f"[POLL] Slot {slot.index} received {sample:g} (cycle #{cycle.token})")

        instruction = RenderInstruction(
            slot_index=slot.index,
            value=view.value,
            sign=view.sign,
            is_first=view.is_first,
        )
        try:
            self.sink.render(instruction)
        except Exception as e:
            logger.error(f"[POLL] Sink render failed for slot {slot.index}: {e}", exc_info=True)

    def _complete(self, cycle: Cycle):
        self._cycle = None
        self._last_cycle = cycle
        self.cycles_completed += 1
        self._state = SchedulerState.ARMED
        self._timer = asyncio.get_running_loop().call_later(self.interval_sec, self._on_timer)

        if cycle.total:
            logger.info(
                f"[POLL] Cycle #{cycle.token} settled: {cycle.total - cycle.failed} ok, "
                f"{cycle.failed} failed in {cycle.elapsed:.2f}s. Next in {self.interval_sec:g}s"
            )
        else:
            logger.debug(f"[POLL] Cycle #{cycle.token}: no slots. Next in {self.interval_sec:g}s")

    def _on_timer(self):
        self._timer = None
        if self._state is SchedulerState.ARMED:
            self._issue_cycle()

    def _cancel_timer(self):
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None


def _cycle_dict(cycle: Optional[Cycle]) -> Optional[Dict[str, Any]]:
    if cycle is None:
        return None
    return {
        "token": cycle.token,
        "total": cycle.total,
        "settled": cycle.settled,
        "failed": cycle.failed,
    }
