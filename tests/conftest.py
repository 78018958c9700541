"""
Shared fakes for the poller tests.
"""

import asyncio
from typing import Dict, List

import pytest
import pytest_asyncio

from qrng.models import RenderInstruction, TransportError
from polling.slot_pool import SlotPool
from polling.scheduler import PollCycleScheduler


async def flush(rounds: int = 10):
    """Let pending tasks and callbacks run."""
    for _ in range(rounds):
        await asyncio.sleep(0)


class FakeSource:
    """Sample source whose calls stay pending until the test resolves them."""

    def __init__(self):
        self.calls: List[asyncio.Future] = []

    async def fetch_sample(self) -> float:
        future = asyncio.get_running_loop().create_future()
        self.calls.append(future)
        return await future

    def resolve(self, call: int, value: float):
        self.calls[call].set_result(value)

    def fail(self, call: int, message: str = "connection reset"):
        self.calls[call].set_exception(TransportError(message))


class RecordingSink:
    """Presentation sink that remembers every call."""

    def __init__(self):
        self.renders: List[RenderInstruction] = []
        self.resizes: List[int] = []

    def render(self, instruction: RenderInstruction) -> None:
        self.renders.append(instruction)

    def resize(self, count: int) -> None:
        self.resizes.append(count)

    def for_slot(self, index: int) -> List[RenderInstruction]:
        return [r for r in self.renders if r.slot_index == index]

    def latest(self) -> Dict[int, RenderInstruction]:
        return {r.slot_index: r for r in self.renders}


@pytest.fixture
def source():
    return FakeSource()


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture
def pool():
    return SlotPool()


@pytest_asyncio.fixture
async def scheduler(pool, source, sink):
    scheduler = PollCycleScheduler(pool, source, sink, interval_sec=60)
    yield scheduler
    await scheduler.stop()
