"""Shared fixtures: fake clock/sleep and an httpx-mocked measurement client."""

import httpx
import pytest

from gpmeasure.client import MeasurementClient


class FakeClock:
    """Monotonic clock that only moves when told to."""

    def __init__(self, start: float = 0.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingSleep:
    """Async sleep replacement that records durations and advances a FakeClock."""

    def __init__(self, clock: FakeClock = None):
        self.calls = []
        self.clock = clock

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)
        if self.clock is not None:
            self.clock.advance(seconds)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def sleep(clock):
    return RecordingSleep(clock)


@pytest.fixture
def make_client(sleep):
    """Factory building a MeasurementClient on top of httpx.MockTransport."""

    def _make(handler, settings=None):
        http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        return MeasurementClient(settings, http_client=http, sleep=sleep)

    return _make
