from datetime import datetime, timedelta, timezone

import pytest

from cybershield_store import ChangeBus, MemoryBackend, Store


class FakeClock:
    """Controllable local clock."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2024, 1, 15, 9, 30, tzinfo=timezone(timedelta(hours=1))))


@pytest.fixture
def backend() -> MemoryBackend:
    return MemoryBackend()


@pytest.fixture
def bus() -> ChangeBus:
    return ChangeBus()


@pytest.fixture
def store(backend: MemoryBackend, bus: ChangeBus, clock: FakeClock) -> Store:
    return Store(backend, bus=bus, clock=clock)
