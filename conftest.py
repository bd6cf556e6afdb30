from __future__ import annotations

import pytest
from twisted.internet.testing import MemoryReactorClock

from tests import StubResolver


@pytest.fixture
def reactor_clock() -> MemoryReactorClock:
    return MemoryReactorClock()


@pytest.fixture
def stub_resolver() -> StubResolver:
    return StubResolver()
