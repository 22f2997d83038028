"""
Pytest configuration and fixtures for Gate futures trader tests.
"""

from unittest.mock import AsyncMock

import pytest

from gate_trader.trader import GateTrader
from tests.mocks import MockGateway


# =============================================================================
# Clock
# =============================================================================


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def sleep() -> AsyncMock:
    """Stand-in for asyncio.sleep that returns immediately."""
    return AsyncMock(return_value=None)


# =============================================================================
# Gateway
# =============================================================================


@pytest.fixture
def gateway() -> MockGateway:
    """
    Mock gateway with two contracts.

    - ETH_USDT: 0.01 ETH per lot, price step 0.01
    - BTC_USDT: 0.0001 BTC per lot, price step 0.1
    """
    mock = MockGateway()
    mock.add_contract("ETH_USDT", quanto_multiplier="0.01", order_price_round="0.01")
    mock.add_contract(
        "BTC_USDT",
        quanto_multiplier="0.0001",
        order_price_round="0.1",
        last_price="42000.1",
    )
    return mock


@pytest.fixture
def trader(gateway, clock, sleep) -> GateTrader:
    return GateTrader(gateway, clock=clock, sleep=sleep)
