"""
Unit tests for the position state reconciler.
"""

import pytest

from gate_trader.core.exceptions import (
    ConnectionError,
    InvalidArgument,
    LeverageUpdateFailed,
    OrderError,
)
from gate_trader.core.models import MarginMode, UpdateOutcome, parse_positions
from gate_trader.trader.cache import CachedValue
from gate_trader.trader.reconciler import PositionStateReconciler


@pytest.fixture
def positions_cache(gateway, clock):
    async def fetch():
        return parse_positions(await gateway.list_positions())

    return CachedValue("positions", fetch, ttl=15.0, clock=clock)


@pytest.fixture
def reconciler(gateway, positions_cache, sleep):
    return PositionStateReconciler(gateway, positions_cache, cooldown=5.0, sleep=sleep)


# =============================================================================
# Leverage
# =============================================================================


class TestEnsureLeverage:
    """Test PositionStateReconciler.ensure_leverage."""

    @pytest.mark.asyncio
    async def test_no_remote_call_when_equal(self, gateway, reconciler, sleep):
        gateway.add_position("ETH_USDT", 10, leverage="5")

        await reconciler.ensure_leverage("ETHUSDT", 5)

        assert gateway.call_count("update_leverage") == 0
        sleep.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_updates_and_cools_down(self, gateway, reconciler, sleep):
        gateway.add_position("ETH_USDT", 10, leverage="3")

        await reconciler.ensure_leverage("ETHUSDT", 5)

        assert gateway.calls_of("update_leverage") == [("ETH_USDT", 5)]
        sleep.assert_awaited_once_with(5.0)

    @pytest.mark.asyncio
    async def test_no_position_means_leverage_zero(self, gateway, reconciler, sleep):
        await reconciler.ensure_leverage("ETHUSDT", 5)

        assert gateway.call_count("update_leverage") == 1
        sleep.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_update_invalidates_positions_cache(self, gateway, reconciler, positions_cache):
        gateway.add_position("ETH_USDT", 10, leverage="3")

        await reconciler.ensure_leverage("ETHUSDT", 5)

        assert positions_cache.fetched_at is None

    @pytest.mark.asyncio
    async def test_already_at_target_skips_cooldown(self, gateway, reconciler, sleep):
        gateway.script_leverage(UpdateOutcome.ALREADY_AT_TARGET)

        await reconciler.ensure_leverage("ETHUSDT", 5)

        sleep.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_failed_update_raises(self, gateway, reconciler, sleep):
        gateway.script_leverage(UpdateOutcome.FAILED, reason="[INVALID_PARAM_VALUE] leverage too high")

        with pytest.raises(LeverageUpdateFailed) as exc_info:
            await reconciler.ensure_leverage("ETHUSDT", 200)

        assert "leverage too high" in str(exc_info.value)
        sleep.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_blocked_update_raises(self, gateway, reconciler):
        gateway.script_leverage(UpdateOutcome.BLOCKED, reason="blocked")

        with pytest.raises(LeverageUpdateFailed):
            await reconciler.ensure_leverage("ETHUSDT", 5)

    @pytest.mark.asyncio
    async def test_cache_failure_assumes_zero(self, gateway, reconciler):
        gateway.add_position("ETH_USDT", 10, leverage="5")
        gateway.fail("list_positions", ConnectionError("down"))

        await reconciler.ensure_leverage("ETHUSDT", 5)

        assert gateway.call_count("update_leverage") == 1

    @pytest.mark.asyncio
    @pytest.mark.parametrize("leverage", [0, -3])
    async def test_non_positive_leverage_rejected(self, gateway, reconciler, leverage):
        with pytest.raises(InvalidArgument):
            await reconciler.ensure_leverage("ETHUSDT", leverage)

        assert gateway.calls == []

    @pytest.mark.asyncio
    async def test_current_leverage_ignores_other_contracts(self, gateway, reconciler):
        gateway.add_position("BTC_USDT", 1, leverage="20")

        assert await reconciler.current_leverage("ETHUSDT") == 0
        assert await reconciler.current_leverage("BTCUSDT") == 20

    @pytest.mark.asyncio
    async def test_current_leverage_matches_any_case(self, gateway, reconciler):
        gateway.add_position("ETH_USDT", 1, leverage="7")

        assert await reconciler.current_leverage("eth_usdt") == 7

    @pytest.mark.asyncio
    async def test_failed_update_chains_exchange_error(self, gateway, reconciler):
        error = OrderError("[INVALID_PARAM_VALUE] leverage too high")
        gateway.script_leverage(UpdateOutcome.FAILED, reason=str(error), error=error)

        with pytest.raises(LeverageUpdateFailed) as exc_info:
            await reconciler.ensure_leverage("ETHUSDT", 200)

        assert exc_info.value.__cause__ is error

    @pytest.mark.asyncio
    async def test_transport_error_propagates(self, gateway, reconciler, sleep):
        gateway.fail("update_leverage", ConnectionError("down"))

        with pytest.raises(ConnectionError):
            await reconciler.ensure_leverage("ETHUSDT", 5)

        sleep.assert_not_awaited()


# =============================================================================
# Margin Mode
# =============================================================================


class TestEnsureMarginMode:
    """Test PositionStateReconciler.ensure_margin_mode."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "outcome",
        [UpdateOutcome.UPDATED, UpdateOutcome.ALREADY_AT_TARGET, UpdateOutcome.BLOCKED],
    )
    async def test_success_outcomes(self, gateway, reconciler, outcome):
        gateway.script_margin(outcome)

        result = await reconciler.ensure_margin_mode("ETHUSDT", MarginMode.ISOLATED)

        assert result.succeeded is True

    @pytest.mark.asyncio
    async def test_failure_is_soft(self, gateway, reconciler):
        gateway.script_margin(UpdateOutcome.FAILED, reason="boom")

        result = await reconciler.ensure_margin_mode("ETHUSDT", MarginMode.ISOLATED)

        assert result.succeeded is False
        assert result.detail == "boom"

    @pytest.mark.asyncio
    async def test_sends_mode_and_contract(self, gateway, reconciler):
        await reconciler.ensure_margin_mode("ethusdt", MarginMode.CROSS)

        assert gateway.calls_of("update_margin_mode") == [("ETH_USDT", "CROSS")]

    @pytest.mark.asyncio
    async def test_raised_error_is_soft(self, gateway, reconciler):
        gateway.fail("update_margin_mode", ConnectionError("down"))

        result = await reconciler.ensure_margin_mode("ETHUSDT", MarginMode.ISOLATED)

        assert result.succeeded is False
        assert "down" in result.detail
