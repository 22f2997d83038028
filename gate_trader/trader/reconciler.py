"""
Position State Reconciler.

Brings a contract's leverage and margin mode to the requested values before
an order goes out. Leverage is a hard precondition; margin mode is best
effort.
"""

import asyncio
from typing import Awaitable, Callable

from gate_trader.core import get_logger
from gate_trader.core.exceptions import ExchangeError, InvalidArgument, LeverageUpdateFailed
from gate_trader.core.models import MarginMode, Position, StepResult, UpdateOutcome
from gate_trader.exchange.gateway import ExchangeGateway

from .cache import CachedValue
from .symbols import normalize_symbol

logger = get_logger(__name__)

DEFAULT_LEVERAGE_COOLDOWN = 5.0


class PositionStateReconciler:
    """
    Ensures leverage and margin mode of a contract.

    Args:
        gateway: Exchange gateway
        positions_cache: Shared cache of open positions
        cooldown: Pause after a leverage change, letting the exchange settle
        sleep: Awaitable sleep, injectable for tests
    """

    def __init__(
        self,
        gateway: ExchangeGateway,
        positions_cache: CachedValue[list[Position]],
        cooldown: float = DEFAULT_LEVERAGE_COOLDOWN,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self._gateway = gateway
        self._positions = positions_cache
        self._cooldown = cooldown
        self._sleep = sleep

    async def current_leverage(self, symbol: str) -> int:
        """
        Leverage of the open position on a contract, from the positions cache.

        Returns 0 when there is no position or the cache cannot be read.
        """
        contract = normalize_symbol(symbol)
        try:
            positions = await self._positions.get()
        except ExchangeError as e:
            logger.warning(f"Could not read positions for {contract}, assuming leverage 0: {e}")
            return 0

        for position in positions:
            if position.symbol.upper() == contract.upper():
                return position.leverage
        return 0

    async def ensure_leverage(self, symbol: str, leverage: int) -> None:
        """
        Make sure the contract trades at the requested leverage.

        No remote update is sent when the cached leverage already matches.
        After a real change the positions cache is invalidated and the caller
        waits out the cooldown.

        Raises:
            InvalidArgument: leverage is not positive
            LeverageUpdateFailed: the exchange refused the change
            ExchangeError: the update request itself failed
        """
        if leverage <= 0:
            raise InvalidArgument(f"leverage must be positive, got {leverage}")

        contract = normalize_symbol(symbol)
        current = await self.current_leverage(contract)
        if current == leverage:
            logger.debug(f"{contract} leverage already {leverage}x")
            return

        result = await self._gateway.update_leverage(contract, leverage)

        if result.outcome == UpdateOutcome.ALREADY_AT_TARGET:
            logger.info(f"{contract} leverage already {leverage}x on exchange")
            return

        if result.outcome != UpdateOutcome.UPDATED:
            raise LeverageUpdateFailed(
                f"Failed to set {contract} leverage to {leverage}x: {result.reason}",
                details={"contract": contract, "leverage": leverage, "outcome": result.outcome.value},
            ) from result.error

        logger.info(f"{contract} leverage set {current}x -> {leverage}x, cooling down {self._cooldown}s")
        await self._positions.invalidate()
        await self._sleep(self._cooldown)

    async def ensure_margin_mode(self, symbol: str, mode: MarginMode | str) -> StepResult:
        """
        Switch the contract's margin mode. Never raises for exchange errors.

        Returns:
            Successful StepResult for UPDATED, ALREADY_AT_TARGET and BLOCKED
            (an open position keeps its current mode); unsuccessful otherwise
        """
        contract = normalize_symbol(symbol)
        mode_value = mode.value if isinstance(mode, MarginMode) else str(mode).upper()

        try:
            result = await self._gateway.update_margin_mode(contract, mode_value)
        except ExchangeError as e:
            logger.warning(f"Failed to set {contract} margin mode to {mode_value}: {e}")
            return StepResult(False, str(e))

        if result.outcome == UpdateOutcome.UPDATED:
            logger.info(f"{contract} margin mode set to {mode_value}")
            return StepResult(True)
        if result.outcome == UpdateOutcome.ALREADY_AT_TARGET:
            logger.debug(f"{contract} margin mode already {mode_value}")
            return StepResult(True)
        if result.outcome == UpdateOutcome.BLOCKED:
            logger.warning(f"{contract} has an open position, keeping current margin mode")
            return StepResult(True, result.reason)

        logger.warning(f"Failed to set {contract} margin mode to {mode_value}: {result.reason}")
        return StepResult(False, result.reason)
