"""
Gate.io futures trading adapter.

GateTrader wires the exchange gateway, the balance and position caches,
the precision resolver, the reconciler and the order controller together
and exposes the trading-account API.
"""

import asyncio
import time
from decimal import Decimal
from typing import Awaitable, Callable, Optional

from gate_trader.config.models import GateConfig, TraderConfig
from gate_trader.core import get_logger
from gate_trader.core.models import (
    AccountBalance,
    ContractPrecision,
    MarginMode,
    OrderResult,
    Position,
    PositionDirection,
    ProtectiveKind,
    StepResult,
    parse_positions,
)
from gate_trader.core.utils import parse_decimal
from gate_trader.exchange.gate import GateFuturesAPI
from gate_trader.exchange.gateway import ExchangeGateway

from .cache import DEFAULT_TTL_SECONDS, CachedValue
from .orders import OrderLifecycleController
from .precision import PrecisionResolver
from .reconciler import DEFAULT_LEVERAGE_COOLDOWN, PositionStateReconciler
from .symbols import normalize_symbol

logger = get_logger(__name__)


class GateTrader:
    """
    Trading-account adapter for Gate.io USDT perpetual futures.

    Quantities are in coins; they are converted to contract lots with the
    live contract metadata. Balance and positions are served from 15 second
    caches that are dropped after every submitted order.

    Example:
        >>> async with GateTrader.from_config(GateConfig(api_key="...", api_secret="...")) as trader:
        ...     balance = await trader.get_balance()
        ...     await trader.open_long("ETHUSDT", Decimal("0.1"), leverage=5)
        ...     await trader.set_stop_loss("ETHUSDT", "long", Decimal("0.1"), Decimal("1800"))
        ...     await trader.close_long("ETHUSDT")
    """

    def __init__(
        self,
        gateway: ExchangeGateway,
        cache_ttl: float = DEFAULT_TTL_SECONDS,
        leverage_cooldown: float = DEFAULT_LEVERAGE_COOLDOWN,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        """
        Initialize GateTrader.

        Args:
            gateway: Exchange gateway (GateFuturesAPI or a test double)
            cache_ttl: Validity window of the balance and position caches
            leverage_cooldown: Pause after a leverage change
            clock: Monotonic clock for the caches
            sleep: Awaitable sleep for the cooldown
        """
        self._gateway = gateway

        self._balance_cache: CachedValue[AccountBalance] = CachedValue(
            "balance", self._fetch_balance, ttl=cache_ttl, clock=clock
        )
        self._positions_cache: CachedValue[list[Position]] = CachedValue(
            "positions", self._fetch_positions, ttl=cache_ttl, clock=clock
        )

        self._resolver = PrecisionResolver(gateway)
        self._reconciler = PositionStateReconciler(
            gateway,
            self._positions_cache,
            cooldown=leverage_cooldown,
            sleep=sleep,
        )
        self._orders = OrderLifecycleController(gateway, self._resolver, self._reconciler)

    @classmethod
    def from_config(
        cls,
        config: GateConfig,
        trader_config: Optional[TraderConfig] = None,
    ) -> "GateTrader":
        """
        Create a trader backed by the Gate.io REST client.

        Args:
            config: Connection settings
            trader_config: Cache and cooldown tuning (defaults when omitted)
        """
        trader_config = trader_config or TraderConfig()
        logger.info(f"Creating Gate trader: {config}")
        return cls(
            GateFuturesAPI.from_config(config),
            cache_ttl=trader_config.cache_ttl,
            leverage_cooldown=trader_config.leverage_cooldown,
        )

    @property
    def gateway(self) -> ExchangeGateway:
        return self._gateway

    # =========================================================================
    # Lifecycle Management
    # =========================================================================

    async def close(self) -> None:
        """Close the gateway's HTTP session, if it has one."""
        close = getattr(self._gateway, "close", None)
        if close is not None:
            await close()

    async def __aenter__(self) -> "GateTrader":
        connect = getattr(self._gateway, "connect", None)
        if connect is not None:
            await connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    # =========================================================================
    # Account State
    # =========================================================================

    async def _fetch_balance(self) -> AccountBalance:
        return AccountBalance.from_gate(await self._gateway.get_account())

    async def _fetch_positions(self) -> list[Position]:
        return parse_positions(await self._gateway.list_positions())

    async def get_balance(self) -> AccountBalance:
        """Account balance, cached for the TTL."""
        return await self._balance_cache.get()

    async def get_positions(self) -> list[Position]:
        """Open positions (non-zero size), cached for the TTL."""
        return await self._positions_cache.get()

    async def get_market_price(self, symbol: str) -> Decimal:
        """
        Last traded price of a contract.

        Raises:
            ResponseParseError: the exchange sent an unparsable price
        """
        contract = normalize_symbol(symbol)
        data = await self._gateway.get_contract(contract)
        return parse_decimal(data.get("last_price"), "last_price")

    async def invalidate_caches(self) -> None:
        """Drop cached balance and positions."""
        await self._balance_cache.invalidate()
        await self._positions_cache.invalidate()

    # =========================================================================
    # Orders
    # =========================================================================

    async def open_long(self, symbol: str, quantity: Decimal, leverage: int) -> OrderResult:
        """Open or add to a long position."""
        result = await self._orders.open_position(symbol, quantity, leverage, PositionDirection.LONG)
        await self.invalidate_caches()
        return result

    async def open_short(self, symbol: str, quantity: Decimal, leverage: int) -> OrderResult:
        """Open or add to a short position."""
        result = await self._orders.open_position(symbol, quantity, leverage, PositionDirection.SHORT)
        await self.invalidate_caches()
        return result

    async def close_long(self, symbol: str, quantity: Decimal = Decimal("0")) -> OrderResult:
        """Close a long position; quantity 0 closes all of it."""
        result = await self._orders.close_position(symbol, quantity, PositionDirection.LONG)
        await self.invalidate_caches()
        return result

    async def close_short(self, symbol: str, quantity: Decimal = Decimal("0")) -> OrderResult:
        """Close a short position; quantity 0 closes all of it."""
        result = await self._orders.close_position(symbol, quantity, PositionDirection.SHORT)
        await self.invalidate_caches()
        return result

    async def set_stop_loss(
        self,
        symbol: str,
        side: PositionDirection | str,
        quantity: Decimal,
        stop_price: Decimal,
    ) -> int:
        """Place a stop-loss trigger; returns the trigger order id."""
        return await self._orders.set_protective_order(
            symbol, side, quantity, stop_price, ProtectiveKind.STOP_LOSS
        )

    async def set_take_profit(
        self,
        symbol: str,
        side: PositionDirection | str,
        quantity: Decimal,
        take_profit_price: Decimal,
    ) -> int:
        """Place a take-profit trigger; returns the trigger order id."""
        return await self._orders.set_protective_order(
            symbol, side, quantity, take_profit_price, ProtectiveKind.TAKE_PROFIT
        )

    async def cancel_all_orders(self, symbol: str) -> int:
        """
        Cancel every open order of a contract.

        Unlike the cancel step inside the workflows, failures propagate.

        Returns:
            Number of cancelled orders
        """
        contract = normalize_symbol(symbol)
        cancelled = await self._gateway.cancel_orders(contract)
        logger.info(f"Cancelled {len(cancelled)} orders for {contract}")
        return len(cancelled)

    # =========================================================================
    # Settings
    # =========================================================================

    async def set_leverage(self, symbol: str, leverage: int) -> None:
        """
        Set leverage of a contract.

        Raises:
            InvalidArgument: leverage is not positive
            LeverageUpdateFailed: the exchange refused the change
        """
        await self._reconciler.ensure_leverage(symbol, leverage)

    async def set_margin_mode(self, symbol: str, is_cross: bool) -> StepResult:
        """Switch a contract to cross (True) or isolated (False) margin."""
        mode = MarginMode.CROSS if is_cross else MarginMode.ISOLATED
        return await self._reconciler.ensure_margin_mode(symbol, mode)

    # =========================================================================
    # Contract Metadata
    # =========================================================================

    async def get_symbol_precision(self, symbol: str) -> ContractPrecision:
        """Contract precision, defaults when the lookup fails."""
        return await self._resolver.resolve(symbol)

    async def format_quantity(self, symbol: str, quantity: Decimal) -> str:
        """Quantity formatted to the contract's precision, for display."""
        return await self._resolver.format_quantity(symbol, quantity)
