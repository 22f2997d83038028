"""
Order Lifecycle Controller.

Runs the open, close and protective-order workflows against the exchange.
Steps run strictly in sequence. Hard steps raise and stop the workflow;
soft steps are logged and the workflow carries on. Nothing is rolled back
and nothing is retried.
"""

from decimal import Decimal

from gate_trader.core import get_logger
from gate_trader.core.exceptions import (
    ExchangeError,
    InvalidArgument,
    InvalidQuantity,
    NoPositionFound,
    TriggerOrderFailed,
)
from gate_trader.core.models import (
    MarginMode,
    OrderResult,
    PositionDirection,
    ProtectiveKind,
    StepResult,
    TriggerOrderSpec,
    TriggerPriceType,
    TriggerRule,
    parse_positions,
)
from gate_trader.core.utils import now_timestamp, parse_int
from gate_trader.exchange.gate.constants import (
    MARKET_PRICE,
    ORDER_TEXT_CLOSE_LONG,
    ORDER_TEXT_CLOSE_SHORT,
    ORDER_TEXT_OPEN_LONG,
    ORDER_TEXT_OPEN_SHORT,
    TIF_IOC,
)
from gate_trader.exchange.gateway import ExchangeGateway

from .converter import close_lots, open_lots
from .precision import PrecisionResolver
from .reconciler import PositionStateReconciler
from .symbols import normalize_symbol

logger = get_logger(__name__)


# Which way the mark price must cross the trigger for each protective order
TRIGGER_RULES: dict[tuple[ProtectiveKind, PositionDirection], TriggerRule] = {
    (ProtectiveKind.STOP_LOSS, PositionDirection.LONG): TriggerRule.LTE,
    (ProtectiveKind.STOP_LOSS, PositionDirection.SHORT): TriggerRule.GTE,
    (ProtectiveKind.TAKE_PROFIT, PositionDirection.LONG): TriggerRule.GTE,
    (ProtectiveKind.TAKE_PROFIT, PositionDirection.SHORT): TriggerRule.LTE,
}

PROTECTIVE_TEXT_PREFIX = {
    ProtectiveKind.STOP_LOSS: "t-stoploss",
    ProtectiveKind.TAKE_PROFIT: "t-takeprofit",
}


def trigger_rule(side: PositionDirection | str, kind: ProtectiveKind) -> TriggerRule:
    """
    Trigger rule for a protective order.

    Example:
        >>> trigger_rule("long", ProtectiveKind.STOP_LOSS)
        <TriggerRule.LTE: 2>
    """
    return TRIGGER_RULES[(ProtectiveKind(kind), PositionDirection.parse(side))]


class OrderLifecycleController:
    """
    Open, close and protect positions on one exchange.

    Example:
        >>> controller = OrderLifecycleController(gateway, resolver, reconciler)
        >>> result = await controller.open_position("ETHUSDT", Decimal("0.1"), 5, "long")
        >>> await controller.close_position("ETHUSDT", Decimal("0"), "long")
    """

    def __init__(
        self,
        gateway: ExchangeGateway,
        resolver: PrecisionResolver,
        reconciler: PositionStateReconciler,
    ):
        self._gateway = gateway
        self._resolver = resolver
        self._reconciler = reconciler

    # =========================================================================
    # Soft steps
    # =========================================================================

    async def cancel_open_orders(self, symbol: str) -> StepResult:
        """Cancel every open order of a contract; failures are logged only."""
        contract = normalize_symbol(symbol)
        try:
            cancelled = await self._gateway.cancel_orders(contract)
        except ExchangeError as e:
            logger.warning(f"Failed to cancel open orders for {contract}: {e}")
            return StepResult(False, str(e))

        if cancelled:
            logger.info(f"Cancelled {len(cancelled)} open orders for {contract}")
        return StepResult(True)

    # =========================================================================
    # Workflows
    # =========================================================================

    async def open_position(
        self,
        symbol: str,
        coin_quantity: Decimal,
        leverage: int,
        direction: PositionDirection | str,
    ) -> OrderResult:
        """
        Open or add to a position with a market IOC order.

        Steps: cancel open orders (soft), ensure leverage (hard), ensure
        isolated margin (soft), convert quantity with floor (hard), submit.

        Raises:
            InvalidArgument: bad side or leverage
            InvalidQuantity: quantity not positive or below the contract minimum
            LeverageUpdateFailed: leverage could not be set
            ExchangeError: order submission failed
        """
        contract = normalize_symbol(symbol)
        direction = PositionDirection.parse(direction)
        coin_quantity = Decimal(str(coin_quantity))

        if coin_quantity <= 0:
            raise InvalidQuantity(f"quantity must be positive, got {coin_quantity}")
        if leverage <= 0:
            raise InvalidArgument(f"leverage must be positive, got {leverage}")

        await self.cancel_open_orders(contract)
        await self._reconciler.ensure_leverage(contract, leverage)
        await self._reconciler.ensure_margin_mode(contract, MarginMode.ISOLATED)

        precision = await self._resolver.resolve(contract)
        lots = open_lots(coin_quantity, precision)

        if direction == PositionDirection.LONG:
            size, text = lots, ORDER_TEXT_OPEN_LONG
        else:
            size, text = -lots, ORDER_TEXT_OPEN_SHORT

        logger.info(
            f"Opening {direction.value} {contract}: {coin_quantity} coins = {lots} lots "
            f"at {leverage}x"
        )
        response = await self._gateway.create_order({
            "contract": contract,
            "size": size,
            "price": MARKET_PRICE,
            "tif": TIF_IOC,
            "text": text,
        })

        result = OrderResult.from_gate(response)
        logger.info(f"Open order {result.order_id} {contract} status={result.status} price={result.price}")
        return result

    async def close_position(
        self,
        symbol: str,
        coin_quantity: Decimal,
        direction: PositionDirection | str,
    ) -> OrderResult:
        """
        Close part or all of a position with a market IOC order.

        A quantity of 0 closes the whole live position. Its lot count is
        read directly from the exchange and submitted unchanged.

        Raises:
            NoPositionFound: quantity is 0 and no matching position is open
            InvalidQuantity: quantity is negative or rounds below the minimum
            ExchangeError: position fetch or order submission failed
        """
        contract = normalize_symbol(symbol)
        direction = PositionDirection.parse(direction)
        coin_quantity = Decimal(str(coin_quantity))

        if coin_quantity < 0:
            raise InvalidQuantity(f"quantity must not be negative, got {coin_quantity}")

        live_lots = None
        if coin_quantity == 0:
            contract, live_lots = await self._live_position_lots(contract, direction)

        precision = await self._resolver.resolve(contract)
        if live_lots is not None:
            coin_quantity = live_lots * precision.coin_per_lot
        lots = close_lots(coin_quantity, precision)

        if direction == PositionDirection.LONG:
            size, text = -lots, ORDER_TEXT_CLOSE_LONG
        else:
            size, text = lots, ORDER_TEXT_CLOSE_SHORT

        logger.info(f"Closing {direction.value} {contract}: {lots} lots")
        response = await self._gateway.create_order({
            "contract": contract,
            "size": size,
            "price": MARKET_PRICE,
            "tif": TIF_IOC,
            "text": text,
        })
        result = OrderResult.from_gate(response, include_fill=False)
        logger.info(f"Close order {result.order_id} {contract} status={result.status}")

        await self.cancel_open_orders(contract)
        return result

    async def _live_position_lots(
        self, contract: str, direction: PositionDirection
    ) -> tuple[str, int]:
        """Exchange contract name and lot count of the matching open position."""
        positions = parse_positions(await self._gateway.list_positions())
        for position in positions:
            if position.symbol.upper() != contract.upper():
                continue
            if direction == PositionDirection.LONG and position.size > 0:
                return position.symbol, position.size
            if direction == PositionDirection.SHORT and position.size < 0:
                return position.symbol, -position.size

        raise NoPositionFound(
            f"No {direction.value} position open on {contract}",
            details={"contract": contract, "side": direction.value},
        )

    async def set_protective_order(
        self,
        symbol: str,
        side: PositionDirection | str,
        coin_quantity: Decimal,
        trigger_price: Decimal,
        kind: ProtectiveKind,
    ) -> int:
        """
        Place a stop-loss or take-profit that closes the whole position.

        The trigger is evaluated against the mark price. The quantity is
        validated only; the order closes whatever is open when it fires.

        Returns:
            Exchange id of the trigger order

        Raises:
            InvalidArgument: bad side, quantity or trigger price
            TriggerOrderFailed: the exchange did not accept the order
        """
        contract = normalize_symbol(symbol)
        direction = PositionDirection.parse(side)
        kind = ProtectiveKind(kind)
        coin_quantity = Decimal(str(coin_quantity))
        trigger_price = Decimal(str(trigger_price))

        if coin_quantity <= 0:
            raise InvalidArgument(f"quantity must be positive, got {coin_quantity}")
        if trigger_price <= 0:
            raise InvalidArgument(f"trigger price must be positive, got {trigger_price}")

        spec = TriggerOrderSpec(
            symbol=contract,
            side=direction,
            kind=kind,
            trigger_price=trigger_price,
            rule=trigger_rule(direction, kind),
            price_type=TriggerPriceType.MARK,
            close_existing=True,
            text=f"{PROTECTIVE_TEXT_PREFIX[kind]}-{direction.value}-{now_timestamp()}",
        )

        try:
            response = await self._gateway.create_price_triggered_order(spec.to_gate())
            order_id = parse_int(response.get("id"), "id")
        except ExchangeError as e:
            raise TriggerOrderFailed(
                f"Failed to place {kind.value} for {direction.value} {contract} at {trigger_price}: {e}",
                details={"contract": contract, "side": direction.value, "kind": kind.value},
            ) from e

        logger.info(
            f"{kind.value} set for {direction.value} {contract}: trigger {trigger_price} "
            f"(rule {spec.rule.name}), id={order_id}"
        )
        return order_id
