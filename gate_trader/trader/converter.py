"""
Coin quantity to contract lot conversion.

Opening floors the lot count so a position never exceeds the requested
size. Closing rounds half away from zero so a position that was opened from
a slightly different float is still closed in full.
"""

from decimal import ROUND_FLOOR, ROUND_HALF_UP, Decimal

from gate_trader.core.exceptions import BelowMinimum, InvalidQuantity
from gate_trader.core.models import ContractPrecision

from .precision import PrecisionResolver


def _lots_below_minimum(coin_quantity: Decimal, lots: int, precision: ContractPrecision) -> BelowMinimum:
    return BelowMinimum(
        f"quantity {coin_quantity} converts to {lots} lots, "
        f"below the minimum of {precision.min_lots}",
        details={
            "quantity": str(coin_quantity),
            "lots": lots,
            "min_lots": str(precision.min_lots),
            "coin_per_lot": str(precision.coin_per_lot),
        },
    )


def open_lots(coin_quantity: Decimal, precision: ContractPrecision) -> int:
    """
    Lots for an opening order: floor(quantity / coin_per_lot).

    Raises:
        InvalidQuantity: quantity is not positive
        BelowMinimum: lot count is below the contract minimum
    """
    coin_quantity = Decimal(str(coin_quantity))
    if coin_quantity <= 0:
        raise InvalidQuantity(f"quantity must be positive, got {coin_quantity}")

    lots = int((coin_quantity / precision.coin_per_lot).to_integral_value(rounding=ROUND_FLOOR))
    if lots < precision.min_lots:
        raise _lots_below_minimum(coin_quantity, lots, precision)
    return lots


def close_lots(coin_quantity: Decimal, precision: ContractPrecision) -> int:
    """
    Lots for a closing order: quantity / coin_per_lot rounded half away from zero.

    Raises:
        BelowMinimum: lot count is below the contract minimum
        InvalidQuantity: lot count is not positive
    """
    coin_quantity = Decimal(str(coin_quantity))
    lots = int((coin_quantity / precision.coin_per_lot).to_integral_value(rounding=ROUND_HALF_UP))
    if lots < precision.min_lots:
        raise _lots_below_minimum(coin_quantity, lots, precision)
    if lots <= 0:
        raise InvalidQuantity(f"quantity {coin_quantity} converts to no lots")
    return lots


class QuantityConverter:
    """Converts coin quantities using the live contract precision."""

    def __init__(self, resolver: PrecisionResolver):
        self._resolver = resolver

    async def to_lots(self, symbol: str, coin_quantity: Decimal) -> int:
        """Resolve the contract precision and convert with open_lots."""
        precision = await self._resolver.resolve(symbol)
        return open_lots(coin_quantity, precision)
