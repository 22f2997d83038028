"""
Contract precision lookup.

Resolves the sizing metadata of a contract from the exchange's contract
list. Lookup failures never abort a workflow: they fall back to
ContractPrecision.default() and are logged.
"""

from decimal import ROUND_HALF_UP, Decimal

from gate_trader.core import get_logger
from gate_trader.core.exceptions import ExchangeError
from gate_trader.core.models import ContractPrecision
from gate_trader.core.utils import decimal_places, round_decimal
from gate_trader.exchange.gateway import ExchangeGateway

from .symbols import normalize_symbol

logger = get_logger(__name__)


def price_precision_from_round(order_price_round: str) -> int:
    """
    Number of decimal places of a price increment.

    Example:
        >>> price_precision_from_round("0.001")
        3
        >>> price_precision_from_round("1")
        0
    """
    return decimal_places(order_price_round)


class PrecisionResolver:
    """
    Looks up ContractPrecision for a symbol.

    Nothing is cached; every call lists the contracts again.
    """

    def __init__(self, gateway: ExchangeGateway):
        self._gateway = gateway

    async def resolve(self, symbol: str) -> ContractPrecision:
        """
        Resolve the precision of a contract.

        Args:
            symbol: Contract name or agnostic symbol

        Returns:
            Contract precision, or the defaults {3, 1, 1} when the contract
            list cannot be fetched, cannot be parsed or does not contain it
        """
        contract = normalize_symbol(symbol)

        try:
            contracts = await self._gateway.list_contracts()
        except ExchangeError as e:
            logger.warning(f"Contract lookup failed for {contract}, using defaults: {e}")
            return ContractPrecision.default()

        target = contract.upper()
        for entry in contracts:
            if str(entry.get("name", "")).upper() != target:
                continue
            try:
                precision = ContractPrecision.from_gate(entry)
            except (ExchangeError, ValueError) as e:
                logger.warning(f"Unparsable metadata for {contract}, using defaults: {e}")
                return ContractPrecision.default()
            logger.debug(
                f"{contract} precision: price={precision.price_precision} "
                f"min_lots={precision.min_lots} coin_per_lot={precision.coin_per_lot}"
            )
            return precision

        logger.warning(f"Contract {contract} not found, using default precision")
        return ContractPrecision.default()

    async def format_quantity(self, symbol: str, quantity: Decimal) -> str:
        """Format a quantity to the contract's price precision, for display."""
        precision = await self.resolve(symbol)
        return str(round_decimal(Decimal(str(quantity)), precision.price_precision, rounding=ROUND_HALF_UP))
