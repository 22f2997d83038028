"""
Exchange gateway contract.

The trading core talks to the exchange only through this protocol, so the
REST client can be swapped for a scripted fake in tests.
"""

from typing import Protocol, runtime_checkable

from gate_trader.core.models import UpdateResult


@runtime_checkable
class ExchangeGateway(Protocol):
    """
    Remote calls the trading adapter depends on.

    Read calls return the exchange-native JSON (decimal strings). The two
    settings updates return an UpdateResult for every refusal the exchange
    reports; they raise only when the request itself fails. Every other
    failure is raised as an ExchangeError.
    """

    async def get_account(self) -> dict:
        """Futures account summary."""
        ...

    async def list_positions(self) -> list[dict]:
        """All positions of the account, including empty ones."""
        ...

    async def list_contracts(self) -> list[dict]:
        """Metadata of every contract in the settlement currency."""
        ...

    async def get_contract(self, contract: str) -> dict:
        """Metadata and last price of one contract."""
        ...

    async def cancel_orders(self, contract: str) -> list[dict]:
        """Cancel every open order of a contract."""
        ...

    async def update_leverage(self, contract: str, leverage: int) -> UpdateResult:
        """Set leverage of a contract's position."""
        ...

    async def update_margin_mode(self, contract: str, mode: str) -> UpdateResult:
        """Switch a contract between ISOLATED and CROSS margin."""
        ...

    async def create_order(self, order: dict) -> dict:
        """Submit an order."""
        ...

    async def create_price_triggered_order(self, order: dict) -> dict:
        """Submit a price-triggered order."""
        ...
