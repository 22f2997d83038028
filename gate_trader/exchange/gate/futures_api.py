"""
Gate.io USDT-settled Futures REST API client.

Provides an async interface to the Gate.io APIv4 futures endpoints the
trading adapter needs. Every call is attempted exactly once; callers decide
whether to retry.
"""

import asyncio
import json
from typing import Any, Optional
from urllib.parse import quote, urlencode

import aiohttp

from gate_trader.config.models import GateConfig
from gate_trader.core import get_logger
from gate_trader.core.exceptions import (
    AuthenticationError,
    ConnectionError,
    ExchangeError,
    OrderError,
    RateLimitError,
)
from gate_trader.core.models import UpdateOutcome, UpdateResult

from .auth import GateAuth
from .constants import (
    AUTH_ERROR_LABELS,
    DEFAULT_SETTLE,
    FUTURES_PRIVATE_ENDPOINTS,
    FUTURES_PUBLIC_ENDPOINTS,
    FUTURES_REST_URL,
    FUTURES_TESTNET_URL,
    LEVERAGE_UNCHANGED_MARKER,
    MARGIN_BLOCKED_LABELS,
    MARGIN_BLOCKED_MARKER,
    MARGIN_UNCHANGED_MARKER,
    ORDER_ERROR_LABELS,
    RATE_LIMIT_LABELS,
)

logger = get_logger(__name__)

# Failures of the request itself rather than refusals of the update
TRANSPORT_ERRORS = (ConnectionError, AuthenticationError, RateLimitError)


class GateFuturesAPI:
    """
    Gate.io USDT-settled Futures REST API client.

    Implements the ExchangeGateway protocol. Public endpoints (contracts) work
    without credentials; account, position and order endpoints are signed.

    Example:
        >>> async with GateFuturesAPI(api_key="...", api_secret="...", testnet=True) as api:
        ...     account = await api.get_account()
        ...     result = await api.update_leverage("BTC_USDT", 10)
    """

    def __init__(
        self,
        api_key: str = "",
        api_secret: str = "",
        testnet: bool = False,
        base_url: Optional[str] = None,
        settle: str = DEFAULT_SETTLE,
        timeout: int = 30,
    ):
        """
        Initialize GateFuturesAPI.

        Args:
            api_key: Gate.io API key (optional for public endpoints)
            api_secret: Gate.io API secret (optional for public endpoints)
            testnet: Use testnet URL if True
            base_url: Override the REST base URL
            settle: Settlement currency in endpoint paths
            timeout: Request timeout in seconds
        """
        if base_url:
            self._base_url = base_url.rstrip("/")
        else:
            self._base_url = FUTURES_TESTNET_URL if testnet else FUTURES_REST_URL
        self._settle = settle.lower()
        self._timeout = aiohttp.ClientTimeout(total=timeout)
        self._session: Optional[aiohttp.ClientSession] = None
        self._auth: Optional[GateAuth] = None

        if api_key and api_secret:
            self._auth = GateAuth(api_key, api_secret)

        self._testnet = testnet

    @classmethod
    def from_config(cls, config: GateConfig) -> "GateFuturesAPI":
        """Create a client from a GateConfig."""
        return cls(
            api_key=config.api_key,
            api_secret=config.api_secret,
            testnet=config.testnet,
            base_url=config.base_url,
            settle=config.settle,
            timeout=config.timeout,
        )

    @property
    def base_url(self) -> str:
        return self._base_url

    @property
    def settle(self) -> str:
        return self._settle

    # =========================================================================
    # Lifecycle Management
    # =========================================================================

    async def connect(self) -> None:
        """Create HTTP session."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self._timeout)
            logger.debug(f"Connected to {self._base_url}")

    async def close(self) -> None:
        """Close HTTP session."""
        if self._session and not self._session.closed:
            await self._session.close()
            self._session = None
            logger.debug("Session closed")

    async def __aenter__(self) -> "GateFuturesAPI":
        """Async context manager entry."""
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit."""
        await self.close()

    # =========================================================================
    # Internal Request Methods
    # =========================================================================

    async def _request(
        self,
        method: str,
        endpoint: str,
        params: dict | None = None,
        body: dict | None = None,
        signed: bool = False,
    ) -> dict | list:
        """
        Send a single HTTP request to the Gate.io API.

        Args:
            method: HTTP method (GET, POST, DELETE)
            endpoint: API endpoint path, without the /api/v4 prefix
            params: Query parameters
            body: JSON body
            signed: Whether to sign the request

        Returns:
            JSON response as dict or list

        Raises:
            ConnectionError: Network failure or timeout
            AuthenticationError: Authentication failed
            RateLimitError: Rate limit exceeded
            OrderError: Order rejected
            ExchangeError: Other exchange errors
        """
        if self._session is None or self._session.closed:
            await self.connect()

        query_string = urlencode(
            {k: str(v) for k, v in (params or {}).items()},
            quote_via=quote,
        )
        body_str = json.dumps(body) if body is not None else ""

        url = f"{self._base_url}{endpoint}"
        if query_string:
            url = f"{url}?{query_string}"

        headers = {"Accept": "application/json", "Content-Type": "application/json"}
        if signed:
            if self._auth is None:
                raise AuthenticationError("API key and secret required for signed requests")
            headers.update(self._auth.sign_request(method, endpoint, query_string, body_str))

        logger.debug(f"Request: {method} {endpoint}")

        try:
            async with self._session.request(
                method,
                url,
                data=body_str or None,
                headers=headers,
            ) as resp:
                return await self._handle_response(resp)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error(f"Connection error on {method} {endpoint}: {e}")
            raise ConnectionError(f"Failed to connect to Gate.io: {e}") from e

    async def _handle_response(self, response: aiohttp.ClientResponse) -> dict | list:
        """
        Handle API response and raise appropriate exceptions.

        Args:
            response: aiohttp response object

        Returns:
            Parsed JSON response
        """
        status = response.status
        logger.debug(f"Response status: {status}")

        if status == 429:
            retry_after = response.headers.get("Retry-After", "1")
            raise RateLimitError(
                f"Rate limited (HTTP 429). Retry after: {retry_after}s",
                retry_after=int(retry_after) if retry_after.isdigit() else 1,
                code="429",
            )

        text = await response.text()
        try:
            data = json.loads(text) if text else None
        except ValueError:
            if status >= 400:
                raise ExchangeError(f"HTTP {status}: {text[:200]}", code=str(status))
            raise ExchangeError(
                f"Unexpected non-JSON response (HTTP {status}): {text[:200]}"
            )

        if status >= 400:
            if isinstance(data, dict) and "label" in data:
                self._raise_exception(status, data["label"], data.get("message", ""))
            raise ExchangeError(f"HTTP {status}: {data}", code=str(status))

        if data is None:
            return {}
        return data

    def _raise_exception(self, status: int, label: str, message: str) -> None:
        """
        Raise appropriate exception based on Gate.io error label.

        Args:
            status: HTTP status code
            label: Gate.io error label
            message: Error message
        """
        error_info = f"[{label}] {message}"
        details = {"status": status}

        if label in AUTH_ERROR_LABELS or status in (401, 403):
            raise AuthenticationError(error_info, code=label, details=details)
        elif label in RATE_LIMIT_LABELS:
            raise RateLimitError(error_info, code=label, details=details)
        elif label in ORDER_ERROR_LABELS:
            raise OrderError(error_info, code=label, details=details)
        else:
            raise ExchangeError(error_info, code=label, details=details)

    def _route(self, endpoints: dict, name: str, **kwargs: str) -> tuple[str, str]:
        """HTTP method and settle-specific path of a named endpoint."""
        endpoint = endpoints[name]
        return endpoint.method, endpoint.format(self._settle, **kwargs)

    # =========================================================================
    # Public API - Contracts
    # =========================================================================

    async def list_contracts(self) -> list[dict]:
        """
        Get metadata for every futures contract.

        Returns:
            Raw contract entries (name, quanto_multiplier, order_price_round, ...)
        """
        data = await self._request(
            *self._route(FUTURES_PUBLIC_ENDPOINTS, "CONTRACTS"),
        )
        return list(data)

    async def get_contract(self, contract: str) -> dict:
        """
        Get metadata and last price of one contract.

        Args:
            contract: Contract name such as BTC_USDT
        """
        return await self._request(
            *self._route(FUTURES_PUBLIC_ENDPOINTS, "CONTRACT", contract=contract),
        )

    # =========================================================================
    # Private API - Account
    # =========================================================================

    async def get_account(self) -> dict:
        """
        Get the futures account summary.

        Raises:
            AuthenticationError: If not authenticated
        """
        return await self._request(
            *self._route(FUTURES_PRIVATE_ENDPOINTS, "ACCOUNTS"),
            signed=True,
        )

    async def list_positions(self) -> list[dict]:
        """Get every position of the account, including empty ones."""
        data = await self._request(
            *self._route(FUTURES_PRIVATE_ENDPOINTS, "POSITIONS"),
            signed=True,
        )
        return list(data)

    # =========================================================================
    # Private API - Settings
    # =========================================================================

    async def update_leverage(self, contract: str, leverage: int) -> UpdateResult:
        """
        Set leverage for a contract.

        Args:
            contract: Contract name
            leverage: Target leverage

        Returns:
            UPDATED, ALREADY_AT_TARGET when the exchange reports nothing to
            change, FAILED with the exchange message otherwise

        Raises:
            ConnectionError, AuthenticationError, RateLimitError: the request
                itself failed
        """
        try:
            await self._request(
                *self._route(FUTURES_PRIVATE_ENDPOINTS, "LEVERAGE", contract=contract),
                params={"leverage": leverage},
                signed=True,
            )
        except TRANSPORT_ERRORS:
            raise
        except ExchangeError as e:
            if LEVERAGE_UNCHANGED_MARKER in e.message:
                return UpdateResult(UpdateOutcome.ALREADY_AT_TARGET)
            logger.warning(f"Leverage update failed for {contract}: {e}")
            return UpdateResult(UpdateOutcome.FAILED, reason=str(e), error=e)

        return UpdateResult(UpdateOutcome.UPDATED)

    async def update_margin_mode(self, contract: str, mode: str) -> UpdateResult:
        """
        Switch a contract between ISOLATED and CROSS margin.

        Args:
            contract: Contract name
            mode: "ISOLATED" or "CROSS"

        Returns:
            UPDATED, ALREADY_AT_TARGET, BLOCKED while a position is open,
            FAILED with the exchange message otherwise

        Raises:
            ConnectionError, AuthenticationError, RateLimitError: the request
                itself failed
        """
        body = {"mode": mode.upper(), "contract": contract}

        try:
            await self._request(
                *self._route(FUTURES_PRIVATE_ENDPOINTS, "CROSS_MODE"),
                body=body,
                signed=True,
            )
        except TRANSPORT_ERRORS:
            raise
        except ExchangeError as e:
            if MARGIN_UNCHANGED_MARKER in e.message:
                return UpdateResult(UpdateOutcome.ALREADY_AT_TARGET)
            if MARGIN_BLOCKED_MARKER in e.message or e.code in MARGIN_BLOCKED_LABELS:
                return UpdateResult(UpdateOutcome.BLOCKED, reason=str(e), error=e)
            logger.warning(f"Margin mode update failed for {contract}: {e}")
            return UpdateResult(UpdateOutcome.FAILED, reason=str(e), error=e)

        return UpdateResult(UpdateOutcome.UPDATED)

    # =========================================================================
    # Private API - Orders
    # =========================================================================

    async def cancel_orders(self, contract: str) -> list[dict]:
        """
        Cancel all open orders for a contract.

        Returns:
            Raw entries of the cancelled orders
        """
        data = await self._request(
            *self._route(FUTURES_PRIVATE_ENDPOINTS, "CANCEL_ORDERS"),
            params={"contract": contract},
            signed=True,
        )
        return list(data) if isinstance(data, list) else []

    async def create_order(self, order: dict[str, Any]) -> dict:
        """
        Submit a futures order.

        Args:
            order: Request body (contract, signed size, price, tif, text)

        Returns:
            Raw order entry
        """
        logger.debug(f"Creating order: {order}")
        return await self._request(
            *self._route(FUTURES_PRIVATE_ENDPOINTS, "ORDERS"),
            body=order,
            signed=True,
        )

    async def create_price_triggered_order(self, order: dict[str, Any]) -> dict:
        """
        Submit a price-triggered order.

        Args:
            order: Request body with "trigger" and "initial" sections

        Returns:
            Raw response carrying the trigger order id
        """
        logger.debug(f"Creating price-triggered order: {order}")
        return await self._request(
            *self._route(FUTURES_PRIVATE_ENDPOINTS, "PRICE_ORDERS"),
            body=order,
            signed=True,
        )
