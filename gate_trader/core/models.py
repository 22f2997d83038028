"""
Base data models for Gate Futures Trader.

Pydantic v2 models for contract metadata, account balance, positions,
orders and price-triggered orders. Every ``from_gate`` constructor parses
Gate.io's decimal strings strictly: a malformed number raises
ResponseParseError instead of turning into zero.
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field

from .exceptions import ExchangeError, InvalidArgument
from .utils import (
    decimal_places,
    parse_decimal,
    parse_int,
    parse_required,
    timestamp_to_datetime,
)


# =============================================================================
# Enums
# =============================================================================


class PositionDirection(str, Enum):
    """Direction of a futures position."""

    LONG = "long"
    SHORT = "short"

    @classmethod
    def parse(cls, value: "PositionDirection | str") -> "PositionDirection":
        """
        Parse a user-supplied side such as "LONG" or " short ".

        Raises:
            InvalidArgument: If the value is neither long nor short
        """
        if isinstance(value, PositionDirection):
            return value
        text = str(value).strip().lower()
        try:
            return cls(text)
        except ValueError:
            raise InvalidArgument(
                f"position side must be 'long' or 'short', got {value!r}"
            ) from None


class ProtectiveKind(str, Enum):
    """Kind of protective trigger order."""

    STOP_LOSS = "stop_loss"
    TAKE_PROFIT = "take_profit"


class TriggerRule(int, Enum):
    """Gate.io price trigger comparison rule."""

    GTE = 1  # mark price >= trigger price
    LTE = 2  # mark price <= trigger price


class TriggerPriceType(int, Enum):
    """Price the trigger is evaluated against."""

    LAST = 0
    MARK = 1
    INDEX = 2


class MarginMode(str, Enum):
    """Position margin mode."""

    ISOLATED = "ISOLATED"
    CROSS = "CROSS"


class UpdateOutcome(str, Enum):
    """Outcome of a leverage or margin-mode update."""

    UPDATED = "updated"
    ALREADY_AT_TARGET = "already_at_target"
    BLOCKED = "blocked"
    FAILED = "failed"


@dataclass(frozen=True)
class UpdateResult:
    """
    Result of a settings update as classified by the gateway.

    Attributes:
        outcome: What the exchange did
        reason: Exchange message for BLOCKED and FAILED outcomes
        error: Exchange error behind a BLOCKED or FAILED outcome
    """

    outcome: UpdateOutcome
    reason: Optional[str] = None
    error: Optional[ExchangeError] = field(default=None, compare=False, repr=False)

    @property
    def is_success(self) -> bool:
        return self.outcome in (UpdateOutcome.UPDATED, UpdateOutcome.ALREADY_AT_TARGET)


@dataclass(frozen=True)
class StepResult:
    """Soft outcome of a best-effort workflow step."""

    succeeded: bool
    detail: Optional[str] = None


# =============================================================================
# Base Model Configuration
# =============================================================================


class TradingBaseModel(BaseModel):
    """Base model with common configuration for all trading models."""

    model_config = ConfigDict(
        use_enum_values=True,
        validate_assignment=True,
        from_attributes=True,
    )


# =============================================================================
# Contract Precision
# =============================================================================

DEFAULT_PRICE_PRECISION = 3
DEFAULT_MIN_LOTS = Decimal("1")
DEFAULT_COIN_PER_LOT = Decimal("1")


class ContractPrecision(TradingBaseModel):
    """Sizing metadata for one futures contract."""

    price_precision: int = Field(ge=0)
    min_lots: Decimal = Field(ge=0)
    coin_per_lot: Decimal = Field(gt=0)

    @classmethod
    def default(cls) -> "ContractPrecision":
        """Fallback used when the contract lookup fails."""
        return cls(
            price_precision=DEFAULT_PRICE_PRECISION,
            min_lots=DEFAULT_MIN_LOTS,
            coin_per_lot=DEFAULT_COIN_PER_LOT,
        )

    @classmethod
    def from_gate(cls, data: dict) -> "ContractPrecision":
        """
        Create ContractPrecision from a Gate.io contract entry.

        A quanto multiplier of zero is replaced by 1.

        Args:
            data: Contract entry from /futures/{settle}/contracts

        Returns:
            ContractPrecision instance
        """
        coin_per_lot = parse_decimal(data.get("quanto_multiplier"), "quanto_multiplier")
        if coin_per_lot == 0:
            coin_per_lot = DEFAULT_COIN_PER_LOT

        return cls(
            price_precision=decimal_places(str(data.get("order_price_round", "0"))),
            min_lots=parse_decimal(data.get("order_size_min", 1), "order_size_min"),
            coin_per_lot=coin_per_lot,
        )


# =============================================================================
# Balance Model
# =============================================================================


class AccountBalance(TradingBaseModel):
    """Futures account balance."""

    total_wallet_balance: Decimal
    total_unrealized_profit: Decimal
    available_balance: Decimal
    currency: str = "USDT"

    @classmethod
    def from_gate(cls, data: dict) -> "AccountBalance":
        """
        Create AccountBalance from Gate.io futures account data.

        Available balance is wallet total minus unrealised PnL.

        Args:
            data: Response of /futures/{settle}/accounts

        Returns:
            AccountBalance instance
        """
        total = parse_decimal(data.get("total"), "total")
        unrealized = parse_decimal(data.get("unrealised_pnl"), "unrealised_pnl")
        return cls(
            total_wallet_balance=total,
            total_unrealized_profit=unrealized,
            available_balance=total - unrealized,
            currency=str(data.get("currency") or "USDT").upper(),
        )


# =============================================================================
# Position Model (Futures)
# =============================================================================


class Position(TradingBaseModel):
    """Open futures position. ``size`` is the signed lot count."""

    symbol: str
    size: int
    entry_price: Decimal
    mark_price: Decimal
    unrealized_pnl: Decimal
    leverage: int
    liquidation_price: Decimal

    @computed_field
    @property
    def side(self) -> str:
        """'long' for positive size, 'short' for negative size."""
        if self.size > 0:
            return PositionDirection.LONG.value
        return PositionDirection.SHORT.value

    @computed_field
    @property
    def lots(self) -> int:
        """Absolute lot count."""
        return abs(self.size)

    @classmethod
    def from_gate(cls, data: dict) -> "Position":
        """
        Create Position from a Gate.io position entry.

        Args:
            data: Entry from /futures/{settle}/positions

        Returns:
            Position instance
        """
        return cls(
            symbol=parse_required(data, "contract"),
            size=parse_int(data.get("size"), "size"),
            entry_price=parse_decimal(data.get("entry_price"), "entry_price"),
            mark_price=parse_decimal(data.get("mark_price"), "mark_price"),
            unrealized_pnl=parse_decimal(data.get("unrealised_pnl"), "unrealised_pnl"),
            leverage=int(parse_decimal(data.get("leverage"), "leverage")),
            liquidation_price=parse_decimal(data.get("liq_price"), "liq_price"),
        )


def parse_positions(data: list[dict]) -> list[Position]:
    """
    Build positions from a Gate.io position list, dropping empty ones.

    Args:
        data: Raw position list

    Returns:
        Positions with non-zero size
    """
    positions = []
    for item in data:
        if parse_int(item.get("size"), "size") == 0:
            continue
        positions.append(Position.from_gate(item))
    return positions


# =============================================================================
# Order Models
# =============================================================================


class OrderResult(TradingBaseModel):
    """Summary of a submitted market order."""

    order_id: str
    symbol: str
    status: str
    price: Optional[Decimal] = None
    size: Optional[int] = None
    created_at: Optional[datetime] = None

    @classmethod
    def from_gate(cls, data: dict, include_fill: bool = True) -> "OrderResult":
        """
        Create OrderResult from a Gate.io order response.

        Args:
            data: Response of POST /futures/{settle}/orders
            include_fill: Carry price and size (open workflows only)

        Returns:
            OrderResult instance
        """
        created = data.get("create_time")
        raw_price = data.get("fill_price") or data.get("price")
        raw_size = data.get("size")
        return cls(
            order_id=parse_required(data, "id"),
            symbol=parse_required(data, "contract"),
            status=str(data.get("status", "")),
            price=parse_decimal(raw_price, "price") if include_fill and raw_price is not None else None,
            size=parse_int(raw_size, "size") if include_fill and raw_size is not None else None,
            created_at=timestamp_to_datetime(float(parse_decimal(created, "create_time"))) if created else None,
        )


class TriggerOrderSpec(TradingBaseModel):
    """
    Price-triggered order that closes the whole position when hit.

    Size is zero with close semantics, so the exchange closes whatever is
    open at trigger time.
    """

    model_config = ConfigDict(
        use_enum_values=False,
        validate_assignment=True,
        frozen=True,
    )

    symbol: str
    side: PositionDirection
    kind: ProtectiveKind
    trigger_price: Decimal = Field(gt=0)
    rule: TriggerRule
    price_type: TriggerPriceType = TriggerPriceType.MARK
    close_existing: bool = True
    text: str

    def trigger(self) -> dict:
        """Trigger condition body."""
        return {
            "strategy_type": 0,
            "price_type": int(self.price_type),
            "price": format(self.trigger_price, "f"),
            "rule": int(self.rule),
        }

    def initial(self) -> dict:
        """Order placed when the trigger fires."""
        return {
            "contract": self.symbol,
            "size": 0,
            "price": "0",
            "tif": "ioc",
            "close": self.close_existing,
            "text": self.text,
        }

    def to_gate(self) -> dict:
        """Request body for POST /futures/{settle}/price_orders."""
        return {"trigger": self.trigger(), "initial": self.initial()}
