"""
Tests for core models, parsing helpers and exceptions.
"""

import logging
from decimal import Decimal

import pytest

from gate_trader.core import get_logger, setup_logger
from gate_trader.core.exceptions import (
    BelowMinimum,
    ExchangeError,
    GateTraderError,
    InvalidArgument,
    InvalidQuantity,
    OrderError,
    RateLimitError,
    ResponseParseError,
    TradingError,
)
from gate_trader.core.models import (
    AccountBalance,
    ContractPrecision,
    OrderResult,
    Position,
    PositionDirection,
    ProtectiveKind,
    TriggerOrderSpec,
    TriggerRule,
    UpdateOutcome,
    UpdateResult,
    parse_positions,
)
from gate_trader.core.utils import decimal_places, parse_decimal, parse_int


# =============================================================================
# Parsing Helpers
# =============================================================================


class TestParsing:
    """Test strict numeric parsing."""

    def test_parse_decimal(self):
        assert parse_decimal("0.01", "x") == Decimal("0.01")
        assert parse_decimal(5, "x") == Decimal("5")

    @pytest.mark.parametrize("value", [None, "", "abc", "NaN", "inf", True])
    def test_parse_decimal_rejects(self, value):
        with pytest.raises(ResponseParseError):
            parse_decimal(value, "x")

    def test_parse_int(self):
        assert parse_int("-50", "size") == -50

    def test_parse_int_rejects_fraction(self):
        with pytest.raises(ResponseParseError):
            parse_int("1.5", "size")

    def test_decimal_places(self):
        assert decimal_places("0.001") == 3
        assert decimal_places("0.10") == 1
        assert decimal_places("1") == 0


# =============================================================================
# Models
# =============================================================================


class TestPositionDirection:
    """Test side parsing."""

    @pytest.mark.parametrize("text", ["long", "LONG", " Long "])
    def test_long(self, text):
        assert PositionDirection.parse(text) == PositionDirection.LONG

    def test_invalid(self):
        with pytest.raises(InvalidArgument):
            PositionDirection.parse("flat")


class TestContractPrecision:
    """Test ContractPrecision."""

    def test_default(self):
        default = ContractPrecision.default()
        assert (default.price_precision, default.min_lots, default.coin_per_lot) == (
            3,
            Decimal("1"),
            Decimal("1"),
        )

    def test_from_gate(self):
        precision = ContractPrecision.from_gate({
            "name": "ETH_USDT",
            "quanto_multiplier": "0.01",
            "order_price_round": "0.05",
            "order_size_min": 1,
        })
        assert precision.price_precision == 2
        assert precision.coin_per_lot == Decimal("0.01")

    def test_from_gate_bad_multiplier(self):
        with pytest.raises(ResponseParseError):
            ContractPrecision.from_gate({"quanto_multiplier": "x", "order_price_round": "0.1"})


class TestAccountBalance:
    """Test AccountBalance parsing."""

    def test_from_gate(self):
        balance = AccountBalance.from_gate({"total": "120.5", "unrealised_pnl": "-3.5", "currency": "usdt"})

        assert balance.total_wallet_balance == Decimal("120.5")
        assert balance.total_unrealized_profit == Decimal("-3.5")
        assert balance.available_balance == Decimal("124.0")
        assert balance.currency == "USDT"

    def test_missing_field(self):
        with pytest.raises(ResponseParseError):
            AccountBalance.from_gate({"total": "1"})


class TestPosition:
    """Test Position parsing."""

    def test_from_gate(self):
        position = Position.from_gate({
            "contract": "BTC_USDT",
            "size": -3,
            "leverage": "10",
            "entry_price": "42000",
            "mark_price": "41900.5",
            "unrealised_pnl": "0.3",
            "liq_price": "46000",
        })

        assert position.side == "short"
        assert position.lots == 3
        assert position.leverage == 10
        assert position.mark_price == Decimal("41900.5")

    def test_parse_positions_drops_zero(self):
        base = {
            "leverage": "5",
            "entry_price": "0",
            "mark_price": "0",
            "unrealised_pnl": "0",
            "liq_price": "0",
        }
        positions = parse_positions([
            {**base, "contract": "A_USDT", "size": 0},
            {**base, "contract": "B_USDT", "size": 2},
            {**base, "contract": "C_USDT", "size": "0"},
        ])

        assert [p.symbol for p in positions] == ["B_USDT"]

    def test_missing_contract(self):
        with pytest.raises(ResponseParseError):
            parse_positions([{"size": 2, "leverage": "5"}])

    def test_parse_positions_bad_number(self):
        with pytest.raises(ResponseParseError):
            parse_positions([{"contract": "A_USDT", "size": "ten"}])


class TestOrderResult:
    """Test OrderResult parsing."""

    def test_open_result_carries_fill(self):
        result = OrderResult.from_gate({
            "id": 123,
            "contract": "ETH_USDT",
            "size": 10,
            "price": "0",
            "fill_price": "2001.2",
            "status": "finished",
            "create_time": 1704067200.5,
        })

        assert result.order_id == "123"
        assert result.price == Decimal("2001.2")
        assert result.size == 10
        assert result.created_at is not None

    def test_close_result_omits_fill(self):
        result = OrderResult.from_gate(
            {"id": 9, "contract": "ETH_USDT", "size": -10, "fill_price": "2000", "status": "finished"},
            include_fill=False,
        )

        assert result.price is None
        assert result.size is None

    @pytest.mark.parametrize("missing", ["id", "contract"])
    def test_missing_identifier(self, missing):
        data = {"id": 9, "contract": "ETH_USDT", "size": -10, "status": "finished"}
        del data[missing]

        with pytest.raises(ResponseParseError):
            OrderResult.from_gate(data, include_fill=False)


class TestTriggerOrderSpec:
    """Test price-triggered order body."""

    def test_to_gate(self):
        spec = TriggerOrderSpec(
            symbol="ETH_USDT",
            side=PositionDirection.LONG,
            kind=ProtectiveKind.STOP_LOSS,
            trigger_price=Decimal("1800.50"),
            rule=TriggerRule.LTE,
            text="t-stoploss-long-1",
        )

        assert spec.to_gate() == {
            "trigger": {"strategy_type": 0, "price_type": 1, "price": "1800.50", "rule": 2},
            "initial": {
                "contract": "ETH_USDT",
                "size": 0,
                "price": "0",
                "tif": "ioc",
                "close": True,
                "text": "t-stoploss-long-1",
            },
        }

    def test_price_must_be_positive(self):
        with pytest.raises(ValueError):
            TriggerOrderSpec(
                symbol="ETH_USDT",
                side=PositionDirection.LONG,
                kind=ProtectiveKind.STOP_LOSS,
                trigger_price=Decimal("0"),
                rule=TriggerRule.LTE,
                text="t-x",
            )


class TestUpdateResult:
    """Test UpdateResult."""

    def test_is_success(self):
        assert UpdateResult(UpdateOutcome.UPDATED).is_success
        assert UpdateResult(UpdateOutcome.ALREADY_AT_TARGET).is_success
        assert not UpdateResult(UpdateOutcome.BLOCKED).is_success
        assert not UpdateResult(UpdateOutcome.FAILED, "x").is_success


# =============================================================================
# Exceptions
# =============================================================================


class TestExceptions:
    """Test the exception hierarchy."""

    def test_hierarchy(self):
        assert issubclass(ResponseParseError, ExchangeError)
        assert issubclass(ExchangeError, GateTraderError)
        assert issubclass(BelowMinimum, InvalidQuantity)
        assert issubclass(InvalidQuantity, InvalidArgument)
        assert issubclass(InvalidArgument, TradingError)

    def test_str(self):
        error = OrderError("rejected", order_id="1", symbol="ETH_USDT", code="ORDER_FOK")
        text = str(error)
        assert "rejected" in text
        assert "[ORDER_FOK]" in text
        assert "symbol=ETH_USDT" in text

    def test_default_message(self):
        assert str(RateLimitError()) == "Rate limit exceeded (retry after 1s)"


# =============================================================================
# Logger
# =============================================================================


class TestLogger:
    """Test logger setup."""

    def test_child_logger(self):
        logger = get_logger("gate_trader.trader.cache")

        assert logger.name == "gate_trader.trader.cache"
        assert logging.getLogger("gate_trader").handlers

    def test_setup_logger_writes_file(self, tmp_path):
        logger = setup_logger("gate_trader_test_file", level="INFO", log_file=tmp_path / "test.log")
        logger.info("hello")
        for handler in logger.handlers:
            handler.flush()

        assert "hello" in (tmp_path / "test.log").read_text()
