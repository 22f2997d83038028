"""
Configuration Models.

Pydantic models for the Gate.io connection, trader tuning and the
application file that lists traders. String values support ``${VAR}`` and
``${VAR:default}`` environment substitution; credentials are masked whenever
a config object is printed or logged.
"""

import os
import re
from typing import Any, ClassVar, Optional, Set

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .exceptions import TraderNotConfiguredError

# Pattern for environment variable substitution: ${VAR} or ${VAR:default}
ENV_VAR_PATTERN = re.compile(r"\$\{([^}:]+)(?::([^}]*))?\}")

GATE_REST_URL = "https://api.gateio.ws/api/v4"
GATE_TESTNET_URL = "https://api-testnet.gateapi.io/api/v4"


def substitute_env_vars(value: str) -> str:
    """
    Substitute environment variables in a string.

    Supports formats:
    - ${VAR} - substitutes with VAR value, empty if not set
    - ${VAR:default} - substitutes with VAR value, or 'default' if not set
    """

    def replace_match(match: re.Match) -> str:
        var_name = match.group(1)
        default_value = match.group(2)

        env_value = os.environ.get(var_name)
        if env_value is not None:
            return env_value
        if default_value is not None:
            return default_value
        return ""

    return ENV_VAR_PATTERN.sub(replace_match, value)


def process_value(value: Any) -> Any:
    """Substitute env vars in a value and anything nested in it."""
    if isinstance(value, str):
        return substitute_env_vars(value)
    elif isinstance(value, dict):
        return {k: process_value(v) for k, v in value.items()}
    elif isinstance(value, list):
        return [process_value(item) for item in value]
    return value


class BaseConfig(BaseModel):
    """
    Base configuration model with common functionality.

    Features:
    - Environment variable substitution: ${VAR} or ${VAR:default}
    - Sensitive field masking for display
    - Immutable (frozen)
    """

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        validate_default=True,
        str_strip_whitespace=True,
    )

    _sensitive_fields: ClassVar[Set[str]] = {
        "api_key",
        "api_secret",
        "password",
        "secret",
        "token",
    }

    @model_validator(mode="before")
    @classmethod
    def substitute_environment_variables(cls, data: Any) -> Any:
        """Substitute environment variables in all string values."""
        if isinstance(data, dict):
            return process_value(data)
        return data

    def masked_dict(self) -> dict[str, Any]:
        """
        Get dictionary with sensitive fields masked.

        Returns:
            Dict with sensitive values replaced by '***'
        """
        return self._mask_sensitive(self.model_dump())

    def _mask_sensitive(self, data: dict[str, Any]) -> dict[str, Any]:
        result = {}
        for key, value in data.items():
            if self._is_sensitive_field(key) and value:
                result[key] = "***"
            elif isinstance(value, dict):
                result[key] = self._mask_sensitive(value)
            elif isinstance(value, list):
                result[key] = [
                    self._mask_sensitive(item) if isinstance(item, dict) else item
                    for item in value
                ]
            else:
                result[key] = value
        return result

    def _is_sensitive_field(self, field_name: str) -> bool:
        field_lower = field_name.lower()
        return any(sensitive in field_lower for sensitive in self._sensitive_fields)

    def __repr__(self) -> str:
        masked = self.masked_dict()
        fields = ", ".join(f"{k}={v!r}" for k, v in masked.items())
        return f"{self.__class__.__name__}({fields})"

    def __str__(self) -> str:
        return self.__repr__()


class GateConfig(BaseConfig):
    """
    Gate.io connection configuration.

    Example:
        >>> config = GateConfig(
        ...     api_key="${GATE_API_KEY}",
        ...     api_secret="${GATE_API_SECRET}",
        ...     testnet=True,
        ... )
        >>> config.resolved_base_url
        'https://api-testnet.gateapi.io/api/v4'
    """

    api_key: str = Field(default="", description="API key")
    api_secret: str = Field(default="", description="API secret")
    testnet: bool = Field(default=False, description="Use testnet endpoints")
    base_url: Optional[str] = Field(
        default=None,
        description="Override the REST base URL",
    )
    settle: str = Field(default="usdt", description="Settlement currency")
    timeout: int = Field(default=30, ge=1, le=300, description="Request timeout in seconds")

    @field_validator("settle")
    @classmethod
    def validate_settle(cls, v: str) -> str:
        return v.lower()

    @property
    def resolved_base_url(self) -> str:
        """Base URL for REST calls."""
        if self.base_url:
            return self.base_url.rstrip("/")
        return GATE_TESTNET_URL if self.testnet else GATE_REST_URL

    @property
    def has_credentials(self) -> bool:
        """Check if API credentials are configured."""
        return bool(self.api_key and self.api_secret)


class TraderConfig(BaseConfig):
    """Tuning for the trading adapter."""

    cache_ttl: float = Field(
        default=15.0,
        gt=0,
        description="Validity window of the balance and position caches (seconds)",
    )
    leverage_cooldown: float = Field(
        default=5.0,
        ge=0,
        description="Pause after a successful leverage change (seconds)",
    )


class TraderEntry(BaseConfig):
    """One trader in the application file."""

    name: str = Field(default="gate", description="Trader name")
    exchange: str = Field(default="gate", description="Exchange identifier")
    gate: GateConfig = Field(default_factory=GateConfig)
    trader: TraderConfig = Field(default_factory=TraderConfig)

    @field_validator("exchange")
    @classmethod
    def validate_exchange(cls, v: str) -> str:
        return v.lower().strip()


class AppConfig(BaseConfig):
    """
    Application configuration.

    Example:
        >>> config = AppConfig(traders=[{"name": "main", "exchange": "gate"}])
        >>> config.gate_trader().name
        'main'
    """

    log_level: str = Field(default="INFO", description="Logging level")
    traders: list[TraderEntry] = Field(default_factory=list)

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        v = v.upper()
        valid = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v not in valid:
            raise ValueError(f"log_level must be one of {sorted(valid)}")
        return v

    def trader_for(self, exchange: str) -> Optional[TraderEntry]:
        """First trader entry for the exchange, or None."""
        exchange = exchange.lower()
        for entry in self.traders:
            if entry.exchange == exchange:
                return entry
        return None

    def gate_trader(self) -> TraderEntry:
        """
        First Gate.io trader entry.

        Raises:
            TraderNotConfiguredError: If the file lists no Gate.io trader
        """
        entry = self.trader_for("gate")
        if entry is None:
            raise TraderNotConfiguredError("gate")
        return entry
