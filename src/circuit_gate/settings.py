from __future__ import annotations

from collections.abc import Mapping
from dataclasses import replace

import structlog
from pydantic import ValidationInfo, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from circuit_gate.circuit_breaker.admission import RandomSource
from circuit_gate.circuit_breaker.breaker import CircuitBreakerConfig
from circuit_gate.circuit_breaker.state import CircuitState
from circuit_gate.logging import configure_structlog, get_log_level_value

DEFAULT_ENV_PREFIX = "CIRCUIT_GATE_"


def prefixed_settings_config(prefix: str) -> SettingsConfigDict:
    """Build standard Pydantic settings config for prefixed environments."""
    return SettingsConfigDict(env_prefix=prefix, case_sensitive=False)


class BreakerSettings(BaseSettings):
    """Environment-driven breaker settings.

    Durations are read in milliseconds and converted to seconds by
    ``to_config``. Subclass with ``model_config = prefixed_settings_config(...)``
    to read a different prefix per dependency.
    """

    model_config = prefixed_settings_config(DEFAULT_ENV_PREFIX)

    open_threshold: int = 1
    close_threshold: int = 1
    half_open_reopen_threshold: int = 1
    half_open_timeout_ms: int = 60_000
    half_open_call_rate: float = 50.0
    initial_state: CircuitState = CircuitState.CLOSED
    log_level: str = "INFO"

    @field_validator(
        "open_threshold",
        "close_threshold",
        "half_open_reopen_threshold",
    )
    @classmethod
    def _validate_threshold(cls, value: int, info: ValidationInfo) -> int:
        if value < 1:
            raise ValueError(f"{info.field_name} must be >= 1")
        return value

    @field_validator("half_open_timeout_ms")
    @classmethod
    def _validate_timeout(cls, value: int) -> int:
        if value < 0:
            raise ValueError("half_open_timeout_ms must be >= 0")
        return value

    @field_validator("half_open_call_rate")
    @classmethod
    def _validate_call_rate(cls, value: float) -> float:
        if not 0 <= value <= 100:
            raise ValueError("half_open_call_rate must be between 0 and 100")
        return value

    @field_validator("initial_state", mode="before")
    @classmethod
    def _normalize_initial_state(cls, value: object) -> object:
        if isinstance(value, str):
            return value.strip().lower().replace("-", "_")
        return value

    @field_validator("log_level", mode="before")
    @classmethod
    def _normalize_log_level(cls, value: object) -> object:
        if isinstance(value, str):
            get_log_level_value(value)
            return value.strip().upper()
        return value

    def to_config(
        self, *, random_source: RandomSource | None = None
    ) -> CircuitBreakerConfig:
        """Build a breaker configuration from these settings."""
        config = CircuitBreakerConfig(
            open_threshold=self.open_threshold,
            close_threshold=self.close_threshold,
            half_open_reopen_threshold=self.half_open_reopen_threshold,
            half_open_timeout=self.half_open_timeout_ms / 1000,
            half_open_call_rate=self.half_open_call_rate,
            initial_state=self.initial_state,
        )
        if random_source is None:
            return config
        return replace(config, random_source=random_source)

    def configure_logging(
        self, *, static_fields: Mapping[str, object] | None = None
    ) -> structlog.stdlib.BoundLogger:
        """Configure structlog at ``log_level`` for the hosting process."""
        return configure_structlog(log_level=self.log_level, static_fields=static_fields)
