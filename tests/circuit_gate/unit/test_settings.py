from __future__ import annotations

import logging
import sys

import pytest
from pydantic import ValidationError

from circuit_gate.circuit_breaker import CircuitState
from circuit_gate.settings import BreakerSettings, prefixed_settings_config
from tests.circuit_gate.support.fakes import ScriptedRandom


def test_breaker_settings_defaults_match_breaker_defaults() -> None:
    config = BreakerSettings().to_config()

    assert config.open_threshold == 1
    assert config.close_threshold == 1
    assert config.half_open_reopen_threshold == 1
    assert config.half_open_timeout == 60.0
    assert config.half_open_call_rate == 50.0
    assert config.initial_state is CircuitState.CLOSED


def test_breaker_settings_read_prefixed_environment(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setenv("CIRCUIT_GATE_OPEN_THRESHOLD", "3")
    monkeypatch.setenv("circuit_gate_half_open_timeout_ms", "2500")
    monkeypatch.setenv("CIRCUIT_GATE_INITIAL_STATE", "Half-Open")
    monkeypatch.setenv("CIRCUIT_GATE_LOG_LEVEL", " debug ")

    settings = BreakerSettings()
    config = settings.to_config()

    assert settings.log_level == "DEBUG"
    assert config.open_threshold == 3
    assert config.half_open_timeout == 2.5
    assert config.initial_state is CircuitState.HALF_OPEN


def test_to_config_injects_random_source() -> None:
    random_source = ScriptedRandom([10])

    config = BreakerSettings(half_open_call_rate=25.0).to_config(
        random_source=random_source
    )

    assert config.random_source is random_source
    assert config.half_open_call_rate == 25.0


@pytest.mark.parametrize(
    ("overrides", "message"),
    [
        ({"open_threshold": 0}, "open_threshold must be >= 1"),
        ({"close_threshold": 0}, "close_threshold must be >= 1"),
        ({"half_open_reopen_threshold": 0}, "half_open_reopen_threshold must be >= 1"),
        ({"half_open_timeout_ms": -1}, "half_open_timeout_ms must be >= 0"),
        ({"half_open_call_rate": 101}, "half_open_call_rate must be between"),
        ({"log_level": "TRACE"}, "log_level must be one of"),
        ({"initial_state": "ajar"}, "initial_state"),
    ],
)
def test_breaker_settings_reject_invalid_values(
    overrides: dict[str, object], message: str
) -> None:
    with pytest.raises(ValidationError, match=message):
        BreakerSettings(**overrides)  # type: ignore[arg-type]


def test_prefixed_settings_config_supports_per_dependency_prefix(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    class PaymentsBreakerSettings(BreakerSettings):
        model_config = prefixed_settings_config("PAYMENTS_BREAKER_")

    monkeypatch.setenv("PAYMENTS_BREAKER_CLOSE_THRESHOLD", "4")
    monkeypatch.setenv("CIRCUIT_GATE_CLOSE_THRESHOLD", "9")

    assert PaymentsBreakerSettings().close_threshold == 4


def test_configure_logging_applies_log_level(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setattr(sys.stderr, "isatty", lambda: False, raising=False)
    monkeypatch.setenv("CIRCUIT_GATE_LOG_LEVEL", "warning")

    logger = BreakerSettings().configure_logging(static_fields={"service": "orders"})

    assert logger is not None
    assert logging.getLogger().level == logging.WARNING
    assert len(logging.getLogger().handlers) == 1
