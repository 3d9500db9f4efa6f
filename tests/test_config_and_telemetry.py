from __future__ import annotations

import logging
from datetime import date

import pytest

from periodpal.config import Settings, get_settings
from periodpal.logging_config import configure_logging
from periodpal.telemetry import emit_event, register_listener


@pytest.fixture
def fresh_settings():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


def test_settings_read_environment(monkeypatch, fresh_settings) -> None:
    monkeypatch.setenv("PERIODPAL_PERSISTENCE_MODE", "hybrid")
    monkeypatch.setenv("PERIODPAL_REMINDER_LEAD_DAYS", "2")
    monkeypatch.setenv("PERIODPAL_CYCLE_LENGTH_POLICY", "static")

    settings = get_settings()

    assert settings.persistence_mode == "hybrid"
    assert settings.reminder_lead_days == 2
    assert settings.cycle_length_policy == "static"
    assert get_settings() is settings


def test_invalid_environment_raises_runtime_error(monkeypatch, fresh_settings) -> None:
    monkeypatch.setenv("PERIODPAL_PERSISTENCE_MODE", "cloud")

    with pytest.raises(RuntimeError, match="Invalid PeriodPal configuration"):
        get_settings()


def test_settings_defaults() -> None:
    settings = Settings(cache_path=None)

    assert settings.default_cycle_length == 28
    assert settings.default_period_length == 5
    assert settings.default_luteal_phase_length == 14
    assert settings.rolling_average_cycles == 6


def test_emit_event_serialises_dates_and_logs(caplog, telemetry_events) -> None:
    with caplog.at_level(logging.INFO, logger="periodpal.telemetry"):
        emit_event("cycle_added", cycle_id="1", start_date=date(2024, 1, 1))

    assert telemetry_events[0].payload == {"cycle_id": "1", "start_date": "2024-01-01"}
    assert 'TELEMETRY {"event": "cycle_added"' in caplog.text


def test_listener_removal_and_failure_isolation(telemetry_events) -> None:
    def broken(_event) -> None:
        raise RuntimeError("sink offline")

    remove = register_listener(broken)
    emit_event("profile_imported")
    remove()
    emit_event("profile_imported")

    assert [event.name for event in telemetry_events] == ["profile_imported", "profile_imported"]


def test_configure_logging_enables_sql_debug(monkeypatch) -> None:
    monkeypatch.setenv("PERIODPAL_LOG_LEVEL", "warning")
    monkeypatch.setenv("PERIODPAL_DEBUG_SQL", "1")

    configure_logging()

    assert logging.getLogger().level == logging.WARNING
    assert logging.getLogger("sqlalchemy.engine").level == logging.INFO
    logging.getLogger("sqlalchemy.engine").setLevel(logging.NOTSET)
    logging.getLogger().setLevel(logging.WARNING)


def test_configure_logging_adds_file_handler(monkeypatch, tmp_path) -> None:
    log_file = tmp_path / "periodpal.log"
    monkeypatch.setenv("PERIODPAL_LOG_FILE", str(log_file))
    monkeypatch.setenv("PERIODPAL_TELEMETRY_LOG", "0")
    root = logging.getLogger()

    configure_logging()
    try:
        file_handlers = [handler for handler in root.handlers if isinstance(handler, logging.FileHandler)]
        assert file_handlers and file_handlers[0].baseFilename == str(log_file)
        assert logging.getLogger("periodpal.telemetry").level == logging.WARNING
    finally:
        for handler in file_handlers:
            root.removeHandler(handler)
            handler.close()
        logging.getLogger("periodpal.telemetry").setLevel(logging.NOTSET)
