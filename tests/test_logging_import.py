"""
Test that reclaim_logging can be imported without circular import and logger works.
"""

from __future__ import annotations


def test_logging_import():
    """Import get_logger from reclaim_logging and use the logger."""
    from rent_reclaim.reclaim_logging import get_logger

    logger = get_logger("test")
    assert logger is not None
    assert hasattr(logger, "info")
    assert hasattr(logger, "debug")
    assert hasattr(logger, "warning")
    assert hasattr(logger, "error")
    # Smoke test: call info (should not raise)
    logger.info("test_message", key="value")


def test_bind_account_and_short_address():
    from rent_reclaim.reclaim_logging import bind_account
    from rent_reclaim.reclaim_logging.logger import short_address

    assert short_address("A" * 44) == "A" * 16 + "..."
    assert short_address("short") == "short"
    assert short_address(None) == ""
    bind_account("B" * 44).info("bound_message")


def test_normalize_event_renames_event():
    from rent_reclaim.reclaim_logging.logger import _normalize_event

    out = _normalize_event(None, "info", {"event": "reclaim_confirmed"})
    assert out["event_type"] == "reclaim_confirmed"
    assert out["message"] == "reclaim_confirmed"
    assert "event" not in out


def test_set_log_level_filters():
    from structlog.testing import capture_logs

    from rent_reclaim.reclaim_logging import get_logger
    from rent_reclaim.reclaim_logging.logger import set_log_level

    logger = get_logger("level_test")
    try:
        set_log_level("ERROR")
        with capture_logs() as logs:
            logger.info("dropped")
            logger.error("kept")
        assert [entry["event"] for entry in logs] == ["kept"]
    finally:
        set_log_level("INFO")


def test_module_loggers_carry_their_name():
    """Every module-level logger binds its module name and still follows set_log_level."""
    from structlog.testing import capture_logs

    from rent_reclaim.analytics import risk_engine
    from rent_reclaim.reclaim_logging import get_logger
    from rent_reclaim.reclaim_logging.logger import set_log_level

    with capture_logs() as logs:
        get_logger("named").info("hello")
    assert logs[0]["logger_name"] == "named"

    try:
        set_log_level("WARNING")
        with capture_logs() as logs:
            risk_engine.logger.info("dropped")
            risk_engine.logger.warning("kept")
        assert [entry["event"] for entry in logs] == ["kept"]
        assert logs[0]["logger_name"] == "rent_reclaim.analytics.risk_engine"
    finally:
        set_log_level("INFO")
