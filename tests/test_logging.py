import logging
from unittest.mock import patch

import pytest

from wide_events.config import LoggingSettings
from wide_events.logging import setup_logging

EVENT_LOGGER = "wide_events.test_setup_events"


@pytest.fixture(autouse=True)
def restore_loggers():
    names = ["", "uvicorn", "uvicorn.error", "uvicorn.access", EVENT_LOGGER]
    saved = {
        name: (
            logging.getLogger(name).level,
            list(logging.getLogger(name).handlers),
            logging.getLogger(name).propagate,
        )
        for name in names
    }
    yield
    for name, (level, handlers, propagate) in saved.items():
        logger = logging.getLogger(name)
        logger.setLevel(level)
        logger.handlers[:] = handlers
        logger.propagate = propagate


def test_quiet_mode_keeps_event_logger():
    setup_logging(LoggingSettings(verbose=False, event_logger=EVENT_LOGGER))

    assert logging.getLogger().level == logging.CRITICAL
    assert logging.getLogger("uvicorn.access").level == logging.CRITICAL
    event_logger = logging.getLogger(EVENT_LOGGER)
    assert event_logger.level == logging.INFO
    assert event_logger.handlers
    assert event_logger.propagate is False


def test_verbose_mode_instruments_logging():
    with patch("wide_events.logging.LoggingInstrumentor") as mock_instrumentor:
        setup_logging(LoggingSettings(verbose=True, event_logger=EVENT_LOGGER))

    mock_instrumentor.return_value.instrument.assert_called_once_with(
        set_logging_format=True
    )
    assert logging.getLogger().level == logging.INFO
    event_logger = logging.getLogger(EVENT_LOGGER)
    assert event_logger.level == logging.INFO
    assert event_logger.propagate is True
