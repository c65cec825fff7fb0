import logging

from opentelemetry.instrumentation.logging import LoggingInstrumentor

from wide_events.config import LoggingSettings


def setup_logging(settings: LoggingSettings):
    """Setup all logging configurations based on settings."""
    # uvicorn loggers plus the one retained events are written to
    uvicorn_loggers = ["uvicorn", "uvicorn.error", "uvicorn.access"]
    known_loggers = uvicorn_loggers + [settings.event_logger]

    if not settings.verbose:
        # Suppress all logging output when not verbose
        logging.getLogger().setLevel(logging.CRITICAL)
        for logger_name in uvicorn_loggers:
            logging.getLogger(logger_name).setLevel(logging.CRITICAL)
        # Retained events are emitted regardless of verbosity
        event_logger = logging.getLogger(settings.event_logger)
        event_logger.setLevel(logging.INFO)
        if not event_logger.handlers:
            event_logger.addHandler(logging.StreamHandler())
        event_logger.propagate = False
        return

    # Initialize OpenTelemetry logging instrumentation with default settings
    LoggingInstrumentor().instrument(set_logging_format=True)

    # Set root logger level to INFO - LoggingInstrumentor handles the format
    logging.getLogger().setLevel(logging.INFO)

    # uvicorn and event loggers drop their own handlers and go through root
    for logger_name in known_loggers:
        logger = logging.getLogger(logger_name)
        logger.setLevel(logging.INFO)
        logger.handlers.clear()
        logger.propagate = True
