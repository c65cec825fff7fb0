from fastapi import FastAPI
from prometheus_client import Counter
from prometheus_fastapi_instrumentator import Instrumentator

from wide_events.config import MetricsSettings

from .constants import (
    PROMETHEUS_DECISIONS,
    PROMETHEUS_DECISIONS_DESC,
    PROMETHEUS_EMITTED,
    PROMETHEUS_EMITTED_DESC,
    PROMETHEUS_SINK_ERRORS,
    PROMETHEUS_SINK_ERRORS_DESC,
)

SAMPLING_DECISIONS = Counter(
    PROMETHEUS_DECISIONS,
    PROMETHEUS_DECISIONS_DESC,
    labelnames=["rule", "sampled"],
)

EVENTS_EMITTED = Counter(
    PROMETHEUS_EMITTED,
    PROMETHEUS_EMITTED_DESC,
    labelnames=["reason"],
)

SINK_ERRORS = Counter(PROMETHEUS_SINK_ERRORS, PROMETHEUS_SINK_ERRORS_DESC)


def setup_metrics(app: FastAPI, settings: MetricsSettings):
    """Setup Prometheus metrics for FastAPI app if enabled."""
    if not settings.enabled:
        return

    instrumentator = Instrumentator(
        should_group_status_codes=False,
        should_ignore_untemplated=True,
        should_respect_env_var=False,
        excluded_handlers=[settings.endpoint],
    )

    instrumentator.instrument(app).expose(app, endpoint=settings.endpoint)
