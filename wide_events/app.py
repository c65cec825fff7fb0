from collections.abc import Callable

from fastapi import FastAPI
from starlette.requests import Request

from wide_events.config import Settings, get_settings
from wide_events.logging import setup_logging
from wide_events.metrics import setup_metrics

from .constants import STATE_COORDINATOR
from .coordinator import WideEventCoordinator
from .middleware import WideEventsMiddleware
from .policy import SamplingPolicy, ServiceIdentity
from .sink import LoggingSink, Sink


def build_coordinator(
    settings: Settings, sink: Sink | None = None
) -> WideEventCoordinator:
    return WideEventCoordinator(
        policy=SamplingPolicy.from_settings(settings.sampling),
        identity=ServiceIdentity.from_settings(settings.service),
        sink=sink or LoggingSink(settings.logging.event_logger),
    )


def setup_wide_events(
    app: FastAPI,
    settings: Settings | None = None,
    sink: Sink | None = None,
    user_getter: Callable[[Request], object] | None = None,
) -> WideEventCoordinator:
    """Install the wide events middleware on ``app``.

    The coordinator is returned and kept on ``app.state.wide_events`` so the
    sampling policy can be replaced later with ``reconfigure``.
    """
    settings = settings or get_settings()
    coordinator = build_coordinator(settings, sink)
    app.add_middleware(
        WideEventsMiddleware,
        coordinator=coordinator,
        request_id_header=settings.request_id_header,
        user_getter=user_getter,
    )
    setattr(app.state, STATE_COORDINATOR, coordinator)
    return coordinator


def get_app() -> FastAPI:
    # Get settings when creating app.
    settings = get_settings()
    setup_logging(settings.logging)
    app = FastAPI(
        title="Wide Events",
        description="Tail-sampled wide event logging for every request.",
    )
    # Setup metrics if enabled
    setup_metrics(app, settings.metrics)

    setup_wide_events(app, settings)

    @app.get("/health")
    async def health():
        return "ok"

    return app
