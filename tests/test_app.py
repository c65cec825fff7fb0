from unittest.mock import patch

from fastapi import FastAPI
from fastapi.testclient import TestClient

from wide_events.app import build_coordinator, get_app, setup_wide_events
from wide_events.config import LoggingSettings, SamplingSettings, Settings
from wide_events.coordinator import WideEventCoordinator
from wide_events.sink import LoggingSink


def test_build_coordinator_from_settings(monkeypatch):
    monkeypatch.setenv("SERVICE_NAME", "billing")
    settings = Settings(
        sampling=SamplingSettings(sample_rate=0.2, always_sample_paths=["/admin"]),
        logging=LoggingSettings(event_logger="billing.events"),
    )

    coordinator = build_coordinator(settings)

    assert coordinator.policy.sample_rate == 0.2
    assert coordinator.policy.always_sample_paths[0].pattern == "/admin"
    assert coordinator.identity.service_name == "billing"
    assert isinstance(coordinator.sink, LoggingSink)
    assert coordinator.sink.logger.name == "billing.events"


def test_setup_wide_events_stores_coordinator(sink):
    app = FastAPI()

    coordinator = setup_wide_events(app, Settings(), sink=sink)

    assert app.state.wide_events is coordinator
    assert coordinator.sink is sink


def test_get_app(monkeypatch):
    monkeypatch.setenv("WIDE_EVENTS_METRICS__ENABLED", "false")

    with patch("wide_events.app.setup_logging") as mock_logging:
        app = get_app()

    mock_logging.assert_called_once()
    assert isinstance(app.state.wide_events, WideEventCoordinator)

    response = TestClient(app).get("/health")
    assert response.status_code == 200
    assert response.json() == "ok"
    assert response.headers["X-Request-ID"]
