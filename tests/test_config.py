from wide_events.config import Settings, get_settings


def test_get_settings_with_env_vars(monkeypatch):
    """
    Tests if the get_settings function correctly reads environment variables.
    """
    monkeypatch.setenv("WIDE_EVENTS_SAMPLING__SAMPLE_RATE", "0.25")
    monkeypatch.setenv("WIDE_EVENTS_SAMPLING__SLOW_THRESHOLD_MS", "500")
    monkeypatch.setenv("WIDE_EVENTS_REQUEST_ID_HEADER", "X-Trace-Id")

    settings = get_settings()

    assert settings.sampling.sample_rate == 0.25
    assert settings.sampling.slow_threshold_ms == 500
    assert settings.request_id_header == "X-Trace-Id"
    # Untouched nested fields keep their defaults
    assert settings.sampling.always_sample_errors is True


def test_get_settings_is_cached():
    assert get_settings() is get_settings()


def test_service_identity_from_deployment_env(monkeypatch):
    monkeypatch.setenv("SERVICE_NAME", "billing")
    monkeypatch.setenv("SERVICE_VERSION", "2.0.0")
    monkeypatch.setenv("REGION", "us-east-2")
    monkeypatch.delenv("DEPLOYMENT_ID", raising=False)

    settings = Settings()

    assert settings.service.name == "billing"
    assert settings.service.version == "2.0.0"
    assert settings.service.region == "us-east-2"
    assert settings.service.deployment_id is None


def test_defaults_match_documented_values(monkeypatch):
    for name in ("SERVICE_NAME", "SERVICE_VERSION", "DEPLOYMENT_ID", "REGION"):
        monkeypatch.delenv(name, raising=False)

    settings = Settings()

    assert settings.sampling.enabled is True
    assert settings.sampling.sample_rate == 0.05
    assert settings.sampling.always_sample_slow_requests is True
    assert settings.sampling.slow_threshold_ms == 2000
    assert settings.sampling.always_sample_user_ids == []
    assert settings.sampling.always_sample_paths == []
    assert settings.service.name == "python-app"
    assert settings.service.version == "unknown"
    assert settings.logging.event_logger == "wide_events.events"
    assert settings.metrics.endpoint == "/metrics"
