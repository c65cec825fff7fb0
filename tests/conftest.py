import datetime as dt

import pytest

from wide_events.config import get_settings
from wide_events.policy import SamplingPolicy, ServiceIdentity
from wide_events.sink import InMemorySink

NOW = dt.datetime(2026, 10, 19, 12, 0, 0, tzinfo=dt.timezone.utc)


@pytest.fixture
def clock():
    return lambda: NOW


@pytest.fixture
def identity():
    return ServiceIdentity(
        service_name="checkout",
        service_version="1.4.2",
        deployment_id="deploy-77",
        region="eu-west-1",
        environment="test",
    )


@pytest.fixture
def sink():
    return InMemorySink()


@pytest.fixture
def quiet_policy():
    """Policy under which nothing is retained unless a test opts in."""
    return SamplingPolicy(
        sample_rate=0.0,
        always_sample_errors=False,
        always_sample_slow_requests=False,
    )


@pytest.fixture(autouse=True)
def reset_settings():
    """Keep the cached settings from leaking between tests."""
    if hasattr(get_settings, "_instance"):
        delattr(get_settings, "_instance")
    yield
    if hasattr(get_settings, "_instance"):
        delattr(get_settings, "_instance")
