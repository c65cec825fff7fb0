import re

import pytest
from pydantic import ValidationError

from wide_events.config import SamplingSettings, ServiceSettings
from wide_events.policy import SamplingPolicy, ServiceIdentity


def test_from_settings_copies_every_field():
    settings = SamplingSettings(
        enabled=False,
        sample_rate=0.5,
        always_sample_errors=False,
        always_sample_slow_requests=False,
        slow_threshold_ms=750,
        always_sample_user_ids=["user_123", 456],
        always_sample_paths=["^/admin", "/api/v1/checkout"],
    )

    policy = SamplingPolicy.from_settings(settings)

    assert policy.enabled is False
    assert policy.sample_rate == 0.5
    assert policy.always_sample_errors is False
    assert policy.always_sample_slow_requests is False
    assert policy.slow_threshold_ms == 750
    assert policy.always_sample_user_ids == frozenset({"user_123", "456"})
    assert [p.pattern for p in policy.always_sample_paths] == [
        "^/admin",
        "/api/v1/checkout",
    ]


def test_user_ids_are_stored_as_strings():
    policy = SamplingPolicy(always_sample_user_ids=[1, "2"])
    assert policy.always_sample_user_ids == frozenset({"1", "2"})


def test_single_path_and_compiled_patterns_are_accepted():
    compiled = re.compile(r"/debug/\d+")

    single = SamplingPolicy(always_sample_paths="/admin")
    mixed = SamplingPolicy(always_sample_paths=[compiled, "^/internal"])

    assert single.always_sample_paths[0].search("/admin/users")
    assert mixed.always_sample_paths[0].search("/debug/42")
    assert mixed.always_sample_paths[1].pattern == "^/internal"


@pytest.mark.parametrize("rate", [-0.1, 1.5])
def test_sample_rate_out_of_range_is_rejected(rate):
    with pytest.raises(ValidationError):
        SamplingPolicy(sample_rate=rate)


def test_invalid_path_pattern_is_rejected():
    with pytest.raises(ValidationError):
        SamplingPolicy(always_sample_paths=["(unclosed"])


def test_policy_is_immutable():
    policy = SamplingPolicy()
    with pytest.raises(ValidationError):
        policy.sample_rate = 1.0


def test_describe_is_loggable():
    policy = SamplingPolicy(
        always_sample_user_ids=["b", "a"], always_sample_paths=["/x"]
    )
    summary = policy.describe()
    assert summary["always_sample_user_ids"] == ["a", "b"]
    assert summary["always_sample_paths"] == ["/x"]


def test_service_identity_from_settings():
    settings = ServiceSettings(
        name="checkout", version="1.0.0", deployment_id="d-1", region=None
    )
    identity = ServiceIdentity.from_settings(settings)

    assert identity.service_name == "checkout"
    assert identity.service_version == "1.0.0"
    assert identity.deployment_id == "d-1"
    assert identity.region is None
