"""Immutable sampling policy and service identity.

Both values are built once from settings and shared by reference between
concurrent requests. Nothing here is ever mutated after construction; a
policy change means building a new ``SamplingPolicy`` and swapping it in
(see ``WideEventCoordinator.reconfigure``).
"""

import re

from pydantic import BaseModel, ConfigDict, Field, field_validator

from wide_events.config import SamplingSettings, ServiceSettings


class SamplingPolicy(BaseModel):
    model_config = ConfigDict(frozen=True)

    enabled: bool = True
    sample_rate: float = Field(0.05, ge=0.0, le=1.0)
    always_sample_errors: bool = True
    always_sample_slow_requests: bool = True
    slow_threshold_ms: float = Field(2000, ge=0)
    always_sample_user_ids: frozenset[str] = Field(default_factory=frozenset)
    always_sample_paths: tuple[re.Pattern, ...] = ()

    @field_validator("always_sample_user_ids", mode="before")
    @classmethod
    def _stringify_user_ids(cls, value):
        # Ids arrive as ints from code and as strings from env, compare as str.
        if value is None:
            return frozenset()
        if isinstance(value, (str, int)):
            value = [value]
        return frozenset(str(user_id) for user_id in value)

    @field_validator("always_sample_paths", mode="before")
    @classmethod
    def _listify_paths(cls, value):
        if value is None:
            return ()
        if isinstance(value, (str, re.Pattern)):
            return (value,)
        return tuple(value)

    @classmethod
    def from_settings(cls, settings: SamplingSettings) -> "SamplingPolicy":
        return cls(
            enabled=settings.enabled,
            sample_rate=settings.sample_rate,
            always_sample_errors=settings.always_sample_errors,
            always_sample_slow_requests=settings.always_sample_slow_requests,
            slow_threshold_ms=settings.slow_threshold_ms,
            always_sample_user_ids=settings.always_sample_user_ids,
            always_sample_paths=settings.always_sample_paths,
        )

    def describe(self) -> dict:
        """Loggable summary of the policy."""
        return {
            "enabled": self.enabled,
            "sample_rate": self.sample_rate,
            "always_sample_errors": self.always_sample_errors,
            "always_sample_slow_requests": self.always_sample_slow_requests,
            "slow_threshold_ms": self.slow_threshold_ms,
            "always_sample_user_ids": sorted(self.always_sample_user_ids),
            "always_sample_paths": [p.pattern for p in self.always_sample_paths],
        }


class ServiceIdentity(BaseModel):
    """Service fields stamped on every event at creation."""

    model_config = ConfigDict(frozen=True)

    service_name: str
    service_version: str = "unknown"
    deployment_id: str | None = None
    region: str | None = None
    environment: str | None = None

    @classmethod
    def from_settings(cls, settings: ServiceSettings) -> "ServiceIdentity":
        return cls(
            service_name=settings.name,
            service_version=settings.version,
            deployment_id=settings.deployment_id,
            region=settings.region,
            environment=settings.environment,
        )
