from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

ENV_PREFIX = "WIDE_EVENTS_"

EVENT_LOGGER_DEFAULT = "wide_events.events"


class LoggingSettings(BaseModel):
    verbose: bool = Field(True, description="If logging to stdout by uvicorn and app")
    event_logger: str = Field(
        EVENT_LOGGER_DEFAULT,
        description="Logger name the default sink writes retained events to.",
    )


class MetricsSettings(BaseModel):
    enabled: bool = Field(True, description="If enable metrics endpoint")
    endpoint: str = Field("/metrics", description="Path the metrics are exposed on.")


class SamplingSettings(BaseModel):
    enabled: bool = Field(True, description="Global switch, False retains nothing.")
    sample_rate: float = Field(
        0.05,
        ge=0.0,
        le=1.0,
        description="Probability of keeping a request no rule matched.",
    )
    always_sample_errors: bool = Field(True, description="Keep every failed request.")
    always_sample_slow_requests: bool = Field(
        True, description="Keep every request slower than slow_threshold_ms."
    )
    slow_threshold_ms: float = Field(2000, ge=0, description="Slow request cutoff.")
    always_sample_user_ids: list[str | int] = Field(
        default_factory=list, description="User ids that are always kept."
    )
    always_sample_paths: list[str] = Field(
        default_factory=list,
        description="Regex patterns searched in the request path, always kept.",
    )


class ServiceSettings(BaseSettings):
    """Service identity, read from the unprefixed deployment env vars."""

    model_config = SettingsConfigDict(case_sensitive=False, populate_by_name=True)

    name: str = Field("python-app", validation_alias="SERVICE_NAME")
    version: str = Field("unknown", validation_alias="SERVICE_VERSION")
    deployment_id: str | None = Field(None, validation_alias="DEPLOYMENT_ID")
    region: str | None = Field(None, validation_alias="REGION")
    environment: str | None = Field("development", validation_alias="ENVIRONMENT")


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        case_sensitive=False, env_prefix=ENV_PREFIX, env_nested_delimiter="__"
    )

    request_id_header: str = Field(
        "X-Request-ID", description="Header carrying an upstream request id."
    )

    sampling: SamplingSettings = Field(default_factory=SamplingSettings)
    service: ServiceSettings = Field(default_factory=ServiceSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    metrics: MetricsSettings = Field(default_factory=MetricsSettings)


def get_settings() -> Settings:
    if not hasattr(get_settings, "_instance"):
        get_settings._instance = Settings()
    return get_settings._instance
