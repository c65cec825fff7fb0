"""Per-request wide event accumulation.

An ``EventAccumulator`` is created when a request starts and enriched by the
middleware, by route handlers and by any code that runs while the request is
in flight, including error handlers. Every enrichment is total: missing or
partial input yields absent fields, never an exception.

User and error objects are read by capability probing. Each optional field
is looked up independently, and a value that does not offer it simply leaves
that field out of the record.
"""

import datetime as dt
import math
import threading
import traceback
import uuid
from collections.abc import Callable, Mapping
from types import MappingProxyType
from typing import Any

from opentelemetry import trace

from .constants import (
    ERROR_BACKTRACE,
    ERROR_BACKTRACE_LIMIT,
    ERROR_CODE,
    ERROR_MESSAGE,
    ERROR_RETRIABLE,
    ERROR_STATUS_THRESHOLD,
    ERROR_TYPE,
    FIELD_DEPLOYMENT_ID,
    FIELD_DURATION_MS,
    FIELD_ENVIRONMENT,
    FIELD_ERROR,
    FIELD_IP,
    FIELD_METHOD,
    FIELD_OUTCOME,
    FIELD_PATH,
    FIELD_QUERY_STRING,
    FIELD_REFERER,
    FIELD_REGION,
    FIELD_REQUEST_ID,
    FIELD_SERVICE,
    FIELD_SPAN_ID,
    FIELD_STATUS_CODE,
    FIELD_TIMESTAMP,
    FIELD_TRACE_ID,
    FIELD_USER,
    FIELD_USER_AGENT,
    FIELD_VERSION,
    OUTCOME_ERROR,
    OUTCOME_SUCCESS,
    USER_ACCOUNT_AGE_DAYS,
    USER_EMAIL,
    USER_ID,
    USER_LIFETIME_VALUE_CENTS,
    USER_SUBSCRIPTION,
)
from .policy import ServiceIdentity

SECONDS_PER_DAY = 86_400

WideEvent = Mapping[str, Any]


def utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


def generate_request_id() -> str:
    return str(uuid.uuid4())


def _is_blank(value) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _probe(obj, name: str):
    """Return the ``name`` capability of ``obj`` or None if it has none.

    A lookup that raises, such as a lazy-loaded attribute whose backing
    query fails, counts as the capability being absent.
    """
    try:
        if isinstance(obj, Mapping):
            return obj.get(name)
        return getattr(obj, name, None)
    except Exception:
        return None


def _as_utc(value: dt.datetime) -> dt.datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=dt.timezone.utc)
    return value


def _days_since(value, now: dt.datetime) -> int | None:
    now = _as_utc(now)
    if isinstance(value, dt.datetime):
        value = _as_utc(value)
    elif isinstance(value, dt.date):
        value = dt.datetime.combine(value, dt.time(), tzinfo=dt.timezone.utc)
    elif isinstance(value, (int, float)) and not isinstance(value, bool):
        try:
            value = dt.datetime.fromtimestamp(value, tz=dt.timezone.utc)
        except (OverflowError, ValueError, OSError):
            return None
    else:
        return None
    return math.floor((now - value).total_seconds() / SECONDS_PER_DAY)


def _error_message(error) -> str:
    if isinstance(error, BaseException):
        return str(error)
    message = _probe(error, "message")
    return str(message) if message is not None else str(error)


def _error_retriable(error) -> bool:
    retriable = _probe(error, "retriable")
    if retriable is None:
        retriable = _probe(error, "is_retriable")
    if callable(retriable):
        try:
            retriable = retriable()
        except Exception:
            return False
    return bool(retriable)


def _error_backtrace(error) -> list[str] | None:
    tb = getattr(error, "__traceback__", None)
    if tb is not None:
        # Most recent call first.
        frames = reversed(traceback.extract_tb(tb))
        return [
            f"{frame.filename}:{frame.lineno} in {frame.name}" for frame in frames
        ][:ERROR_BACKTRACE_LIMIT]

    backtrace = _probe(error, "backtrace")
    if backtrace is None or isinstance(backtrace, str):
        return None
    return [str(frame) for frame in list(backtrace)[:ERROR_BACKTRACE_LIMIT]]


def freeze(value):
    """Deep read-only copy of JSON-like data."""
    if isinstance(value, Mapping):
        return MappingProxyType({key: freeze(item) for key, item in value.items()})
    if isinstance(value, (list, tuple, set, frozenset)):
        return tuple(freeze(item) for item in value)
    return value


class EventAccumulator:
    """Builder for the wide event of one request.

    Enrichment methods return the accumulator so calls can be chained. Writes
    go through a per-instance lock, so sub-tasks of the same request may
    enrich it concurrently. Instances are never shared between requests.
    """

    def __init__(self, clock: Callable[[], dt.datetime] = utcnow):
        self._clock = clock
        self._lock = threading.RLock()
        self._event: dict[str, Any] = {}

    @classmethod
    def create(
        cls,
        identity: ServiceIdentity,
        clock: Callable[[], dt.datetime] = utcnow,
    ) -> "EventAccumulator":
        accumulator = cls(clock)
        accumulator._set_present(
            {
                FIELD_TIMESTAMP: clock().isoformat(timespec="milliseconds"),
                FIELD_SERVICE: identity.service_name,
                FIELD_VERSION: identity.service_version,
                FIELD_DEPLOYMENT_ID: identity.deployment_id,
                FIELD_REGION: identity.region,
                FIELD_ENVIRONMENT: identity.environment,
            }
        )
        return accumulator

    def _set_present(self, fields: Mapping[str, Any]) -> None:
        with self._lock:
            for key, value in fields.items():
                if not _is_blank(value):
                    self._event[key] = value

    def add_request_info(
        self,
        method: str | None,
        path: str | None,
        request_id: str | None = None,
        query_string: str | None = None,
        ip: str | None = None,
        user_agent: str | None = None,
        referer: str | None = None,
    ) -> "EventAccumulator":
        if _is_blank(request_id):
            request_id = generate_request_id()
        self._set_present(
            {
                FIELD_REQUEST_ID: request_id,
                FIELD_METHOD: method,
                FIELD_PATH: path,
                FIELD_QUERY_STRING: query_string,
                FIELD_IP: ip,
                FIELD_USER_AGENT: user_agent,
                FIELD_REFERER: referer,
            }
        )
        return self

    def add_trace_context(self) -> "EventAccumulator":
        """Correlate with the active OpenTelemetry span, if there is one."""
        span_context = trace.get_current_span().get_span_context()
        if not span_context.is_valid:
            return self
        with self._lock:
            self._event[FIELD_TRACE_ID] = trace.format_trace_id(span_context.trace_id)
            self._event[FIELD_SPAN_ID] = trace.format_span_id(span_context.span_id)
        return self

    def add_user_context(self, user) -> "EventAccumulator":
        if user is None:
            return self

        created_at = _probe(user, "created_at")
        candidates = {
            USER_ID: _probe(user, "id"),
            USER_EMAIL: _probe(user, "email"),
            USER_SUBSCRIPTION: _probe(user, "subscription"),
            USER_ACCOUNT_AGE_DAYS: _days_since(created_at, self._clock()),
            USER_LIFETIME_VALUE_CENTS: _probe(user, "lifetime_value_cents"),
        }
        user_fields = {k: v for k, v in candidates.items() if v is not None}
        with self._lock:
            self._event[FIELD_USER] = user_fields
        return self

    def add_business_context(
        self, context: Mapping[str, Any] | None = None, **fields
    ) -> "EventAccumulator":
        with self._lock:
            if context:
                self._event.update(context)
            self._event.update(fields)
        return self

    def add_error(self, error) -> "EventAccumulator":
        details = {
            ERROR_TYPE: type(error).__name__,
            ERROR_MESSAGE: _error_message(error),
        }
        code = _probe(error, "code")
        if code is not None:
            details[ERROR_CODE] = code
        details[ERROR_RETRIABLE] = _error_retriable(error)
        backtrace = _error_backtrace(error)
        if backtrace:
            details[ERROR_BACKTRACE] = backtrace

        with self._lock:
            self._event[FIELD_ERROR] = details
            self._event[FIELD_OUTCOME] = OUTCOME_ERROR
        return self

    def add_response_info(self, status_code, duration_ms) -> "EventAccumulator":
        """Record status and duration, deriving the outcome from the status.

        A status that is not an integer leaves ``status_code`` and the
        derived outcome out of the record.
        """
        try:
            status_code = int(status_code)
        except (TypeError, ValueError):
            status_code = None
        with self._lock:
            self._event[FIELD_DURATION_MS] = duration_ms
            if status_code is None:
                return self
            self._event[FIELD_STATUS_CODE] = status_code
            # An earlier add_error keeps its "error" outcome.
            if FIELD_OUTCOME not in self._event:
                self._event[FIELD_OUTCOME] = (
                    OUTCOME_ERROR
                    if status_code >= ERROR_STATUS_THRESHOLD
                    else OUTCOME_SUCCESS
                )
        return self

    def add_metadata(self, key: str, value) -> "EventAccumulator":
        with self._lock:
            self._event[key] = value
        return self

    def get(self, key: str, default=None):
        with self._lock:
            return self._event.get(key, default)

    def __contains__(self, key) -> bool:
        with self._lock:
            return key in self._event

    def snapshot(self) -> WideEvent:
        """Read-only deep copy of the record, safe to hand to other consumers."""
        with self._lock:
            return freeze(self._event)
