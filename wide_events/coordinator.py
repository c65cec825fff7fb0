"""Request lifecycle glue between the accumulator, the sampler and the sink.

The coordinator only observes. Failures raised by the wrapped work are
recorded and then re-raised unchanged, and a failing sink is logged but never
allowed to interfere with the response or the original error.
"""

import datetime as dt
import logging
import threading
import time
from collections.abc import Callable, Iterator, Mapping
from contextlib import contextmanager
from dataclasses import dataclass
from http import HTTPStatus

from .constants import (
    EMIT_ERROR,
    EMIT_SAMPLED,
    FIELD_REQUEST_ID,
    LOG_MSG_RECONFIGURED,
    LOG_MSG_SINK_FAILED,
    STATUS_CODE_EXCEPTION,
)
from .event import EventAccumulator, WideEvent, utcnow
from .metrics import EVENTS_EMITTED, SINK_ERRORS
from .policy import SamplingPolicy, ServiceIdentity
from .sampler import SamplingDecision, TailSampler
from .sink import Sink

logger = logging.getLogger(__name__)


def elapsed_ms(started: float) -> int:
    return round((time.perf_counter() - started) * 1000)


@dataclass
class RequestScope:
    """Handle yielded by ``WideEventCoordinator.track``."""

    event: EventAccumulator
    status_code: int = HTTPStatus.OK


class WideEventCoordinator:
    def __init__(
        self,
        policy: SamplingPolicy,
        identity: ServiceIdentity,
        sink: Sink,
        sampler: TailSampler | None = None,
        clock: Callable[[], dt.datetime] = utcnow,
    ):
        self._policy = policy
        self._reconfigure_lock = threading.Lock()
        self.identity = identity
        self.sink = sink
        self.sampler = sampler or TailSampler()
        self.clock = clock

    @property
    def policy(self) -> SamplingPolicy:
        return self._policy

    def reconfigure(self, policy: SamplingPolicy) -> None:
        """Swap in a new policy; requests already running keep the old one."""
        with self._reconfigure_lock:
            self._policy = policy
        logger.info(LOG_MSG_RECONFIGURED.format(policy.describe()))

    def begin(
        self,
        method: str | None,
        path: str | None,
        request_id: str | None = None,
        query_string: str | None = None,
        ip: str | None = None,
        user_agent: str | None = None,
        referer: str | None = None,
        user=None,
    ) -> EventAccumulator:
        accumulator = EventAccumulator.create(self.identity, clock=self.clock)
        accumulator.add_request_info(
            method,
            path,
            request_id=request_id,
            query_string=query_string,
            ip=ip,
            user_agent=user_agent,
            referer=referer,
        )
        return accumulator.add_trace_context().add_user_context(user)

    def complete(
        self, accumulator: EventAccumulator, status_code: int, duration_ms
    ) -> SamplingDecision:
        """Finalize a request that returned a response and apply tail sampling."""
        policy = self._policy
        accumulator.add_response_info(status_code, duration_ms)
        event = accumulator.snapshot()
        decision = self.sampler.decide(event, policy)
        if decision:
            self._emit(event, EMIT_SAMPLED)
        return decision

    def fail(
        self, accumulator: EventAccumulator, error: BaseException, duration_ms
    ) -> WideEvent:
        """Finalize a request that raised.

        The event is written without consulting the sampler, only the global
        ``enabled`` switch can suppress it.
        """
        policy = self._policy
        accumulator.add_error(error)
        accumulator.add_response_info(STATUS_CODE_EXCEPTION, duration_ms)
        event = accumulator.snapshot()
        if policy.enabled:
            self._emit(event, EMIT_ERROR)
        return event

    def _emit(self, event: Mapping, reason: str) -> None:
        try:
            self.sink.write(event)
        except Exception:
            SINK_ERRORS.inc()
            logger.exception(LOG_MSG_SINK_FAILED.format(event.get(FIELD_REQUEST_ID)))
            return
        EVENTS_EMITTED.labels(reason=reason).inc()

    @contextmanager
    def track(
        self, method: str | None, path: str | None, **request_info
    ) -> Iterator[RequestScope]:
        """Wrap one request.

        Set ``scope.status_code`` before leaving the block. Any exception,
        cancellation included, is recorded and re-raised as is.
        """
        started = time.perf_counter()
        scope = RequestScope(self.begin(method, path, **request_info))
        try:
            yield scope
        except BaseException as exc:
            self.fail(scope.event, exc, elapsed_ms(started))
            raise
        self.complete(scope.event, scope.status_code, elapsed_ms(started))
