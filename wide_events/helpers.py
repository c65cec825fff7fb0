"""Helpers for application code to enrich the current request's wide event.

Every helper is a no-op when called outside a request (CLI, background jobs,
tests), so instrumented code never depends on the middleware being present.

Usage::

    add_wide_event_context(cart={"id": cart.id, "item_count": len(cart.items)})
    add_wide_event_metadata("feature_flag", "new_checkout_flow")

    with measure_wide_event("payment_latency_ms"):
        process_payment()
"""

import time
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from contextvars import ContextVar, Token
from typing import Any

from fastapi import Request

from .constants import STATE_WIDE_EVENT
from .coordinator import elapsed_ms
from .event import EventAccumulator

_current_event: ContextVar[EventAccumulator | None] = ContextVar(
    "wide_event", default=None
)


def bind_event(event: EventAccumulator) -> Token:
    return _current_event.set(event)


def unbind_event(token: Token) -> None:
    _current_event.reset(token)


def current_event() -> EventAccumulator | None:
    return _current_event.get()


def get_wide_event(request: Request) -> EventAccumulator | None:
    """FastAPI dependency returning the accumulator of the request."""
    return getattr(request.state, STATE_WIDE_EVENT, None)


def add_wide_event_context(
    context: Mapping[str, Any] | None = None, **fields
) -> None:
    event = current_event()
    if event is not None:
        event.add_business_context(context, **fields)


def add_wide_event_metadata(key: str, value) -> None:
    event = current_event()
    if event is not None:
        event.add_metadata(key, value)


def add_wide_event_user(user) -> None:
    event = current_event()
    if event is not None:
        event.add_user_context(user)


@contextmanager
def measure_wide_event(key: str) -> Iterator[None]:
    """Record the wall-clock duration of the block, in ms, under ``key``.

    The duration is recorded even when the block raises; the exception then
    propagates unchanged.
    """
    started = time.perf_counter()
    try:
        yield
    finally:
        add_wide_event_metadata(key, elapsed_ms(started))
