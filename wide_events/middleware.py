from collections.abc import Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.types import ASGIApp

from .constants import FIELD_REQUEST_ID, STATE_WIDE_EVENT
from .coordinator import WideEventCoordinator
from .helpers import bind_event, unbind_event


def default_user_getter(request: Request):
    """Authenticated user set by Starlette's AuthenticationMiddleware, if any."""
    user = request.scope.get("user")
    if user is None or not getattr(user, "is_authenticated", True):
        return None
    return user


class WideEventsMiddleware(BaseHTTPMiddleware):
    """Builds one wide event per request and tail-samples it on the way out.

    The accumulator is available to handlers as ``request.state.wide_event``
    and through ``wide_events.helpers.current_event()``.
    """

    def __init__(
        self,
        app: ASGIApp,
        coordinator: WideEventCoordinator,
        request_id_header: str = "X-Request-ID",
        user_getter: Callable[[Request], object] | None = None,
    ):
        super().__init__(app)
        self.coordinator = coordinator
        self.request_id_header = request_id_header
        self.user_getter = user_getter or default_user_getter

    async def dispatch(self, request: Request, call_next):
        with self.coordinator.track(
            request.method,
            request.url.path,
            request_id=request.headers.get(self.request_id_header),
            query_string=request.url.query,
            ip=request.client.host if request.client else None,
            user_agent=request.headers.get("user-agent"),
            referer=request.headers.get("referer"),
            user=self.user_getter(request),
        ) as scope:
            setattr(request.state, STATE_WIDE_EVENT, scope.event)
            token = bind_event(scope.event)
            try:
                response = await call_next(request)
            finally:
                unbind_event(token)
            scope.status_code = response.status_code

        response.headers.setdefault(
            self.request_id_header, scope.event.get(FIELD_REQUEST_ID)
        )
        return response
