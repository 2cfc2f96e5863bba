"""Per-client request throttling for the offboarding API."""

from fastapi import FastAPI
from slowapi import (
    Limiter,
    _rate_limit_exceeded_handler,  # type: ignore[reportPrivateUsage]
)
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address


def get_limiter() -> Limiter:
    """
    Create rate limiter instance.

    Keyed on the client address; limits are set per route with
    limiter.limit(settings.api_rate_limit).
    """
    return Limiter(key_func=get_remote_address)


# Routes decorate with this instance; setup_rate_limiting registers it
limiter = get_limiter()


def setup_rate_limiting(app: FastAPI, app_limiter: Limiter | None = None) -> Limiter:
    """
    Register a limiter on app.state and the 429 handler on the app.

    Pass the limiter the routes were decorated with; without one a fresh
    limiter is created, which only suits apps with no decorated routes.
    """
    active = app_limiter or get_limiter()
    app.state.limiter = active
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)  # type: ignore[reportUnknownMemberType]  # FastAPI handler
    return active
