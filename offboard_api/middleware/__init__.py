"""HTTP middleware for cross-cutting concerns."""

from offboard_api.middleware.cors import setup_cors
from offboard_api.middleware.errors import setup_exception_handlers
from offboard_api.middleware.logging import LoggingMiddleware
from offboard_api.middleware.rate_limit import get_limiter, limiter, setup_rate_limiting
from offboard_api.middleware.request_id import RequestIDMiddleware

__all__ = [
    "RequestIDMiddleware",
    "LoggingMiddleware",
    "setup_exception_handlers",
    "setup_cors",
    "setup_rate_limiting",
    "get_limiter",
    "limiter",
]
