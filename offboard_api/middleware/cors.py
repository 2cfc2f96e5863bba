"""CORS middleware configuration."""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from offboard_api.core.config import settings


def setup_cors(app: FastAPI) -> None:
    """
    Configure CORS for the frontend.

    Origins come from FRONTEND_URL; credentials are allowed so the session
    cookie travels with cross-origin requests.
    """
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.frontend_urls,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "PATCH", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "X-Requested-With", "X-Request-ID"],
        max_age=86400,
    )
