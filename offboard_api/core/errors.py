"""Domain exceptions."""

from __future__ import annotations

from typing import Any


class DomainError(Exception):
    """Base exception for all domain errors."""

    code: str = "DOMAIN_ERROR"

    def __init__(self, message: str, context: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def __str__(self) -> str:
        return self.message


class NotFoundError(DomainError):
    """Resource not found (or not visible to the caller)."""

    code = "NOT_FOUND"


class InvalidArgumentError(DomainError):
    """Caller supplied missing or unusable arguments."""

    code = "INVALID_ARGUMENT"


class AuthenticationError(DomainError):
    """Request has no authenticated session."""

    code = "AUTHENTICATION_REQUIRED"


class ConfigurationError(DomainError):
    """System misconfigured."""

    code = "CONFIGURATION_ERROR"
