"""Request dependencies: stores and tenant context."""

from __future__ import annotations

from fastapi import Depends, Request
from pydantic import BaseModel
from structlog import get_logger

from offboard_api.core.config import settings
from offboard_api.core.errors import AuthenticationError
from offboard_api.services.offboardings import OffboardingStore
from offboard_api.services.sessions import PostgresSessionStore

logger = get_logger()

DEFAULT_TENANT_ID = "default-tenant"


class TenantContext(BaseModel):
    """Identity of an authenticated caller."""

    tenant_id: str
    session_id: str
    user_id: str | None = None
    user_email: str | None = None
    display_name: str | None = None


def get_session_store(request: Request) -> PostgresSessionStore:
    return request.app.state.session_store


def get_offboarding_store(request: Request) -> OffboardingStore:
    return request.app.state.offboarding_store


def session_id_from_cookie(value: str) -> str:
    """Accept both raw ids and express-session style 's:<sid>.<signature>' values."""
    if value.startswith("s:"):
        return value[2:].rsplit(".", 1)[0]
    return value


def tenant_context_from_session(session_id: str, sess: dict) -> TenantContext:
    """
    Derive the tenant context from a stored session payload.

    Tenant id comes from the session user's tenantId, tid or id, in that
    order, falling back to "default-tenant".
    """
    user = sess.get("user") or {}
    return TenantContext(
        tenant_id=user.get("tenantId") or user.get("tid") or user.get("id") or DEFAULT_TENANT_ID,
        session_id=session_id,
        user_id=user.get("id") or user.get("oid") or user.get("sub"),
        user_email=(
            user.get("email") or user.get("mail") or user.get("upn")
            or user.get("preferred_username")
        ),
        display_name=user.get("displayName") or user.get("name"),
    )


async def require_tenant_context(
    request: Request,
    sessions: PostgresSessionStore = Depends(get_session_store),
) -> TenantContext:
    """
    Resolve the caller's tenant context from the session cookie.

    Raises:
        AuthenticationError: No session cookie, unknown/expired session,
            or a session that is not authenticated
    """
    cookie = request.cookies.get(settings.session_cookie_name)
    if not cookie:
        raise AuthenticationError("Authentication required")

    session_id = session_id_from_cookie(cookie)
    sess = await sessions.get(session_id)
    if not sess or not sess.get("authenticated"):
        logger.info("unauthenticated_request", path=request.url.path)
        raise AuthenticationError("Authentication required")

    context = tenant_context_from_session(session_id, sess)
    logger.debug(
        "tenant_context_resolved",
        tenant_id=context.tenant_id,
        session_id=session_id[:8] + "...",
    )
    return context
