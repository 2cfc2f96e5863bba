"""Tests for offboarding API endpoints (api/offboarding.py)."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import asyncpg
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from offboard_api.api.dependencies import get_offboarding_store, get_session_store
from offboard_api.core.errors import InvalidArgumentError
from offboard_api.main import app
from offboard_api.middleware.rate_limit import limiter
from offboard_api.models.offboarding import ScheduledOffboarding
from tests.fixtures.factories import (
    create_offboarding_row,
    create_schedule_payload,
    create_session_payload,
)

COOKIES = {"sessionId": "s1"}


@pytest.fixture
def session_store():
    store = MagicMock()
    store.get = AsyncMock(return_value=create_session_payload(tenant_id="t1"))
    return store


@pytest.fixture
def offboarding_store():
    store = MagicMock()
    store.list = AsyncMock(return_value=[])
    store.get = AsyncMock(return_value=None)
    store.create = AsyncMock()
    store.update = AsyncMock()
    store.remove = AsyncMock()
    store.execute = AsyncMock()
    return store


@pytest_asyncio.fixture
async def http_client(session_store, offboarding_store):
    """HTTP client against the app with stores swapped for doubles."""
    app.dependency_overrides[get_session_store] = lambda: session_store
    app.dependency_overrides[get_offboarding_store] = lambda: offboarding_store
    limiter.enabled = False
    try:
        async with AsyncClient(
            transport=ASGITransport(app=app), base_url="http://test", cookies=COOKIES
        ) as client:
            yield client
    finally:
        limiter.enabled = True
        app.dependency_overrides.clear()


def _record(**overrides) -> ScheduledOffboarding:
    return ScheduledOffboarding.from_record(create_offboarding_row(**overrides))


class TestAuthentication:
    """Tenant context comes from the stored session."""

    @pytest.mark.asyncio
    async def test_missing_cookie_is_401(self, http_client, offboarding_store):
        http_client.cookies.clear()

        response = await http_client.get("/api/offboarding/scheduled")

        assert response.status_code == 401
        assert response.json()["error"]["code"] == "AUTHENTICATION_REQUIRED"
        offboarding_store.list.assert_not_called()

    @pytest.mark.asyncio
    async def test_unauthenticated_session_is_401(self, http_client, session_store):
        session_store.get.return_value = create_session_payload(authenticated=False)

        response = await http_client.get("/api/offboarding/scheduled")

        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_unknown_session_is_401(self, http_client, session_store):
        session_store.get.return_value = None

        response = await http_client.get("/api/offboarding/scheduled")

        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_signed_cookie_value_is_unwrapped(self, http_client, session_store):
        http_client.cookies.set("sessionId", "s:abc123.signature")

        await http_client.get("/api/offboarding/scheduled")

        session_store.get.assert_awaited_once_with("abc123")


class TestListScheduled:
    @pytest.mark.asyncio
    async def test_lists_with_caller_identity(self, http_client, offboarding_store):
        offboarding_store.list.return_value = [_record()]

        response = await http_client.get("/api/offboarding/scheduled")

        assert response.status_code == 200
        body = response.json()
        assert len(body) == 1
        assert body[0]["scheduledDateTime"] == "2024-06-01T09:00:00Z"
        assert body[0]["user"]["displayName"] == "Jane"
        offboarding_store.list.assert_awaited_once_with("t1", "s1")


class TestCreateScheduled:
    @pytest.mark.asyncio
    async def test_creates_and_returns_201(self, http_client, offboarding_store):
        offboarding_store.create.return_value = _record()

        response = await http_client.post(
            "/api/offboarding/scheduled", json=create_schedule_payload()
        )

        assert response.status_code == 201
        assert response.json()["status"] == "scheduled"
        schedule, tenant_id, session_id = offboarding_store.create.call_args.args
        assert (tenant_id, session_id) == ("t1", "s1")
        assert schedule.resolved_user_id() == "u1"

    @pytest.mark.asyncio
    async def test_missing_schedule_date_is_422(self, http_client, offboarding_store):
        response = await http_client.post(
            "/api/offboarding/scheduled", json={"scheduledTime": "09:00"}
        )

        assert response.status_code == 422
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"
        offboarding_store.create.assert_not_called()

    @pytest.mark.asyncio
    async def test_storage_failure_is_500(self, http_client, offboarding_store):
        offboarding_store.create.side_effect = asyncpg.NotNullViolationError(
            'null value in column "user_id"'
        )

        response = await http_client.post(
            "/api/offboarding/scheduled", json=create_schedule_payload(user=None)
        )

        assert response.status_code == 500
        assert response.json()["error"]["code"] == "STORAGE_FAILURE"


class TestUpdateScheduled:
    @pytest.mark.asyncio
    async def test_passes_raw_updates(self, http_client, offboarding_store):
        offboarding_store.update.return_value = _record(template="executive")

        response = await http_client.put(
            "/api/offboarding/scheduled/42", json={"template": "executive"}
        )

        assert response.status_code == 200
        assert response.json()["template"] == "executive"
        offboarding_store.update.assert_awaited_once_with(
            "42", {"template": "executive"}, "t1", "s1"
        )

    @pytest.mark.asyncio
    async def test_not_found_is_404(self, http_client, offboarding_store):
        offboarding_store.update.return_value = None

        response = await http_client.put(
            "/api/offboarding/scheduled/42", json={"template": "x"}
        )

        assert response.status_code == 404
        assert response.json()["error"]["message"] == "Not found or access denied"

    @pytest.mark.asyncio
    async def test_no_valid_fields_is_400(self, http_client, offboarding_store):
        offboarding_store.update.side_effect = InvalidArgumentError("No valid fields to update")

        response = await http_client.put(
            "/api/offboarding/scheduled/42", json={"status": "completed"}
        )

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "INVALID_ARGUMENT"


class TestDeleteScheduled:
    @pytest.mark.asyncio
    async def test_deleted(self, http_client, offboarding_store):
        offboarding_store.remove.return_value = True

        response = await http_client.delete("/api/offboarding/scheduled/42")

        assert response.status_code == 200
        assert response.json() == {"success": True}
        offboarding_store.remove.assert_awaited_once_with("42", "t1", "s1")

    @pytest.mark.asyncio
    async def test_not_found_is_404(self, http_client, offboarding_store):
        offboarding_store.remove.return_value = False

        response = await http_client.delete("/api/offboarding/scheduled/42")

        assert response.status_code == 404


class TestExecuteScheduled:
    @pytest.mark.asyncio
    async def test_executed(self, http_client, offboarding_store):
        offboarding_store.execute.return_value = _record(status="completed")

        response = await http_client.post("/api/offboarding/scheduled/42/execute")

        assert response.status_code == 200
        assert response.json()["status"] == "completed"
        offboarding_store.execute.assert_awaited_once_with("42", "t1", "s1")

    @pytest.mark.asyncio
    async def test_not_found_is_404(self, http_client, offboarding_store):
        offboarding_store.execute.return_value = None

        response = await http_client.post("/api/offboarding/scheduled/42/execute")

        assert response.status_code == 404
