"""Scheduled offboarding record store.

Every read and write is scoped by the ownership filter: the row's tenant_id
must match the caller's tenant, and either its session_id or its created_by
must match the caller's session. Rows outside that filter behave exactly like
rows that do not exist.
"""

from __future__ import annotations

import asyncio
import random
import time
from collections.abc import Mapping
from datetime import UTC, datetime
from types import MappingProxyType
from typing import Any, Final

import pydantic
from structlog import get_logger

from offboard_api.core.database import Database, rows_affected
from offboard_api.core.errors import InvalidArgumentError
from offboard_api.models.offboarding import (
    ScheduledOffboarding,
    ScheduledOffboardingCreate,
    ScheduledOffboardingUpdate,
)
from offboard_api.types import ScheduledOffboardingRecordTD

logger = get_logger()

TABLE_DDL = """
    CREATE TABLE IF NOT EXISTS scheduled_offboardings (
        id VARCHAR(255) PRIMARY KEY,
        tenant_id VARCHAR(255) NOT NULL,
        session_id VARCHAR(255) NOT NULL,
        created_by VARCHAR(255) NOT NULL,
        user_id VARCHAR(255) NOT NULL,
        user_display_name VARCHAR(500),
        user_email VARCHAR(500),
        scheduled_date DATE NOT NULL,
        scheduled_time TIME NOT NULL,
        scheduled_date_time TIMESTAMPTZ,
        template VARCHAR(100) NOT NULL,
        status VARCHAR(50) NOT NULL DEFAULT 'scheduled',
        manager_email VARCHAR(500),
        notify_manager BOOLEAN NOT NULL DEFAULT true,
        notify_user BOOLEAN NOT NULL DEFAULT true,
        custom_message TEXT,
        created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
        executed_at TIMESTAMPTZ,
        updated_at TIMESTAMPTZ
    );

    CREATE INDEX IF NOT EXISTS idx_scheduled_offboardings_tenant_id
        ON scheduled_offboardings (tenant_id);
    CREATE INDEX IF NOT EXISTS idx_scheduled_offboardings_session_id
        ON scheduled_offboardings (session_id);
    CREATE INDEX IF NOT EXISTS idx_scheduled_offboardings_status
        ON scheduled_offboardings (status);
    CREATE INDEX IF NOT EXISTS idx_scheduled_offboardings_scheduled_date
        ON scheduled_offboardings (scheduled_date_time);
    CREATE INDEX IF NOT EXISTS idx_scheduled_offboardings_user_id
        ON scheduled_offboardings (user_id);
    CREATE INDEX IF NOT EXISTS idx_scheduled_offboardings_tenant_status
        ON scheduled_offboardings (tenant_id, status);
"""

# External (camelCase) field -> column. The only fields update() may touch.
UPDATABLE_COLUMNS: Final[Mapping[str, str]] = MappingProxyType(
    {
        "scheduledDate": "scheduled_date",
        "scheduledTime": "scheduled_time",
        "scheduledDateTime": "scheduled_date_time",
        "template": "template",
        "managerEmail": "manager_email",
        "notifyManager": "notify_manager",
        "notifyUser": "notify_user",
        "customMessage": "custom_message",
    }
)

# $1 = tenant_id, $2 = session_id
OWNERSHIP_FILTER = "tenant_id = $1 AND (session_id = $2 OR created_by = $2)"

DEFAULT_TEMPLATE = "standard"


def generate_schedule_id() -> str:
    """Epoch milliseconds followed by a random 0-999 suffix."""
    return f"{int(time.time() * 1000)}{random.randint(0, 999)}"


def _as_record(row: Any) -> ScheduledOffboardingRecordTD:
    """Copy an asyncpg Record into a plain row dict."""
    return {k: v for k, v in row.items()}  # type: ignore[return-value]


def _require_identity(tenant_id: str | None, session_id: str | None) -> None:
    if not tenant_id:
        raise InvalidArgumentError("tenant_id is required")
    if not session_id:
        raise InvalidArgumentError("session_id is required")


class OffboardingStore:
    """CRUD over scheduled_offboardings, scoped by tenant and session."""

    def __init__(self, db: Database):
        self.db = db
        self._table_ready = False
        self._table_lock = asyncio.Lock()

    async def initialize_table(self) -> None:
        """
        Create the scheduled_offboardings table and its indexes if missing.

        Idempotent. Failures are logged and re-raised.
        """
        try:
            await self.db.execute(TABLE_DDL)
        except Exception as e:
            logger.error("offboardings_table_init_failed", error=str(e))
            raise
        logger.info("offboardings_table_initialized")

    async def _ensure_table(self) -> None:
        if self._table_ready:
            return
        async with self._table_lock:
            if not self._table_ready:
                await self.initialize_table()
                self._table_ready = True

    async def list(self, tenant_id: str, session_id: str) -> list[ScheduledOffboarding]:
        """
        List schedules visible to the caller, soonest first.

        Args:
            tenant_id: Caller's tenant
            session_id: Caller's session

        Returns:
            Records ordered by scheduled_date_time ascending (may be empty)
        """
        _require_identity(tenant_id, session_id)
        await self._ensure_table()

        rows = await self.db.fetch(
            f"""
            SELECT * FROM scheduled_offboardings
            WHERE {OWNERSHIP_FILTER}
            ORDER BY scheduled_date_time ASC
            """,
            tenant_id,
            session_id,
        )

        logger.debug("offboardings_listed", tenant_id=tenant_id, count=len(rows))
        records: list[ScheduledOffboardingRecordTD] = [_as_record(row) for row in rows]
        return [ScheduledOffboarding.from_record(record) for record in records]

    async def get(
        self, schedule_id: str, tenant_id: str, session_id: str
    ) -> ScheduledOffboarding | None:
        """Return one schedule, or None if it does not exist for this caller."""
        _require_identity(tenant_id, session_id)
        await self._ensure_table()

        row = await self.db.fetchrow(
            f"SELECT * FROM scheduled_offboardings WHERE {OWNERSHIP_FILTER} AND id = $3",
            tenant_id,
            session_id,
            schedule_id,
        )
        return ScheduledOffboarding.from_record(_as_record(row)) if row else None

    async def create(
        self,
        schedule: ScheduledOffboardingCreate | Mapping[str, Any],
        tenant_id: str,
        session_id: str,
    ) -> ScheduledOffboarding:
        """
        Persist a new schedule owned by the calling session.

        Args:
            schedule: Create payload (model or camelCase mapping)
            tenant_id: Caller's tenant
            session_id: Caller's session; also stored as created_by

        Returns:
            The stored record with server-assigned fields

        Raises:
            InvalidArgumentError: Missing identity or malformed payload
        """
        _require_identity(tenant_id, session_id)
        if not isinstance(schedule, ScheduledOffboardingCreate):
            try:
                schedule = ScheduledOffboardingCreate.model_validate(schedule)
            except pydantic.ValidationError as e:
                raise InvalidArgumentError(
                    "Invalid schedule payload",
                    context={"errors": e.errors(include_url=False, include_context=False)},
                ) from e
        await self._ensure_table()

        now = datetime.now(UTC)
        row = await self.db.fetchrow(
            """
            INSERT INTO scheduled_offboardings (
                id, tenant_id, session_id, created_by, user_id, user_display_name,
                user_email, scheduled_date, scheduled_time, scheduled_date_time,
                template, status, manager_email, notify_manager, notify_user,
                custom_message, created_at, updated_at
            ) VALUES (
                $1, $2, $3, $4, $5, $6, $7, $8, $9, $10,
                $11, $12, $13, $14, $15, $16, $17, $18
            )
            RETURNING *
            """,
            generate_schedule_id(),
            tenant_id,
            session_id,
            session_id,
            schedule.resolved_user_id(),
            schedule.resolved_user_display_name(),
            schedule.resolved_user_email(),
            schedule.scheduled_date,
            schedule.scheduled_time,
            schedule.resolved_scheduled_date_time(),
            schedule.template or DEFAULT_TEMPLATE,
            "scheduled",
            schedule.manager_email,
            schedule.notify_manager is not False,
            schedule.notify_user is not False,
            schedule.custom_message,
            now,
            now,
        )

        record = ScheduledOffboarding.from_record(_as_record(row))
        logger.info(
            "offboarding_created",
            schedule_id=record.id,
            tenant_id=tenant_id,
            user_id=record.user_id,
            scheduled_date_time=(
                record.scheduled_date_time.isoformat() if record.scheduled_date_time else None
            ),
        )
        return record

    async def update(
        self,
        schedule_id: str,
        updates: Mapping[str, Any],
        tenant_id: str,
        session_id: str,
    ) -> ScheduledOffboarding | None:
        """
        Apply allow-listed changes to a schedule.

        Only the fields in UPDATABLE_COLUMNS are written; status, user and
        identity fields are never changed here. updated_at is always bumped.

        Returns:
            The updated record, or None if it does not exist for this caller

        Raises:
            InvalidArgumentError: Missing identity, or no updatable field supplied
        """
        _require_identity(tenant_id, session_id)
        await self._ensure_table()

        existing = await self.get(schedule_id, tenant_id, session_id)
        if existing is None:
            logger.warning("offboarding_not_found", schedule_id=schedule_id, action="update")
            return None

        try:
            changes = ScheduledOffboardingUpdate.model_validate(dict(updates)).model_dump(
                exclude_unset=True
            )
        except pydantic.ValidationError as e:
            raise InvalidArgumentError(
                "Invalid update payload",
                context={"errors": e.errors(include_url=False, include_context=False)},
            ) from e

        known = set(UPDATABLE_COLUMNS) | set(UPDATABLE_COLUMNS.values())
        ignored = sorted(key for key in updates if key not in known)
        if ignored:
            logger.warning(
                "offboarding_update_fields_ignored", schedule_id=schedule_id, fields=ignored
            )

        # $1-$3 are taken by the ownership filter and id
        assignments: list[str] = []
        values: list[Any] = [tenant_id, session_id, schedule_id]
        for column in UPDATABLE_COLUMNS.values():
            if column in changes:
                values.append(changes[column])
                assignments.append(f"{column} = ${len(values)}")

        if not assignments:
            raise InvalidArgumentError(
                "No valid fields to update", context={"schedule_id": schedule_id}
            )

        values.append(datetime.now(UTC))
        assignments.append(f"updated_at = ${len(values)}")

        row = await self.db.fetchrow(
            f"""
            UPDATE scheduled_offboardings
            SET {", ".join(assignments)}
            WHERE {OWNERSHIP_FILTER} AND id = $3
            RETURNING *
            """,
            *values,
        )

        if row is None:
            logger.warning("offboarding_vanished_before_write", schedule_id=schedule_id)
            return None

        logger.info(
            "offboarding_updated",
            schedule_id=schedule_id,
            fields=[c for c in UPDATABLE_COLUMNS.values() if c in changes],
        )
        return ScheduledOffboarding.from_record(_as_record(row))

    async def remove(self, schedule_id: str, tenant_id: str, session_id: str) -> bool:
        """
        Delete a schedule regardless of status.

        Returns:
            True if a row was deleted, False if none was visible to the caller
        """
        _require_identity(tenant_id, session_id)
        await self._ensure_table()

        existing = await self.get(schedule_id, tenant_id, session_id)
        if existing is None:
            logger.warning("offboarding_not_found", schedule_id=schedule_id, action="remove")
            return False

        result = await self.db.execute(
            f"DELETE FROM scheduled_offboardings WHERE {OWNERSHIP_FILTER} AND id = $3",
            tenant_id,
            session_id,
            schedule_id,
        )

        deleted = rows_affected(result) > 0
        if deleted:
            logger.info("offboarding_removed", schedule_id=schedule_id, tenant_id=tenant_id)
        return deleted

    async def execute(
        self, schedule_id: str, tenant_id: str, session_id: str
    ) -> ScheduledOffboarding | None:
        """
        Mark a schedule completed and stamp executed_at.

        Already-completed schedules are re-executed (executed_at moves forward).
        """
        _require_identity(tenant_id, session_id)
        await self._ensure_table()

        existing = await self.get(schedule_id, tenant_id, session_id)
        if existing is None:
            logger.warning("offboarding_not_found", schedule_id=schedule_id, action="execute")
            return None

        executed_at = datetime.now(UTC)
        row = await self.db.fetchrow(
            f"""
            UPDATE scheduled_offboardings
            SET status = 'completed', executed_at = $4, updated_at = $4
            WHERE {OWNERSHIP_FILTER} AND id = $3
            RETURNING *
            """,
            tenant_id,
            session_id,
            schedule_id,
            executed_at,
        )

        if row is None:
            logger.warning("offboarding_vanished_before_write", schedule_id=schedule_id)
            return None

        logger.info(
            "offboarding_executed",
            schedule_id=schedule_id,
            tenant_id=tenant_id,
            previous_status=existing.status,
        )
        return ScheduledOffboarding.from_record(_as_record(row))
