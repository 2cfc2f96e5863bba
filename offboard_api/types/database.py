"""Database record type definitions.

NOTE: These track the DDL in services/offboardings.py and services/sessions.py
manually. Use NotRequired for nullable columns.
"""

from datetime import date, datetime, time
from typing import Any, NotRequired, TypedDict


class ScheduledOffboardingRecordTD(TypedDict):
    """Row from the scheduled_offboardings table.

    Used in: offboardings.py (RETURNING * and SELECT * results)
    """

    id: str
    tenant_id: str
    session_id: str
    created_by: str
    user_id: str
    user_display_name: NotRequired[str | None]
    user_email: NotRequired[str | None]
    scheduled_date: date
    scheduled_time: time
    scheduled_date_time: NotRequired[datetime | None]
    template: str
    status: str
    manager_email: NotRequired[str | None]
    notify_manager: bool
    notify_user: bool
    custom_message: NotRequired[str | None]
    created_at: datetime
    executed_at: NotRequired[datetime | None]
    updated_at: NotRequired[datetime | None]


class SessionRecordTD(TypedDict):
    """Row from the session table (user_sessions by default).

    Used in: sessions.py
    """

    sid: str
    sess: str | dict[str, Any]  # json column, text unless a codec is set
    expire: datetime
