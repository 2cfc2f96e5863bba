"""Pydantic models for scheduled offboardings.

External (API) form is camelCase; field names match the snake_case columns
of scheduled_offboardings so records validate straight from database rows.
"""

from __future__ import annotations

from datetime import UTC, date, datetime, time
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, computed_field, field_validator
from pydantic.alias_generators import to_camel

from offboard_api.types import ScheduledOffboardingRecordTD

OffboardingStatus = Literal["scheduled", "completed"]


class CamelModel(BaseModel):
    """Base model serialized with camelCase aliases, populated by either name."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def _assume_utc(v: datetime | None) -> datetime | None:
    if v is not None and v.tzinfo is None:
        return v.replace(tzinfo=UTC)
    return v


# ============================================
# Input Models
# ============================================


class OffboardingUser(CamelModel):
    """Subject user as sent by the frontend (Graph user shape)."""

    id: str | None = None
    display_name: str | None = None
    mail: str | None = None
    email: str | None = None


class ScheduledOffboardingCreate(CamelModel):
    """Payload for scheduling an offboarding."""

    user: OffboardingUser | None = None
    user_id: str | None = None
    user_display_name: str | None = None
    user_email: str | None = None
    scheduled_date: date
    scheduled_time: time
    scheduled_date_time: datetime | None = None
    template: str | None = None
    manager_email: str | None = None
    notify_manager: bool | None = None
    notify_user: bool | None = None
    custom_message: str | None = None

    @field_validator("scheduled_date_time")
    @classmethod
    def naive_datetime_is_utc(cls, v: datetime | None) -> datetime | None:
        return _assume_utc(v)

    def resolved_user_id(self) -> str | None:
        """Flat userId wins over user.id."""
        user = self.user or OffboardingUser()
        return self.user_id or user.id

    def resolved_user_display_name(self) -> str | None:
        """user.displayName wins over the flat field."""
        user = self.user or OffboardingUser()
        return user.display_name or self.user_display_name

    def resolved_user_email(self) -> str | None:
        """user.mail, then user.email, then the flat field."""
        user = self.user or OffboardingUser()
        return user.mail or user.email or self.user_email

    def resolved_scheduled_date_time(self) -> datetime:
        """Explicit value, else date + time taken as UTC."""
        if self.scheduled_date_time is not None:
            return self.scheduled_date_time
        return datetime.combine(self.scheduled_date, self.scheduled_time, tzinfo=UTC)


class ScheduledOffboardingUpdate(CamelModel):
    """Fields a scheduled offboarding may change after creation."""

    scheduled_date: date | None = None
    scheduled_time: time | None = None
    scheduled_date_time: datetime | None = None
    template: str | None = None
    manager_email: str | None = None
    notify_manager: bool | None = None
    notify_user: bool | None = None
    custom_message: str | None = None

    @field_validator("scheduled_date_time")
    @classmethod
    def naive_datetime_is_utc(cls, v: datetime | None) -> datetime | None:
        return _assume_utc(v)

    # Omitted means unchanged; an explicit null would hit a NOT NULL column
    @field_validator(
        "scheduled_date", "scheduled_time", "template", "notify_manager", "notify_user"
    )
    @classmethod
    def not_clearable(cls, v: Any) -> Any:
        if v is None:
            raise ValueError("cannot be null")
        return v


# ============================================
# Response Models
# ============================================


class OffboardingUserView(CamelModel):
    """Nested user view the frontend renders."""

    id: str | None
    display_name: str | None
    mail: str | None


class ScheduledOffboarding(CamelModel):
    """Normalized scheduled offboarding record."""

    id: str
    tenant_id: str
    session_id: str
    created_by: str
    user_id: str | None
    user_display_name: str | None = None
    user_email: str | None = None
    scheduled_date: date
    scheduled_time: time
    scheduled_date_time: datetime | None = None
    template: str
    status: OffboardingStatus
    manager_email: str | None = None
    notify_manager: bool
    notify_user: bool
    custom_message: str | None = None
    created_at: datetime
    executed_at: datetime | None = None
    updated_at: datetime | None = None

    @computed_field  # type: ignore[prop-decorator]
    @property
    def user(self) -> OffboardingUserView:
        return OffboardingUserView(
            id=self.user_id,
            display_name=self.user_display_name,
            mail=self.user_email,
        )

    @classmethod
    def from_record(cls, row: ScheduledOffboardingRecordTD) -> ScheduledOffboarding:
        """Build from a scheduled_offboardings row."""
        return cls.model_validate(row)


class DeleteResponse(BaseModel):
    """Response for a deleted schedule."""

    success: bool
