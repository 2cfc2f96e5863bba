"""Type definitions for database records."""

from offboard_api.types.database import ScheduledOffboardingRecordTD, SessionRecordTD

__all__ = [
    "ScheduledOffboardingRecordTD",
    "SessionRecordTD",
]
