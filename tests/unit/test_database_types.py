"""Verify database record TypedDicts match the table DDL."""

import re

from offboard_api.services.offboardings import TABLE_DDL
from offboard_api.services.sessions import session_table_ddl
from offboard_api.types import ScheduledOffboardingRecordTD, SessionRecordTD
from tests.fixtures.factories import create_offboarding_row


def _columns(ddl: str) -> set[str]:
    """Column names from the CREATE TABLE statement of a DDL block."""
    body = ddl.split("(", 1)[1].split(");", 1)[0]
    names = set()
    for line in body.splitlines():
        match = re.match(r'\s*"?([a-z_]+)"?\s+[a-zA-Z]', line)
        if match:
            names.add(match.group(1))
    return names


def test_scheduled_offboarding_record_matches_table():
    assert set(ScheduledOffboardingRecordTD.__annotations__) == _columns(TABLE_DDL)


def test_session_record_matches_table():
    assert set(SessionRecordTD.__annotations__) == _columns(
        session_table_ddl("user_sessions", "public")
    )


def test_row_factory_produces_complete_record():
    row: ScheduledOffboardingRecordTD = create_offboarding_row()

    assert set(row) == set(ScheduledOffboardingRecordTD.__annotations__)
