#!/usr/bin/env python3
"""Create the session and scheduled offboarding tables.

Both stores create their tables on first use, so this is optional. Unlike the
lazy path, any failure here exits non-zero.

Usage:
    python scripts/init_db.py                       # Uses DATABASE_URL
    python scripts/init_db.py --database-url postgresql://...
    python scripts/init_db.py --sessions-only
"""

import argparse
import asyncio
import sys
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from offboard_api.core.config import settings  # noqa: E402
from offboard_api.core.database import Database  # noqa: E402
from offboard_api.core.logging import logger, setup_logging  # noqa: E402
from offboard_api.services.offboardings import OffboardingStore  # noqa: E402
from offboard_api.services.sessions import initialize_session_table  # noqa: E402


async def init_db(database_url: str, sessions_only: bool) -> None:
    db = Database(
        database_url,
        max_size=2,
        timeout=settings.database_connect_timeout,
        ssl=settings.database_ssl,
    )
    await db.connect()
    try:
        await initialize_session_table(
            db,
            table_name=settings.session_table_name,
            schema_name=settings.session_schema_name,
        )
        if not sessions_only:
            await OffboardingStore(db).initialize_table()
    finally:
        await db.disconnect()


def main() -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Initialize offboarding database tables")
    parser.add_argument(
        "--database-url",
        default=None,
        help="Postgres connection string (default: DATABASE_URL)",
    )
    parser.add_argument(
        "--sessions-only",
        action="store_true",
        help="Only create the session table",
    )
    args = parser.parse_args()

    setup_logging(fmt="console")
    database_url = args.database_url or settings.require_database_url()

    try:
        asyncio.run(init_db(database_url, args.sessions_only))
    except Exception:
        logger.exception("init_db_failed")
        return 1

    logger.info("init_db_completed")
    return 0


if __name__ == "__main__":
    sys.exit(main())
