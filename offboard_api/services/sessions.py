"""Postgres-backed session store.

Sessions live in a single table (user_sessions by default) keyed by the
session id, with the session payload as json and an expiry timestamp. The
layout is the one connect-pg-simple uses, so a table shared with a Node
frontend stays readable from both sides.
"""

from __future__ import annotations

import asyncio
import json
from datetime import UTC, datetime, timedelta
from typing import Any

import asyncpg
from structlog import get_logger

from offboard_api.core.config import settings
from offboard_api.core.database import Database, rows_affected
from offboard_api.types import SessionRecordTD

logger = get_logger()

DEFAULT_TABLE_NAME = "user_sessions"
DEFAULT_SCHEMA_NAME = "public"
DEFAULT_TTL_SECONDS = 60 * 60 * 24

# Keeps the background connectivity check alive until it finishes
_background_tasks: set[asyncio.Task[None]] = set()


def quote_ident(name: str) -> str:
    """Quote a Postgres identifier."""
    return '"' + name.replace('"', '""') + '"'


def qualified_table(table_name: str, schema_name: str | None) -> str:
    if schema_name:
        return f"{quote_ident(schema_name)}.{quote_ident(table_name)}"
    return quote_ident(table_name)


def session_table_ddl(table_name: str, schema_name: str | None) -> str:
    table = qualified_table(table_name, schema_name)
    return f"""
        CREATE TABLE IF NOT EXISTS {table} (
            "sid" varchar NOT NULL COLLATE "default",
            "sess" json NOT NULL,
            "expire" timestamp(6) NOT NULL,
            PRIMARY KEY ("sid")
        );

        CREATE INDEX IF NOT EXISTS "IDX_session_expire" ON {table} ("expire");
    """


def _utcnow() -> datetime:
    # expire is "timestamp without time zone", stored as naive UTC
    return datetime.now(UTC).replace(tzinfo=None)


def _decode(sess: str | dict[str, Any]) -> dict[str, Any]:
    """json columns arrive as text unless a codec is registered."""
    return json.loads(sess) if isinstance(sess, str) else sess


def _parse_cookie_expiry(sess: dict[str, Any]) -> datetime | None:
    cookie = sess.get("cookie") or {}
    expires = cookie.get("expires")
    if not expires:
        return None
    if isinstance(expires, datetime):
        parsed = expires
    else:
        try:
            parsed = datetime.fromisoformat(str(expires))
        except ValueError:
            return None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(UTC).replace(tzinfo=None)
    return parsed


class PostgresSessionStore:
    """
    Session persistence bound to a shared connection pool.

    The backing table is created on first use when missing. Failures on that
    lazy path are logged and not raised; the query that follows surfaces the
    underlying database error instead.
    """

    def __init__(
        self,
        db: Database,
        *,
        table_name: str = DEFAULT_TABLE_NAME,
        schema_name: str | None = DEFAULT_SCHEMA_NAME,
        prune_session_interval: int = 60 * 15,
        ttl_seconds: int = DEFAULT_TTL_SECONDS,
        create_table_if_missing: bool = True,
    ):
        self.db = db
        self.table_name = table_name
        self.schema_name = schema_name
        self.prune_session_interval = prune_session_interval
        self.ttl_seconds = ttl_seconds
        self.create_table_if_missing = create_table_if_missing
        self._table = qualified_table(table_name, schema_name)
        self._table_checked = False
        self._table_lock = asyncio.Lock()

    async def _ensure_table(self) -> None:
        if self._table_checked or not self.create_table_if_missing:
            return
        async with self._table_lock:
            if self._table_checked:
                return
            try:
                await self.db.execute(session_table_ddl(self.table_name, self.schema_name))
                logger.info("session_table_ready", table=self.table_name)
            except (asyncpg.PostgresError, OSError, RuntimeError) as e:
                logger.error(
                    "session_table_auto_create_failed", table=self.table_name, error=str(e)
                )
            self._table_checked = True

    def _expiry_for(self, sess: dict[str, Any]) -> datetime:
        return _parse_cookie_expiry(sess) or _utcnow() + timedelta(seconds=self.ttl_seconds)

    async def get(self, sid: str) -> dict[str, Any] | None:
        """Return the session payload, or None when missing or expired."""
        await self._ensure_table()
        sess = await self.db.fetchval(
            f"SELECT sess FROM {self._table} WHERE sid = $1 AND expire >= $2",
            sid,
            _utcnow(),
        )
        if sess is None:
            return None
        return _decode(sess)

    async def set(self, sid: str, sess: dict[str, Any]) -> None:
        """Insert or replace a session."""
        await self._ensure_table()
        await self.db.execute(
            f"""
            INSERT INTO {self._table} (sess, expire, sid)
            VALUES ($1, $2, $3)
            ON CONFLICT (sid) DO UPDATE SET sess = $1, expire = $2
            """,
            json.dumps(sess, default=str),
            self._expiry_for(sess),
            sid,
        )

    async def touch(self, sid: str, sess: dict[str, Any]) -> None:
        """Push back the expiry of an existing session."""
        await self._ensure_table()
        await self.db.execute(
            f"UPDATE {self._table} SET expire = $1 WHERE sid = $2",
            self._expiry_for(sess),
            sid,
        )

    async def destroy(self, sid: str) -> None:
        await self._ensure_table()
        await self.db.execute(f"DELETE FROM {self._table} WHERE sid = $1", sid)

    async def length(self) -> int:
        await self._ensure_table()
        return await self.db.fetchval(f"SELECT COUNT(sid) FROM {self._table}")

    async def all(self) -> dict[str, dict[str, Any]]:
        """All unexpired sessions keyed by sid."""
        await self._ensure_table()
        rows = await self.db.fetch(
            f"SELECT sid, sess, expire FROM {self._table} WHERE expire >= $1", _utcnow()
        )
        records: list[SessionRecordTD] = [
            {k: v for k, v in row.items()}  # type: ignore[misc]
            for row in rows
        ]
        return {record["sid"]: _decode(record["sess"]) for record in records}

    async def clear(self) -> None:
        await self._ensure_table()
        await self.db.execute(f"TRUNCATE {self._table}")

    async def prune_sessions(self) -> int:
        """
        Delete expired sessions.

        Returns:
            Number of rows removed
        """
        await self._ensure_table()
        result = await self.db.execute(
            f"DELETE FROM {self._table} WHERE expire < $1", _utcnow()
        )
        pruned = rows_affected(result)
        logger.debug("sessions_pruned", table=self.table_name, count=pruned)
        return pruned

    async def ping(self) -> None:
        """Raise if the pool cannot serve a query."""
        await self.db.ping()


async def verify_connectivity(db: Database) -> bool:
    """
    Check that a connection can be acquired, logging the outcome.

    Never raises.
    """
    try:
        await db.ping()
    except Exception as e:
        logger.error("session_store_connection_failed", error=str(e))
        return False
    logger.info("session_store_connected")
    return True


async def create_session_store(
    database_url: str | None = None,
    table_name: str = DEFAULT_TABLE_NAME,
    prune_session_interval: int = 60 * 15,
    schema_name: str = DEFAULT_SCHEMA_NAME,
) -> tuple[PostgresSessionStore, Database]:
    """
    Build the connection pool and a session store bound to it.

    The pool starts with no open connections, so creating it does not depend
    on the database being reachable. Connectivity is checked once in the
    background and only logged.

    Args:
        database_url: Connection string (defaults to DATABASE_URL)
        table_name: Session table name
        prune_session_interval: Seconds between expired-session sweeps
        schema_name: Schema holding the session table

    Returns:
        (store, db) tuple; the caller owns db and must disconnect it

    Raises:
        ConfigurationError: If no connection string is configured
    """
    dsn = database_url or settings.require_database_url()

    db = Database(
        dsn,
        min_size=0,
        max_size=settings.database_pool_max_size,
        timeout=settings.database_connect_timeout,
        idle_timeout=settings.database_idle_timeout,
        ssl=settings.database_ssl,
    )
    await db.connect()

    task = asyncio.create_task(verify_connectivity(db))
    _background_tasks.add(task)
    task.add_done_callback(_background_tasks.discard)

    store = PostgresSessionStore(
        db,
        table_name=table_name,
        schema_name=schema_name,
        prune_session_interval=prune_session_interval,
        ttl_seconds=settings.session_ttl_seconds,
        create_table_if_missing=True,
    )

    logger.info(
        "session_store_created",
        table=table_name,
        schema=schema_name,
        prune_session_interval=prune_session_interval,
    )
    return store, db


async def initialize_session_table(
    db: Database,
    table_name: str = DEFAULT_TABLE_NAME,
    schema_name: str | None = DEFAULT_SCHEMA_NAME,
) -> None:
    """
    Create the session table and expiry index if missing.

    Optional: the store creates the table on first use. Unlike that lazy path,
    failures here are raised to the caller.
    """
    try:
        await db.execute(session_table_ddl(table_name, schema_name))
    except Exception as e:
        logger.error("session_table_init_failed", table=table_name, error=str(e))
        raise
    logger.info("session_table_initialized", table=table_name)
