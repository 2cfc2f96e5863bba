"""Scheduler service for background jobs."""

from __future__ import annotations

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from structlog import get_logger

from offboard_api.services.sessions import PostgresSessionStore

logger = get_logger()

# Create scheduler instance
scheduler = AsyncIOScheduler()


async def prune_expired_sessions(store: PostgresSessionStore) -> None:
    """Scheduled job: sweep expired sessions, logging instead of raising."""
    try:
        pruned = await store.prune_sessions()
    except Exception:
        logger.exception("session_prune_failed", table=store.table_name)
        return
    if pruned:
        logger.info("expired_sessions_pruned", count=pruned)


def setup_scheduler(store: PostgresSessionStore) -> None:
    """
    Configure scheduler with background jobs.

    Jobs:
    - prune_expired_sessions: every store.prune_session_interval seconds
      (skipped when the interval is 0)

    Jobs use coalesce=True and max_instances=1 to prevent overlaps.
    """
    if store.prune_session_interval <= 0:
        logger.info("session_pruning_disabled")
        return

    scheduler.add_job(
        prune_expired_sessions,
        trigger="interval",
        seconds=store.prune_session_interval,
        args=[store],
        id="prune_sessions",
        replace_existing=True,
        coalesce=True,  # Skip if previous run still executing
        max_instances=1,
    )

    logger.info("scheduler_configured", prune_interval_seconds=store.prune_session_interval)


def start_scheduler() -> None:
    """Start the scheduler if it is not already running."""
    if not scheduler.running:
        scheduler.start()
        logger.info("scheduler_started")


def shutdown_scheduler() -> None:
    """Stop the scheduler without waiting for running jobs."""
    if scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("scheduler_stopped")
