"""Rebuild course progress summaries from module progress.

Summaries are a derived cache. This script recomputes every (user, course)
summary from the per-module records, e.g. after a failed write left one
stale or after changing which content categories count.

Usage:
    python -m scripts.backfill_progress_summaries
    python -m scripts.backfill_progress_summaries --user-id <id>
"""

import argparse
import asyncio
import sys
from pathlib import Path

# Add repository root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

import structlog

from campus.config.settings import get_settings
from campus.core.database import AsyncCassandraConnection
from campus.courses.service import CourseService, ModuleService
from campus.progress.aggregator import CourseProgressAggregator
from campus.progress.exceptions import CourseNotFoundError
from campus.progress.store import ProgressStore


logger = structlog.get_logger(__name__)


async def backfill(session, keyspace: str, user_id: str | None = None) -> tuple[int, int]:
    """Recompute summaries for one user or for every user.

    Args:
        session: Cassandra session with aexecute support
        keyspace: Target keyspace
        user_id: Restrict to this user

    Returns:
        Tuple of (recomputed_count, skipped_count)
    """
    aggregator = CourseProgressAggregator(
        CourseService(session, keyspace),
        ModuleService(session, keyspace),
        ProgressStore(session, keyspace),
    )

    if user_id:
        rows = await session.aexecute(
            f"SELECT id, assigned_courses FROM {keyspace}.users WHERE id = %s",
            [user_id],
        )
    else:
        rows = await session.aexecute(
            f"SELECT id, assigned_courses FROM {keyspace}.users"
        )

    recomputed = 0
    skipped = 0
    for row in rows:
        for course_id in sorted(row.assigned_courses or ()):
            try:
                await aggregator.recompute(row.id, course_id)
                recomputed += 1
            except CourseNotFoundError:
                logger.info("backfill_course_missing", user_id=row.id, course_id=course_id)
                skipped += 1

    return recomputed, skipped


async def run_backfill(user_id: str | None) -> None:
    """Connect, backfill, disconnect."""
    settings = get_settings()
    keyspace = settings.cassandra_keyspace

    logger.info("backfill_starting", keyspace=keyspace, user_id=user_id)

    session = AsyncCassandraConnection.connect()
    session.set_keyspace(keyspace)

    try:
        recomputed, skipped = await backfill(session, keyspace, user_id)
        logger.info("backfill_completed", recomputed=recomputed, skipped=skipped)
    finally:
        AsyncCassandraConnection.disconnect()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("--user-id", default=None, help="Only this user")
    args = parser.parse_args()
    asyncio.run(run_backfill(args.user_id))
