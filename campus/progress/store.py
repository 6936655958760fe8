"""Cassandra persistence for module progress and course summaries.

Completion sets are changed with collection operators (``+`` / ``-``) so
concurrent writers merge instead of overwriting each other. A module write
and the summary derived from it go out in one LOGGED batch together with the
user record's ``updated_at`` stamp.

The flag and summary in such a batch come from the writer's own read, so
a racing writer can leave them behind the merged set; ``settle_module``
rewrites them from a fresh read.
"""

import asyncio
from collections.abc import Iterable
from datetime import datetime
from typing import TYPE_CHECKING

import structlog
from cassandra.query import BatchStatement, BatchType

from .models import CourseProgressSummary, ModuleProgress


if TYPE_CHECKING:
    from cassandra.cluster import Session

logger = structlog.get_logger(__name__)


class ProgressStore:
    """Reads and writes ``module_progress`` and ``course_progress_summaries``."""

    def __init__(self, session: "Session", keyspace: str):
        """Initialize with Cassandra session."""
        self.session = session
        self.keyspace = keyspace
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        """Prepare CQL statements for efficient execution."""
        # Module progress
        self._get_module_progress = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.module_progress
            WHERE user_id = ? AND module_id = ?
        """)

        self._add_positions = self.session.prepare(f"""
            UPDATE {self.keyspace}.module_progress
            SET completed_positions = completed_positions + ?,
                course_id = ?, is_complete = ?, updated_at = ?
            WHERE user_id = ? AND module_id = ?
        """)

        self._remove_positions = self.session.prepare(f"""
            UPDATE {self.keyspace}.module_progress
            SET completed_positions = completed_positions - ?,
                course_id = ?, is_complete = ?, updated_at = ?
            WHERE user_id = ? AND module_id = ?
        """)

        self._set_module_complete = self.session.prepare(f"""
            UPDATE {self.keyspace}.module_progress
            SET is_complete = ?
            WHERE user_id = ? AND module_id = ?
        """)

        # Course summaries
        self._get_summary = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.course_progress_summaries
            WHERE user_id = ? AND course_id = ?
        """)

        self._get_user_summaries = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.course_progress_summaries
            WHERE user_id = ?
        """)

        self._upsert_summary = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.course_progress_summaries
            (user_id, course_id, percentage, completed_count, total_count,
             last_activity_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?)
        """)

        self._touch_user = self.session.prepare(f"""
            UPDATE {self.keyspace}.users SET updated_at = ? WHERE id = ?
        """)

    # ==========================================================================
    # Reads
    # ==========================================================================

    async def get_module_progress(
        self, user_id: str, module_id: str
    ) -> ModuleProgress | None:
        """Get the progress record of one module, None if never touched."""
        result = await self.session.aexecute(
            self._get_module_progress, [user_id, module_id]
        )
        row = result.one()
        return ModuleProgress.from_row(row) if row else None

    async def get_modules_progress(
        self, user_id: str, module_ids: Iterable[str]
    ) -> dict[str, ModuleProgress]:
        """Get progress records for several modules concurrently.

        Returns:
            Mapping module_id -> record; modules without a record are absent.
        """
        ids = list(module_ids)
        records = await asyncio.gather(
            *(self.get_module_progress(user_id, mid) for mid in ids)
        )
        return {r.module_id: r for r in records if r is not None}

    async def get_summary(
        self, user_id: str, course_id: str
    ) -> CourseProgressSummary | None:
        """Get the cached course summary, None if never computed."""
        result = await self.session.aexecute(self._get_summary, [user_id, course_id])
        row = result.one()
        return CourseProgressSummary.from_row(row) if row else None

    async def get_user_summaries(self, user_id: str) -> dict[str, CourseProgressSummary]:
        """Get every cached course summary of a user, keyed by course ID."""
        rows = await self.session.aexecute(self._get_user_summaries, [user_id])
        return {row.course_id: CourseProgressSummary.from_row(row) for row in rows}

    # ==========================================================================
    # Writes
    # ==========================================================================

    async def add_completed_position(
        self,
        record: ModuleProgress,
        position: str,
        aliases: set[str] | None = None,
        summary: CourseProgressSummary | None = None,
    ) -> None:
        """Add a canonical position to the completion set.

        Args:
            record: Record carrying the new ``is_complete``/``updated_at`` values
            position: Canonical position to add
            aliases: Stored non-canonical spellings of the same item to drop
            summary: Course summary to persist in the same batch
        """
        batch = BatchStatement(batch_type=BatchType.LOGGED)
        if aliases:
            batch.add(
                self._remove_positions,
                self._module_params(record, set(aliases)),
            )
        batch.add(self._add_positions, self._module_params(record, {position}))
        self._add_summary(batch, record.user_id, summary, record.updated_at)

        await self.session.aexecute(batch)

    async def remove_completed_positions(
        self,
        record: ModuleProgress,
        entries: set[str],
        summary: CourseProgressSummary | None = None,
    ) -> None:
        """Remove stored entries from the completion set.

        Args:
            record: Record carrying the new ``is_complete``/``updated_at`` values
            entries: Stored entries to remove (canonical and alias spellings)
            summary: Course summary to persist in the same batch
        """
        batch = BatchStatement(batch_type=BatchType.LOGGED)
        batch.add(self._remove_positions, self._module_params(record, set(entries)))
        self._add_summary(batch, record.user_id, summary, record.updated_at)

        await self.session.aexecute(batch)

    async def settle_module(
        self,
        record: ModuleProgress,
        summary: CourseProgressSummary | None,
        now: datetime,
    ) -> None:
        """Overwrite the derived state of a module with values from a fresh read.

        Leaves the completion set alone; only the ``is_complete`` flag and,
        when given, the course summary are written.
        """
        batch = BatchStatement(batch_type=BatchType.LOGGED)
        batch.add(
            self._set_module_complete,
            [record.is_complete, record.user_id, record.module_id],
        )
        self._add_summary(batch, record.user_id, summary, now)
        await self.session.aexecute(batch)

    async def save_summary(
        self, user_id: str, summary: CourseProgressSummary, now: datetime
    ) -> None:
        """Persist a course summary and stamp the user record."""
        batch = BatchStatement(batch_type=BatchType.LOGGED)
        self._add_summary(batch, user_id, summary, now)
        await self.session.aexecute(batch)

    # ==========================================================================
    # Helpers
    # ==========================================================================

    def _module_params(self, record: ModuleProgress, positions: set[str]) -> list:
        return [
            positions,
            record.course_id,
            record.is_complete,
            record.updated_at,
            record.user_id,
            record.module_id,
        ]

    def _add_summary(
        self,
        batch: BatchStatement,
        user_id: str,
        summary: CourseProgressSummary | None,
        now: datetime | None,
    ) -> None:
        if summary is None:
            return
        batch.add(
            self._upsert_summary,
            [
                user_id,
                summary.course_id,
                summary.percentage,
                summary.completed_count,
                summary.total_count,
                summary.last_activity_at,
                now,
            ],
        )
        batch.add(self._touch_user, [now, user_id])
