"""Read-only access to the course catalog.

The catalog is authored elsewhere; progress tracking and certification only
need to look courses and modules up by ID.
"""

import asyncio
from collections.abc import Iterable
from typing import TYPE_CHECKING

import structlog

from campus.courses.models import Course, Module


if TYPE_CHECKING:
    from cassandra.cluster import Session

logger = structlog.get_logger(__name__)


class CourseService:
    """Course lookups."""

    def __init__(self, session: "Session", keyspace: str):
        """Initialize with Cassandra session."""
        self.session = session
        self.keyspace = keyspace
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        """Prepare CQL statements."""
        self._get_course_by_id = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.courses WHERE id = ?"
        )

    async def get_course(self, course_id: str) -> Course | None:
        """Get course by ID."""
        result = await self.session.aexecute(self._get_course_by_id, [course_id])
        row = result.one()
        return Course.from_row(row) if row else None


class ModuleService:
    """Module lookups, contents included."""

    def __init__(self, session: "Session", keyspace: str):
        """Initialize with Cassandra session."""
        self.session = session
        self.keyspace = keyspace
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        """Prepare CQL statements."""
        self._get_module_by_id = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.modules WHERE id = ?"
        )
        self._get_module_contents = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.module_contents WHERE module_id = ?"
        )

    async def get_module(self, module_id: str) -> Module | None:
        """Get module by ID with its ordered content list."""
        result = await self.session.aexecute(self._get_module_by_id, [module_id])
        row = result.one()
        if row is None:
            return None

        content_rows = await self.session.aexecute(
            self._get_module_contents, [module_id]
        )
        return Module.from_rows(row, content_rows)

    async def get_modules(self, module_ids: Iterable[str]) -> list[Module]:
        """Fetch several modules concurrently, keeping the requested order.

        Missing modules are skipped.
        """
        ids = list(module_ids)
        modules = await asyncio.gather(*(self.get_module(mid) for mid in ids))

        missing = [mid for mid, m in zip(ids, modules, strict=True) if m is None]
        if missing:
            logger.warning("course_modules_missing", module_ids=missing)

        return [m for m in modules if m is not None]
