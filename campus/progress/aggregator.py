"""Course progress aggregation.

Course progress is always rebuilt from the per-module records, never patched
incrementally, so the course summary cannot drift from module state.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING

import structlog

from campus.courses.models import Course, Module
from campus.utils.dates import utc_now

from .exceptions import CourseNotFoundError
from .models import CourseProgressSummary, ModuleProgress, percentage_of
from .resolver import normalize_positions


if TYPE_CHECKING:
    from campus.courses.service import CourseService, ModuleService

    from .store import ProgressStore

logger = structlog.get_logger(__name__)


@dataclass
class ModuleProgressCounts:
    """Countable totals of one module for one user."""

    module_id: str
    title: str
    total_count: int
    completed_count: int
    is_complete: bool
    last_updated_at: datetime | None = None

    @property
    def percentage(self) -> int:
        return percentage_of(self.completed_count, self.total_count)


@dataclass
class CourseProgressBreakdown:
    """Course summary plus the per-module counts it was built from."""

    summary: CourseProgressSummary
    modules: list[ModuleProgressCounts] = field(default_factory=list)


def count_completed(module: Module, completed_positions: set[str]) -> int:
    """Number of completed items that count for progress.

    Entries are normalized first, so aliases of one item count once and
    entries that no longer resolve to an item are ignored.
    """
    count = 0
    for entry in normalize_positions(module.contents, completed_positions):
        if not (entry.isascii() and entry.isdigit()):
            continue
        index = int(entry)
        if index < len(module.contents) and module.contents[index].counts_for_progress:
            count += 1
    return count


def is_module_complete(module: Module, completed_positions: set[str]) -> bool:
    """Completed countable items cover every countable item of the module."""
    return count_completed(module, completed_positions) == len(
        module.countable_contents
    )


def module_counts(module: Module, record: ModuleProgress | None) -> ModuleProgressCounts:
    """Counts for one module; an absent record means nothing completed."""
    if record is None:
        return ModuleProgressCounts(
            module_id=module.id,
            title=module.title,
            total_count=len(module.countable_contents),
            completed_count=0,
            is_complete=False,
        )
    return ModuleProgressCounts(
        module_id=module.id,
        title=module.title,
        total_count=len(module.countable_contents),
        completed_count=count_completed(module, record.completed_positions),
        is_complete=record.is_complete,
        last_updated_at=record.updated_at,
    )


def summarize(course_id: str, modules: list[ModuleProgressCounts]) -> CourseProgressSummary:
    """Sum module counts into a course summary."""
    activity = [m.last_updated_at for m in modules if m.last_updated_at is not None]
    return CourseProgressSummary(
        course_id=course_id,
        completed_count=sum(m.completed_count for m in modules),
        total_count=sum(m.total_count for m in modules),
        last_activity_at=max(activity) if activity else None,
    )


class CourseProgressAggregator:
    """Builds course summaries from module progress records."""

    def __init__(
        self,
        course_service: "CourseService",
        module_service: "ModuleService",
        store: "ProgressStore",
    ):
        self.course_service = course_service
        self.module_service = module_service
        self.store = store

    async def compute(
        self,
        user_id: str,
        course: Course | str,
        pending: ModuleProgress | None = None,
    ) -> CourseProgressBreakdown:
        """Compute course progress from source without persisting it.

        Args:
            user_id: User ID
            course: Course entity, or its ID to load it
            pending: Module record about to be written; replaces the stored one

        Raises:
            CourseNotFoundError: If the course ID does not exist
        """
        if isinstance(course, str):
            loaded = await self.course_service.get_course(course)
            if loaded is None:
                raise CourseNotFoundError
            course = loaded

        if not course.module_ids:
            return CourseProgressBreakdown(
                summary=CourseProgressSummary(course_id=course.id)
            )

        modules = await self.module_service.get_modules(course.module_ids)
        records = await self.store.get_modules_progress(
            user_id, [m.id for m in modules]
        )
        if pending is not None:
            records[pending.module_id] = pending

        counts = [module_counts(m, records.get(m.id)) for m in modules]
        return CourseProgressBreakdown(
            summary=summarize(course.id, counts),
            modules=counts,
        )

    async def recompute(self, user_id: str, course: Course | str) -> CourseProgressSummary:
        """Rebuild the course summary from source and persist it.

        Usable on its own for repair and backfill of the summary cache.
        """
        breakdown = await self.compute(user_id, course)
        summary = breakdown.summary
        await self.store.save_summary(user_id, summary, utc_now())

        logger.info(
            "course_progress_recomputed",
            user_id=user_id,
            course_id=summary.course_id,
            percentage=summary.percentage,
            completed=summary.completed_count,
            total=summary.total_count,
        )
        return summary
