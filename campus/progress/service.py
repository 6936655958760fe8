"""Student progress tracking service layer.

Business logic for:
- Marking content items completed / incomplete (idempotent)
- Per-module and per-course progress queries
- "My courses" listing backed by the summary cache
"""

from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING

import structlog

from campus.courses.models import Course, Module
from campus.users.models import User
from campus.utils.dates import utc_now

from .aggregator import (
    CourseProgressAggregator,
    CourseProgressBreakdown,
    ModuleProgressCounts,
    is_module_complete,
    module_counts,
)
from .exceptions import (
    ContentNotFoundError,
    CourseAccessDeniedError,
    CourseNotFoundError,
    ModuleCourseMismatchError,
    ModuleNotFoundError,
    ProgressError,
    UserNotFoundError,
)
from .models import CourseProgressSummary, ModuleProgress
from .resolver import aliases_of, normalize_position, resolve_position


if TYPE_CHECKING:
    from campus.courses.service import CourseService, ModuleService
    from campus.users.service import UserService

    from .store import ProgressStore

logger = structlog.get_logger(__name__)


__all__ = [
    "ContentStatus",
    "EnrolledCourseProgress",
    "ProgressError",
    "ProgressService",
    "ProgressUpdate",
]


@dataclass
class ProgressUpdate:
    """Outcome of a completion mutation."""

    summary: CourseProgressSummary | None
    module: ModuleProgressCounts
    changed: bool


@dataclass
class ContentStatus:
    """Completion state of a single content item."""

    completed: bool
    completed_at: datetime | None = None


@dataclass
class EnrolledCourseProgress:
    """Entitled course joined with its cached summary."""

    course: Course
    summary: CourseProgressSummary


@dataclass
class _Target:
    user: User
    course: Course
    module: Module
    position: str


class ProgressService:
    """Service for content completion and progress queries."""

    def __init__(
        self,
        user_service: "UserService",
        course_service: "CourseService",
        module_service: "ModuleService",
        store: "ProgressStore",
    ):
        self.user_service = user_service
        self.course_service = course_service
        self.module_service = module_service
        self.store = store
        self.aggregator = CourseProgressAggregator(
            course_service, module_service, store
        )

    # ==========================================================================
    # Validation
    # ==========================================================================

    async def _resolve_target(
        self, user_id: str, course_id: str, module_id: str, content_id: str
    ) -> _Target:
        """Check every precondition of a mutation before anything is written.

        Raises:
            UserNotFoundError: Unknown user
            CourseAccessDeniedError: User not entitled to the course
            CourseNotFoundError: Unknown course
            ModuleNotFoundError: Unknown module
            ModuleCourseMismatchError: Module belongs to another course
            ContentNotFoundError: Identifier does not resolve in the module
        """
        user = await self.user_service.get_user(user_id)
        if user is None:
            raise UserNotFoundError
        if not user.is_entitled_to(course_id):
            raise CourseAccessDeniedError

        course = await self.course_service.get_course(course_id)
        if course is None:
            raise CourseNotFoundError

        module = await self.module_service.get_module(module_id)
        if module is None:
            raise ModuleNotFoundError
        if module.course_id != course_id:
            raise ModuleCourseMismatchError

        position = resolve_position(module.contents, content_id)
        if position is None:
            raise ContentNotFoundError

        return _Target(user=user, course=course, module=module, position=str(position))

    # ==========================================================================
    # Mutations
    # ==========================================================================

    async def mark_completed(
        self, user_id: str, course_id: str, module_id: str, content_id: str
    ) -> ProgressUpdate:
        """Mark a content item as completed.

        Repeating the call for an item already completed (under any of its
        identifiers) leaves the set alone but still repairs a stale module flag or
        course summary.
        An item stored only under a legacy ID or title spelling is rewritten
        to its position and reported as unchanged.
        """
        target = await self._resolve_target(user_id, course_id, module_id, content_id)
        module = target.module

        record = await self.store.get_module_progress(user_id, module_id)
        stored = record.completed_positions if record else set()

        aliases = aliases_of(module.contents, stored, target.position)
        already_completed = target.position in stored or bool(aliases)

        if target.position in stored and not aliases:
            settled, summary = await self._settle(user_id, target.course, module)
            logger.debug(
                "content_already_completed",
                user_id=user_id,
                module_id=module_id,
                position=target.position,
            )
            return ProgressUpdate(
                summary=summary, module=module_counts(module, settled), changed=False
            )

        # Aliases collapse into the canonical position
        positions = (stored - aliases) | {target.position}
        pending = ModuleProgress(
            user_id=user_id,
            module_id=module_id,
            course_id=course_id,
            completed_positions=positions,
            is_complete=is_module_complete(module, positions),
            updated_at=utc_now(),
        )

        summary = await self._summary_with(user_id, target.course, pending)
        await self.store.add_completed_position(
            pending, target.position, aliases=aliases, summary=summary
        )
        settled, summary = await self._settle(user_id, target.course, module)

        logger.info(
            "content_marked_completed",
            user_id=user_id,
            course_id=course_id,
            module_id=module_id,
            position=target.position,
            module_complete=settled.is_complete,
            aliases_dropped=len(aliases),
            percentage=summary.percentage if summary else None,
        )
        return ProgressUpdate(
            summary=summary,
            module=module_counts(module, settled),
            changed=not already_completed,
        )

    async def mark_incomplete(
        self, user_id: str, course_id: str, module_id: str, content_id: str
    ) -> ProgressUpdate:
        """Remove a content item from the completed set.

        A never-completed item is a no-op returning the cached summary.
        """
        target = await self._resolve_target(user_id, course_id, module_id, content_id)
        module = target.module

        record = await self.store.get_module_progress(user_id, module_id)
        matched = (
            {
                e
                for e in record.completed_positions
                if normalize_position(module.contents, e) == target.position
            }
            if record
            else set()
        )

        if not matched:
            summary = await self._cached_summary(user_id, target.course)
            return ProgressUpdate(
                summary=summary, module=module_counts(module, record), changed=False
            )

        pending = ModuleProgress(
            user_id=user_id,
            module_id=module_id,
            course_id=course_id,
            completed_positions=record.completed_positions - matched,
            is_complete=False,
            updated_at=utc_now(),
        )

        summary = await self._summary_with(user_id, target.course, pending)
        await self.store.remove_completed_positions(pending, matched, summary=summary)
        settled, summary = await self._settle(user_id, target.course, module)

        logger.info(
            "content_marked_incomplete",
            user_id=user_id,
            course_id=course_id,
            module_id=module_id,
            position=target.position,
            percentage=summary.percentage if summary else None,
        )
        return ProgressUpdate(
            summary=summary, module=module_counts(module, settled), changed=True
        )

    # ==========================================================================
    # Queries
    # ==========================================================================

    async def get_module_progress(
        self, user_id: str, module_id: str, course_id: str
    ) -> ModuleProgressCounts:
        """Counts and percentage of one module, excluded category omitted."""
        module = await self.module_service.get_module(module_id)
        if module is None:
            raise ModuleNotFoundError
        if module.course_id != course_id:
            raise ModuleCourseMismatchError

        record = await self.store.get_module_progress(user_id, module_id)
        return module_counts(module, record)

    async def get_course_progress(
        self, user_id: str, course_id: str
    ) -> CourseProgressBreakdown:
        """Per-module breakdown computed from source (nothing persisted)."""
        return await self.aggregator.compute(user_id, course_id)

    async def get_content_status(
        self, user_id: str, module_id: str, content_id: str
    ) -> ContentStatus:
        """Whether one content item is completed and since when."""
        module = await self.module_service.get_module(module_id)
        if module is None:
            raise ModuleNotFoundError

        record = await self.store.get_module_progress(user_id, module_id)
        if record is None:
            return ContentStatus(completed=False)

        position = normalize_position(module.contents, content_id)
        completed = any(
            normalize_position(module.contents, e) == position
            for e in record.completed_positions
        )
        return ContentStatus(
            completed=completed,
            completed_at=record.updated_at if completed else None,
        )

    async def get_summary(self, user_id: str, course_id: str) -> CourseProgressSummary:
        """Cached course summary; zeros when never computed."""
        summary = await self.store.get_summary(user_id, course_id)
        return summary or CourseProgressSummary(course_id=course_id)

    async def list_my_courses(self, user_id: str) -> list[EnrolledCourseProgress]:
        """Entitled courses with their cached summaries.

        Reads the summary cache only; courses that no longer exist are skipped.
        """
        user = await self.user_service.get_user(user_id)
        if user is None:
            raise UserNotFoundError

        summaries = await self.store.get_user_summaries(user_id)
        items = []
        for course_id in sorted(user.assigned_courses):
            course = await self.course_service.get_course(course_id)
            if course is None:
                continue
            items.append(
                EnrolledCourseProgress(
                    course=course,
                    summary=summaries.get(course_id)
                    or CourseProgressSummary(course_id=course_id),
                )
            )
        return items

    async def recompute(self, user_id: str, course_id: str) -> CourseProgressSummary:
        """Rebuild and persist a user's course summary."""
        user = await self.user_service.get_user(user_id)
        if user is None:
            raise UserNotFoundError
        return await self.aggregator.recompute(user_id, course_id)

    # ==========================================================================
    # Summary helpers
    # ==========================================================================

    async def _summary_with(
        self, user_id: str, course: Course, pending: ModuleProgress
    ) -> CourseProgressSummary | None:
        """Summary as it will be once ``pending`` is written.

        Returns None when it cannot be computed; the module write then goes
        out alone and the cached summary stays stale until the next
        recomputation.
        """
        try:
            breakdown = await self.aggregator.compute(user_id, course, pending=pending)
        except Exception:
            logger.exception(
                "course_progress_compute_failed",
                user_id=user_id,
                course_id=course.id,
                module_id=pending.module_id,
            )
            return None
        return breakdown.summary

    async def _settle(
        self, user_id: str, course: Course, module: Module
    ) -> tuple[ModuleProgress, CourseProgressSummary | None]:
        """Re-derive module flag and course summary from a fresh read.

        Racing writers merge their completion sets, but each one writes the
        flag and summary it computed from its own earlier read. Whichever
        writer reads last sees every merged entry and rewrites what
        disagrees with it.
        """
        record = await self.store.get_module_progress(user_id, module.id)
        if record is None:
            record = ModuleProgress(
                user_id=user_id, module_id=module.id, course_id=course.id
            )
        complete = is_module_complete(module, record.completed_positions)
        flag_stale = record.is_complete != complete
        record.is_complete = complete

        cached = await self.store.get_summary(user_id, course.id)
        summary = await self._summary_with(user_id, course, record)
        summary_stale = summary is not None and (
            cached is None
            or (cached.completed_count, cached.total_count, cached.percentage)
            != (summary.completed_count, summary.total_count, summary.percentage)
        )

        if flag_stale or summary_stale:
            await self.store.settle_module(
                record, summary if summary_stale else None, utc_now()
            )
            logger.info(
                "module_progress_settled",
                user_id=user_id,
                course_id=course.id,
                module_id=module.id,
                module_complete=complete,
                percentage=summary.percentage if summary else None,
            )
        return record, summary if summary is not None else cached

    async def _recompute_quietly(
        self, user_id: str, course: Course
    ) -> CourseProgressSummary | None:
        try:
            return await self.aggregator.recompute(user_id, course)
        except Exception:
            logger.exception(
                "course_progress_recompute_failed",
                user_id=user_id,
                course_id=course.id,
            )
            return await self.store.get_summary(user_id, course.id)

    async def _cached_summary(
        self, user_id: str, course: Course
    ) -> CourseProgressSummary | None:
        summary = await self.store.get_summary(user_id, course.id)
        if summary is not None:
            return summary
        return await self._recompute_quietly(user_id, course)
