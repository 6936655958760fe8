"""Database models for student progress tracking.

Cassandra table definitions for:
- Module progress: set of completed content positions per (user, module)
- Course progress summaries: derived per-user cache keyed by course ID

Module progress is the source of truth. Summaries are recomputed from it on
every mutation and are safe to drop and rebuild at any time.
"""

from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from campus.utils.dates import ensure_utc_aware


def percentage_of(completed: int, total: int) -> int:
    """Integer percentage, half rounded up; 0 when there is nothing to count."""
    if total <= 0:
        return 0
    ratio = Decimal(100 * completed) / Decimal(total)
    return int(ratio.quantize(Decimal(1), rounding=ROUND_HALF_UP))


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

# Progreso por modulo: posiciones completadas como SET (union atomica)
MODULE_PROGRESS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.module_progress (
    user_id TEXT,
    module_id TEXT,
    course_id TEXT,
    completed_positions SET<TEXT>,
    is_complete BOOLEAN,
    updated_at TIMESTAMP,
    PRIMARY KEY ((user_id), module_id)
)
"""

# Resumen por curso (cache desnormalizado para "mis cursos")
COURSE_PROGRESS_SUMMARIES_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.course_progress_summaries (
    user_id TEXT,
    course_id TEXT,
    percentage INT,
    completed_count INT,
    total_count INT,
    last_activity_at TIMESTAMP,
    updated_at TIMESTAMP,
    PRIMARY KEY ((user_id), course_id)
)
"""

PROGRESS_TABLES_CQL = [
    MODULE_PROGRESS_TABLE_CQL,
    COURSE_PROGRESS_SUMMARIES_TABLE_CQL,
]


# ==============================================================================
# Entity Classes
# ==============================================================================


class ModuleProgress:
    """Completion state of one module for one user.

    Attributes:
        user_id: User ID
        module_id: Module ID
        course_id: Owning course (denormalized back-reference)
        completed_positions: Canonical positions (as strings) marked complete
        is_complete: Every countable item of the module is completed
        updated_at: Last mutation timestamp
    """

    def __init__(
        self,
        user_id: str,
        module_id: str,
        course_id: str,
        completed_positions: set[str] | None = None,
        is_complete: bool = False,
        updated_at: datetime | None = None,
    ):
        self.user_id = user_id
        self.module_id = module_id
        self.course_id = course_id
        self.completed_positions = set(completed_positions or ())
        self.is_complete = is_complete
        self.updated_at = ensure_utc_aware(updated_at)

    @classmethod
    def from_row(cls, row: Any) -> "ModuleProgress":
        """Create ModuleProgress instance from Cassandra row."""
        return cls(
            user_id=row.user_id,
            module_id=row.module_id,
            course_id=row.course_id,
            completed_positions=row.completed_positions or set(),
            is_complete=bool(row.is_complete),
            updated_at=row.updated_at,
        )

    def __repr__(self) -> str:
        return (
            f"<ModuleProgress user={self.user_id} module={self.module_id} "
            f"done={sorted(self.completed_positions)}>"
        )


class CourseProgressSummary:
    """Aggregated course progress for one user (derived cache).

    Attributes:
        course_id: Course ID
        percentage: round(100 * completed / total), 0 when total is 0
        completed_count: Completed countable items across all modules
        total_count: Countable items across all modules
        last_activity_at: Latest ``updated_at`` among the course's records
    """

    def __init__(
        self,
        course_id: str,
        completed_count: int = 0,
        total_count: int = 0,
        last_activity_at: datetime | None = None,
        percentage: int | None = None,
    ):
        self.course_id = course_id
        self.completed_count = completed_count
        self.total_count = total_count
        self.last_activity_at = ensure_utc_aware(last_activity_at)
        self.percentage = (
            percentage
            if percentage is not None
            else percentage_of(completed_count, total_count)
        )

    @classmethod
    def from_row(cls, row: Any) -> "CourseProgressSummary":
        """Create CourseProgressSummary instance from Cassandra row."""
        return cls(
            course_id=row.course_id,
            completed_count=row.completed_count or 0,
            total_count=row.total_count or 0,
            last_activity_at=row.last_activity_at,
            percentage=row.percentage or 0,
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "course_id": self.course_id,
            "percentage": self.percentage,
            "completed_count": self.completed_count,
            "total_count": self.total_count,
            "last_activity_at": self.last_activity_at,
        }

    def __repr__(self) -> str:
        return (
            f"<CourseProgressSummary course={self.course_id} "
            f"{self.completed_count}/{self.total_count} {self.percentage}%>"
        )
