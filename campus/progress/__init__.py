"""Student progress tracking module.

Provides:
- Content completion keyed by canonical position
- Module and course progress aggregation
- Per-user course summary cache
"""

from .aggregator import CourseProgressAggregator
from .models import PROGRESS_TABLES_CQL, CourseProgressSummary, ModuleProgress
from .service import ProgressError, ProgressService
from .store import ProgressStore


__all__ = [
    "PROGRESS_TABLES_CQL",
    "CourseProgressAggregator",
    "CourseProgressSummary",
    "ModuleProgress",
    "ProgressError",
    "ProgressService",
    "ProgressStore",
]
