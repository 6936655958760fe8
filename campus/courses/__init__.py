"""Course catalog (read-only)."""

from .models import (
    COURSES_TABLES_CQL,
    EXCLUDED_CONTENT_TYPES,
    Content,
    ContentType,
    Course,
    Module,
)


__all__ = [
    "COURSES_TABLES_CQL",
    "EXCLUDED_CONTENT_TYPES",
    "Content",
    "ContentType",
    "Course",
    "Module",
]
