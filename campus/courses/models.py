"""Database models for the course catalog.

Cassandra table definitions for:
- Courses: title, description and the ordered list of module IDs
- Modules: owning course and title
- Module contents: ordered content items of each module

The catalog is authored by the back-office; this service only reads it.
Position in ``module_contents`` is the canonical identity of a content item
for progress tracking.
"""

from enum import Enum
from typing import Any


class ContentType(str, Enum):
    """Content item category."""

    VIDEO = "video"
    PDF = "pdf"
    EXAM = "evaluacion"
    IMAGE = "imagen"
    EXTRA = "contenido_extra"  # Material complementario, fuera del progreso


# Categories left out of every progress count and completion check
EXCLUDED_CONTENT_TYPES = frozenset({ContentType.EXTRA.value})


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

COURSE_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.courses (
    id TEXT PRIMARY KEY,
    title TEXT,
    description TEXT,
    image_url TEXT,
    module_ids LIST<TEXT>,
    created_at TIMESTAMP,
    updated_at TIMESTAMP
)
"""

MODULE_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.modules (
    id TEXT PRIMARY KEY,
    course_id TEXT,
    title TEXT,
    description TEXT,
    created_at TIMESTAMP,
    updated_at TIMESTAMP
)
"""

# Contenidos del modulo, ordenados por posicion
MODULE_CONTENTS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.module_contents (
    module_id TEXT,
    position INT,
    content_id TEXT,
    title TEXT,
    content_type TEXT,
    duration_seconds INT,
    PRIMARY KEY (module_id, position)
) WITH CLUSTERING ORDER BY (position ASC)
"""

COURSES_TABLES_CQL = [
    COURSE_TABLE_CQL,
    MODULE_TABLE_CQL,
    MODULE_CONTENTS_TABLE_CQL,
]


# ==============================================================================
# Entity Classes
# ==============================================================================


class Content:
    """A content item at a fixed position inside a module.

    Attributes:
        position: Zero-based index inside the module (canonical identity)
        content_id: Optional stable ID assigned at authoring time
        title: Display title
        content_type: Category (see ContentType)
        duration_seconds: Declared duration, informational only
    """

    def __init__(
        self,
        position: int,
        title: str = "",
        content_type: str = ContentType.VIDEO.value,
        content_id: str | None = None,
        duration_seconds: int = 0,
    ):
        self.position = position
        self.title = title
        self.content_type = content_type
        self.content_id = content_id
        self.duration_seconds = duration_seconds

    @property
    def counts_for_progress(self) -> bool:
        """Whether this item takes part in progress accounting."""
        return self.content_type not in EXCLUDED_CONTENT_TYPES

    @classmethod
    def from_row(cls, row: Any) -> "Content":
        """Create Content instance from Cassandra row."""
        return cls(
            position=row.position,
            title=row.title or "",
            content_type=row.content_type or ContentType.VIDEO.value,
            content_id=row.content_id,
            duration_seconds=row.duration_seconds or 0,
        )

    def __repr__(self) -> str:
        return f"<Content #{self.position} {self.title!r} ({self.content_type})>"


class Module:
    """Module entity with its ordered content list."""

    def __init__(
        self,
        id: str,
        course_id: str,
        title: str = "",
        contents: list[Content] | None = None,
    ):
        self.id = id
        self.course_id = course_id
        self.title = title
        self.contents = contents or []

    @property
    def countable_contents(self) -> list[Content]:
        """Contents that take part in progress accounting."""
        return [c for c in self.contents if c.counts_for_progress]

    @classmethod
    def from_rows(cls, row: Any, content_rows: Any) -> "Module":
        """Create Module from its main row and its ``module_contents`` rows."""
        contents = sorted(
            (Content.from_row(r) for r in content_rows), key=lambda c: c.position
        )
        return cls(
            id=row.id,
            course_id=row.course_id,
            title=row.title or "",
            contents=contents,
        )

    def __repr__(self) -> str:
        return f"<Module {self.id} {self.title!r} items={len(self.contents)}>"


class Course:
    """Course entity: an ordered sequence of module IDs."""

    def __init__(
        self,
        id: str,
        title: str = "",
        description: str = "",
        image_url: str = "",
        module_ids: list[str] | None = None,
    ):
        self.id = id
        self.title = title
        self.description = description
        self.image_url = image_url
        self.module_ids = list(module_ids or [])

    @classmethod
    def from_row(cls, row: Any) -> "Course":
        """Create Course instance from Cassandra row."""
        return cls(
            id=row.id,
            title=row.title or "",
            description=row.description or "",
            image_url=row.image_url or "",
            module_ids=row.module_ids or [],
        )

    def __repr__(self) -> str:
        return f"<Course {self.id} {self.title!r} modules={len(self.module_ids)}>"
