"""Pydantic schemas for student progress tracking.

Request and response models for:
- Content completion / un-completion
- Module and course progress queries
- "My courses" listing
"""

from datetime import datetime

from pydantic import BaseModel, Field, field_validator

from .aggregator import CourseProgressBreakdown, ModuleProgressCounts
from .models import CourseProgressSummary
from .service import ContentStatus, EnrolledCourseProgress


# ==============================================================================
# Completion Schemas
# ==============================================================================


class ContentCompletionRequest(BaseModel):
    """Request to mark or unmark a content item.

    ``content_id`` accepts the item's position, its stable ID or its title.
    """

    user_id: str = Field(..., min_length=1, description="User ID")
    course_id: str = Field(..., min_length=1, description="Course ID")
    module_id: str = Field(..., min_length=1, description="Module ID")
    content_id: str = Field(
        ..., min_length=1, description="Position, stable ID or title of the item"
    )

    @field_validator("content_id", mode="before")
    @classmethod
    def coerce_position(cls, v: object) -> object:
        """Frontends send positions as JSON numbers."""
        if isinstance(v, int) and not isinstance(v, bool):
            return str(v)
        return v


class CourseProgressSummaryResponse(BaseModel):
    """Cached/derived course summary."""

    course_id: str
    percentage: int = Field(ge=0, le=100)
    completed_count: int
    total_count: int
    last_activity_at: datetime | None = None

    @classmethod
    def from_entity(cls, entity: CourseProgressSummary) -> "CourseProgressSummaryResponse":
        """Create response from entity."""
        return cls(**entity.to_dict())


class ModuleProgressResponse(BaseModel):
    """Progress of a single module."""

    module_id: str
    title: str
    percentage: int = Field(ge=0, le=100)
    total_count: int
    completed_count: int
    is_complete: bool

    @classmethod
    def from_counts(cls, counts: ModuleProgressCounts) -> "ModuleProgressResponse":
        """Create response from module counts."""
        return cls(
            module_id=counts.module_id,
            title=counts.title,
            percentage=counts.percentage,
            total_count=counts.total_count,
            completed_count=counts.completed_count,
            is_complete=counts.is_complete,
        )


class ProgressUpdateResponse(BaseModel):
    """Result of marking content completed or incomplete."""

    success: bool = True
    message: str
    progress: CourseProgressSummaryResponse | None = None
    module_progress: ModuleProgressResponse | None = None


# ==============================================================================
# Course Progress Schemas (Complete View)
# ==============================================================================


class CourseProgressResponse(BaseModel):
    """Course progress with per-module breakdown."""

    course_id: str
    percentage: int = Field(ge=0, le=100)
    total_count: int
    completed_count: int
    modules: list[ModuleProgressResponse] = []

    @classmethod
    def from_breakdown(cls, breakdown: CourseProgressBreakdown) -> "CourseProgressResponse":
        """Create response from an aggregator breakdown."""
        summary = breakdown.summary
        return cls(
            course_id=summary.course_id,
            percentage=summary.percentage,
            total_count=summary.total_count,
            completed_count=summary.completed_count,
            modules=[ModuleProgressResponse.from_counts(m) for m in breakdown.modules],
        )


class ContentStatusResponse(BaseModel):
    """Completion state of one content item."""

    completed: bool
    completed_at: datetime | None = None

    @classmethod
    def from_status(cls, state: ContentStatus) -> "ContentStatusResponse":
        return cls(completed=state.completed, completed_at=state.completed_at)


# ==============================================================================
# My Courses Schemas
# ==============================================================================


class MyCourseResponse(BaseModel):
    """Entitled course with cached progress."""

    id: str
    title: str
    description: str = ""
    image_url: str = ""
    percentage: int = 0
    completed_count: int = 0
    total_count: int = 0
    last_activity_at: datetime | None = None

    @classmethod
    def from_item(cls, item: EnrolledCourseProgress) -> "MyCourseResponse":
        course, summary = item.course, item.summary
        return cls(
            id=course.id,
            title=course.title or "Sin titulo",
            description=course.description or "",
            image_url=course.image_url or "",
            percentage=summary.percentage,
            completed_count=summary.completed_count,
            total_count=summary.total_count,
            last_activity_at=summary.last_activity_at,
        )


class MyCoursesResponse(BaseModel):
    """List of entitled courses."""

    items: list[MyCourseResponse]
    total: int
