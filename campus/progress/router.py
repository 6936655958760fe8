"""Student progress tracking API endpoints.

Provides routes for:
- Content completion / un-completion
- Course and content progress queries
- "My courses" listing
- Summary recomputation (repair/backfill)
"""

from fastapi import APIRouter, status

from campus.auth.dependencies import CurrentUser

from .dependencies import ProgressServiceDep, handle_progress_error
from .schemas import (
    ContentCompletionRequest,
    ContentStatusResponse,
    CourseProgressResponse,
    CourseProgressSummaryResponse,
    ModuleProgressResponse,
    MyCourseResponse,
    MyCoursesResponse,
    ProgressUpdateResponse,
)
from .service import ProgressError, ProgressUpdate


router = APIRouter(prefix="/v1/progress", tags=["progress"])


def _update_response(result: ProgressUpdate, message: str) -> ProgressUpdateResponse:
    return ProgressUpdateResponse(
        message=message,
        progress=(
            CourseProgressSummaryResponse.from_entity(result.summary)
            if result.summary
            else None
        ),
        module_progress=ModuleProgressResponse.from_counts(result.module),
    )


# ==============================================================================
# Completion Endpoints
# ==============================================================================


@router.post(
    "/complete",
    response_model=ProgressUpdateResponse,
    status_code=status.HTTP_200_OK,
    summary="Mark content as completed",
)
async def mark_completed(
    data: ContentCompletionRequest,
    progress_service: ProgressServiceDep,
) -> ProgressUpdateResponse:
    """Mark a content item as completed.

    Idempotent: completing an item twice leaves one entry.
    """
    try:
        result = await progress_service.mark_completed(
            user_id=data.user_id,
            course_id=data.course_id,
            module_id=data.module_id,
            content_id=data.content_id,
        )
    except ProgressError as e:
        raise handle_progress_error(e) from e

    message = (
        "Contenido marcado como completado"
        if result.changed
        else "Contenido ya estaba completado"
    )
    return _update_response(result, message)


@router.post(
    "/incomplete",
    response_model=ProgressUpdateResponse,
    status_code=status.HTTP_200_OK,
    summary="Mark content as incomplete",
)
async def mark_incomplete(
    data: ContentCompletionRequest,
    progress_service: ProgressServiceDep,
) -> ProgressUpdateResponse:
    """Remove a content item from the completed set."""
    try:
        result = await progress_service.mark_incomplete(
            user_id=data.user_id,
            course_id=data.course_id,
            module_id=data.module_id,
            content_id=data.content_id,
        )
    except ProgressError as e:
        raise handle_progress_error(e) from e

    message = (
        "Contenido desmarcado como completado"
        if result.changed
        else "Contenido no estaba completado"
    )
    return _update_response(result, message)


# ==============================================================================
# Progress Query Endpoints
# ==============================================================================


@router.get(
    "/my-courses",
    response_model=MyCoursesResponse,
    summary="List my courses with progress",
)
async def list_my_courses(
    progress_service: ProgressServiceDep,
    user: CurrentUser,
) -> MyCoursesResponse:
    """Entitled courses with the cached progress summary."""
    try:
        items = await progress_service.list_my_courses(user.id)
    except ProgressError as e:
        raise handle_progress_error(e) from e

    return MyCoursesResponse(
        items=[MyCourseResponse.from_item(i) for i in items],
        total=len(items),
    )


@router.get(
    "/course/{course_id}",
    response_model=CourseProgressResponse,
    summary="Get course progress",
)
async def get_course_progress(
    course_id: str,
    progress_service: ProgressServiceDep,
    user: CurrentUser,
) -> CourseProgressResponse:
    """Course progress with per-module breakdown."""
    try:
        breakdown = await progress_service.get_course_progress(user.id, course_id)
    except ProgressError as e:
        raise handle_progress_error(e) from e
    return CourseProgressResponse.from_breakdown(breakdown)


@router.post(
    "/course/{course_id}/recompute",
    response_model=CourseProgressSummaryResponse,
    summary="Recompute course summary",
)
async def recompute_course_progress(
    course_id: str,
    progress_service: ProgressServiceDep,
    user: CurrentUser,
) -> CourseProgressSummaryResponse:
    """Rebuild the cached course summary from module progress."""
    try:
        summary = await progress_service.recompute(user.id, course_id)
    except ProgressError as e:
        raise handle_progress_error(e) from e
    return CourseProgressSummaryResponse.from_entity(summary)


@router.get(
    "/content/{module_id}/{content_id}",
    response_model=ContentStatusResponse,
    summary="Get content completion state",
)
async def get_content_status(
    module_id: str,
    content_id: str,
    progress_service: ProgressServiceDep,
    user: CurrentUser,
) -> ContentStatusResponse:
    """Whether a content item is completed for the current user."""
    try:
        state = await progress_service.get_content_status(
            user.id, module_id, content_id
        )
    except ProgressError as e:
        raise handle_progress_error(e) from e
    return ContentStatusResponse.from_status(state)
