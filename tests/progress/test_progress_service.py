"""Tests for ProgressService completion and query operations."""

import asyncio

from unittest.mock import AsyncMock

import pytest

from campus.progress.exceptions import (
    ContentNotFoundError,
    CourseAccessDeniedError,
    CourseNotFoundError,
    ModuleCourseMismatchError,
    ModuleNotFoundError,
    UserNotFoundError,
)
from campus.progress.models import CourseProgressSummary, ModuleProgress


# ==============================================================================
# mark_completed
# ==============================================================================


class TestMarkCompleted:
    @pytest.mark.asyncio
    async def test_first_completion(self, progress_service, store) -> None:
        update = await progress_service.mark_completed(
            "user-1", "course-1", "mod-a", "0"
        )

        assert update.changed is True
        assert update.module.completed_count == 1
        assert update.module.total_count == 4
        assert update.summary.completed_count == 1
        assert update.summary.total_count == 8
        assert update.summary.percentage == 13
        assert store.records[("user-1", "mod-a")].completed_positions == {"0"}
        assert store.summaries[("user-1", "course-1")].percentage == 13

    @pytest.mark.asyncio
    async def test_repeat_is_idempotent(self, progress_service, store) -> None:
        await progress_service.mark_completed("user-1", "course-1", "mod-a", "1")
        update = await progress_service.mark_completed(
            "user-1", "course-1", "mod-a", "1"
        )

        assert update.changed is False
        assert update.summary.completed_count == 1
        assert store.records[("user-1", "mod-a")].completed_positions == {"1"}

    @pytest.mark.asyncio
    async def test_equivalent_identifiers_share_one_entry(
        self, progress_service, store
    ) -> None:
        """Index, stable ID and title of one item are the same completion."""
        await progress_service.mark_completed("user-1", "course-1", "mod-a", "pdf-guia")
        by_index = await progress_service.mark_completed(
            "user-1", "course-1", "mod-a", "1"
        )
        by_title = await progress_service.mark_completed(
            "user-1", "course-1", "mod-a", "Guia de estudio"
        )

        assert by_index.changed is False
        assert by_title.changed is False
        assert store.records[("user-1", "mod-a")].completed_positions == {"1"}
        assert by_title.summary.completed_count == 1

    @pytest.mark.asyncio
    async def test_legacy_alias_rewritten_to_position(
        self, progress_service, store
    ) -> None:
        store.records[("user-1", "mod-a")] = ModuleProgress(
            user_id="user-1",
            module_id="mod-a",
            course_id="course-1",
            completed_positions={"vid-intro", "Caso clinico"},
        )

        update = await progress_service.mark_completed(
            "user-1", "course-1", "mod-a", "0"
        )

        assert update.changed is False
        assert store.records[("user-1", "mod-a")].completed_positions == {
            "0",
            "Caso clinico",
        }
        assert update.module.completed_count == 2

    @pytest.mark.asyncio
    async def test_course_goes_from_75_to_100(
        self, progress_service, complete_module
    ) -> None:
        await complete_module("user-1", "mod-a")
        await progress_service.mark_completed("user-1", "course-1", "mod-b", "0")
        update = await progress_service.mark_completed(
            "user-1", "course-1", "mod-b", "b-1"
        )
        assert update.summary.percentage == 75

        await progress_service.mark_completed("user-1", "course-1", "mod-b", "2")
        update = await progress_service.mark_completed(
            "user-1", "course-1", "mod-b", "Clase 4"
        )

        assert update.summary.percentage == 100
        assert update.summary.completed_count == update.summary.total_count == 8
        assert update.module.is_complete is True

    @pytest.mark.asyncio
    async def test_module_completion_boundary(self, progress_service) -> None:
        """The supplementary item is neither needed nor counted."""
        for identifier in ("0", "1", "2"):
            update = await progress_service.mark_completed(
                "user-1", "course-1", "mod-a", identifier
            )
            assert update.module.is_complete is False

        update = await progress_service.mark_completed(
            "user-1", "course-1", "mod-a", "extra-1"
        )
        assert update.module.is_complete is False
        assert update.module.completed_count == 3

        update = await progress_service.mark_completed(
            "user-1", "course-1", "mod-a", "eval-1"
        )
        assert update.module.is_complete is True
        assert update.module.completed_count == 4
        assert update.module.percentage == 100

    @pytest.mark.asyncio
    async def test_summary_failure_still_writes_module(
        self, progress_service, store
    ) -> None:
        progress_service.aggregator.compute = AsyncMock(side_effect=RuntimeError)

        update = await progress_service.mark_completed(
            "user-1", "course-1", "mod-a", "0"
        )

        assert update.summary is None
        assert update.changed is True
        assert store.records[("user-1", "mod-a")].completed_positions == {"0"}
        assert store.writes == [("add", "mod-a", "0", None)]
        assert ("user-1", "course-1") not in store.summaries


class TestMarkCompletedValidation:
    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("user_id", "course_id", "module_id", "content_id", "error"),
        [
            ("ghost", "course-1", "mod-a", "0", UserNotFoundError),
            ("user-2", "course-1", "mod-a", "0", CourseAccessDeniedError),
            ("user-1", "course-gone", "mod-a", "0", CourseNotFoundError),
            ("user-1", "course-1", "mod-z", "0", ModuleNotFoundError),
            ("user-1", "course-1", "mod-x", "0", ModuleCourseMismatchError),
            ("user-1", "course-1", "mod-a", "99", ContentNotFoundError),
            ("user-1", "course-1", "mod-a", "no-existe", ContentNotFoundError),
        ],
    )
    async def test_preconditions(
        self, progress_service, store, user_id, course_id, module_id, content_id, error
    ) -> None:
        with pytest.raises(error):
            await progress_service.mark_completed(
                user_id, course_id, module_id, content_id
            )
        assert store.writes == []

    @pytest.mark.asyncio
    async def test_error_codes(self, progress_service) -> None:
        with pytest.raises(ModuleCourseMismatchError) as exc_info:
            await progress_service.mark_completed("user-1", "course-1", "mod-x", "0")
        assert exc_info.value.code == "module_course_mismatch"


# ==============================================================================
# Concurrent writers
# ==============================================================================


@pytest.fixture
def yielding_store(store):
    """Store whose module reads suspend, so concurrent calls interleave."""
    read = store.get_module_progress

    async def _read(user_id, module_id):
        await asyncio.sleep(0)
        return await read(user_id, module_id)

    store.get_module_progress = _read
    return store


class TestConcurrentCompletion:
    @pytest.mark.asyncio
    async def test_racing_completions_settle_module_and_summary(
        self, progress_service, yielding_store
    ) -> None:
        await progress_service.mark_completed("user-1", "course-1", "mod-b", "0")
        await progress_service.mark_completed("user-1", "course-1", "mod-b", "1")

        await asyncio.gather(
            progress_service.mark_completed("user-1", "course-1", "mod-b", "2"),
            progress_service.mark_completed("user-1", "course-1", "mod-b", "3"),
        )

        record = yielding_store.records[("user-1", "mod-b")]
        assert record.completed_positions == {"0", "1", "2", "3"}
        assert record.is_complete is True
        summary = yielding_store.summaries[("user-1", "course-1")]
        assert summary.completed_count == 4
        assert summary.total_count == 8
        assert summary.percentage == 50

        counts = await progress_service.get_module_progress(
            "user-1", "mod-b", "course-1"
        )
        assert counts.is_complete is True
        assert counts.percentage == 100

    @pytest.mark.asyncio
    async def test_racing_modules_keep_course_summary_current(
        self, progress_service, yielding_store
    ) -> None:
        await asyncio.gather(
            progress_service.mark_completed("user-1", "course-1", "mod-a", "0"),
            progress_service.mark_completed("user-1", "course-1", "mod-b", "0"),
        )

        summary = yielding_store.summaries[("user-1", "course-1")]
        assert summary.completed_count == 2
        assert summary.percentage == 25

    @pytest.mark.asyncio
    async def test_repeat_repairs_stale_flag(self, progress_service, store) -> None:
        store.records[("user-1", "mod-b")] = ModuleProgress(
            user_id="user-1",
            module_id="mod-b",
            course_id="course-1",
            completed_positions={"0", "1", "2", "3"},
            is_complete=False,
        )

        update = await progress_service.mark_completed(
            "user-1", "course-1", "mod-b", "3"
        )

        assert update.changed is False
        assert update.module.is_complete is True
        assert store.records[("user-1", "mod-b")].is_complete is True
        assert store.writes[-1][:3] == ("settle", "mod-b", True)
        assert store.summaries[("user-1", "course-1")].completed_count == 4


# ==============================================================================
# mark_incomplete
# ==============================================================================


class TestMarkIncomplete:
    @pytest.mark.asyncio
    async def test_never_completed_is_noop(self, progress_service, store) -> None:
        update = await progress_service.mark_incomplete(
            "user-1", "course-1", "mod-a", "0"
        )

        assert update.changed is False
        assert update.module.completed_count == 0
        assert not any(w[0] in ("add", "remove") for w in store.writes)

    @pytest.mark.asyncio
    async def test_removal_breaks_module_completion(
        self, progress_service, store, complete_module
    ) -> None:
        await complete_module("user-1", "mod-b")

        update = await progress_service.mark_incomplete(
            "user-1", "course-1", "mod-b", "Clase 2"
        )

        assert update.changed is True
        assert update.module.is_complete is False
        assert update.module.completed_count == 3
        assert update.summary.completed_count == 3
        record = store.records[("user-1", "mod-b")]
        assert record.completed_positions == {"0", "2", "3"}
        assert record.is_complete is False

    @pytest.mark.asyncio
    async def test_removes_alias_entries(self, progress_service, store) -> None:
        store.records[("user-1", "mod-a")] = ModuleProgress(
            user_id="user-1",
            module_id="mod-a",
            course_id="course-1",
            completed_positions={"0", "vid-intro", "1"},
        )

        await progress_service.mark_incomplete("user-1", "course-1", "mod-a", "0")

        assert store.records[("user-1", "mod-a")].completed_positions == {"1"}
        assert store.writes[-1][2] == frozenset({"0", "vid-intro"})

    @pytest.mark.asyncio
    async def test_validates_like_completion(self, progress_service) -> None:
        with pytest.raises(CourseAccessDeniedError):
            await progress_service.mark_incomplete("user-2", "course-1", "mod-a", "0")


# ==============================================================================
# Queries
# ==============================================================================


class TestQueries:
    @pytest.mark.asyncio
    async def test_module_progress(self, progress_service) -> None:
        await progress_service.mark_completed("user-1", "course-1", "mod-a", "0")
        await progress_service.mark_completed("user-1", "course-1", "mod-a", "1")

        counts = await progress_service.get_module_progress(
            "user-1", "mod-a", "course-1"
        )

        assert counts.completed_count == 2
        assert counts.total_count == 4
        assert counts.percentage == 50

    @pytest.mark.asyncio
    async def test_module_progress_errors(self, progress_service) -> None:
        with pytest.raises(ModuleNotFoundError):
            await progress_service.get_module_progress("user-1", "mod-z", "course-1")
        with pytest.raises(ModuleCourseMismatchError):
            await progress_service.get_module_progress("user-1", "mod-x", "course-1")

    @pytest.mark.asyncio
    async def test_course_progress_breakdown(self, progress_service, store) -> None:
        await progress_service.mark_completed("user-1", "course-1", "mod-b", "0")
        writes = len(store.writes)

        breakdown = await progress_service.get_course_progress("user-1", "course-1")

        assert breakdown.summary.completed_count == 1
        assert [m.completed_count for m in breakdown.modules] == [0, 1]
        assert len(store.writes) == writes

    @pytest.mark.asyncio
    async def test_content_status(self, progress_service) -> None:
        status = await progress_service.get_content_status("user-1", "mod-a", "0")
        assert status.completed is False
        assert status.completed_at is None

        await progress_service.mark_completed("user-1", "course-1", "mod-a", "0")

        status = await progress_service.get_content_status(
            "user-1", "mod-a", "vid-intro"
        )
        assert status.completed is True
        assert status.completed_at is not None

        other = await progress_service.get_content_status("user-1", "mod-a", "1")
        assert other.completed is False

    @pytest.mark.asyncio
    async def test_content_status_unknown_module(self, progress_service) -> None:
        with pytest.raises(ModuleNotFoundError):
            await progress_service.get_content_status("user-1", "mod-z", "0")

    @pytest.mark.asyncio
    async def test_summary_defaults_to_zero(self, progress_service) -> None:
        summary = await progress_service.get_summary("user-1", "course-2")
        assert summary.percentage == 0
        assert summary.total_count == 0

    @pytest.mark.asyncio
    async def test_list_my_courses(self, progress_service, store) -> None:
        store.summaries[("user-1", "course-2")] = CourseProgressSummary(
            course_id="course-2", completed_count=1, total_count=1
        )

        items = await progress_service.list_my_courses("user-1")

        assert [i.course.id for i in items] == ["course-1", "course-2", "course-empty"]
        assert items[0].summary.percentage == 0
        assert items[1].summary.percentage == 100

    @pytest.mark.asyncio
    async def test_list_my_courses_unknown_user(self, progress_service) -> None:
        with pytest.raises(UserNotFoundError):
            await progress_service.list_my_courses("ghost")

    @pytest.mark.asyncio
    async def test_recompute_repairs_stale_summary(
        self, progress_service, store
    ) -> None:
        store.records[("user-1", "mod-b")] = ModuleProgress(
            user_id="user-1",
            module_id="mod-b",
            course_id="course-1",
            completed_positions={"0", "1"},
        )
        store.summaries[("user-1", "course-1")] = CourseProgressSummary(
            course_id="course-1", completed_count=7, total_count=8
        )

        summary = await progress_service.recompute("user-1", "course-1")

        assert summary.completed_count == 2
        assert summary.percentage == 25
        assert store.summaries[("user-1", "course-1")].percentage == 25
