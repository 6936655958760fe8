"""Tests for the user, course and exam directory lookups."""

from types import SimpleNamespace
from unittest.mock import AsyncMock, Mock

import pytest
from cassandra.cluster import Session

from campus.courses.service import CourseService, ModuleService
from campus.exams.service import ExamService
from campus.users.service import UserService


def _result(row):
    return Mock(one=Mock(return_value=row))


def _content(position, title, content_type="video", content_id=None):
    return SimpleNamespace(
        position=position,
        title=title,
        content_type=content_type,
        content_id=content_id,
        duration_seconds=None,
    )


@pytest.fixture
def mock_session():
    """Mock Cassandra session."""
    session = Mock(spec=Session)
    session.prepare = Mock(return_value=Mock())
    session.aexecute = AsyncMock()
    return session


@pytest.mark.asyncio
async def test_user_lookup(mock_session) -> None:
    mock_session.aexecute.return_value = _result(
        SimpleNamespace(
            id="user-1",
            email="ana@example.com",
            first_name="Ana",
            last_name=None,
            national_id=None,
            assigned_courses=None,
            updated_at=None,
        )
    )

    user = await UserService(mock_session, "ks").get_user("user-1")

    assert user.full_name == "Ana"
    assert user.national_id == ""
    assert user.is_entitled_to("course-1") is False


@pytest.mark.asyncio
async def test_missing_course(mock_session) -> None:
    mock_session.aexecute.return_value = _result(None)
    assert await CourseService(mock_session, "ks").get_course("nope") is None


@pytest.mark.asyncio
async def test_module_contents_ordered_by_position(mock_session) -> None:
    mock_session.aexecute.side_effect = [
        _result(SimpleNamespace(id="mod-a", course_id="course-1", title="A")),
        [
            _content(1, "Guia", "pdf"),
            _content(0, "Intro", content_id="vid-intro"),
            _content(2, "Extra", "contenido_extra"),
        ],
    ]

    module = await ModuleService(mock_session, "ks").get_module("mod-a")

    assert [c.title for c in module.contents] == ["Intro", "Guia", "Extra"]
    assert [c.title for c in module.countable_contents] == ["Intro", "Guia"]


@pytest.mark.asyncio
async def test_get_modules_skips_missing(mock_session) -> None:
    service = ModuleService(mock_session, "ks")
    found = Mock(id="mod-b")
    service.get_module = AsyncMock(side_effect=[None, found])

    modules = await service.get_modules(["mod-a", "mod-b"])

    assert modules == [found]


@pytest.mark.asyncio
async def test_exam_gate_queries(mock_session) -> None:
    service = ExamService(mock_session, "ks")

    mock_session.aexecute.return_value = [
        SimpleNamespace(exam_id="e1", status="inactivo"),
        SimpleNamespace(exam_id="e2", status="activo"),
    ]
    assert await service.has_active_exam("course-1") is True

    mock_session.aexecute.return_value = [
        SimpleNamespace(attempt_id="a1", passed=False),
        SimpleNamespace(attempt_id="a2", passed=None),
    ]
    assert await service.find_passed_attempt("user-1", "course-1") is False
