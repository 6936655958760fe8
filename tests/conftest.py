"""Shared fixtures: in-memory directories, progress store and certificate table."""

import os
import tempfile

from types import SimpleNamespace
from unittest.mock import AsyncMock, Mock

import pytest


os.environ.setdefault("ENVIRONMENT", "testing")
os.environ.setdefault("LOG_DIR", tempfile.mkdtemp(prefix="campus-logs-"))
os.environ.setdefault("LOG_LEVEL", "WARNING")

from campus.certificates.rendering import CertificateRenderer  # noqa: E402
from campus.certificates.service import CertificateService  # noqa: E402
from campus.courses.models import Content, Course, Module  # noqa: E402
from campus.progress.models import CourseProgressSummary, ModuleProgress  # noqa: E402
from campus.progress.service import ProgressService  # noqa: E402
from campus.users.models import User  # noqa: E402


# ==============================================================================
# In-memory collaborators
# ==============================================================================


class FakeCatalog:
    """Users, courses, modules and exam results held in dictionaries.

    Serves as user, course, module and exam directory at once.
    """

    def __init__(self) -> None:
        self.users: dict[str, User] = {}
        self.courses: dict[str, Course] = {}
        self.modules: dict[str, Module] = {}
        self.active_exams: set[str] = set()
        self.passed_attempts: set[tuple[str, str]] = set()

    async def get_user(self, user_id: str) -> User | None:
        return self.users.get(user_id)

    async def get_course(self, course_id: str) -> Course | None:
        return self.courses.get(course_id)

    async def get_module(self, module_id: str) -> Module | None:
        return self.modules.get(module_id)

    async def get_modules(self, module_ids) -> list[Module]:
        return [self.modules[m] for m in module_ids if m in self.modules]

    async def has_active_exam(self, course_id: str) -> bool:
        return course_id in self.active_exams

    async def find_passed_attempt(self, user_id: str, course_id: str) -> bool:
        return (user_id, course_id) in self.passed_attempts


class FakeProgressStore:
    """ProgressStore with set-union/difference semantics, kept in memory."""

    def __init__(self) -> None:
        self.records: dict[tuple[str, str], ModuleProgress] = {}
        self.summaries: dict[tuple[str, str], CourseProgressSummary] = {}
        self.writes: list[tuple] = []

    @staticmethod
    def _copy(record: ModuleProgress, positions: set[str]) -> ModuleProgress:
        return ModuleProgress(
            user_id=record.user_id,
            module_id=record.module_id,
            course_id=record.course_id,
            completed_positions=set(positions),
            is_complete=record.is_complete,
            updated_at=record.updated_at,
        )

    async def get_module_progress(self, user_id, module_id):
        record = self.records.get((user_id, module_id))
        return self._copy(record, record.completed_positions) if record else None

    async def get_modules_progress(self, user_id, module_ids):
        result = {}
        for module_id in module_ids:
            record = await self.get_module_progress(user_id, module_id)
            if record is not None:
                result[module_id] = record
        return result

    async def get_summary(self, user_id, course_id):
        return self.summaries.get((user_id, course_id))

    async def get_user_summaries(self, user_id):
        return {c: s for (u, c), s in self.summaries.items() if u == user_id}

    async def add_completed_position(self, record, position, aliases=None, summary=None):
        key = (record.user_id, record.module_id)
        current = self.records.get(key)
        positions = current.completed_positions if current else set()
        positions = (positions - set(aliases or ())) | {position}
        self.records[key] = self._copy(record, positions)
        if summary is not None:
            self.summaries[(record.user_id, summary.course_id)] = summary
        self.writes.append(("add", record.module_id, position, summary))

    async def remove_completed_positions(self, record, entries, summary=None):
        key = (record.user_id, record.module_id)
        current = self.records.get(key)
        positions = (current.completed_positions if current else set()) - set(entries)
        self.records[key] = self._copy(record, positions)
        if summary is not None:
            self.summaries[(record.user_id, summary.course_id)] = summary
        self.writes.append(("remove", record.module_id, frozenset(entries), summary))

    async def settle_module(self, record, summary, now):
        key = (record.user_id, record.module_id)
        current = self.records.get(key)
        positions = current.completed_positions if current else set()
        self.records[key] = self._copy(record, positions)
        if summary is not None:
            self.summaries[(record.user_id, summary.course_id)] = summary
        self.writes.append(("settle", record.module_id, record.is_complete, summary))

    async def save_summary(self, user_id, summary, now):
        self.summaries[(user_id, summary.course_id)] = summary
        self.writes.append(("summary", summary.course_id, summary))


class FakeResult(list):
    """Result set stand-in supporting iteration and ``one()``."""

    def one(self):
        return self[0] if self else None


CERTIFICATE_COLUMNS = (
    "certificate_id",
    "user_id",
    "course_id",
    "full_name",
    "national_id",
    "course_name",
    "completion_date",
    "issuance_date",
    "verification_url",
    "qr_code_image",
    "kind",
)


class FakeCertificateSession:
    """Session stand-in for the ``certificates`` table."""

    def __init__(self) -> None:
        self.rows: dict[str, SimpleNamespace] = {}

    def prepare(self, query: str) -> str:
        return " ".join(query.split())

    async def aexecute(self, statement, params=None):
        if statement.startswith("INSERT INTO"):
            row = SimpleNamespace(**dict(zip(CERTIFICATE_COLUMNS, params, strict=True)))
            self.rows[row.certificate_id] = row
            return FakeResult()
        row = self.rows.get(params[0])
        return FakeResult([row] if row else [])


# ==============================================================================
# Catalog fixture data
# ==============================================================================


def _contents(*items: tuple[str, str, str]) -> list[Content]:
    return [
        Content(position=i, title=title, content_type=kind, content_id=cid)
        for i, (cid, title, kind) in enumerate(items)
    ]


@pytest.fixture
def catalog() -> FakeCatalog:
    """Course with two modules of 4 countable items each.

    ``mod-a`` also carries a supplementary item at position 4.
    """
    data = FakeCatalog()

    data.modules["mod-a"] = Module(
        id="mod-a",
        course_id="course-1",
        title="Fundamentos",
        contents=_contents(
            ("vid-intro", "Introduccion", "video"),
            ("pdf-guia", "Guia de estudio", "pdf"),
            ("vid-caso", "Caso clinico", "video"),
            ("eval-1", "Autoevaluacion", "evaluacion"),
            ("extra-1", "Lecturas extra", "contenido_extra"),
        ),
    )
    data.modules["mod-b"] = Module(
        id="mod-b",
        course_id="course-1",
        title="Aplicaciones",
        contents=_contents(
            ("b-0", "Clase 1", "video"),
            ("b-1", "Clase 2", "video"),
            ("b-2", "Clase 3", "video"),
            ("b-3", "Clase 4", "video"),
        ),
    )
    data.modules["mod-x"] = Module(
        id="mod-x",
        course_id="course-2",
        title="Otro curso",
        contents=_contents(("x-0", "Unica clase", "video")),
    )

    data.courses["course-1"] = Course(
        id="course-1",
        title="Farmacología Básica",
        description="Curso introductorio",
        image_url="https://cdn.example.com/c1.png",
        module_ids=["mod-a", "mod-b"],
    )
    data.courses["course-2"] = Course(
        id="course-2", title="Curso dos", module_ids=["mod-x"]
    )
    data.courses["course-empty"] = Course(id="course-empty", title="Vacio")

    data.users["user-1"] = User(
        id="user-1",
        email="ana@example.com",
        first_name="Ana",
        last_name="Pérez",
        national_id="30111222",
        assigned_courses={"course-1", "course-2", "course-empty", "course-gone"},
    )
    data.users["user-2"] = User(
        id="user-2", first_name="Sin", last_name="Cursos", national_id="30999888"
    )
    data.users["user-3"] = User(
        id="user-3",
        first_name="Luis",
        last_name="Gomez",
        national_id="",
        assigned_courses={"course-1"},
    )
    return data


@pytest.fixture
def store() -> FakeProgressStore:
    return FakeProgressStore()


@pytest.fixture
def progress_service(catalog, store) -> ProgressService:
    return ProgressService(
        user_service=catalog,
        course_service=catalog,
        module_service=catalog,
        store=store,
    )


@pytest.fixture
def certificate_session() -> FakeCertificateSession:
    return FakeCertificateSession()


@pytest.fixture
def mock_renderer():
    """Renderer that returns a fixed document."""
    renderer = Mock(spec=CertificateRenderer)
    renderer.render_async = AsyncMock(return_value=b"%PDF-1.4 fake")
    return renderer


@pytest.fixture
def certificate_service(
    catalog, progress_service, certificate_session, mock_renderer
) -> CertificateService:
    return CertificateService(
        session=certificate_session,
        keyspace="test_keyspace",
        user_service=catalog,
        course_service=catalog,
        exam_service=catalog,
        aggregator=progress_service.aggregator,
        renderer=mock_renderer,
        public_base_url="https://estudiante-qa.ineeoficial.com/",
    )


@pytest.fixture
def complete_module(catalog, progress_service):
    """Mark every countable item of a module completed."""

    async def _complete(user_id: str, module_id: str) -> None:
        module = catalog.modules[module_id]
        for content in module.countable_contents:
            await progress_service.mark_completed(
                user_id, module.course_id, module_id, str(content.position)
            )

    return _complete
