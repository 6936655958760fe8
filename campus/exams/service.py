"""Read-only access to exam results."""

from typing import TYPE_CHECKING

from campus.exams.models import ExamStatus


if TYPE_CHECKING:
    from cassandra.cluster import Session


class ExamService:
    """Exam gate queries used by certification."""

    def __init__(self, session: "Session", keyspace: str):
        """Initialize with Cassandra session."""
        self.session = session
        self.keyspace = keyspace
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        """Prepare CQL statements."""
        self._get_course_exams = self.session.prepare(
            f"SELECT exam_id, status FROM {self.keyspace}.exams_by_course "
            "WHERE course_id = ?"
        )
        self._get_attempts = self.session.prepare(
            f"SELECT attempt_id, passed FROM {self.keyspace}.exam_attempts "
            "WHERE user_id = ? AND course_id = ?"
        )

    async def has_active_exam(self, course_id: str) -> bool:
        """Check whether the course has at least one active graded exam."""
        rows = await self.session.aexecute(self._get_course_exams, [course_id])
        return any(row.status == ExamStatus.ACTIVE.value for row in rows)

    async def find_passed_attempt(self, user_id: str, course_id: str) -> bool:
        """Check whether the user has a passed attempt for the course."""
        rows = await self.session.aexecute(self._get_attempts, [user_id, course_id])
        return any(row.passed for row in rows)
