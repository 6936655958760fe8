"""Database models for course exams and exam attempts.

Exams are authored and graded by the exams module; certification only asks
two questions: does the course have an active graded exam, and has the user
passed it.
"""

from enum import Enum


class ExamStatus(str, Enum):
    """Exam publication status."""

    ACTIVE = "activo"
    INACTIVE = "inactivo"


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

EXAMS_BY_COURSE_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.exams_by_course (
    course_id TEXT,
    exam_id TEXT,
    title TEXT,
    status TEXT,
    created_at TIMESTAMP,
    PRIMARY KEY (course_id, exam_id)
)
"""

# Intentos de examen por (usuario, curso)
EXAM_ATTEMPTS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.exam_attempts (
    user_id TEXT,
    course_id TEXT,
    attempt_id TEXT,
    exam_id TEXT,
    score DECIMAL,
    passed BOOLEAN,
    submitted_at TIMESTAMP,
    PRIMARY KEY ((user_id, course_id), attempt_id)
)
"""

EXAMS_TABLES_CQL = [
    EXAMS_BY_COURSE_TABLE_CQL,
    EXAM_ATTEMPTS_TABLE_CQL,
]
