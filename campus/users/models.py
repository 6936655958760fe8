"""Database models for the user directory.

Users are registered and assigned to courses by the enrollment/payment flow;
this service reads them and only touches ``updated_at`` when the progress
summary changes.
"""

from datetime import datetime
from typing import Any

from campus.utils.dates import ensure_utc_aware


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

# Usuarios: cursos asignados como SET para verificar acceso
USERS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.users (
    id TEXT PRIMARY KEY,
    email TEXT,
    first_name TEXT,
    last_name TEXT,
    national_id TEXT,
    assigned_courses SET<TEXT>,
    created_at TIMESTAMP,
    updated_at TIMESTAMP
)
"""

USERS_TABLES_CQL = [USERS_TABLE_CQL]


# ==============================================================================
# Entity Classes
# ==============================================================================


class User:
    """User entity as seen by progress tracking and certification.

    Attributes:
        id: Opaque user ID
        email: Contact email
        first_name: Given name
        last_name: Family name
        national_id: National identity document number (DNI)
        assigned_courses: IDs of the courses the user is entitled to
        updated_at: Last modification of the user record
    """

    def __init__(
        self,
        id: str,
        email: str | None = None,
        first_name: str = "",
        last_name: str = "",
        national_id: str = "",
        assigned_courses: set[str] | None = None,
        updated_at: datetime | None = None,
    ):
        self.id = id
        self.email = email
        self.first_name = first_name
        self.last_name = last_name
        self.national_id = national_id
        self.assigned_courses = set(assigned_courses or ())
        self.updated_at = ensure_utc_aware(updated_at)

    @property
    def full_name(self) -> str:
        """First and last name joined, empty parts dropped."""
        return f"{self.first_name or ''} {self.last_name or ''}".strip()

    def is_entitled_to(self, course_id: str) -> bool:
        """Check whether the course is assigned to the user."""
        return course_id in self.assigned_courses

    @classmethod
    def from_row(cls, row: Any) -> "User":
        """Create User instance from Cassandra row."""
        return cls(
            id=row.id,
            email=row.email,
            first_name=row.first_name or "",
            last_name=row.last_name or "",
            national_id=row.national_id or "",
            assigned_courses=row.assigned_courses or set(),
            updated_at=row.updated_at,
        )

    def __repr__(self) -> str:
        return f"<User {self.id} courses={len(self.assigned_courses)}>"
