"""Read-only access to the user directory."""

from typing import TYPE_CHECKING

from campus.users.models import User


if TYPE_CHECKING:
    from cassandra.cluster import Session


class UserService:
    """User lookups."""

    def __init__(self, session: "Session", keyspace: str):
        """Initialize with Cassandra session."""
        self.session = session
        self.keyspace = keyspace
        self._get_user_by_id = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.users WHERE id = ?"
        )

    async def get_user(self, user_id: str) -> User | None:
        """Get user by ID."""
        result = await self.session.aexecute(self._get_user_by_id, [user_id])
        row = result.one()
        return User.from_row(row) if row else None
