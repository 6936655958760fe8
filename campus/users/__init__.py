"""User directory (read-only)."""

from .models import USERS_TABLES_CQL, User


__all__ = ["USERS_TABLES_CQL", "User"]
