"""Bearer token authentication."""

from .dependencies import CurrentUser, get_current_user
from .schemas import AuthenticatedUser


__all__ = ["AuthenticatedUser", "CurrentUser", "get_current_user"]
