"""Pydantic schemas for authentication."""

from pydantic import BaseModel, Field


class AuthenticatedUser(BaseModel):
    """Identity carried by a verified access token."""

    id: str = Field(..., description="User ID (token subject)")
    email: str | None = None
