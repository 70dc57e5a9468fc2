"""
User Request/Response Schemas
API schemas for account creation and sign-in.
"""

from typing import Optional

from pydantic import BaseModel, Field, field_validator


class SignUpRequest(BaseModel):
    """User signup request."""

    email: str = Field(min_length=3, max_length=254, description="Sign-in email")
    password: str = Field(
        min_length=6,
        description="Password (minimum 6 characters)"
    )

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        """Validate email format."""
        v = v.strip().lower()
        local, _, domain = v.partition("@")
        if not local or "." not in domain:
            raise ValueError("Please enter a valid email.")
        return v


class LoginRequest(BaseModel):
    """User login request (local dev mode)."""

    email: str = Field(description="Sign-in email")
    password: str = Field(description="Password")


class AuthData(BaseModel):
    """Account data returned after signup or login."""

    uid: str = Field(description="User ID")
    email: str = Field(description="Sign-in email")
    token: Optional[str] = Field(default=None, description="Bearer token (local dev mode only)")
