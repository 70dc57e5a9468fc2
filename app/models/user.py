"""
User Model
Represents the account document stored in the ``users`` collection.
"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.models.subscription import SubscriptionStatus


class UserModel(BaseModel):
    """User document created at sign-up, before any plan is purchased."""

    model_config = ConfigDict(populate_by_name=True)

    uid: str = Field(description="Unique user ID (from the identity provider)")
    email: str = Field(description="Sign-in email")
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        alias="createdAt",
        description="Account creation timestamp",
    )
    password_hash: Optional[str] = Field(
        default=None,
        alias="passwordHash",
        description="Only set in local dev mode",
    )

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        """Normalize the email used as the local login key."""
        if "@" not in v:
            raise ValueError("Please enter a valid email.")
        return v.strip().lower()

    def to_dict(self) -> Dict[str, Any]:
        """Convert user to dictionary for Firestore storage."""
        data = {
            "email": self.email,
            "createdAt": self.created_at,
            "subscriptionStatus": SubscriptionStatus.UNSUBSCRIBED.value,
            "monthlyStoryLimit": 0,
            "storiesGeneratedThisMonth": 0,
        }
        if self.password_hash:
            data["passwordHash"] = self.password_hash
        return data
