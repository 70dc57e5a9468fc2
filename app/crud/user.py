"""
User CRUD Operations
Database operations for user accounts and their subscription fields.
"""

from datetime import datetime
from typing import Any, Dict, Optional

from app.crud.base import BaseCRUD
from app.models.subscription import Plan, SubscriptionRecord, SubscriptionStatus
from app.models.user import UserModel
from app.services.local_store import Increment as LocalIncrement
from app.services.local_store import LocalStore


class UserCRUD(BaseCRUD):
    """CRUD operations for user documents."""

    @property
    def collection_name(self) -> str:
        """Get collection name."""
        return "users"

    def _increment(self, amount: int) -> Any:
        if isinstance(self.db, LocalStore):
            return LocalIncrement(amount)
        from google.cloud.firestore import Increment

        return Increment(amount)

    async def get_by_email(self, email: str) -> Optional[Dict[str, Any]]:
        """
        Get user by email.

        Args:
            email: Email to search for

        Returns:
            User document data with its ``uid`` or None if not found
        """
        docs = await self.find([("email", "==", email.strip().lower())])
        if docs:
            data = docs[0].to_dict()
            data["uid"] = docs[0].id
            return data
        return None

    async def create_user(self, user: UserModel) -> str:
        """
        Create a new user document.

        Args:
            user: UserModel instance

        Returns:
            Created user ID (uid)
        """
        await self.run(self.get_collection().document(user.uid).set, user.to_dict())
        return user.uid

    async def get_subscription(self, uid: str) -> SubscriptionRecord:
        """
        Read the subscription fields of a user.

        Args:
            uid: User ID

        Returns:
            SubscriptionRecord, unsubscribed when the document is missing
        """
        return SubscriptionRecord.from_dict(await self.get_by_id(uid))

    async def increment_stories_generated(self, uid: str) -> None:
        """
        Atomically add one to ``storiesGeneratedThisMonth``.

        Args:
            uid: User ID
        """
        await self.run(
            self.get_collection().document(uid).set,
            {"storiesGeneratedThisMonth": self._increment(1)},
            merge=True,
        )

    async def activate_subscription(
        self,
        uid: str,
        plan: Plan,
        end_date: datetime,
        payment_date: datetime,
        payment_id: str,
        order_id: str,
    ) -> SubscriptionRecord:
        """
        Overwrite the subscription fields after a verified payment.

        Profile fields on the same document (email, createdAt) are kept.

        Returns:
            The record that was written
        """
        record = SubscriptionRecord(
            status=SubscriptionStatus.SUBSCRIBED,
            plan_id=plan.name,
            subscription_end_date=end_date,
            monthly_story_limit=plan.monthly_story_limit,
            stories_generated_this_month=0,
            last_payment_date=payment_date,
            payment_id=payment_id,
            order_id=order_id,
        )
        await self.run(self.get_collection().document(uid).set, record.to_dict(), merge=True)
        return record

    def document(self, uid: str) -> Any:
        """Document reference, for snapshot listeners."""
        return self.get_collection().document(uid)
