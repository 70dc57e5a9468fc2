"""
Subscription Models
Defines the paid plans and the per-user subscription record.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class PlanId(str, Enum):
    """Purchasable plan identifiers."""
    CREATOR = "plan_creator"
    PRO = "plan_pro"


class SubscriptionStatus(str, Enum):
    """Subscription status enumeration."""
    SUBSCRIBED = "subscribed"
    UNSUBSCRIBED = "unsubscribed"


class Plan(BaseModel):
    """Subscription plan definition."""

    id: PlanId = Field(description="Plan identifier")
    name: str = Field(description="Display name, stored on the subscription record")
    price: int = Field(gt=0, description="Monthly price in INR")
    description: str = Field(description="Plan description")
    features: List[str] = Field(default_factory=list, description="Marketing feature list")
    monthly_story_limit: int = Field(ge=1, description="Stories that may be generated per billing cycle")

    def to_dict(self) -> dict:
        """Convert plan to the camelCase shape used by the web client."""
        return {
            "id": self.id.value,
            "name": self.name,
            "price": self.price,
            "description": self.description,
            "features": self.features,
            "monthlyStoryLimit": self.monthly_story_limit,
        }


PLANS: Dict[PlanId, Plan] = {
    PlanId.CREATOR: Plan(
        id=PlanId.CREATOR,
        name="Creator",
        price=199,
        description="Perfect for getting started and bringing your first few stories to life.",
        features=[
            "Generate up to 5 stories per month",
            "Access to all illustration styles",
            "Standard story generation speed",
            "Community support",
        ],
        monthly_story_limit=5,
    ),
    PlanId.PRO: Plan(
        id=PlanId.PRO,
        name="Pro",
        price=599,
        description="For prolific storytellers who want to unleash their full creative potential.",
        features=[
            "Generate up to 15 stories per month",
            "Access to all illustration styles",
            "Priority story generation",
            "Email support",
        ],
        monthly_story_limit=15,
    ),
}


def find_plan(plan_id: str) -> Optional[Plan]:
    """Look up a plan by its identifier string."""
    try:
        return PLANS[PlanId(plan_id)]
    except ValueError:
        return None


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Treat naive datetimes read back from storage as UTC."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class SubscriptionRecord(BaseModel):
    """Subscription fields of the user document in the ``users`` collection."""

    model_config = ConfigDict(populate_by_name=True)

    status: SubscriptionStatus = Field(
        default=SubscriptionStatus.UNSUBSCRIBED, alias="subscriptionStatus"
    )
    plan_id: Optional[str] = Field(default=None, alias="planId")
    subscription_end_date: Optional[datetime] = Field(default=None, alias="subscriptionEndDate")
    monthly_story_limit: int = Field(default=0, ge=0, alias="monthlyStoryLimit")
    stories_generated_this_month: int = Field(default=0, ge=0, alias="storiesGeneratedThisMonth")
    last_payment_date: Optional[datetime] = Field(default=None, alias="lastPaymentDate")
    payment_id: Optional[str] = Field(default=None, alias="paymentId")
    order_id: Optional[str] = Field(default=None, alias="orderId")

    def is_active(self, now: datetime) -> bool:
        """A plan is active while subscribed and before its end date."""
        end_date = as_utc(self.subscription_end_date)
        return (
            self.status == SubscriptionStatus.SUBSCRIBED
            and end_date is not None
            and now < end_date
        )

    def stories_left(self) -> int:
        return max(0, self.monthly_story_limit - self.stories_generated_this_month)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the Firestore document shape."""
        data = self.model_dump(by_alias=True)
        data["subscriptionStatus"] = self.status.value
        return data

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "SubscriptionRecord":
        """Build from a user document; a missing document means unsubscribed."""
        if not data:
            return cls()
        fields = {
            key: data[key]
            for key in (
                "subscriptionStatus",
                "planId",
                "subscriptionEndDate",
                "monthlyStoryLimit",
                "storiesGeneratedThisMonth",
                "lastPaymentDate",
                "paymentId",
                "orderId",
            )
            if data.get(key) is not None
        }
        return cls(**fields)
