"""
Inkling Models
Firestore document representations and data models.
"""

from app.models.user import UserModel
from app.models.story import (
    AgeGroup,
    ImageStyle,
    NewStoryData,
    ReadingLevel,
    StoryModel,
    StoryPage,
    StoryTheme,
)
from app.models.subscription import (
    PLANS,
    Plan,
    PlanId,
    SubscriptionRecord,
    SubscriptionStatus,
    find_plan,
)

__all__ = [
    "UserModel",
    "AgeGroup",
    "ImageStyle",
    "NewStoryData",
    "ReadingLevel",
    "StoryModel",
    "StoryPage",
    "StoryTheme",
    "PLANS",
    "Plan",
    "PlanId",
    "SubscriptionRecord",
    "SubscriptionStatus",
    "find_plan",
]
