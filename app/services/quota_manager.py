"""
Subscription quota management.

Decides whether a user may start a story generation, debits one unit per
attempt, and activates a plan after a verified payment. Activation is the
only place the monthly counter is reset.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Callable, Optional

from app.crud.user import UserCRUD
from app.models.subscription import SubscriptionRecord, find_plan
from app.services.payments.razorpay_gateway import RazorpayGateway
from app.utils.exceptions import (
    ConfigurationError,
    GenerationDeniedError,
    NotFoundError,
    ValidationError,
)
from app.utils.logger import get_logger

logger = get_logger(__name__)

SUBSCRIPTION_PERIOD = timedelta(days=30)


class DenialReason(str, Enum):
    """Why a generation was refused."""
    NOT_SUBSCRIBED = "NOT_SUBSCRIBED"
    LIMIT_REACHED = "LIMIT_REACHED"


DENIAL_MESSAGES = {
    DenialReason.NOT_SUBSCRIBED: "You need an active subscription to generate stories. Please choose a plan to continue.",
    DenialReason.LIMIT_REACHED: "You have used all your stories for this month.",
}


@dataclass(frozen=True)
class AuthorizationDecision:
    """Outcome of a quota check."""

    allowed: bool
    reason: Optional[DenialReason] = None

    @property
    def message(self) -> Optional[str]:
        return DENIAL_MESSAGES[self.reason] if self.reason else None

    def to_dict(self) -> dict:
        return {
            "allowed": self.allowed,
            "reason": self.reason.value if self.reason else None,
            "message": self.message,
        }

    def raise_if_denied(self) -> None:
        """Raise GenerationDeniedError carrying the denial reason."""
        if not self.allowed:
            raise GenerationDeniedError(self.reason.value, self.message)


@dataclass(frozen=True)
class PaymentProof:
    """Identifiers and signature handed back by the checkout client."""

    order_id: str
    payment_id: str
    signature: str


def check_authorization(subscription: SubscriptionRecord, now: datetime) -> AuthorizationDecision:
    """
    Decide whether a story generation may start.

    Allowed iff the record is subscribed, ``now`` is before the end date and
    the monthly counter is below the limit. Pure; performs no writes.
    """
    if not subscription.is_active(now):
        return AuthorizationDecision(allowed=False, reason=DenialReason.NOT_SUBSCRIBED)
    if subscription.stories_generated_this_month >= subscription.monthly_story_limit:
        return AuthorizationDecision(allowed=False, reason=DenialReason.LIMIT_REACHED)
    return AuthorizationDecision(allowed=True)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class QuotaManager:
    """Reads, debits and resets the per-user generation quota."""

    def __init__(
        self,
        user_crud: UserCRUD,
        gateway: Optional[RazorpayGateway] = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        """
        Args:
            user_crud: Access to user documents
            gateway: Payment gateway that checks payment signatures
            clock: Source of the current time
        """
        self.users = user_crud
        self.gateway = gateway
        self.clock = clock

    async def get_subscription(self, user_id: str) -> SubscriptionRecord:
        return await self.users.get_subscription(user_id)

    async def authorize(self, user_id: str) -> AuthorizationDecision:
        """Read the user's record and check it against the current time."""
        subscription = await self.users.get_subscription(user_id)
        decision = check_authorization(subscription, self.clock())
        if not decision.allowed:
            logger.info(f"Generation denied for user {user_id}: {decision.reason.value}")
        return decision

    async def record_generation_start(self, user_id: str) -> None:
        """
        Debit one unit for a generation attempt.

        Atomic increment; never gates and is never refunded.
        """
        await self.users.increment_stories_generated(user_id)
        logger.info(f"Generation recorded for user {user_id}")

    async def verify_and_activate(
        self,
        proof: PaymentProof,
        plan_id: str,
        user_id: str,
    ) -> SubscriptionRecord:
        """
        Verify a payment signature and activate the purchased plan.

        Overwrites the subscription fields with a fresh 30-day period and a
        zeroed counter.

        Raises:
            ConfigurationError: If no gateway secret is configured
            ValidationError: If the signature does not match (no mutation)
            NotFoundError: If the plan is unknown (no mutation)
        """
        if self.gateway is None:
            raise ConfigurationError("Payment gateway not configured.")

        if not self.gateway.verify_payment_signature(proof.order_id, proof.payment_id, proof.signature):
            logger.warning(f"Payment signature mismatch for user {user_id}, order {proof.order_id}")
            raise ValidationError("Invalid signature")

        plan = find_plan(plan_id)
        if plan is None:
            logger.error(f"Verification error: plan '{plan_id}' does not match any configured plan")
            raise NotFoundError("Plan not found.")

        now = self.clock()
        record = await self.users.activate_subscription(
            user_id,
            plan,
            end_date=now + SUBSCRIPTION_PERIOD,
            payment_date=now,
            payment_id=proof.payment_id,
            order_id=proof.order_id,
        )
        logger.info(f"Subscription {plan.name} activated for user {user_id} until {record.subscription_end_date}")
        return record
