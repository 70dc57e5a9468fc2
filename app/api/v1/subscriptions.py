"""Plan listing and subscription status endpoints."""

from fastapi import APIRouter, Depends, Request
from fastapi.responses import StreamingResponse

from app.crud.user import UserCRUD
from app.dependencies import AuthContext, get_current_user, get_quota_manager, get_user_crud
from app.models.subscription import PLANS, SubscriptionRecord, SubscriptionStatus
from app.schemas.responses import ApiResponse
from app.services.live_updates import SnapshotFeed
from app.services.quota_manager import QuotaManager, check_authorization
from app.utils.logger import get_logger

logger = get_logger(__name__)
router = APIRouter()


def subscription_view(record: SubscriptionRecord, now) -> dict:
    """Subscription as the client sees it; an expired plan reads as unsubscribed."""
    active = record.is_active(now)
    data = record.to_dict()
    data.pop("paymentId", None)
    data.pop("orderId", None)
    data["subscriptionStatus"] = (
        SubscriptionStatus.SUBSCRIBED.value if active else SubscriptionStatus.UNSUBSCRIBED.value
    )
    data["subscriptionEndDate"] = (
        record.subscription_end_date.isoformat() if record.subscription_end_date else None
    )
    data["lastPaymentDate"] = record.last_payment_date.isoformat() if record.last_payment_date else None
    data["storiesLeft"] = record.stories_left() if active else 0
    data["authorization"] = check_authorization(record, now).to_dict()
    return data


@router.get("/plans", response_model=ApiResponse[list])
async def list_plans() -> ApiResponse[list]:
    """All purchasable plans."""
    return ApiResponse.success_response([plan.to_dict() for plan in PLANS.values()])


@router.get("/me", response_model=ApiResponse[dict])
async def get_my_subscription(
    user: AuthContext = Depends(get_current_user),
    quota: QuotaManager = Depends(get_quota_manager),
) -> ApiResponse[dict]:
    """The caller's subscription, stories left this month and whether generation is allowed."""
    record = await quota.get_subscription(user.uid)
    return ApiResponse.success_response(subscription_view(record, quota.clock()))


@router.get("/me/stream")
async def stream_my_subscription(
    request: Request,
    user: AuthContext = Depends(get_current_user),
    users: UserCRUD = Depends(get_user_crud),
    quota: QuotaManager = Depends(get_quota_manager),
) -> StreamingResponse:
    """Server-sent events with the full subscription view on every change."""

    def transform(snapshots):
        data = snapshots[0].to_dict() if snapshots and snapshots[0].exists else None
        return subscription_view(SubscriptionRecord.from_dict(data), quota.clock())

    feed = SnapshotFeed(users.document(user.uid), transform)
    logger.info(f"Subscription stream opened for user {user.uid}")
    return StreamingResponse(feed.events(request), media_type="text/event-stream")
