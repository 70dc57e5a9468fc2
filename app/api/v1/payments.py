"""Payment gateway endpoints: order creation, payment verification and webhook."""

from fastapi import APIRouter, Depends, Request

from app.dependencies import (
    AuthContext,
    get_current_user,
    get_payment_gateway,
    get_quota_manager,
)
from app.models.subscription import find_plan
from app.schemas.subscription_schema import OrderRequest, VerifyPaymentRequest
from app.services.payments.razorpay_gateway import RazorpayGateway
from app.services.quota_manager import PaymentProof, QuotaManager
from app.utils.exceptions import AuthorizationError, ConfigurationError, NotFoundError
from app.utils.logger import get_logger, log_extra, request_fields

logger = get_logger(__name__)
router = APIRouter()


def get_configured_gateway(gateway: RazorpayGateway = Depends(get_payment_gateway)) -> RazorpayGateway:
    """Gateway with a complete key pair; checked before the caller is."""
    gateway.ensure_configured()
    return gateway


def require_key_secret(gateway: RazorpayGateway = Depends(get_payment_gateway)) -> None:
    if not gateway.key_secret:
        raise ConfigurationError("Razorpay key secret not found in environment variables.")


@router.post("/order")
async def create_order(
    payload: OrderRequest,
    gateway: RazorpayGateway = Depends(get_configured_gateway),
    user: AuthContext = Depends(get_current_user),
) -> dict:
    """
    Open a checkout order for a plan.

    Returns:
        ``{orderId, amount, currency, keyId}``

    Raises:
        AuthorizationError: If ``userId`` is not the caller
        NotFoundError: If the plan is unknown
    """
    if payload.user_id != user.uid:
        raise AuthorizationError("User ID mismatch.")

    plan = find_plan(payload.plan_id)
    if plan is None:
        raise NotFoundError("Plan not found.")

    order = await gateway.create_order(plan, user.uid)
    return order.to_dict()


@router.post("/verify")
async def verify_payment(
    payload: VerifyPaymentRequest,
    _: None = Depends(require_key_secret),
    user: AuthContext = Depends(get_current_user),
    quota: QuotaManager = Depends(get_quota_manager),
) -> dict:
    """
    Verify a payment signature and activate the purchased plan for the caller.

    Raises:
        ValidationError: If the signature does not match
        NotFoundError: If the plan is unknown
    """
    proof = PaymentProof(
        order_id=payload.order_id,
        payment_id=payload.payment_id,
        signature=payload.signature,
    )
    await quota.verify_and_activate(proof, payload.plan_id, user.uid)
    return {"status": "success", "message": "Subscription activated successfully."}


@router.post("/webhook")
async def payment_webhook(request: Request) -> dict:
    """Acknowledge a gateway callback; subscription state is only changed by /verify."""
    body = await request.body()
    logger.info(
        "Payment webhook received but not processed for subscription updates",
        extra=log_extra(**request_fields(request), bytes=len(body)),
    )
    return {"status": "ok", "message": "Webhook received but not processed for subscription updates."}
