"""
Subscription and Payment Request Schemas
API schemas for plan purchase and payment verification.
"""

from pydantic import AliasChoices, BaseModel, Field


class OrderRequest(BaseModel):
    """Request to open a checkout order for a plan."""

    plan_id: str = Field(min_length=1, alias="planId", description="Plan identifier")
    user_id: str = Field(min_length=1, alias="userId", description="Buyer; must be the caller")


class VerifyPaymentRequest(BaseModel):
    """Payment proof returned by the checkout client.

    The gateway's own field names (``razorpay_order_id`` ...) are accepted too.
    """

    order_id: str = Field(
        min_length=1,
        validation_alias=AliasChoices("orderId", "razorpay_order_id"),
    )
    payment_id: str = Field(
        min_length=1,
        validation_alias=AliasChoices("paymentId", "razorpay_payment_id"),
    )
    signature: str = Field(
        min_length=1,
        validation_alias=AliasChoices("signature", "razorpay_signature"),
    )
    plan_id: str = Field(min_length=1, alias="planId")
