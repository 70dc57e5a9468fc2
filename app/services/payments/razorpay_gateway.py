"""Razorpay checkout orders and payment signature checks."""

import asyncio
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional

import razorpay
from razorpay.errors import SignatureVerificationError

from app.models.subscription import Plan
from app.utils.exceptions import ConfigurationError, UpstreamServiceError
from app.utils.logger import get_logger, log_extra

logger = get_logger(__name__)

CURRENCY = "INR"


@dataclass
class GatewayOrder:
    """Order returned to the checkout client."""

    order_id: str
    amount: int
    currency: str
    key_id: str

    def to_dict(self) -> dict:
        return {
            "orderId": self.order_id,
            "amount": self.amount,
            "currency": self.currency,
            "keyId": self.key_id,
        }


class RazorpayGateway:
    """Creates checkout orders and verifies the signatures checkout hands back."""

    def __init__(self, key_id: str, key_secret: str, client: Optional[Any] = None):
        """
        Initialize the gateway.

        Args:
            key_id: Public key id, also handed to the checkout client
            key_secret: Server-held secret
            client: Pre-built ``razorpay.Client`` (tests)
        """
        self.key_id = key_id
        self.key_secret = key_secret
        self.client = client or razorpay.Client(auth=(key_id, key_secret))

    def ensure_configured(self) -> None:
        """Raise ConfigurationError when the key pair is incomplete."""
        if not self.key_id or not self.key_secret:
            raise ConfigurationError("Razorpay keys not found in environment variables.")

    @staticmethod
    def build_order_request(plan: Plan, user_id: str) -> Dict[str, Any]:
        """Order body: amount in paise, a timestamped receipt, and the buyer in notes."""
        return {
            "amount": plan.price * 100,
            "currency": CURRENCY,
            "receipt": f"receipt_order_{int(time.time() * 1000)}",
            "notes": {"userId": user_id, "planId": plan.id.value},
        }

    async def create_order(self, plan: Plan, user_id: str) -> GatewayOrder:
        """
        Create an order for one plan purchase.

        Raises:
            ConfigurationError: If the keys are missing
            UpstreamServiceError: If the gateway rejects the request
        """
        self.ensure_configured()
        body = self.build_order_request(plan, user_id)

        try:
            # The SDK is blocking
            order = await asyncio.to_thread(self.client.order.create, data=body)
        except Exception as e:
            logger.error(
                f"Error creating Razorpay order: {e}",
                extra=log_extra(user_id=user_id, plan_id=plan.id.value),
            )
            raise UpstreamServiceError("Could not create payment order.") from e

        logger.info(f"Razorpay order {order.get('id')} created for user {user_id} ({plan.id.value})")
        return GatewayOrder(
            order_id=order["id"],
            amount=order.get("amount", body["amount"]),
            currency=order.get("currency", CURRENCY),
            key_id=self.key_id,
        )

    def verify_payment_signature(self, order_id: str, payment_id: str, signature: str) -> bool:
        """
        Check the hex HMAC-SHA256 of ``"{order_id}|{payment_id}"`` under the key secret.

        Raises:
            ConfigurationError: If no key secret is configured
        """
        if not self.key_secret:
            raise ConfigurationError("Razorpay key secret not found in environment variables.")

        try:
            self.client.utility.verify_payment_signature({
                "razorpay_order_id": order_id,
                "razorpay_payment_id": payment_id,
                "razorpay_signature": signature,
            })
        except SignatureVerificationError:
            return False
        return True
