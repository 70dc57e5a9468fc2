"""Quota checks, generation debits and payment activation."""

import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from conftest import TEST_KEY_ID, TEST_KEY_SECRET, sign_payment, subscription_doc

from app.models.subscription import SubscriptionRecord, SubscriptionStatus
from app.services.payments.razorpay_gateway import RazorpayGateway
from app.services.quota_manager import (
    DenialReason,
    PaymentProof,
    QuotaManager,
    check_authorization,
)
from app.utils.exceptions import (
    ConfigurationError,
    GenerationDeniedError,
    NotFoundError,
    ValidationError,
)

NOW = datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)


def record(status="subscribed", limit=5, used=0, end=NOW + timedelta(days=1)) -> SubscriptionRecord:
    return SubscriptionRecord(
        status=status,
        monthly_story_limit=limit,
        stories_generated_this_month=used,
        subscription_end_date=end,
    )


@pytest.mark.parametrize(
    "subscription, allowed, reason",
    [
        (record(), True, None),
        (record(used=4), True, None),
        (record(used=5), False, DenialReason.LIMIT_REACHED),
        (record(used=7), False, DenialReason.LIMIT_REACHED),
        (record(status="unsubscribed"), False, DenialReason.NOT_SUBSCRIBED),
        (record(end=NOW), False, DenialReason.NOT_SUBSCRIBED),
        (record(end=NOW - timedelta(seconds=1)), False, DenialReason.NOT_SUBSCRIBED),
        (record(end=None), False, DenialReason.NOT_SUBSCRIBED),
        (SubscriptionRecord(), False, DenialReason.NOT_SUBSCRIBED),
    ],
)
def test_check_authorization(subscription, allowed, reason):
    decision = check_authorization(subscription, NOW)
    assert decision.allowed is allowed
    assert decision.reason == reason


def test_expired_plan_is_reported_as_not_subscribed_even_at_limit():
    decision = check_authorization(record(used=5, end=NOW - timedelta(days=1)), NOW)
    assert decision.reason == DenialReason.NOT_SUBSCRIBED


def test_naive_end_date_is_treated_as_utc():
    naive_end = (NOW + timedelta(hours=1)).replace(tzinfo=None)
    assert check_authorization(record(end=naive_end), NOW).allowed


def test_denied_decision_raises_with_reason_code():
    decision = check_authorization(record(used=5), NOW)
    with pytest.raises(GenerationDeniedError) as exc_info:
        decision.raise_if_denied()
    assert exc_info.value.status_code == 403
    assert exc_info.value.error_code == "LIMIT_REACHED"


def test_gateway_accepts_only_the_matching_signature():
    gateway = RazorpayGateway(key_id=TEST_KEY_ID, key_secret=TEST_KEY_SECRET)

    assert gateway.verify_payment_signature("order_1", "pay_1", sign_payment("order_1", "pay_1"))
    assert not gateway.verify_payment_signature("order_1", "pay_2", sign_payment("order_1", "pay_1"))
    assert not gateway.verify_payment_signature(
        "order_1", "pay_1", sign_payment("order_1", "pay_1", secret="other")
    )


async def test_record_generation_start_increments_counter(store, quota):
    store.collection("users").document("u1").set(subscription_doc(used=2))

    await quota.record_generation_start("u1")

    assert store.collection("users").document("u1").get().to_dict()["storiesGeneratedThisMonth"] == 3


async def test_concurrent_debits_are_not_lost(store, quota):
    store.collection("users").document("u1").set(subscription_doc(used=0, limit=15))

    await asyncio.gather(*(quota.record_generation_start("u1") for _ in range(10)))

    assert store.collection("users").document("u1").get().to_dict()["storiesGeneratedThisMonth"] == 10


async def test_authorize_reads_the_stored_record(store, quota):
    store.collection("users").document("u1").set(subscription_doc(limit=5, used=5))
    decision = await quota.authorize("u1")
    assert decision.reason == DenialReason.LIMIT_REACHED

    missing = await quota.authorize("nobody")
    assert missing.reason == DenialReason.NOT_SUBSCRIBED


async def test_verify_and_activate_overwrites_subscription(store, users, gateway):
    store.collection("users").document("u1").set(
        {**subscription_doc(limit=5, used=5, days_left=-3), "email": "reader@example.com"}
    )
    quota = QuotaManager(users, gateway, clock=lambda: NOW)
    proof = PaymentProof("order_9", "pay_9", sign_payment("order_9", "pay_9"))

    await quota.verify_and_activate(proof, "plan_pro", "u1")

    doc = store.collection("users").document("u1").get().to_dict()
    assert doc["subscriptionStatus"] == SubscriptionStatus.SUBSCRIBED.value
    assert doc["planId"] == "Pro"
    assert doc["monthlyStoryLimit"] == 15
    assert doc["storiesGeneratedThisMonth"] == 0
    assert doc["subscriptionEndDate"] == NOW + timedelta(days=30)
    assert doc["lastPaymentDate"] == NOW
    assert doc["paymentId"] == "pay_9"
    assert doc["orderId"] == "order_9"
    assert doc["email"] == "reader@example.com"


async def test_verify_and_activate_creates_record_for_new_user(store, quota):
    proof = PaymentProof("o", "p", sign_payment("o", "p"))

    await quota.verify_and_activate(proof, "plan_creator", "fresh")

    activated = await quota.get_subscription("fresh")
    assert activated.plan_id == "Creator"
    assert activated.monthly_story_limit == 5


async def test_bad_signature_is_rejected_without_mutation(store, quota):
    original = subscription_doc(used=3)
    store.collection("users").document("u1").set(original)
    proof = PaymentProof("order_1", "pay_1", sign_payment("order_1", "pay_1", secret="wrong-secret"))

    with pytest.raises(ValidationError):
        await quota.verify_and_activate(proof, "plan_creator", "u1")

    assert store.collection("users").document("u1").get().to_dict() == original


async def test_signature_for_other_payment_is_rejected(quota):
    proof = PaymentProof("order_1", "pay_2", sign_payment("order_1", "pay_1"))
    with pytest.raises(ValidationError):
        await quota.verify_and_activate(proof, "plan_creator", "u1")


async def test_unknown_plan_is_not_found_without_mutation(store, quota):
    original = subscription_doc(used=3)
    store.collection("users").document("u1").set(original)
    proof = PaymentProof("order_1", "pay_1", sign_payment("order_1", "pay_1"))

    with pytest.raises(NotFoundError):
        await quota.verify_and_activate(proof, "plan_platinum", "u1")

    assert store.collection("users").document("u1").get().to_dict() == original


@pytest.mark.parametrize("unconfigured", [RazorpayGateway(key_id="", key_secret=""), None])
async def test_missing_secret_is_a_configuration_error(users, unconfigured):
    quota = QuotaManager(users, unconfigured)
    with pytest.raises(ConfigurationError) as exc_info:
        await quota.verify_and_activate(PaymentProof("o", "p", "s"), "plan_creator", "u1")
    assert exc_info.value.message == "Service unavailable"
