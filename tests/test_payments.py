import base64
import json

import httpx
import pytest
from sqlalchemy import select

from app.core.errors import (
    InvalidInput,
    InvalidPaymentSignature,
    PaymentError,
    PaymentGatewayUnavailable,
    PaymentOrderNotFound,
    PaymentStateError,
    PlanNotFound,
)
from app.models import PaymentOrder, Subscription, Users
from app.modules.payment.service import RazorpayGateway
from tests.conftest import create_user


async def orders_of(services, user_id):
    async with services.session_factory() as db:
        result = await db.execute(select(PaymentOrder).filter(PaymentOrder.user_id == user_id))
        return list(result.scalars().all())


async def active_subscriptions(services, user_id):
    async with services.session_factory() as db:
        result = await db.execute(
            select(Subscription).filter(Subscription.user_id == user_id, Subscription.status == "active")
        )
        return list(result.scalars().all())


def test_signature_matches_checkout_scheme():
    gateway = RazorpayGateway("rzp_test_key", "secret")

    signature = gateway.sign("order_1", "pay_1")

    assert len(signature) == 64
    assert gateway.verify_signature("order_1", "pay_1", signature) is True
    assert gateway.verify_signature("order_1", "pay_2", signature) is False
    assert gateway.verify_signature("order_1", "pay_1", "") is False
    assert gateway.verify_signature("order_1", "pay_1", "\u00e9") is False


def test_unconfigured_gateway_rejects_verification():
    with pytest.raises(PaymentGatewayUnavailable):
        RazorpayGateway(None, None).verify_signature("order_1", "pay_1", "sig")


@pytest.mark.asyncio
async def test_create_order_posts_amount_in_paise(services, upstream, user):
    order = await services.payments.create_order(user, "starter")

    assert order == {"id": "order_test_1", "amount": 19900, "currency": "INR", "planId": "starter", "planName": "Starter Plan"}
    request = upstream.calls[0]
    assert request.url.path == "/v1/orders"
    expected_auth = base64.b64encode(b"rzp_test_key:rzp_test_secret").decode()
    assert request.headers["authorization"] == f"Basic {expected_auth}"
    payload = json.loads(request.content)
    assert payload["amount"] == 19900
    assert payload["payment_capture"] == 1
    assert payload["notes"]["planId"] == "starter"
    assert payload["receipt"].startswith(f"rcpt_{user.id}_")

    [stored] = await orders_of(services, user.id)
    assert stored.status == "pending"
    assert stored.amount == 199
    assert stored.plan_id == "starter"


@pytest.mark.asyncio
async def test_create_order_rejects_free_and_unknown_plans(services, upstream, user):
    with pytest.raises(InvalidInput):
        await services.payments.create_order(user, "free")
    with pytest.raises(PlanNotFound):
        await services.payments.create_order(user, "platinum")
    assert upstream.calls == []


@pytest.mark.asyncio
async def test_create_order_gateway_failures(services, upstream, user):
    upstream.razorpay = lambda request: httpx.Response(400, json={"error": {"description": "bad amount"}})
    with pytest.raises(PaymentError):
        await services.payments.create_order(user, "pro")

    services.payments.gateway.key_secret = None
    with pytest.raises(PaymentGatewayUnavailable):
        await services.payments.create_order(user, "pro")

    assert await orders_of(services, user.id) == []


@pytest.mark.asyncio
async def test_verify_activates_the_ordered_plan(services, user):
    await services.payments.create_order(user, "starter")
    signature = services.payments.gateway.sign("order_test_1", "pay_1")

    result = await services.payments.verify_and_activate(user.id, "order_test_1", "pay_1", signature)

    assert result.already_processed is False
    assert result.plan.id == "starter"
    assert result.subscription.status == "active"
    [order] = await orders_of(services, user.id)
    assert order.status == "completed"
    assert order.payment_id == "pay_1"
    assert order.subscription_id == result.subscription.id
    async with services.session_factory() as db:
        assert (await db.get(Users, user.id)).plan == "starter"


@pytest.mark.asyncio
async def test_repeat_verification_is_idempotent(services, user):
    await services.payments.create_order(user, "pro")
    signature = services.payments.gateway.sign("order_test_1", "pay_1")
    first = await services.payments.verify_and_activate(user.id, "order_test_1", "pay_1", signature)

    async with services.uow() as db:
        await services.ledger.commit(db, user.id, 300)

    second = await services.payments.verify_and_activate(user.id, "order_test_1", "pay_1", signature)

    assert second.already_processed is True
    assert second.subscription.id == first.subscription.id
    assert len(await active_subscriptions(services, user.id)) == 1
    async with services.session_factory() as db:
        usage = await services.ledger.get_usage(db, user.id)
    assert usage.characters_used == 300


@pytest.mark.asyncio
async def test_verify_rejects_bad_signature(services, user):
    await services.payments.create_order(user, "starter")

    with pytest.raises(InvalidPaymentSignature) as excinfo:
        await services.payments.verify_and_activate(user.id, "order_test_1", "pay_1", "forged")

    assert excinfo.value.status_code == 400
    [order] = await orders_of(services, user.id)
    assert order.status == "pending"


@pytest.mark.asyncio
async def test_verify_missing_fields(services, user):
    with pytest.raises(InvalidInput):
        await services.payments.verify_and_activate(user.id, "order_test_1", "", "sig")


@pytest.mark.asyncio
async def test_verify_unknown_or_foreign_order(services, session_factory, user):
    gateway = services.payments.gateway
    with pytest.raises(PaymentOrderNotFound):
        await services.payments.verify_and_activate(user.id, "order_missing", "pay_1", gateway.sign("order_missing", "pay_1"))

    await services.payments.create_order(user, "starter")
    intruder = await create_user(session_factory, email="intruder@example.com")
    with pytest.raises(PaymentOrderNotFound):
        await services.payments.verify_and_activate(
            intruder.id, "order_test_1", "pay_1", gateway.sign("order_test_1", "pay_1")
        )
    assert await active_subscriptions(services, intruder.id) == []


@pytest.mark.asyncio
async def test_verify_failed_order(services, user):
    await services.payments.create_order(user, "starter")
    async with services.uow() as db:
        [order] = (await db.execute(select(PaymentOrder))).scalars().all()
        order.status = "failed"

    with pytest.raises(PaymentStateError):
        await services.payments.verify_and_activate(
            user.id, "order_test_1", "pay_1", services.payments.gateway.sign("order_test_1", "pay_1")
        )


def test_payment_endpoints(api):
    user = api.create_user()
    headers = api.auth_headers(user)

    created = api.client.post("/api/payments/create-order", json={"planId": "pro"}, headers=headers)
    assert created.status_code == 200
    assert created.json()["key"] == "rzp_test_key"
    assert created.json()["order"]["planId"] == "pro"

    verify_body = {
        "razorpay_order_id": "order_test_1",
        "razorpay_payment_id": "pay_9",
        "razorpay_signature": api.services.payments.gateway.sign("order_test_1", "pay_9"),
        "planId": "enterprise",
    }
    verified = api.client.post("/api/payments/verify", json=verify_body, headers=headers)
    assert verified.status_code == 200
    assert verified.json()["message"] == "Payment verified and subscription activated"
    assert verified.json()["subscription"]["plan"] == "pro"

    repeated = api.client.post("/api/payments/verify", json=verify_body, headers=headers)
    assert repeated.json()["message"] == "Payment already verified"

    history = api.client.get("/api/payments/history", headers=headers)
    [entry] = history.json()["payments"]
    assert entry["status"] == "completed"
    assert entry["paymentId"] == "pay_9"


def test_payment_endpoints_error_bodies(api):
    user = api.create_user()
    headers = api.auth_headers(user)

    forged = api.client.post(
        "/api/payments/verify",
        json={"razorpay_order_id": "order_x", "razorpay_payment_id": "pay_x", "razorpay_signature": "forged"},
        headers=headers,
    )
    assert forged.status_code == 400
    assert forged.json()["message"] == "Invalid payment signature."

    non_ascii = api.client.post(
        "/api/payments/verify",
        json={"razorpay_order_id": "order_x", "razorpay_payment_id": "pay_x", "razorpay_signature": "\u00e9"},
        headers=headers,
    )
    assert non_ascii.status_code == 400
    assert non_ascii.json()["kind"] == "InvalidPaymentSignature"

    unauthenticated = api.client.post("/api/payments/create-order", json={"planId": "pro"})
    assert unauthenticated.status_code == 401
