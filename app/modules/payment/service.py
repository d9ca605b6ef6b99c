import hashlib
import hmac
import json
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, List, Optional

import httpx
from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from app.core.errors import (
    InvalidInput,
    InvalidPaymentSignature,
    PaymentError,
    PaymentGatewayUnavailable,
    PaymentOrderNotFound,
    PaymentStateError,
)
from app.core.uow import UnitOfWork
from app.models import PaymentOrder, Subscription, Users
from app.modules.plans.registry import Plan, PlanRegistry
from app.modules.subscription.service import SubscriptionService
from app.utils.helpers import utcnow

logger = logging.getLogger(__name__)


class RazorpayGateway:
    """Thin client for the Razorpay Orders API and checkout signature scheme."""

    def __init__(
        self,
        key_id: Optional[str],
        key_secret: Optional[str],
        base_url: str = "https://api.razorpay.com/v1",
        timeout_seconds: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.key_id = key_id
        self.key_secret = key_secret
        self.base_url = base_url.rstrip("/")
        self.timeout_seconds = timeout_seconds
        self.transport = transport

    @property
    def enabled(self) -> bool:
        return bool(self.key_id and self.key_secret)

    def sign(self, order_id: str, payment_id: str) -> str:
        """HMAC-SHA256 of `order_id|payment_id` keyed with the key secret, hex encoded."""
        message = f"{order_id}|{payment_id}"
        return hmac.new(self.key_secret.encode(), message.encode(), hashlib.sha256).hexdigest()

    def verify_signature(self, order_id: str, payment_id: str, signature: str) -> bool:
        if not self.enabled:
            raise PaymentGatewayUnavailable()
        return hmac.compare_digest(self.sign(order_id, payment_id).encode(), (signature or "").encode())

    async def create_order(self, amount: int, currency: str, receipt: str, notes: dict) -> dict:
        if not self.enabled:
            raise PaymentGatewayUnavailable()

        payload = {
            "amount": amount,
            "currency": currency,
            "receipt": receipt,
            "payment_capture": 1,
            "notes": notes,
        }
        try:
            async with httpx.AsyncClient(timeout=self.timeout_seconds, transport=self.transport) as client:
                response = await client.post(
                    f"{self.base_url}/orders",
                    auth=(self.key_id, self.key_secret),
                    json=payload,
                )
                response.raise_for_status()
                return response.json()
        except httpx.HTTPStatusError as e:
            logger.error(f"Razorpay rejected order creation: {e.response.text}")
            raise PaymentError(f"Failed to create payment order: HTTP {e.response.status_code}") from e
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Razorpay order creation failed: {e}")
            raise PaymentGatewayUnavailable() from e


@dataclass
class VerificationResult:
    subscription: Subscription
    plan: Plan
    already_processed: bool = False


class PaymentService:
    """
    Plan purchases. Orders are created at the gateway and recorded as
    `pending`; verification claims a pending order exactly once and activates
    the subscription in the same transaction.
    """

    def __init__(
        self,
        gateway: RazorpayGateway,
        plans: PlanRegistry,
        subscriptions: SubscriptionService,
        uow: UnitOfWork,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.gateway = gateway
        self.plans = plans
        self.subscriptions = subscriptions
        self.uow = uow
        self._clock = clock

    def _receipt(self, user: Users) -> str:
        timestamp = str(int(self._clock().timestamp() * 1000))[-8:]
        return f"rcpt_{str(user.id)[:8]}_{timestamp}"

    async def create_order(self, user: Users, plan_id: str) -> dict:
        plan = self.plans.lookup(plan_id)
        if plan.price <= 0:
            raise InvalidInput(f"The {plan.name} plan does not require payment.")
        if not self.gateway.enabled:
            raise PaymentGatewayUnavailable()

        receipt = self._receipt(user)
        order = await self.gateway.create_order(
            amount=plan.price * 100,
            currency=plan.currency,
            receipt=receipt,
            notes={"planId": plan.id, "userId": str(user.id), "userEmail": user.email or ""},
        )

        async with self.uow() as db:
            db.add(
                PaymentOrder(
                    user_id=user.id,
                    order_id=order["id"],
                    plan_id=plan.id,
                    amount=plan.price,
                    currency=plan.currency,
                    status="pending",
                    metadata_json=json.dumps({"razorpayOrder": order, "shortReceipt": receipt}),
                    created_at=self._clock(),
                )
            )
        logger.info(f"Created payment order {order['id']} for user {user.id} ({plan.id}).")

        return {
            "id": order["id"],
            "amount": order.get("amount", plan.price * 100),
            "currency": order.get("currency", plan.currency),
            "planId": plan.id,
            "planName": plan.name,
        }

    async def verify_and_activate(
        self,
        user_id: int,
        order_id: str,
        payment_id: str,
        signature: str,
    ) -> VerificationResult:
        if not (order_id and payment_id and signature):
            raise InvalidInput("Missing payment verification data.")
        if not self.gateway.verify_signature(order_id, payment_id, signature):
            raise InvalidPaymentSignature()

        async with self.uow() as db:
            claim = await db.execute(
                update(PaymentOrder)
                .where(
                    PaymentOrder.order_id == order_id,
                    PaymentOrder.user_id == user_id,
                    PaymentOrder.status == "pending",
                )
                .values(
                    status="completed",
                    payment_id=payment_id,
                    signature=signature,
                    completed_at=self._clock(),
                )
                .execution_options(synchronize_session=False)
            )
            result = await db.execute(
                select(PaymentOrder)
                .filter(PaymentOrder.order_id == order_id)
                .execution_options(populate_existing=True)
            )
            order = result.scalars().first()

            if claim.rowcount == 0:
                return await self._already_claimed(db, order, user_id)

            subscription = await self.subscriptions.activate_subscription(
                db,
                user_id=user_id,
                plan_id=order.plan_id,
                payment_id=payment_id,
                order_id=order_id,
                amount=order.amount,
                currency=order.currency,
            )
            order.subscription_id = subscription.id
            plan = self.plans.lookup(order.plan_id)

        logger.info(f"Payment {payment_id} verified for order {order_id}; {plan.id} plan active.")
        return VerificationResult(subscription=subscription, plan=plan)

    async def _already_claimed(
        self,
        db: AsyncSession,
        order: Optional[PaymentOrder],
        user_id: int,
    ) -> VerificationResult:
        if order is None or order.user_id != user_id:
            raise PaymentOrderNotFound()
        if order.status != "completed" or order.subscription_id is None:
            raise PaymentStateError(f"Payment order is {order.status} and cannot be verified.")

        subscription = await db.get(Subscription, order.subscription_id)
        logger.info(f"Order {order.order_id} was already verified; returning existing subscription.")
        return VerificationResult(
            subscription=subscription,
            plan=self.plans.lookup(order.plan_id),
            already_processed=True,
        )

    async def history(self, db: AsyncSession, user_id: int, limit: int = 10) -> List[PaymentOrder]:
        result = await db.execute(
            select(PaymentOrder)
            .filter(PaymentOrder.user_id == user_id)
            .order_by(PaymentOrder.created_at.desc())
            .limit(limit)
        )
        return list(result.scalars().all())
