import logging
from datetime import datetime, timedelta
from typing import Callable, Optional

from sqlalchemy import or_, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from app.core.errors import PlanNotFound
from app.models import Subscription, Users
from app.modules.plans.registry import Plan, PlanRegistry
from app.modules.quota.ledger import QuotaLedger
from app.utils.helpers import utcnow

logger = logging.getLogger(__name__)


class SubscriptionService:
    """
    Subscription lifecycle. Methods run inside the caller's transaction and
    never commit, so activation can be combined with the payment claim.
    """

    def __init__(
        self,
        plans: PlanRegistry,
        ledger: QuotaLedger,
        duration_days: int = 30,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.plans = plans
        self.ledger = ledger
        self.duration = timedelta(days=duration_days)
        self._clock = clock

    async def get_active_subscription(self, db: AsyncSession, user_id: int) -> Optional[Subscription]:
        now = self._clock()
        result = await db.execute(
            select(Subscription)
            .filter(
                Subscription.user_id == user_id,
                Subscription.status == "active",
                or_(Subscription.expires_at.is_(None), Subscription.expires_at > now),
            )
            .order_by(Subscription.activated_at.desc())
            .limit(1)
        )
        return result.scalars().first()

    async def resolve_plan(self, db: AsyncSession, user: Optional[Users]) -> Plan:
        """The plan governing a caller: anonymous, subscribed, or the default free plan."""
        if user is None:
            return self.plans.anonymous_plan()

        subscription = await self.get_active_subscription(db, user.id)
        if subscription is None:
            return self.plans.default_plan()
        try:
            return self.plans.lookup(subscription.plan_id)
        except PlanNotFound:
            logger.warning(
                f"Subscription {subscription.id} references unknown plan '{subscription.plan_id}', using default."
            )
            return self.plans.default_plan()

    async def activate_subscription(
        self,
        db: AsyncSession,
        user_id: int,
        plan_id: str,
        payment_id: Optional[str] = None,
        order_id: Optional[str] = None,
        amount: int = 0,
        currency: str = "INR",
    ) -> Subscription:
        """
        Replaces the user's active subscription with a new one for `plan_id`
        and resets this month's usage. Any failure leaves the caller's
        transaction to roll back, keeping the previous subscription active.
        """
        plan = self.plans.lookup(plan_id)
        now = self._clock()

        await db.execute(
            update(Subscription)
            .where(Subscription.user_id == user_id, Subscription.status == "active")
            .values(status="cancelled", cancelled_at=now)
            .execution_options(synchronize_session=False)
        )

        subscription = Subscription(
            user_id=user_id,
            plan_id=plan.id,
            status="active",
            activated_at=now,
            expires_at=now + self.duration,
            payment_id=payment_id,
            order_id=order_id,
            amount=amount,
            currency=currency,
        )
        db.add(subscription)

        await db.execute(
            update(Users)
            .where(Users.id == user_id)
            .values(plan=plan.id)
            .execution_options(synchronize_session=False)
        )
        await self.ledger.reset_for_new_subscription(db, user_id)
        await db.flush()

        logger.info(f"Activated {plan.id} subscription {subscription.id} for user {user_id}.")
        return subscription

    async def expire_overdue(self, db: AsyncSession, now: Optional[datetime] = None) -> int:
        """Marks active subscriptions past their expiry as expired and drops their users to the default plan."""
        now = now or self._clock()
        result = await db.execute(
            select(Subscription.id, Subscription.user_id).filter(
                Subscription.status == "active",
                Subscription.expires_at.is_not(None),
                Subscription.expires_at <= now,
            )
        )
        rows = result.all()
        if not rows:
            return 0

        subscription_ids = [row.id for row in rows]
        user_ids = {row.user_id for row in rows}
        await db.execute(
            update(Subscription)
            .where(Subscription.id.in_(subscription_ids))
            .values(status="expired")
            .execution_options(synchronize_session=False)
        )
        await db.execute(
            update(Users)
            .where(Users.id.in_(user_ids))
            .values(plan=self.plans.default_plan().id)
            .execution_options(synchronize_session=False)
        )
        logger.info(f"Expired {len(subscription_ids)} overdue subscriptions.")
        return len(subscription_ids)
