import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from sqlalchemy import select, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.usage_model import UsagePeriod
from app.modules.plans.registry import Plan
from app.utils.helpers import month_key, utcnow

logger = logging.getLogger(__name__)

_INSERT_BY_DIALECT = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


@dataclass(frozen=True)
class UsageSnapshot:
    month_year: str
    characters_used: int
    api_calls: int
    artifacts_generated: int

    @classmethod
    def from_row(cls, row: UsagePeriod) -> "UsageSnapshot":
        return cls(
            month_year=row.month_year,
            characters_used=row.characters_used or 0,
            api_calls=row.api_calls or 0,
            artifacts_generated=row.artifacts_generated or 0,
        )

    def as_dict(self) -> dict:
        return {
            "monthlyCharacters": self.characters_used,
            "apiCalls": self.api_calls,
            "audioGenerated": self.artifacts_generated,
            "lastReset": self.month_year,
        }


@dataclass(frozen=True)
class QuotaDecision:
    allowed: bool
    usage: UsageSnapshot
    kind: Optional[str] = None  # "characters" or "calls" when denied


class QuotaLedger:
    """
    Per-user, per-calendar-month usage accounting.

    The ledger never commits: callers own the transaction. Counter updates are
    single `UPDATE ... SET col = col + n` statements so concurrent commits
    never lose increments. `reserve_and_check` reads a snapshot, so requests
    racing each other may overshoot a cap by at most the requests in flight.
    """

    def __init__(self, clock: Callable[[], datetime] = utcnow):
        self._clock = clock

    def current_month(self) -> str:
        return month_key(self._clock())

    async def _ensure_row(self, db: AsyncSession, user_id: int, month_year: str) -> None:
        dialect = db.get_bind().dialect.name
        insert = _INSERT_BY_DIALECT.get(dialect)
        if insert is None:
            raise RuntimeError(f"Unsupported database dialect for usage tracking: {dialect}")
        stmt = (
            insert(UsagePeriod)
            .values(
                user_id=user_id,
                month_year=month_year,
                characters_used=0,
                api_calls=0,
                artifacts_generated=0,
            )
            .on_conflict_do_nothing(index_elements=["user_id", "month_year"])
        )
        await db.execute(stmt)

    async def get_usage(self, db: AsyncSession, user_id: int) -> UsageSnapshot:
        """Returns this month's usage, creating a zeroed row on first access."""
        month_year = self.current_month()
        await self._ensure_row(db, user_id, month_year)
        result = await db.execute(
            select(UsagePeriod)
            .where(UsagePeriod.user_id == user_id, UsagePeriod.month_year == month_year)
            .execution_options(populate_existing=True)
        )
        return UsageSnapshot.from_row(result.scalar_one())

    @staticmethod
    def evaluate(usage: UsageSnapshot, plan: Plan, requested_characters: int) -> QuotaDecision:
        limits = plan.limits
        if not limits.unlimited_characters and (
            usage.characters_used + requested_characters > limits.monthly_character_cap
        ):
            return QuotaDecision(allowed=False, usage=usage, kind="characters")
        if not limits.unlimited_calls and usage.api_calls >= limits.api_call_cap:
            return QuotaDecision(allowed=False, usage=usage, kind="calls")
        return QuotaDecision(allowed=True, usage=usage)

    async def reserve_and_check(
        self,
        db: AsyncSession,
        user_id: int,
        plan: Plan,
        requested_characters: int,
    ) -> QuotaDecision:
        usage = await self.get_usage(db, user_id)
        return self.evaluate(usage, plan, requested_characters)

    async def commit(self, db: AsyncSession, user_id: int, characters_consumed: int) -> None:
        """Records one successful generation. Call only after the artifact is persisted."""
        month_year = self.current_month()
        await self._ensure_row(db, user_id, month_year)
        await db.execute(
            update(UsagePeriod)
            .where(UsagePeriod.user_id == user_id, UsagePeriod.month_year == month_year)
            .values(
                characters_used=UsagePeriod.characters_used + characters_consumed,
                api_calls=UsagePeriod.api_calls + 1,
                artifacts_generated=UsagePeriod.artifacts_generated + 1,
            )
            .execution_options(synchronize_session=False)
        )

    async def reset_for_new_subscription(self, db: AsyncSession, user_id: int) -> None:
        month_year = self.current_month()
        await self._ensure_row(db, user_id, month_year)
        await db.execute(
            update(UsagePeriod)
            .where(UsagePeriod.user_id == user_id, UsagePeriod.month_year == month_year)
            .values(characters_used=0, api_calls=0, artifacts_generated=0)
            .execution_options(synchronize_session=False)
        )
        logger.info(f"Usage for user {user_id} reset for {month_year}.")
