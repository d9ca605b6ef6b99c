import asyncio
from datetime import datetime

import pytest
from sqlalchemy import func, select

from app.models.usage_model import UsagePeriod
from app.modules.plans.registry import UNLIMITED, PlanLimits, PlanRegistry
from app.modules.quota.ledger import QuotaLedger, UsageSnapshot


def fixed_clock(moment=datetime(2026, 3, 15, 12, 0)):
    return lambda: moment


@pytest.fixture
def ledger():
    return QuotaLedger(clock=fixed_clock())


@pytest.fixture
def free_plan():
    return PlanRegistry().lookup("free")


def snapshot(characters=0, calls=0):
    return UsageSnapshot(month_year="2026-03", characters_used=characters, api_calls=calls, artifacts_generated=calls)


@pytest.mark.asyncio
async def test_first_access_creates_a_zeroed_row(ledger, session_factory, user):
    async with session_factory() as db:
        usage = await ledger.get_usage(db, user.id)
        usage_again = await ledger.get_usage(db, user.id)
        await db.commit()
        rows = await db.scalar(select(func.count()).select_from(UsagePeriod))

    assert usage == UsageSnapshot("2026-03", 0, 0, 0)
    assert usage_again == usage
    assert rows == 1
    assert usage.as_dict() == {"monthlyCharacters": 0, "apiCalls": 0, "audioGenerated": 0, "lastReset": "2026-03"}


def test_evaluate_allows_up_to_the_character_cap(free_plan):
    assert QuotaLedger.evaluate(snapshot(characters=990), free_plan, 10).allowed is True

    decision = QuotaLedger.evaluate(snapshot(characters=990), free_plan, 11)
    assert decision.allowed is False
    assert decision.kind == "characters"


def test_evaluate_denies_when_call_cap_reached(free_plan):
    decision = QuotaLedger.evaluate(snapshot(characters=0, calls=50), free_plan, 1)

    assert decision.allowed is False
    assert decision.kind == "calls"


def test_evaluate_with_unlimited_caps(free_plan):
    unlimited = free_plan.model_copy(
        update={"limits": PlanLimits(monthly_character_cap=UNLIMITED, voice_allowlist="all", api_call_cap=UNLIMITED)}
    )

    assert QuotaLedger.evaluate(snapshot(characters=10**9, calls=10**6), unlimited, 5000).allowed is True


@pytest.mark.asyncio
async def test_concurrent_commits_do_not_lose_increments(ledger, session_factory, user):
    async def commit_once(characters):
        async with session_factory() as db:
            await ledger.commit(db, user.id, characters)
            await db.commit()

    await asyncio.gather(*(commit_once(n) for n in (10, 20, 30, 40, 50)))

    async with session_factory() as db:
        usage = await ledger.get_usage(db, user.id)

    assert usage.characters_used == 150
    assert usage.api_calls == 5
    assert usage.artifacts_generated == 5


@pytest.mark.asyncio
async def test_usage_is_scoped_to_the_calendar_month(session_factory, user):
    march = QuotaLedger(clock=fixed_clock(datetime(2026, 3, 31, 23, 59)))
    april = QuotaLedger(clock=fixed_clock(datetime(2026, 4, 1, 0, 0)))

    async with session_factory() as db:
        await march.commit(db, user.id, 100)
        await db.commit()
        april_usage = await april.get_usage(db, user.id)
        march_usage = await march.get_usage(db, user.id)

    assert april_usage.month_year == "2026-04"
    assert april_usage.characters_used == 0
    assert march_usage.characters_used == 100


@pytest.mark.asyncio
async def test_reset_for_new_subscription_zeroes_counters(ledger, session_factory, user):
    async with session_factory() as db:
        await ledger.commit(db, user.id, 700)
        await db.commit()

    async with session_factory() as db:
        await ledger.reset_for_new_subscription(db, user.id)
        await db.commit()
        usage = await ledger.get_usage(db, user.id)

    assert usage == UsageSnapshot("2026-03", 0, 0, 0)
