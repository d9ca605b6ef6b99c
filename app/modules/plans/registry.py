from typing import Dict, FrozenSet, List, Literal, Union

from pydantic import BaseModel, ConfigDict

from app.core.errors import PlanNotFound

ALL_VOICES = "all"
UNLIMITED = -1


class PlanLimits(BaseModel):
    model_config = ConfigDict(frozen=True)

    monthly_character_cap: int
    voice_allowlist: Union[Literal["all"], FrozenSet[str]]
    api_call_cap: int

    @property
    def unlimited_characters(self) -> bool:
        return self.monthly_character_cap == UNLIMITED

    @property
    def unlimited_calls(self) -> bool:
        return self.api_call_cap == UNLIMITED

    def allowed_voices(self) -> Union[str, List[str]]:
        if self.voice_allowlist == ALL_VOICES:
            return ALL_VOICES
        return sorted(self.voice_allowlist)


class Plan(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    price: int
    currency: str = "INR"
    interval: str = "month"
    features: tuple[str, ...] = ()
    limits: PlanLimits
    popular: bool = False


PRICING_PLANS: Dict[str, Plan] = {
    "free": Plan(
        id="free",
        name="Free Plan",
        price=0,
        features=(
            "1,000 characters per month",
            "Basic voices (Puck, Kore)",
            "Standard quality audio",
            "Email support",
        ),
        limits=PlanLimits(
            monthly_character_cap=1000,
            voice_allowlist=frozenset({"Puck", "Kore"}),
            api_call_cap=50,
        ),
    ),
    "starter": Plan(
        id="starter",
        name="Starter Plan",
        price=199,
        features=(
            "25,000 characters per month",
            "All voices (Puck, Charon, Kore)",
            "High quality audio",
            "Priority email support",
            "Usage analytics",
        ),
        limits=PlanLimits(
            monthly_character_cap=25000,
            voice_allowlist=frozenset({"Puck", "Charon", "Kore"}),
            api_call_cap=1000,
        ),
        popular=True,
    ),
    "pro": Plan(
        id="pro",
        name="Pro Plan",
        price=499,
        features=(
            "100,000 characters per month",
            "All premium voices (Puck, Charon, Kore, Fenrir, Aoede)",
            "Ultra-high quality audio",
            "Style control features",
            "Priority support",
            "Advanced analytics",
            "API access",
        ),
        limits=PlanLimits(
            monthly_character_cap=100000,
            voice_allowlist=frozenset({"Puck", "Charon", "Kore", "Fenrir", "Aoede"}),
            api_call_cap=5000,
        ),
    ),
    "enterprise": Plan(
        id="enterprise",
        name="Enterprise Plan",
        price=1999,
        features=(
            "500,000 characters",
            "All voices + custom voices",
            "Ultra-high quality audio",
            "Advanced style control",
            "24/7 priority support",
            "Custom integrations",
            "White-label solution",
            "Dedicated account manager",
        ),
        limits=PlanLimits(
            monthly_character_cap=500000,
            voice_allowlist=ALL_VOICES,
            api_call_cap=5000,
        ),
    ),
}

DEFAULT_PLAN_ID = "free"

# Unauthenticated callers get the free limits with a fixed voice subset
ANONYMOUS_VOICES = frozenset({"Puck", "Kore", "Journey-F"})


class PlanRegistry:
    """Read-only lookup over the static pricing plans."""

    def __init__(self, plans: Dict[str, Plan] = PRICING_PLANS):
        self._plans = dict(plans)

    def lookup(self, plan_id: str) -> Plan:
        plan = self._plans.get(plan_id)
        if plan is None:
            raise PlanNotFound(f"Invalid plan selected: {plan_id}")
        return plan

    def all(self) -> List[Plan]:
        return list(self._plans.values())

    def default_plan(self) -> Plan:
        return self.lookup(DEFAULT_PLAN_ID)

    def anonymous_plan(self) -> Plan:
        free = self.default_plan()
        return free.model_copy(
            update={"limits": free.limits.model_copy(update={"voice_allowlist": ANONYMOUS_VOICES})}
        )
