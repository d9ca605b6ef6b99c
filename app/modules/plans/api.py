from fastapi import APIRouter, Depends

from app.core.context import ServiceContext
from app.core.dependencies import get_services
from app.modules.plans.registry import Plan
from app.modules.plans.schemas import PlanLimitsPublic, PlanPublic, PlansResponse

router = APIRouter()


def to_public(plan: Plan) -> PlanPublic:
    return PlanPublic(
        id=plan.id,
        name=plan.name,
        price=plan.price,
        currency=plan.currency,
        interval=plan.interval,
        features=list(plan.features),
        limits=PlanLimitsPublic(
            monthlyCharacters=plan.limits.monthly_character_cap,
            voices=plan.limits.allowed_voices(),
            apiCalls=plan.limits.api_call_cap,
        ),
        popular=plan.popular,
    )


@router.get("/pricing/plans", response_model=PlansResponse, tags=["Plans"])
async def get_pricing_plans(services: ServiceContext = Depends(get_services)):
    return PlansResponse(plans=[to_public(plan) for plan in services.plans.all()])
