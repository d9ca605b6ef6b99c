from fastapi import APIRouter, Depends, Query

from app.core.context import ServiceContext
from app.core.dependencies import get_current_user, get_services
from app.models.user_model import Users
from app.modules.user.schemas import (
    AudioHistoryItem,
    AudioHistoryResponse,
    DashboardResponse,
    SubscriptionInfo,
    UsageInfo,
    UserInfo,
)

router = APIRouter()


@router.get("/user/usage", response_model=DashboardResponse, tags=["User"])
async def get_usage(
    current_user: Users = Depends(get_current_user),
    services: ServiceContext = Depends(get_services),
):
    """
    Plan, subscription and this month's usage for the signed-in user.
    """
    async with services.uow() as db:
        plan = await services.subscriptions.resolve_plan(db, current_user)
        subscription = await services.subscriptions.get_active_subscription(db, current_user.id)
        usage = await services.ledger.get_usage(db, current_user.id)

    limits = plan.limits
    if limits.unlimited_characters:
        remaining = "Unlimited"
    else:
        remaining = max(0, limits.monthly_character_cap - usage.characters_used)

    return DashboardResponse(
        user=UserInfo(id=current_user.id, email=current_user.email, name=current_user.name),
        subscription=SubscriptionInfo(
            plan=plan.id,
            planName=plan.name,
            status=subscription.status if subscription else "active",
            expiresAt=subscription.expires_at if subscription else None,
        ),
        usage=UsageInfo(
            monthYear=usage.month_year,
            monthlyCharacters=usage.characters_used,
            monthlyCharactersLimit=limits.monthly_character_cap,
            apiCalls=usage.api_calls,
            apiCallsLimit=limits.api_call_cap,
            audioGenerated=usage.artifacts_generated,
            charactersRemaining=remaining,
        ),
        features=list(plan.features),
        availableVoices=limits.allowed_voices(),
    )


@router.get("/user/history", response_model=AudioHistoryResponse, tags=["User"])
async def get_audio_history(
    limit: int = Query(default=20, ge=1, le=100),
    current_user: Users = Depends(get_current_user),
    services: ServiceContext = Depends(get_services),
):
    async with services.session_factory() as db:
        artifacts = await services.store.history(db, current_user.id, limit=limit)

    return AudioHistoryResponse(
        history=[
            AudioHistoryItem(
                audioId=artifact.id,
                filename=artifact.filename,
                provider=artifact.provider,
                voice=artifact.voice,
                language=artifact.language,
                textPreview=artifact.text[:100],
                textLength=artifact.text_length,
                duration=artifact.duration,
                createdAt=artifact.created_at,
                expiresAt=artifact.expires_at,
                url=f"/api/audio/{artifact.id}",
            )
            for artifact in artifacts
        ]
    )
