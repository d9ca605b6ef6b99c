from typing import Optional

from fastapi import APIRouter, Depends, Request
from starlette.responses import Response

from app.core.context import ServiceContext
from app.core.dependencies import get_caller_plan, get_optional_user, get_services
from app.models.user_model import Users
from app.modules.plans.registry import Plan
from app.modules.speech.providers.base import GenerationRequest
from app.modules.speech.schemas import (
    GenerateSpeechRequest,
    GenerateSpeechResponse,
    LanguagesResponse,
    ProviderStatusResponse,
    VoiceInfo,
    VoicesResponse,
)
from app.modules.speech.service import ClientInfo

router = APIRouter()

AUDIO_CACHE_CONTROL = "public, max-age=86400"


@router.post("/generate-speech", response_model=GenerateSpeechResponse, tags=["Speech"])
async def generate_speech(
    body: GenerateSpeechRequest,
    request: Request,
    current_user: Optional[Users] = Depends(get_optional_user),
    plan: Plan = Depends(get_caller_plan),
    services: ServiceContext = Depends(get_services),
):
    """
    Convert text to speech with the caller's plan limits applied. Anonymous
    callers get the free allowance without usage tracking.
    """
    outcome = await services.broker.generate(
        GenerationRequest(
            text=body.text,
            voice_id=body.voiceId,
            language_code=body.languageCode,
            speed=body.speed,
            pitch=body.pitch,
            style=body.style,
            provider=body.provider,
        ),
        plan=plan,
        user_id=current_user.id if current_user else None,
        client=ClientInfo(
            ip_address=request.client.host if request.client else None,
            user_agent=request.headers.get("user-agent"),
        ),
    )
    return GenerateSpeechResponse(
        audioId=outcome.artifact_id,
        filename=outcome.filename,
        url=f"/api/audio/{outcome.artifact_id}",
        downloadUrl=f"/api/download/{outcome.artifact_id}",
        voice=outcome.voice.display_name,
        voiceId=outcome.voice.voice_id,
        language=outcome.voice.language,
        provider=outcome.provider,
        model=outcome.model,
        audioFormat=outcome.audio_format,
        duration=outcome.duration,
        charactersUsed=outcome.characters_used,
        remainingCharacters=outcome.remaining_characters,
    )


@router.get("/audio/{audio_id}", tags=["Speech"])
async def stream_audio(audio_id: str, services: ServiceContext = Depends(get_services)):
    stored = await services.store.fetch(audio_id)
    return Response(
        content=stored.data,
        media_type=stored.content_type,
        headers={
            "Cache-Control": AUDIO_CACHE_CONTROL,
            "Content-Length": str(len(stored.data)),
        },
    )


@router.get("/download/{audio_id}", tags=["Speech"])
async def download_audio(audio_id: str, services: ServiceContext = Depends(get_services)):
    stored = await services.store.fetch(audio_id)
    filename = services.store.download_name(stored)
    return Response(
        content=stored.data,
        media_type=stored.content_type,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get("/languages", response_model=LanguagesResponse, tags=["Voices"])
async def list_languages(services: ServiceContext = Depends(get_services)):
    return LanguagesResponse(languages=services.catalog.languages())


@router.get("/voices/{language_code}", response_model=VoicesResponse, tags=["Voices"])
async def list_voices(language_code: str, services: ServiceContext = Depends(get_services)):
    voices = [
        VoiceInfo(
            id=voice.voice_id,
            name=voice.name,
            displayName=voice.display_name,
            provider=voice.provider,
            tier=voice.tier,
        )
        for voice in services.catalog.voices_for(language_code)
    ]
    return VoicesResponse(language=language_code, voices=voices)


@router.get("/providers/status", response_model=ProviderStatusResponse, tags=["Voices"])
async def provider_status(services: ServiceContext = Depends(get_services)):
    return ProviderStatusResponse(providers=services.broker.provider_status())
