import asyncio
import logging
import uuid
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple, Union

from sqlalchemy.exc import SQLAlchemyError

from app.core.errors import (
    CallCapExceeded,
    CharacterCapExceeded,
    InvalidInput,
    InvalidVoice,
    NoProviderConfigured,
    PersistenceError,
    ProviderFailure,
    ProviderTimeout,
    ProviderUnavailable,
    VoiceNotAllowed,
)
from app.core.uow import UnitOfWork
from app.modules.artifacts.store import ArtifactStore, artifact_filename
from app.modules.plans.registry import Plan
from app.modules.quota.ledger import QuotaLedger, UsageSnapshot
from app.modules.speech.entitlement import check_voice_access
from app.modules.speech.providers.base import GenerationRequest, SpeechProvider, SynthesisResult
from app.modules.speech.voices import GEMINI, GOOGLE, Voice, VoiceCatalog

logger = logging.getLogger(__name__)

MAX_TEXT_LENGTH = 5000
AUTO = "auto"
# Order in which `auto` tries providers
AUTO_PREFERENCE = (GOOGLE, GEMINI)


@dataclass
class ClientInfo:
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None


@dataclass
class GenerationOutcome:
    artifact_id: str
    filename: str
    voice: Voice
    provider: str
    model: str
    audio_format: str
    content_type: str
    duration: float
    characters_used: int
    remaining_characters: Union[int, str, None]


class GenerationBroker:
    """
    Turns a validated text-to-speech request into a stored audio artifact.

    Order of operations: input validation, voice entitlement, quota check,
    provider selection, synthesis with a single cross-provider fallback,
    then the artifact write. Usage is only recorded once the artifact row
    exists, in the same transaction as the row.
    """

    def __init__(
        self,
        providers: Dict[str, SpeechProvider],
        catalog: VoiceCatalog,
        ledger: QuotaLedger,
        store: ArtifactStore,
        uow: UnitOfWork,
    ):
        self.providers = providers
        self.catalog = catalog
        self.ledger = ledger
        self.store = store
        self.uow = uow

    def provider_status(self) -> Dict[str, bool]:
        return {name: provider.enabled for name, provider in self.providers.items()}

    def _validate(self, request: GenerationRequest) -> Voice:
        if not request.text or not request.text.strip():
            raise InvalidInput("Text is required.")
        if len(request.text) > MAX_TEXT_LENGTH:
            raise InvalidInput(f"Text too long. Maximum {MAX_TEXT_LENGTH} characters allowed.")
        if request.provider != AUTO and request.provider not in self.providers:
            raise InvalidInput(f"Unknown provider: {request.provider}")

        voice = self.catalog.resolve(request.voice_id)
        if request.language_code and request.language_code != voice.language:
            raise InvalidVoice(
                f"Voice {voice.voice_id} does not belong to language {request.language_code}."
            )
        return voice

    async def _check_quota(self, user_id: Optional[int], plan: Plan, requested: int) -> Optional[UsageSnapshot]:
        if user_id is None:
            anonymous = UsageSnapshot(self.ledger.current_month(), 0, 0, 0)
            decision = QuotaLedger.evaluate(anonymous, plan, requested)
        else:
            async with self.uow() as db:
                decision = await self.ledger.reserve_and_check(db, user_id, plan, requested)
        if decision.allowed:
            return decision.usage if user_id is not None else None

        limits = plan.limits
        details = {
            "usage": decision.usage.as_dict(),
            "limits": {
                "monthlyCharacters": limits.monthly_character_cap,
                "apiCalls": limits.api_call_cap,
            },
        }
        if decision.kind == "calls":
            raise CallCapExceeded(details=details)
        raise CharacterCapExceeded(details=details)

    def _plan_attempts(self, requested: str, voice: Voice) -> List[Tuple[SpeechProvider, Voice]]:
        if not any(provider.enabled for provider in self.providers.values()):
            raise NoProviderConfigured()

        if requested == AUTO:
            order = [name for name in AUTO_PREFERENCE if name in self.providers]
        else:
            provider = self.providers[requested]
            if not provider.enabled:
                raise ProviderUnavailable(f"{requested} provider is not configured.", provider=requested)
            order = [requested] + [name for name in AUTO_PREFERENCE if name != requested and name in self.providers]

        attempts: List[Tuple[SpeechProvider, Voice]] = []
        for name in order:
            provider = self.providers[name]
            if not provider.enabled:
                continue
            provider_voice = self.catalog.equivalent(voice, name)
            if provider_voice is None:
                if name == requested:
                    raise InvalidVoice(
                        f"Voice {voice.name} ({voice.language}) is not offered by {name}.",
                        provider=name,
                    )
                continue
            attempts.append((provider, provider_voice))
            if len(attempts) == 2:
                break

        if not attempts:
            raise NoProviderConfigured(
                f"No configured provider offers voice {voice.name} for {voice.language}."
            )
        return attempts

    async def _synthesize(
        self,
        request: GenerationRequest,
        attempts: List[Tuple[SpeechProvider, Voice]],
    ) -> Tuple[SynthesisResult, Voice]:
        last_error: Optional[ProviderFailure] = None
        for provider, provider_voice in attempts:
            try:
                result = await asyncio.wait_for(
                    provider.synthesize(request, provider_voice),
                    timeout=provider.timeout_seconds,
                )
                return result, provider_voice
            except asyncio.TimeoutError:
                error: ProviderFailure = ProviderTimeout(provider=provider.name)
            except ProviderFailure as exc:
                error = exc

            if not error.retryable:
                raise error
            logger.warning(f"Provider {provider.name} failed ({error.kind}): {error.detail}")
            last_error = error

        raise last_error

    async def generate(
        self,
        request: GenerationRequest,
        plan: Plan,
        user_id: Optional[int] = None,
        client: Optional[ClientInfo] = None,
    ) -> GenerationOutcome:
        voice = self._validate(request)

        access = check_voice_access(plan, voice.name)
        if not access.allowed:
            raise VoiceNotAllowed(
                f'Voice "{voice.name}" not available in your plan. Please upgrade to access premium voices.',
                details={"allowedVoices": access.allowed_voices},
            )

        characters = len(request.text)
        usage = await self._check_quota(user_id, plan, characters)

        attempts = self._plan_attempts(request.provider, voice)
        result, used_voice = await self._synthesize(request, attempts)

        artifact_id = uuid.uuid4().hex
        filename = artifact_filename(result.provider, artifact_id, result.extension)
        client = client or ClientInfo()

        async def record_usage(db):
            if user_id is not None:
                await self.ledger.commit(db, user_id, characters)

        try:
            await self.store.save(
                result.audio_bytes,
                filename=filename,
                on_recorded=record_usage,
                artifact_id=artifact_id,
                provider=result.provider,
                content_type=result.content_type,
                text=request.text,
                voice=used_voice.voice_id,
                language=used_voice.language,
                duration=result.duration_seconds,
                settings={"speed": request.speed, "pitch": request.pitch, "style": request.style},
                user_id=user_id,
                ip_address=client.ip_address,
                user_agent=client.user_agent,
            )
        except (OSError, ValueError, SQLAlchemyError) as exc:
            logger.error(f"Failed to persist audio artifact {artifact_id}: {exc}")
            raise PersistenceError() from exc

        logger.info(f"Audio generated with {result.provider}: {filename}")
        return GenerationOutcome(
            artifact_id=artifact_id,
            filename=filename,
            voice=used_voice,
            provider=result.provider,
            model=result.model,
            audio_format=result.audio_format,
            content_type=result.content_type,
            duration=result.duration_seconds,
            characters_used=characters,
            remaining_characters=self._remaining(plan, usage, characters),
        )

    @staticmethod
    def _remaining(plan: Plan, usage: Optional[UsageSnapshot], characters: int) -> Union[int, str, None]:
        if usage is None:
            return None
        if plan.limits.unlimited_characters:
            return "Unlimited"
        return max(0, plan.limits.monthly_character_cap - usage.characters_used - characters)
