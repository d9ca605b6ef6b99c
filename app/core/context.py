from dataclasses import dataclass
from typing import Dict, Optional

import httpx
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.config import Settings
from app.core.uow import UnitOfWork
from app.modules.artifacts.store import ArtifactStore
from app.modules.payment.service import PaymentService, RazorpayGateway
from app.modules.plans.registry import PlanRegistry
from app.modules.quota.ledger import QuotaLedger
from app.modules.scripts.service import ScriptGenerator
from app.modules.speech.providers.base import SpeechProvider
from app.modules.speech.providers.cloud_tts import CloudTTSClient
from app.modules.speech.providers.gemini_tts import GeminiTTSClient
from app.modules.speech.service import GenerationBroker
from app.modules.speech.voices import GEMINI, GOOGLE, VoiceCatalog
from app.modules.subscription.service import SubscriptionService


@dataclass
class ServiceContext:
    """Every long-lived collaborator of the API, built once at startup."""

    settings: Settings
    session_factory: async_sessionmaker[AsyncSession]
    uow: UnitOfWork
    plans: PlanRegistry
    catalog: VoiceCatalog
    ledger: QuotaLedger
    store: ArtifactStore
    providers: Dict[str, SpeechProvider]
    broker: GenerationBroker
    subscriptions: SubscriptionService
    payments: PaymentService
    scripts: ScriptGenerator


def build_service_context(
    settings: Settings,
    session_factory: async_sessionmaker[AsyncSession],
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> ServiceContext:
    """
    Wires the services from settings. `transport` is handed to every outbound
    HTTP client, which lets tests substitute `httpx.MockTransport`.
    """
    uow = UnitOfWork(session_factory)
    plans = PlanRegistry()
    catalog = VoiceCatalog()
    ledger = QuotaLedger()
    store = ArtifactStore(
        storage_dir=settings.AUDIO_STORAGE_DIR,
        session_factory=session_factory,
        ttl_hours=settings.AUDIO_TTL_HOURS,
    )
    providers: Dict[str, SpeechProvider] = {
        GOOGLE: CloudTTSClient(
            api_key=settings.GOOGLE_TTS_API_KEY,
            catalog=catalog,
            audio_encoding=settings.GOOGLE_TTS_AUDIO_ENCODING,
            base_url=settings.GOOGLE_TTS_API_BASE_URL,
            timeout_seconds=settings.GOOGLE_TTS_TIMEOUT_SECONDS,
            transport=transport,
        ),
        GEMINI: GeminiTTSClient(
            api_key=settings.GEMINI_API_KEY,
            catalog=catalog,
            model=settings.GEMINI_TTS_MODEL,
            base_url=settings.GEMINI_API_BASE_URL,
            timeout_seconds=settings.GEMINI_TTS_TIMEOUT_SECONDS,
            transport=transport,
        ),
    }
    subscriptions = SubscriptionService(
        plans=plans,
        ledger=ledger,
        duration_days=settings.SUBSCRIPTION_DURATION_DAYS,
    )
    gateway = RazorpayGateway(
        key_id=settings.RAZORPAY_KEY_ID,
        key_secret=settings.RAZORPAY_KEY_SECRET,
        base_url=settings.RAZORPAY_API_BASE_URL,
        transport=transport,
    )
    return ServiceContext(
        settings=settings,
        session_factory=session_factory,
        uow=uow,
        plans=plans,
        catalog=catalog,
        ledger=ledger,
        store=store,
        providers=providers,
        broker=GenerationBroker(providers, catalog, ledger, store, uow),
        subscriptions=subscriptions,
        payments=PaymentService(gateway, plans, subscriptions, uow),
        scripts=ScriptGenerator(settings.GEMINI_API_KEY, settings.GEMINI_SCRIPT_MODEL),
    )
