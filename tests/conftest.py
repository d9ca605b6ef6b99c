import asyncio
import base64
from dataclasses import dataclass
from typing import Callable, List

import httpx
import pytest
import pytest_asyncio
from fastapi.testclient import TestClient
from sqlalchemy.pool import NullPool

from app.core.config import Settings
from app.core.context import ServiceContext, build_service_context
from app.core.database import DatabaseManager
from app.main import create_app
from app.models.user_model import Users
from app.utils.auth import create_access_token

# 0.1 s of 24 kHz mono 16-bit PCM
PCM_SAMPLES = b"\x01\x00" * 2400
MP3_BYTES = b"ID3\x03\x00fake-mp3-frames"


def gemini_audio_response(pcm: bytes = PCM_SAMPLES) -> httpx.Response:
    return httpx.Response(
        200,
        json={
            "candidates": [
                {
                    "content": {
                        "parts": [
                            {"inlineData": {"mimeType": "audio/L16;rate=24000", "data": base64.b64encode(pcm).decode()}}
                        ]
                    },
                    "finishReason": "STOP",
                }
            ]
        },
    )


def cloud_audio_response(audio: bytes = MP3_BYTES) -> httpx.Response:
    return httpx.Response(200, json={"audioContent": base64.b64encode(audio).decode()})


def razorpay_order_response(request: httpx.Request) -> httpx.Response:
    return httpx.Response(
        200,
        json={"id": "order_test_1", "entity": "order", "amount": 19900, "currency": "INR", "status": "created"},
    )


class Upstream:
    """Routes outbound provider calls to per-service handlers tests can replace."""

    def __init__(self):
        self.gemini: Callable = lambda request: gemini_audio_response()
        self.google: Callable = lambda request: cloud_audio_response()
        self.razorpay: Callable = razorpay_order_response
        self.calls: List[httpx.Request] = []

    async def handler(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(request)
        host = request.url.host
        if "texttospeech" in host:
            target = self.google
        elif "generativelanguage" in host:
            target = self.gemini
        elif "razorpay" in host:
            target = self.razorpay
        else:
            return httpx.Response(404)
        response = target(request)
        if asyncio.iscoroutine(response):
            response = await response
        return response

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def hosts(self) -> List[str]:
        return [request.url.host for request in self.calls]


def make_settings(tmp_path, **overrides) -> Settings:
    values = dict(
        APP_ENV="test",
        DATABASE_URL=f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        AUDIO_STORAGE_DIR=str(tmp_path / "uploads"),
        SECRET_KEY="test-secret-key",
        GEMINI_API_KEY="test-gemini-key",
        GOOGLE_TTS_API_KEY="test-google-key",
        RAZORPAY_KEY_ID="rzp_test_key",
        RAZORPAY_KEY_SECRET="rzp_test_secret",
    )
    values.update(overrides)
    return Settings(_env_file=None, **values)


async def create_user(session_factory, email: str = "listener@example.com", plan: str = "free") -> Users:
    async with session_factory() as db:
        user = Users(name="Test Listener", email=email, plan=plan)
        db.add(user)
        await db.commit()
        return user


@pytest.fixture
def settings(tmp_path):
    return make_settings(tmp_path)


@pytest.fixture
def upstream():
    return Upstream()


@pytest_asyncio.fixture
async def db_manager(settings):
    manager = DatabaseManager(settings.DATABASE_URL, poolclass=NullPool)
    await manager.create_all()
    yield manager
    await manager.close()


@pytest.fixture
def session_factory(db_manager):
    return db_manager.async_session_maker


@pytest.fixture
def services(settings, session_factory, upstream) -> ServiceContext:
    return build_service_context(settings, session_factory, transport=upstream.transport)


@pytest_asyncio.fixture
async def user(session_factory):
    return await create_user(session_factory)


@dataclass
class ApiHarness:
    client: TestClient
    services: ServiceContext
    settings: Settings
    upstream: Upstream

    def run(self, coro):
        return asyncio.run(coro)

    def create_user(self, email: str = "listener@example.com") -> Users:
        return self.run(create_user(self.services.session_factory, email=email))

    def auth_headers(self, user: Users) -> dict:
        token = create_access_token({"sub": str(user.id)}, settings=self.settings)["access_token"]
        return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def api(settings, upstream):
    """A running app on a fresh SQLite database with stubbed upstream providers."""
    manager = DatabaseManager(settings.DATABASE_URL, poolclass=NullPool)
    asyncio.run(manager.create_all())
    app = create_app(settings)
    app.state.services = build_service_context(settings, manager.async_session_maker, transport=upstream.transport)
    with TestClient(app) as client:
        yield ApiHarness(client=client, services=app.state.services, settings=settings, upstream=upstream)
    asyncio.run(manager.close())
