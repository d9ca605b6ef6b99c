import math
from dataclasses import dataclass
from typing import Optional

import httpx

from app.core.errors import (
    InvalidVoice,
    ProviderError,
    ProviderFailure,
    ProviderTimeout,
    Unconfigured,
    UpstreamQuotaExceeded,
)
from app.modules.speech.voices import Voice, VoiceCatalog

# Rough speaking rate used when the provider does not report a duration
SECONDS_PER_CHARACTER = 0.06


@dataclass
class GenerationRequest:
    text: str
    voice_id: str
    language_code: Optional[str] = None
    speed: float = 1.0
    pitch: float = 0.0
    style: Optional[str] = None
    provider: str = "auto"


@dataclass
class SynthesisResult:
    audio_bytes: bytes
    content_type: str
    extension: str
    audio_format: str
    provider: str
    model: str
    duration_seconds: float
    sample_rate: Optional[int] = None


def estimate_duration(text: str) -> float:
    return float(math.ceil(len(text) * SECONDS_PER_CHARACTER))


class SpeechProvider:
    """
    Common plumbing for HTTP speech providers: credential check, catalog
    check and the mapping of transport failures onto provider error kinds.
    """

    name = "provider"
    model = ""

    def __init__(
        self,
        api_key: Optional[str],
        catalog: VoiceCatalog,
        base_url: str,
        timeout_seconds: float = 60.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key
        self.catalog = catalog
        self.base_url = base_url.rstrip("/")
        self.timeout_seconds = timeout_seconds
        self.transport = transport

    @property
    def enabled(self) -> bool:
        return bool(self.api_key)

    def _headers(self) -> dict:
        return {"x-goog-api-key": self.api_key, "Content-Type": "application/json"}

    def _check_ready(self, voice: Voice) -> None:
        if not self.enabled:
            raise Unconfigured(f"{self.name} API key is not configured.", provider=self.name)
        if voice.provider != self.name or not self.catalog.contains(voice):
            raise InvalidVoice(
                f"Voice {voice.voice_id} is not offered by {self.name}.",
                provider=self.name,
            )

    async def _post(self, url: str, payload: dict) -> dict:
        try:
            async with httpx.AsyncClient(timeout=self.timeout_seconds, transport=self.transport) as client:
                response = await client.post(url, headers=self._headers(), json=payload)
        except httpx.TimeoutException as exc:
            raise ProviderTimeout(f"{self.name} request timed out: {exc}", provider=self.name) from exc
        except httpx.HTTPError as exc:
            raise ProviderError(f"{self.name} request failed: {exc}", provider=self.name) from exc

        if response.status_code >= 400:
            raise self._error_for_response(response)
        try:
            return response.json()
        except ValueError as exc:
            raise ProviderError(f"{self.name} returned a malformed response.", provider=self.name) from exc

    def _error_for_response(self, response: httpx.Response) -> ProviderFailure:
        message = ""
        upstream_status = ""
        try:
            error = response.json().get("error") or {}
            message = error.get("message") or ""
            upstream_status = error.get("status") or ""
        except (ValueError, AttributeError):
            message = response.text[:200]

        if response.status_code == 429 or upstream_status == "RESOURCE_EXHAUSTED":
            return UpstreamQuotaExceeded(provider=self.name)
        if response.status_code == 400 and "voice" in message.lower():
            return InvalidVoice(f"{self.name} rejected the voice: {message}", provider=self.name)
        return ProviderError(
            f"{self.name} returned HTTP {response.status_code}: {message or 'no details'}",
            provider=self.name,
        )

    async def synthesize(self, request: GenerationRequest, voice: Voice) -> SynthesisResult:
        raise NotImplementedError
