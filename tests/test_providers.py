import json

import httpx
import pytest

from app.core.errors import (
    InvalidVoice,
    NoAudioContent,
    NoAudioData,
    ProviderError,
    ProviderTimeout,
    SafetyBlocked,
    Unconfigured,
    UpstreamQuotaExceeded,
)
from app.modules.speech.providers.base import GenerationRequest
from app.modules.speech.providers.cloud_tts import CloudTTSClient, clamp_speaking_rate, scale_pitch
from app.modules.speech.providers.gemini_tts import GeminiTTSClient
from app.modules.speech.providers.wav import WAV_HEADER_SIZE
from app.modules.speech.voices import GOOGLE, VoiceCatalog
from tests.conftest import MP3_BYTES, PCM_SAMPLES, cloud_audio_response


@pytest.fixture
def catalog():
    return VoiceCatalog()


def gemini_client(catalog, upstream, api_key="test-gemini-key"):
    return GeminiTTSClient(api_key, catalog, transport=upstream.transport)


def cloud_client(catalog, upstream, api_key="test-google-key", audio_encoding="MP3"):
    return CloudTTSClient(api_key, catalog, audio_encoding=audio_encoding, transport=upstream.transport)


def sent_json(upstream, index=-1):
    return json.loads(upstream.calls[index].content)


# --- Gemini ---

@pytest.mark.asyncio
async def test_gemini_builds_audio_request_and_wraps_pcm(catalog, upstream):
    client = gemini_client(catalog, upstream)
    voice = catalog.resolve("gemini:en-US:2")

    result = await client.synthesize(GenerationRequest(text="Hello there", voice_id=voice.voice_id, style="Cheerfully"), voice)

    request = upstream.calls[0]
    assert request.url.path == "/v1beta/models/gemini-2.5-flash-preview-tts:generateContent"
    assert request.headers["x-goog-api-key"] == "test-gemini-key"
    payload = sent_json(upstream)
    assert payload["contents"][0]["parts"][0]["text"] == "Cheerfully: Hello there"
    assert payload["generationConfig"]["responseModalities"] == ["AUDIO"]
    assert payload["generationConfig"]["speechConfig"]["voiceConfig"]["prebuiltVoiceConfig"]["voiceName"] == "Kore"

    assert result.audio_bytes[:4] == b"RIFF"
    assert result.audio_bytes[WAV_HEADER_SIZE:] == PCM_SAMPLES
    assert result.content_type == "audio/wav"
    assert result.extension == "wav"
    assert result.duration_seconds == 0.1
    assert result.provider == "gemini"


@pytest.mark.asyncio
async def test_gemini_prompt_without_style_is_plain_text(catalog, upstream):
    client = gemini_client(catalog, upstream)
    voice = catalog.resolve("gemini:en-US:0")

    await client.synthesize(GenerationRequest(text="Plain", voice_id=voice.voice_id, style="  "), voice)

    assert sent_json(upstream)["contents"][0]["parts"][0]["text"] == "Plain"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "body",
    [
        {"promptFeedback": {"blockReason": "SAFETY"}},
        {"candidates": [{"finishReason": "SAFETY", "content": {"parts": []}}]},
    ],
)
async def test_gemini_safety_block(catalog, upstream, body):
    upstream.gemini = lambda request: httpx.Response(200, json=body)
    voice = catalog.resolve("gemini:en-US:0")

    with pytest.raises(SafetyBlocked) as excinfo:
        await gemini_client(catalog, upstream).synthesize(GenerationRequest(text="x", voice_id=voice.voice_id), voice)
    assert excinfo.value.retryable is False


@pytest.mark.asyncio
async def test_gemini_missing_audio(catalog, upstream):
    upstream.gemini = lambda request: httpx.Response(
        200, json={"candidates": [{"content": {"parts": [{"text": "no audio"}]}, "finishReason": "STOP"}]}
    )
    voice = catalog.resolve("gemini:en-US:0")

    with pytest.raises(NoAudioData):
        await gemini_client(catalog, upstream).synthesize(GenerationRequest(text="x", voice_id=voice.voice_id), voice)


@pytest.mark.asyncio
async def test_gemini_rate_limit_maps_to_upstream_quota(catalog, upstream):
    upstream.gemini = lambda request: httpx.Response(
        429, json={"error": {"code": 429, "message": "Quota exceeded", "status": "RESOURCE_EXHAUSTED"}}
    )
    voice = catalog.resolve("gemini:en-US:0")

    with pytest.raises(UpstreamQuotaExceeded) as excinfo:
        await gemini_client(catalog, upstream).synthesize(GenerationRequest(text="x", voice_id=voice.voice_id), voice)
    assert excinfo.value.provider == "gemini"


@pytest.mark.asyncio
async def test_gemini_transport_timeout(catalog, upstream):
    def timeout(request):
        raise httpx.ReadTimeout("timed out", request=request)

    upstream.gemini = timeout
    voice = catalog.resolve("gemini:en-US:0")

    with pytest.raises(ProviderTimeout):
        await gemini_client(catalog, upstream).synthesize(GenerationRequest(text="x", voice_id=voice.voice_id), voice)


@pytest.mark.asyncio
async def test_unconfigured_provider_makes_no_call(catalog, upstream):
    voice = catalog.resolve("gemini:en-US:0")

    with pytest.raises(Unconfigured):
        await gemini_client(catalog, upstream, api_key=None).synthesize(
            GenerationRequest(text="x", voice_id=voice.voice_id), voice
        )
    assert upstream.calls == []


@pytest.mark.asyncio
async def test_voice_from_another_provider_is_rejected(catalog, upstream):
    voice = catalog.resolve("google:en-US:0")

    with pytest.raises(InvalidVoice):
        await gemini_client(catalog, upstream).synthesize(GenerationRequest(text="x", voice_id=voice.voice_id), voice)
    assert upstream.calls == []


# --- Cloud TTS ---

@pytest.mark.asyncio
async def test_cloud_request_for_chirp_voice_omits_pitch(catalog, upstream):
    voice = catalog.resolve("google:en-US:0")

    result = await cloud_client(catalog, upstream).synthesize(
        GenerationRequest(text="Hello", voice_id=voice.voice_id, speed=9.0, pitch=0.5), voice
    )

    assert upstream.calls[0].url.path == "/v1/text:synthesize"
    payload = sent_json(upstream)
    assert payload["input"] == {"text": "Hello"}
    assert payload["voice"] == {"languageCode": "en-US", "name": "en-US-Chirp3-HD-Puck"}
    assert payload["audioConfig"]["speakingRate"] == 4.0
    assert payload["audioConfig"]["audioEncoding"] == "MP3"
    assert "pitch" not in payload["audioConfig"]

    assert result.audio_bytes == MP3_BYTES
    assert result.content_type == "audio/mpeg"
    assert result.model == "google-cloud-tts-chirp3-hd"
    assert result.duration_seconds == 1.0


@pytest.mark.asyncio
async def test_cloud_request_for_neural_voice_scales_pitch(catalog, upstream):
    voice = catalog.find(GOOGLE, "en-US", "Neural2-C")

    await cloud_client(catalog, upstream).synthesize(
        GenerationRequest(text="Hello", voice_id=voice.voice_id, pitch=-0.5), voice
    )

    assert sent_json(upstream)["audioConfig"]["pitch"] == -10.0


@pytest.mark.asyncio
async def test_cloud_linear16_duration_from_payload_size(catalog, upstream):
    wav = b"RIFF" + b"\x00" * (WAV_HEADER_SIZE - 4) + b"\x00\x00" * 12000
    upstream.google = lambda request: cloud_audio_response(wav)
    voice = catalog.resolve("google:en-US:2")

    result = await cloud_client(catalog, upstream, audio_encoding="LINEAR16").synthesize(
        GenerationRequest(text="Hello", voice_id=voice.voice_id), voice
    )

    assert result.extension == "wav"
    assert result.duration_seconds == 0.5


@pytest.mark.asyncio
async def test_cloud_empty_audio_content(catalog, upstream):
    upstream.google = lambda request: httpx.Response(200, json={"audioContent": ""})
    voice = catalog.resolve("google:en-US:0")

    with pytest.raises(NoAudioContent):
        await cloud_client(catalog, upstream).synthesize(GenerationRequest(text="x", voice_id=voice.voice_id), voice)


@pytest.mark.asyncio
async def test_cloud_rejected_voice_and_server_errors(catalog, upstream):
    voice = catalog.resolve("google:en-US:0")
    client = cloud_client(catalog, upstream)

    upstream.google = lambda request: httpx.Response(
        400, json={"error": {"message": "Voice 'x' does not exist.", "status": "INVALID_ARGUMENT"}}
    )
    with pytest.raises(InvalidVoice):
        await client.synthesize(GenerationRequest(text="x", voice_id=voice.voice_id), voice)

    upstream.google = lambda request: httpx.Response(503, text="unavailable")
    with pytest.raises(ProviderError) as excinfo:
        await client.synthesize(GenerationRequest(text="x", voice_id=voice.voice_id), voice)
    assert excinfo.value.retryable is True


def test_unsupported_audio_encoding(catalog):
    with pytest.raises(ValueError):
        CloudTTSClient("key", catalog, audio_encoding="FLAC")


def test_rate_and_pitch_helpers():
    assert clamp_speaking_rate(0.1) == 0.25
    assert clamp_speaking_rate(1.5) == 1.5
    assert scale_pitch(2.0) == 20.0
    assert scale_pitch(0.25) == 5.0
