import base64
import binascii
import logging
from typing import Optional

import httpx

from app.core.errors import NoAudioContent
from app.modules.speech.providers.base import (
    GenerationRequest,
    SpeechProvider,
    SynthesisResult,
    estimate_duration,
)
from app.modules.speech.providers.wav import WAV_HEADER_SIZE, pcm_duration_seconds
from app.modules.speech.voices import GOOGLE, Voice, VoiceCatalog

logger = logging.getLogger(__name__)

SAMPLE_RATE = 24000
MIN_SPEAKING_RATE = 0.25
MAX_SPEAKING_RATE = 4.0
MAX_PITCH_SEMITONES = 20.0

# audioEncoding -> (content type, file extension, display format)
AUDIO_ENCODINGS = {
    "MP3": ("audio/mpeg", "mp3", "MP3 (24kHz)"),
    "LINEAR16": ("audio/wav", "wav", "WAV (LINEAR16)"),
    "OGG_OPUS": ("audio/ogg", "ogg", "OGG Opus"),
}


def clamp_speaking_rate(speed: float) -> float:
    return max(MIN_SPEAKING_RATE, min(MAX_SPEAKING_RATE, speed))


def scale_pitch(pitch: float) -> float:
    """Maps a normalized pitch in [-1, 1] onto the provider's [-20, 20] semitones."""
    return max(-1.0, min(1.0, pitch)) * MAX_PITCH_SEMITONES


class CloudTTSClient(SpeechProvider):
    """Managed Google Cloud Text-to-Speech over its `text:synthesize` REST endpoint."""

    name = GOOGLE

    def __init__(
        self,
        api_key: Optional[str],
        catalog: VoiceCatalog,
        audio_encoding: str = "MP3",
        base_url: str = "https://texttospeech.googleapis.com/v1",
        timeout_seconds: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        super().__init__(api_key, catalog, base_url, timeout_seconds, transport)
        if audio_encoding not in AUDIO_ENCODINGS:
            raise ValueError(f"Unsupported audio encoding: {audio_encoding}")
        self.audio_encoding = audio_encoding
        self.model = "google-cloud-tts"

    def _build_payload(self, request: GenerationRequest, voice: Voice) -> dict:
        audio_config = {
            "audioEncoding": self.audio_encoding,
            "speakingRate": clamp_speaking_rate(request.speed),
            "sampleRateHertz": SAMPLE_RATE,
            "effectsProfileId": ["headphone-class-device"],
        }
        if voice.supports_pitch and request.pitch:
            audio_config["pitch"] = scale_pitch(request.pitch)
        return {
            "input": {"text": request.text},
            "voice": {"languageCode": voice.language, "name": voice.provider_name},
            "audioConfig": audio_config,
        }

    async def synthesize(self, request: GenerationRequest, voice: Voice) -> SynthesisResult:
        self._check_ready(voice)
        logger.info(f"Generating speech with Cloud TTS voice {voice.provider_name} ({len(request.text)} chars).")
        data = await self._post(f"{self.base_url}/text:synthesize", self._build_payload(request, voice))

        encoded = data.get("audioContent")
        if not encoded:
            raise NoAudioContent(provider=self.name)
        try:
            audio = base64.b64decode(encoded, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise NoAudioContent("Cloud TTS returned undecodable audio content.", provider=self.name) from exc
        if not audio:
            raise NoAudioContent(provider=self.name)

        content_type, extension, audio_format = AUDIO_ENCODINGS[self.audio_encoding]
        if self.audio_encoding == "LINEAR16" and len(audio) > WAV_HEADER_SIZE:
            duration = round(pcm_duration_seconds(len(audio) - WAV_HEADER_SIZE, sample_rate=SAMPLE_RATE), 2)
        else:
            duration = estimate_duration(request.text)

        return SynthesisResult(
            audio_bytes=audio,
            content_type=content_type,
            extension=extension,
            audio_format=audio_format,
            provider=self.name,
            model=f"{self.model}-{voice.tier}",
            duration_seconds=duration,
            sample_rate=SAMPLE_RATE,
        )
