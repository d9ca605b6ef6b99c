import base64
import binascii
import logging
from typing import Optional

import httpx

from app.core.errors import NoAudioData, SafetyBlocked
from app.modules.speech.providers.base import GenerationRequest, SpeechProvider, SynthesisResult
from app.modules.speech.providers.wav import pcm_duration_seconds, pcm_to_wav
from app.modules.speech.voices import GEMINI, Voice, VoiceCatalog

logger = logging.getLogger(__name__)

SAMPLE_RATE = 24000
SAFETY_FINISH_REASONS = {"SAFETY", "PROHIBITED_CONTENT", "BLOCKLIST", "SPII"}


class GeminiTTSClient(SpeechProvider):
    """
    Generative speech through the Gemini `generateContent` REST endpoint with
    an AUDIO response modality. The model returns 24 kHz mono 16-bit PCM,
    which is wrapped into a WAV container before it is handed back.
    """

    name = GEMINI

    def __init__(
        self,
        api_key: Optional[str],
        catalog: VoiceCatalog,
        model: str = "gemini-2.5-flash-preview-tts",
        base_url: str = "https://generativelanguage.googleapis.com/v1beta",
        timeout_seconds: float = 60.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        super().__init__(api_key, catalog, base_url, timeout_seconds, transport)
        self.model = model

    def _build_payload(self, request: GenerationRequest, voice: Voice) -> dict:
        prompt = request.text
        if request.style and request.style.strip():
            prompt = f"{request.style.strip()}: {request.text}"
        return {
            "contents": [{"parts": [{"text": prompt}]}],
            "generationConfig": {
                "responseModalities": ["AUDIO"],
                "speechConfig": {
                    "voiceConfig": {
                        "prebuiltVoiceConfig": {"voiceName": voice.provider_name},
                    },
                },
            },
        }

    async def synthesize(self, request: GenerationRequest, voice: Voice) -> SynthesisResult:
        self._check_ready(voice)
        url = f"{self.base_url}/models/{self.model}:generateContent"
        logger.info(f"Generating speech with Gemini voice {voice.provider_name} ({len(request.text)} chars).")
        data = await self._post(url, self._build_payload(request, voice))

        if (data.get("promptFeedback") or {}).get("blockReason"):
            raise SafetyBlocked(provider=self.name)
        candidates = data.get("candidates") or []
        if candidates and candidates[0].get("finishReason") in SAFETY_FINISH_REASONS:
            raise SafetyBlocked(provider=self.name)

        encoded = None
        if candidates:
            parts = (candidates[0].get("content") or {}).get("parts") or []
            for part in parts:
                inline = part.get("inlineData") or {}
                if inline.get("data"):
                    encoded = inline["data"]
                    break
        if not encoded:
            raise NoAudioData(provider=self.name)

        try:
            pcm = base64.b64decode(encoded, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise NoAudioData("Gemini returned undecodable audio data.", provider=self.name) from exc
        if not pcm:
            raise NoAudioData(provider=self.name)

        return SynthesisResult(
            audio_bytes=pcm_to_wav(pcm, sample_rate=SAMPLE_RATE),
            content_type="audio/wav",
            extension="wav",
            audio_format="WAV (24kHz PCM)",
            provider=self.name,
            model=self.model,
            duration_seconds=round(pcm_duration_seconds(len(pcm), sample_rate=SAMPLE_RATE), 2),
            sample_rate=SAMPLE_RATE,
        )
