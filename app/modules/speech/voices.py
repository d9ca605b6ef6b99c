from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from app.core.errors import InvalidVoice

GEMINI = "gemini"
GOOGLE = "google"
PROVIDERS = (GEMINI, GOOGLE)

# Voice tiers that reject the pitch parameter on the managed cloud API
PITCHLESS_TIERS = frozenset({"chirp3-hd", "journey"})


@dataclass(frozen=True)
class VoiceDescriptor:
    """Structured voice id: ``<provider>:<language>:<index>``, e.g. ``gemini:en-US:0``."""

    provider: str
    language: str
    index: int

    @classmethod
    def parse(cls, voice_id: str) -> "VoiceDescriptor":
        parts = (voice_id or "").split(":")
        if len(parts) != 3:
            raise InvalidVoice(f"Malformed voice id: {voice_id!r}")
        provider, language, index = parts
        if provider not in PROVIDERS or not language or not index.isdigit():
            raise InvalidVoice(f"Malformed voice id: {voice_id!r}")
        return cls(provider=provider, language=language, index=int(index))

    @property
    def voice_id(self) -> str:
        return f"{self.provider}:{self.language}:{self.index}"


@dataclass(frozen=True)
class Voice:
    descriptor: VoiceDescriptor
    name: str            # short name, the unit of plan entitlement (e.g. "Puck")
    provider_name: str   # name sent on the wire to the provider
    display_name: str
    tier: str

    @property
    def voice_id(self) -> str:
        return self.descriptor.voice_id

    @property
    def provider(self) -> str:
        return self.descriptor.provider

    @property
    def language(self) -> str:
        return self.descriptor.language

    @property
    def supports_pitch(self) -> bool:
        return self.tier not in PITCHLESS_TIERS


GEMINI_25_VOICES: Dict[str, List[Tuple[str, str]]] = {
    "en-US": [
        ("Puck", "Puck (Playful, Young)"),
        ("Charon", "Charon (Serious, Mature)"),
        ("Kore", "Kore (Warm, Friendly)"),
        ("Fenrir", "Fenrir (Deep, Authoritative)"),
        ("Aoede", "Aoede (Musical, Expressive)"),
        ("Leda", "Leda (Youthful, Bright)"),
        ("Orus", "Orus (Firm, Steady)"),
        ("Zephyr", "Zephyr (Bright, Airy)"),
    ],
    "en-GB": [
        ("Puck", "Puck UK (Playful British)"),
        ("Charon", "Charon UK (Serious British)"),
        ("Kore", "Kore UK (Warm British)"),
    ],
    "es-US": [
        ("Puck", "Puck Spanish (Playful)"),
        ("Charon", "Charon Spanish (Serious)"),
        ("Kore", "Kore Spanish (Warm)"),
    ],
    "es-ES": [
        ("Puck", "Puck España (Playful)"),
        ("Charon", "Charon España (Serious)"),
    ],
    "fr-FR": [
        ("Puck", "Puck French (Playful)"),
        ("Charon", "Charon French (Serious)"),
        ("Kore", "Kore French (Warm)"),
    ],
    "de-DE": [
        ("Puck", "Puck German (Playful)"),
        ("Charon", "Charon German (Serious)"),
    ],
    "it-IT": [
        ("Puck", "Puck Italian (Playful)"),
        ("Kore", "Kore Italian (Warm)"),
    ],
    "pt-BR": [
        ("Puck", "Puck Portuguese (Playful)"),
        ("Charon", "Charon Portuguese (Serious)"),
    ],
    "hi-IN": [
        ("Puck", "Puck Hindi (Playful)"),
        ("Kore", "Kore Hindi (Warm)"),
    ],
    "ja-JP": [
        ("Puck", "Puck Japanese (Playful)"),
        ("Charon", "Charon Japanese (Serious)"),
    ],
    "ko-KR": [
        ("Puck", "Puck Korean (Playful)"),
        ("Kore", "Kore Korean (Warm)"),
    ],
}

# (short name, tier) per language; wire names are derived from the tier
GOOGLE_CLOUD_VOICES: Dict[str, List[Tuple[str, str]]] = {
    "en-US": [
        ("Puck", "chirp3-hd"),
        ("Charon", "chirp3-hd"),
        ("Kore", "chirp3-hd"),
        ("Fenrir", "chirp3-hd"),
        ("Aoede", "chirp3-hd"),
        ("Journey-F", "journey"),
        ("Journey-D", "journey"),
        ("Neural2-C", "neural2"),
    ],
    "en-GB": [
        ("Puck", "chirp3-hd"),
        ("Charon", "chirp3-hd"),
        ("Kore", "chirp3-hd"),
        ("Neural2-A", "neural2"),
    ],
    "es-US": [
        ("Puck", "chirp3-hd"),
        ("Charon", "chirp3-hd"),
        ("Kore", "chirp3-hd"),
    ],
    "es-ES": [
        ("Puck", "chirp3-hd"),
        ("Charon", "chirp3-hd"),
    ],
    "fr-FR": [
        ("Puck", "chirp3-hd"),
        ("Charon", "chirp3-hd"),
        ("Kore", "chirp3-hd"),
    ],
    "de-DE": [
        ("Puck", "chirp3-hd"),
        ("Charon", "chirp3-hd"),
    ],
    "it-IT": [
        ("Puck", "chirp3-hd"),
        ("Kore", "chirp3-hd"),
    ],
    "hi-IN": [
        ("Puck", "chirp3-hd"),
        ("Kore", "chirp3-hd"),
    ],
    "ja-JP": [
        ("Puck", "chirp3-hd"),
        ("Charon", "chirp3-hd"),
    ],
}

TIER_LABELS = {
    "chirp3-hd": "Chirp3 HD",
    "journey": "Journey",
    "neural2": "Neural2",
}


def _cloud_wire_name(language: str, name: str, tier: str) -> str:
    if tier == "chirp3-hd":
        return f"{language}-Chirp3-HD-{name}"
    return f"{language}-{name}"


def _build_default_catalog() -> Dict[str, Dict[str, List[Voice]]]:
    catalog: Dict[str, Dict[str, List[Voice]]] = {GEMINI: {}, GOOGLE: {}}
    for language, voices in GEMINI_25_VOICES.items():
        catalog[GEMINI][language] = [
            Voice(
                descriptor=VoiceDescriptor(GEMINI, language, index),
                name=name,
                provider_name=name,
                display_name=display_name,
                tier="generative",
            )
            for index, (name, display_name) in enumerate(voices)
        ]
    for language, voices in GOOGLE_CLOUD_VOICES.items():
        catalog[GOOGLE][language] = [
            Voice(
                descriptor=VoiceDescriptor(GOOGLE, language, index),
                name=name,
                provider_name=_cloud_wire_name(language, name, tier),
                display_name=f"{name} ({TIER_LABELS[tier]}, {language})",
                tier=tier,
            )
            for index, (name, tier) in enumerate(voices)
        ]
    return catalog


class VoiceCatalog:
    """Voices offered by each provider, grouped by language."""

    def __init__(self, voices: Optional[Dict[str, Dict[str, List[Voice]]]] = None):
        self._voices = voices if voices is not None else _build_default_catalog()

    def get(self, descriptor: VoiceDescriptor) -> Optional[Voice]:
        voices = self._voices.get(descriptor.provider, {}).get(descriptor.language, [])
        if 0 <= descriptor.index < len(voices):
            return voices[descriptor.index]
        return None

    def resolve(self, voice_id: str) -> Voice:
        voice = self.get(VoiceDescriptor.parse(voice_id))
        if voice is None:
            raise InvalidVoice(f"Unknown voice: {voice_id}")
        return voice

    def contains(self, voice: Voice) -> bool:
        return self.get(voice.descriptor) == voice

    def find(self, provider: str, language: str, name: str) -> Optional[Voice]:
        for voice in self._voices.get(provider, {}).get(language, []):
            if voice.name == name:
                return voice
        return None

    def equivalent(self, voice: Voice, provider: str) -> Optional[Voice]:
        """The same voice family in `provider`'s catalog, if it offers one for the language."""
        if voice.provider == provider:
            return voice
        return self.find(provider, voice.language, voice.name)

    def serves_language(self, provider: str, language: str) -> bool:
        return bool(self._voices.get(provider, {}).get(language))

    def languages(self) -> List[str]:
        codes = set()
        for by_language in self._voices.values():
            codes.update(by_language)
        return sorted(codes)

    def voices_for(self, language: str) -> List[Voice]:
        voices: List[Voice] = []
        for provider in PROVIDERS:
            voices.extend(self._voices.get(provider, {}).get(language, []))
        return voices
