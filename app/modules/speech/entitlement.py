from dataclasses import dataclass
from typing import List, Union

from app.modules.plans.registry import ALL_VOICES, Plan


@dataclass(frozen=True)
class VoiceAccess:
    allowed: bool
    allowed_voices: Union[str, List[str]]


def check_voice_access(plan: Plan, voice_name: str) -> VoiceAccess:
    """Whether `plan` may use the voice with short name `voice_name`."""
    allowlist = plan.limits.voice_allowlist
    if allowlist == ALL_VOICES:
        return VoiceAccess(allowed=True, allowed_voices=ALL_VOICES)
    return VoiceAccess(allowed=voice_name in allowlist, allowed_voices=sorted(allowlist))
