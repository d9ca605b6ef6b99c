from typing import List, Literal, Optional, Union
from pydantic import BaseModel, Field


class GenerateSpeechRequest(BaseModel):
    text: str
    voiceId: str
    languageCode: Optional[str] = None
    speed: float = Field(default=1.0, ge=0.25, le=4.0)
    pitch: float = Field(default=0.0, ge=-1.0, le=1.0)
    style: Optional[str] = Field(default=None, max_length=200)
    provider: Literal["auto", "gemini", "google"] = "auto"


class GenerateSpeechResponse(BaseModel):
    success: bool = True
    audioId: str
    filename: str
    url: str
    downloadUrl: str
    voice: str
    voiceId: str
    language: str
    provider: str
    model: str
    audioFormat: str
    duration: float
    charactersUsed: int
    remainingCharacters: Union[int, str, None] = None


class VoiceInfo(BaseModel):
    id: str
    name: str
    displayName: str
    provider: str
    tier: str


class VoicesResponse(BaseModel):
    success: bool = True
    language: str
    voices: List[VoiceInfo]


class LanguagesResponse(BaseModel):
    success: bool = True
    languages: List[str]


class ProviderStatusResponse(BaseModel):
    success: bool = True
    providers: dict
