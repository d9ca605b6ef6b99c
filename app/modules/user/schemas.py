from datetime import datetime
from typing import List, Optional, Union
from pydantic import BaseModel


class UserInfo(BaseModel):
    id: int
    email: Optional[str] = None
    name: Optional[str] = None


class SubscriptionInfo(BaseModel):
    plan: str
    planName: str
    status: str
    expiresAt: Optional[datetime] = None


class UsageInfo(BaseModel):
    monthYear: str
    monthlyCharacters: int
    monthlyCharactersLimit: int
    apiCalls: int
    apiCallsLimit: int
    audioGenerated: int
    charactersRemaining: Union[int, str]


class DashboardResponse(BaseModel):
    success: bool = True
    user: UserInfo
    subscription: SubscriptionInfo
    usage: UsageInfo
    features: List[str]
    availableVoices: Union[str, List[str]]


class AudioHistoryItem(BaseModel):
    audioId: str
    filename: str
    provider: str
    voice: str
    language: str
    textPreview: str
    textLength: int
    duration: Optional[float] = None
    createdAt: datetime
    expiresAt: datetime
    url: str


class AudioHistoryResponse(BaseModel):
    success: bool = True
    history: List[AudioHistoryItem]
