from typing import Optional
from pydantic import BaseModel, Field


class GenerateScriptRequest(BaseModel):
    topic: str = Field(..., min_length=1, max_length=2000)
    type: str
    style: str
    duration: Optional[str] = Field(default=None, max_length=50)


class GenerateScriptResponse(BaseModel):
    success: bool = True
    script: str
    type: str
    style: str
    wordCount: int
    estimatedDuration: str
    model: str
