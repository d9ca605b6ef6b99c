from typing import List, Union
from pydantic import BaseModel


class PlanLimitsPublic(BaseModel):
    monthlyCharacters: int
    voices: Union[str, List[str]]
    apiCalls: int


class PlanPublic(BaseModel):
    id: str
    name: str
    price: int
    currency: str
    interval: str
    features: List[str]
    limits: PlanLimitsPublic
    popular: bool


class PlansResponse(BaseModel):
    success: bool = True
    plans: List[PlanPublic]
