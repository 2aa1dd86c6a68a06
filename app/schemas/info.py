from pydantic import BaseModel, Field
from typing import Dict, List
from datetime import datetime


class AnalyticsData(BaseModel):
    symptoms_database: int
    treatments_available: int
    nlp_features: List[str] = Field(default_factory=list)
    supported_symptoms: List[str] = Field(default_factory=list)


class AnalyticsOut(BaseModel):
    success: bool = True
    data: AnalyticsData


class HealthTipsOut(BaseModel):
    success: bool = True
    tips: List[str] = Field(default_factory=list)


class HealthOut(BaseModel):
    status: str
    timestamp: datetime
    version: str
    services: Dict[str, str] = Field(default_factory=dict)
