import os
import random
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Request

from app.api.chat import get_knowledge
from app.schemas.info import AnalyticsData, AnalyticsOut, HealthOut, HealthTipsOut
from app.services.knowledge import KnowledgeBase

router = APIRouter(prefix="/api", tags=["info"])

TIPS_PER_REQUEST = 3

NLP_FEATURES = [
    "Symptom keyword detection",
    "Medical entity extraction",
    "Sentiment analysis",
    "Risk assessment",
    "Emergency detection",
    "Follow-up question generation",
]


@router.get("/analytics", response_model=AnalyticsOut)
async def analytics(kb: KnowledgeBase = Depends(get_knowledge)):
    return AnalyticsOut(
        data=AnalyticsData(
            symptoms_database=len(kb.symptoms),
            treatments_available=len(kb.treatments),
            nlp_features=NLP_FEATURES,
            supported_symptoms=list(kb.symptom_keys),
        )
    )


@router.get("/health-tips", response_model=HealthTipsOut)
async def health_tips(kb: KnowledgeBase = Depends(get_knowledge)):
    tips = list(kb.health_tips)
    return HealthTipsOut(tips=random.sample(tips, min(TIPS_PER_REQUEST, len(tips))))


@router.get("/health", response_model=HealthOut)
async def health(request: Request):
    configured = getattr(request.app.state, "gemini_client", None) is not None or bool(os.getenv("GEMINI_API_KEY"))
    return HealthOut(
        status="healthy",
        timestamp=datetime.now(timezone.utc),
        version=os.getenv("APP_VERSION", "1.0.0"),
        services={
            "nlp": "active",
            "gemini_ai": "configured" if configured else "not_configured",
            "database": "none",
        },
    )
