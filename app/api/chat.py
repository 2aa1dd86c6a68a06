# app/api/chat.py
import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Request

from app.runtime.analysis import collect_analysis
from app.runtime.flow import make_intake_flow
from app.schemas.chat import ChatIn, ChatOut
from app.services.gemini_client import GeminiClient
from app.services.knowledge import KnowledgeBase, get_knowledge_base

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/chat", tags=["chat"])


def get_knowledge() -> KnowledgeBase:
    return get_knowledge_base()


def get_gemini_client(request: Request) -> Optional[GeminiClient]:
    """Shared client opened at startup; None when no API key is configured."""
    return getattr(request.app.state, "gemini_client", None)


@router.post("", response_model=ChatOut)
async def chat_endpoint(
    payload: ChatIn,
    kb: KnowledgeBase = Depends(get_knowledge),
    client: Optional[GeminiClient] = Depends(get_gemini_client),
):
    """
    Handle a chat message from the frontend:
    1. Keyword analysis (symptoms, entities, sentiment, risk, follow-ups)
    2. Gemini reply (fallback text on failure)
    3. Compose final text + next step
    """
    logger.info("Processing message (%d chars)", len(payload.message))

    flow = make_intake_flow()
    shared: Dict[str, Any] = {
        "knowledge": kb,
        "user_text": payload.message,
        "current_step": payload.current_step,
        "conversation_history": [m.as_turn() for m in payload.conversation_history],
        "gemini_client": client,
    }

    await flow.run_async(shared)

    analysis = collect_analysis(shared)
    logger.info("Symptoms detected: %s", [s.key for s in analysis.symptoms])
    logger.info("Risk level: %s (score %d)", analysis.risk.level, analysis.risk.score)

    return ChatOut(
        response=shared.get("response", ""),
        analysis=analysis.to_dict(),
        suggestions=list(analysis.suggestions),
        severity=analysis.risk.level,
        next_step=shared.get("next_step", "continue"),
        follow_up_questions=list(analysis.follow_up_questions),
    )
