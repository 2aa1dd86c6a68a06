# app/runtime/nodes/gemini.py
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence

from pocketflow import AsyncNode

from app.runtime.nodes.symptoms import SymptomMatch
from app.services.gemini_client import GeminiClient

logger = logging.getLogger(__name__)

FALLBACK_REPLY = (
    "I'm having trouble connecting to my AI services right now. Please try again, "
    "or if this is urgent, please consult with a healthcare professional immediately."
)

HISTORY_TURNS = 6

PROMPT_TEMPLATE = """
You are a compassionate AI healthcare assistant.
{history}
User's message: "{message}"
Detected symptoms: {symptoms}

Please provide:
1. An empathetic response to their concern
2. Relevant follow-up questions to better understand their condition
3. General health guidance (not diagnosis)
4. Appropriate recommendations for next steps
5. Always remind them to consult healthcare professionals for serious concerns

Keep your response helpful, caring, and medically responsible.
"""


def _history_block(history: Optional[Sequence[Dict[str, str]]]) -> str:
    lines: List[str] = []
    for m in list(history or [])[-HISTORY_TURNS:]:
        content = str(m.get("content") or "").strip()
        if content:
            lines.append(f"- {m.get('role', 'user')}: {content}")
    if not lines:
        return ""
    return "\nContext: Recent conversation (oldest first):\n" + "\n".join(lines) + "\n"


def build_prompt(
    user_text: str,
    symptoms: Sequence[SymptomMatch],
    history: Optional[Sequence[Dict[str, str]]] = None,
) -> str:
    context = ", ".join(f"{s.key} ({s.severity} severity)" for s in symptoms)
    return PROMPT_TEMPLATE.format(
        history=_history_block(history),
        message=user_text,
        symptoms=context or "none detected",
    )


class GeminiChatNode(AsyncNode):
    """Generative reply for the message, built on the finished keyword analysis.
    - prep_async: build the prompt from shared analysis + resolve an injected client
    - exec_async: call Gemini
    - exec_fallback_async: fixed apology when the call keeps failing
    - post_async: write back the reply text
    """

    def __init__(self, *, temperature: float = 0.2, **kwargs) -> None:
        super().__init__(**kwargs)
        self.temperature = temperature

    async def prep_async(self, shared: Dict[str, Any]) -> Dict[str, Any]:
        return {
            "prompt": build_prompt(
                str(shared.get("user_text") or ""),
                shared.get("symptoms") or [],
                shared.get("conversation_history"),
            ),
            "client": shared.get("gemini_client"),
            "temperature": self.temperature,
        }

    async def exec_async(self, prep: Dict[str, Any]) -> Dict[str, Any]:
        client: Optional[GeminiClient] = prep["client"]
        if client is not None:
            reply = await client.generate(prep["prompt"], temperature=prep["temperature"])
            return {"reply": reply, "degraded": False}

        # No injected client: open a short-lived one for this call.
        async with GeminiClient() as own:
            reply = await own.generate(prep["prompt"], temperature=prep["temperature"])
        return {"reply": reply, "degraded": False}

    async def exec_fallback_async(self, prep: Dict[str, Any], exc: Exception) -> Dict[str, Any]:
        logger.warning("Gemini unavailable, using fallback reply: %s", exc)
        return {
            "reply": FALLBACK_REPLY,
            "error": str(exc),
            "degraded": True,
        }

    async def post_async(self, shared: Dict[str, Any], prep: Dict[str, Any], exec_res: Dict[str, Any]) -> str:
        shared["assistant_reply"] = exec_res["reply"]
        shared["model_degraded"] = bool(exec_res.get("degraded"))
        return "ok"
