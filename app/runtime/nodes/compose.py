# app/runtime/nodes/compose.py
from __future__ import annotations

from typing import Any, Dict, List

from pocketflow import AsyncNode

from app.runtime.nodes.risk import RiskAssessment

EMERGENCY_BANNER = (
    "🚨 EMERGENCY ALERT: Your symptoms suggest you need immediate medical attention. "
    "Please call emergency services or go to the nearest emergency room."
)
FOLLOW_UP_INTRO = "To better assist you, could you please tell me:"


def compose_response(reply: str, risk_level: str, follow_ups: List[str]) -> str:
    text = reply or ""
    if risk_level == "emergency":
        return f"{EMERGENCY_BANNER}\n\n{text}"
    if follow_ups:
        numbered = "\n".join(f"{i}. {q}" for i, q in enumerate(follow_ups, start=1))
        text += f"\n\n{FOLLOW_UP_INTRO}\n{numbered}"
    return text


def next_step_for(risk_level: str, has_symptoms: bool, current_step: str) -> str:
    if risk_level == "emergency":
        return "emergency"
    if has_symptoms and current_step == "initial":
        return "symptom_analysis"
    return "continue"


class ResponseComposeNode(AsyncNode):
    """Final user-facing text.
    Emergency: banner first, follow-up questions left out.
    Otherwise: model reply plus a numbered list of follow-up questions.
    """

    async def prep_async(self, shared: Dict[str, Any]) -> Dict[str, Any]:
        risk: RiskAssessment = shared.get("risk") or RiskAssessment(score=0, level="low")
        return {
            "reply": str(shared.get("assistant_reply") or ""),
            "risk_level": risk.level,
            "follow_ups": list(shared.get("follow_up_questions") or []),
            "has_symptoms": bool(shared.get("symptoms")),
            "current_step": str(shared.get("current_step") or "initial"),
        }

    async def exec_async(self, prep: Dict[str, Any]) -> Dict[str, Any]:
        return {
            "response": compose_response(prep["reply"], prep["risk_level"], prep["follow_ups"]),
            "next_step": next_step_for(prep["risk_level"], prep["has_symptoms"], prep["current_step"]),
        }

    async def post_async(self, shared: Dict[str, Any], prep: Dict[str, Any], exec_res: Dict[str, Any]) -> str:
        shared["response"] = exec_res["response"]
        shared["next_step"] = exec_res["next_step"]
        return "ok"
