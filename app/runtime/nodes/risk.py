# app/runtime/nodes/risk.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple

from pocketflow import AsyncNode

from app.runtime.nodes.entities import detect_emergency_keywords
from app.runtime.nodes.symptoms import SymptomMatch
from app.services.knowledge import Vocabulary, get_knowledge_base

EMERGENCY_WEIGHT = 8
SEVERITY_WEIGHTS = {"high": 5, "medium": 3, "low": 1}

# (minimum score, level), checked top-down
RISK_THRESHOLDS: Tuple[Tuple[int, str], ...] = (
    (8, "emergency"),
    (6, "urgent"),
    (3, "moderate"),
)
RISK_LEVELS = ("low", "moderate", "urgent", "emergency")


@dataclass(frozen=True)
class RiskAssessment:
    score: int
    level: str
    factors: Tuple[str, ...] = ()


def risk_level_for(score: int) -> str:
    for minimum, level in RISK_THRESHOLDS:
        if score >= minimum:
            return level
    return "low"


def assess_risk(
    symptoms: Sequence[SymptomMatch],
    raw_text: Optional[str],
    vocab: Vocabulary,
) -> RiskAssessment:
    """
    Emergency phrases add 8; each matched symptom adds 5 (high), 3 (medium)
    or 1 (low). Low-severity symptoms raise the score without a factor line.
    """
    score = 0
    factors: List[str] = []

    emergency = detect_emergency_keywords(raw_text, vocab)
    if emergency:
        score += EMERGENCY_WEIGHT
        factors.append(f"Emergency indicators: {', '.join(emergency)}")

    for s in symptoms:
        score += SEVERITY_WEIGHTS.get(s.severity, SEVERITY_WEIGHTS["low"])
        if s.severity == "high":
            factors.append(f"High severity: {s.key}")
        elif s.severity == "medium":
            factors.append(f"Medium severity: {s.key}")

    return RiskAssessment(score=score, level=risk_level_for(score), factors=tuple(factors))


class RiskAssessNode(AsyncNode):
    """Score the message; routes on the resulting level
    ("low" | "moderate" | "urgent" | "emergency").
    """

    async def prep_async(self, shared: Dict[str, Any]) -> Dict[str, Any]:
        kb = shared.get("knowledge") or get_knowledge_base()
        return {
            "symptoms": list(shared.get("symptoms") or []),
            "text": str(shared.get("user_text") or ""),
            "vocab": kb.vocabulary,
        }

    async def exec_async(self, prep: Dict[str, Any]) -> RiskAssessment:
        return assess_risk(prep["symptoms"], prep["text"], prep["vocab"])

    async def post_async(self, shared: Dict[str, Any], prep: Dict[str, Any], exec_res: RiskAssessment) -> str:
        shared["risk"] = exec_res
        return exec_res.level
