# app/runtime/analysis.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from app.runtime.nodes.entities import (
    MedicalEntities,
    SentimentResult,
    analyze_sentiment,
    detect_emergency_keywords,
    extract_entities,
)
from app.runtime.nodes.followups import select_follow_ups, select_suggestions
from app.runtime.nodes.risk import RiskAssessment, assess_risk
from app.runtime.nodes.symptoms import SymptomMatch, extract_symptoms
from app.services.knowledge import KnowledgeBase, get_knowledge_base


@dataclass(frozen=True)
class IntakeAnalysis:
    """Everything the core derives from one message, before any model call."""
    symptoms: Tuple[SymptomMatch, ...]
    entities: MedicalEntities
    sentiment: SentimentResult
    risk: RiskAssessment
    suggestions: Tuple[str, ...] = ()
    follow_up_questions: Tuple[str, ...] = ()
    emergency_keywords: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "symptoms": [s.to_dict() for s in self.symptoms],
            "entities": self.entities.to_dict(),
            "sentiment": self.sentiment.to_dict(),
            "risk_level": self.risk.level,
            "risk_factors": list(self.risk.factors),
        }


def analyze_message(text: Optional[str], kb: Optional[KnowledgeBase] = None) -> IntakeAnalysis:
    """Run the whole keyword pipeline synchronously. Never raises for str/None input."""
    kb = kb or get_knowledge_base()
    text = text or ""
    vocab = kb.vocabulary

    symptoms = extract_symptoms(text, kb)
    return IntakeAnalysis(
        symptoms=tuple(symptoms),
        entities=extract_entities(text, vocab),
        sentiment=analyze_sentiment(text, vocab),
        risk=assess_risk(symptoms, text, vocab),
        suggestions=tuple(select_suggestions(symptoms, kb)),
        follow_up_questions=tuple(select_follow_ups(symptoms)),
        emergency_keywords=tuple(detect_emergency_keywords(text, vocab)),
    )


def collect_analysis(shared: Dict[str, Any]) -> IntakeAnalysis:
    """Rebuild the analysis record from a flow's shared store."""
    symptoms: List[SymptomMatch] = list(shared.get("symptoms") or [])
    return IntakeAnalysis(
        symptoms=tuple(symptoms),
        entities=shared.get("entities") or MedicalEntities(),
        sentiment=shared.get("sentiment") or SentimentResult(score=0.0, urgency="low"),
        risk=shared.get("risk") or RiskAssessment(score=0, level="low"),
        suggestions=tuple(shared.get("suggestions") or ()),
        follow_up_questions=tuple(shared.get("follow_up_questions") or ()),
        emergency_keywords=tuple(shared.get("emergency_keywords") or ()),
    )
