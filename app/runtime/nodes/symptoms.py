# app/runtime/nodes/symptoms.py
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from pocketflow import AsyncNode

from app.services.knowledge import KnowledgeBase, SymptomDefinition, get_knowledge_base


@dataclass(frozen=True)
class SymptomMatch:
    key: str
    confidence: float
    severity: str
    matched_keywords: Tuple[str, ...]
    definition: SymptomDefinition

    @property
    def confidence_percent(self) -> int:
        # halves round up
        return math.floor(self.confidence * 100 + 0.5)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.key,
            "confidence": self.confidence_percent,
            "severity": self.severity,
        }


def _normalize(s: Optional[str]) -> str:
    return (s or "").lower()


def extract_symptoms(text: Optional[str], kb: KnowledgeBase) -> List[SymptomMatch]:
    """
    Keyword containment over every symptom definition.
    Each keyword counts once no matter how often it occurs; confidence is
    matched / total keywords. Highest confidence first, ties in declaration order.
    """
    normalized = _normalize(text)
    if not normalized.strip():
        return []

    matches: List[SymptomMatch] = []
    for definition in kb.symptoms:
        hits = tuple(k for k in definition.keywords if k in normalized)
        if not hits:
            continue
        matches.append(
            SymptomMatch(
                key=definition.key,
                confidence=len(hits) / len(definition.keywords),
                severity=definition.severity,
                matched_keywords=hits,
                definition=definition,
            )
        )
    # sorted() is stable, so equal confidences keep knowledge-base order
    return sorted(matches, key=lambda m: m.confidence, reverse=True)


class SymptomExtractNode(AsyncNode):
    """Match the user's message against the symptom table."""

    async def prep_async(self, shared: Dict[str, Any]) -> Dict[str, Any]:
        return {
            "text": str(shared.get("user_text") or ""),
            "knowledge": shared.get("knowledge") or get_knowledge_base(),
        }

    async def exec_async(self, prep: Dict[str, Any]) -> List[SymptomMatch]:
        return extract_symptoms(prep["text"], prep["knowledge"])

    async def post_async(self, shared: Dict[str, Any], prep: Dict[str, Any], exec_res: List[SymptomMatch]) -> str:
        shared["knowledge"] = prep["knowledge"]
        shared["symptoms"] = exec_res
        return "ok"
