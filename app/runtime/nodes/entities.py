# app/runtime/nodes/entities.py
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Tuple

from pocketflow import AsyncNode

from app.services.knowledge import Vocabulary, get_knowledge_base

POSITIVE_WEIGHT = 0.1
NEGATIVE_WEIGHT = -0.2
URGENT_WEIGHT = -0.3
HIGH_URGENCY_SCORE = -0.3

# Relative time phrases only; there is no calendar parsing here.
_NUM = r"(?:\d+|a|an|one|two|three|four|five|six|seven|eight|nine|ten|few|several|couple of)"
_UNIT = r"(?:minute|hour|day|night|week|month|year)s?"
_DAY = r"(?:monday|tuesday|wednesday|thursday|friday|saturday|sunday)"
_TIME_PATTERNS = [
    re.compile(rf"\b(?:for|since|over) (?:the (?:past|last) )?{_NUM} {_UNIT}\b", re.I),
    re.compile(rf"\b(?:for|over) the (?:past|last) {_UNIT}\b", re.I),
    re.compile(rf"\b{_NUM} {_UNIT} ago\b", re.I),
    re.compile(rf"\b(?:since|on|last) (?:{_DAY}|yesterday|last night|this morning)\b", re.I),
    re.compile(r"\b(?:yesterday|today|tonight|last night|this (?:morning|afternoon|evening)|all day|all night)\b", re.I),
    re.compile(rf"\b(?:last|this|next) (?:{_DAY}|week|month|year)\b", re.I),
]


@dataclass(frozen=True)
class MedicalEntities:
    body_parts: Tuple[str, ...] = ()
    intensity_words: Tuple[str, ...] = ()
    medications: Tuple[str, ...] = ()
    time_expressions: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, List[str]]:
        return {
            "body_parts": list(self.body_parts),
            "time_expressions": list(self.time_expressions),
            "intensity_words": list(self.intensity_words),
            "medications": list(self.medications),
        }


@dataclass(frozen=True)
class SentimentResult:
    score: float
    urgency: str  # "low" | "medium" | "high"

    def to_dict(self) -> Dict[str, Any]:
        return {"score": self.score, "urgency": self.urgency}


def _normalize(s: Optional[str]) -> str:
    return (s or "").lower()


def _contained(terms: Iterable[str], normalized: str) -> Tuple[str, ...]:
    return tuple(t for t in terms if t in normalized)


def extract_time_expressions(text: Optional[str]) -> Tuple[str, ...]:
    """Spans in first-seen order, case-folded, overlapping spans collapsed to the longest."""
    normalized = _normalize(text)
    spans = []
    for p in _TIME_PATTERNS:
        for m in p.finditer(normalized):
            spans.append((m.start(), m.end()))
    spans.sort(key=lambda s: (s[0], -s[1]))

    out: List[str] = []
    last_end = -1
    for start, end in spans:
        if start < last_end:
            continue
        phrase = normalized[start:end]
        if phrase not in out:
            out.append(phrase)
        last_end = end
    return tuple(out)


def extract_entities(text: Optional[str], vocab: Vocabulary) -> MedicalEntities:
    normalized = _normalize(text)
    return MedicalEntities(
        body_parts=_contained(vocab.body_parts, normalized),
        intensity_words=_contained(vocab.intensity_words, normalized),
        medications=_contained(vocab.medications, normalized),
        time_expressions=extract_time_expressions(normalized),
    )


def analyze_sentiment(text: Optional[str], vocab: Vocabulary) -> SentimentResult:
    """
    Weighted word-list score. Every listed word counts once when present.
    Urgency is high on any urgent word or a score below -0.3, medium on any
    negative score, low otherwise. The score is not clamped.
    """
    normalized = _normalize(text)
    positives = _contained(vocab.positive_words, normalized)
    negatives = _contained(vocab.negative_words, normalized)
    urgents = _contained(vocab.urgent_words, normalized)

    score = (
        POSITIVE_WEIGHT * len(positives)
        + NEGATIVE_WEIGHT * len(negatives)
        + URGENT_WEIGHT * len(urgents)
    )
    score = round(score, 10)

    if urgents or score < HIGH_URGENCY_SCORE:
        urgency = "high"
    elif score < 0:
        urgency = "medium"
    else:
        urgency = "low"
    return SentimentResult(score=score, urgency=urgency)


def detect_emergency_keywords(text: Optional[str], vocab: Vocabulary) -> List[str]:
    return list(_contained(vocab.emergency_keywords, _normalize(text)))


class EntityAnalysisNode(AsyncNode):
    """Entity, sentiment and emergency-phrase scan of the raw message.
    Independent of symptom extraction; reads only user_text and the vocabulary.
    """

    async def prep_async(self, shared: Dict[str, Any]) -> Dict[str, Any]:
        kb = shared.get("knowledge") or get_knowledge_base()
        return {"text": str(shared.get("user_text") or ""), "vocab": kb.vocabulary}

    async def exec_async(self, prep: Dict[str, Any]) -> Dict[str, Any]:
        text, vocab = prep["text"], prep["vocab"]
        return {
            "entities": extract_entities(text, vocab),
            "sentiment": analyze_sentiment(text, vocab),
            "emergency_keywords": detect_emergency_keywords(text, vocab),
        }

    async def post_async(self, shared: Dict[str, Any], prep: Dict[str, Any], exec_res: Dict[str, Any]) -> str:
        shared["entities"] = exec_res["entities"]
        shared["sentiment"] = exec_res["sentiment"]
        shared["emergency_keywords"] = exec_res["emergency_keywords"]
        return "ok"
