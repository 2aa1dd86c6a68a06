# app/runtime/nodes/followups.py
from __future__ import annotations

from typing import Any, Dict, Iterable, List, Sequence

from pocketflow import AsyncNode

from app.runtime.nodes.symptoms import SymptomMatch
from app.services.knowledge import KnowledgeBase, get_knowledge_base

MAX_FOLLOW_UPS = 3
MAX_SUGGESTIONS = 5


def _dedup(items: Iterable[str]) -> List[str]:
    out, seen = [], set()
    for x in items:
        if x not in seen:
            seen.add(x)
            out.append(x)
    return out


def select_follow_ups(symptoms: Sequence[SymptomMatch], limit: int = MAX_FOLLOW_UPS) -> List[str]:
    """Canned questions of the matched symptoms, first-seen order, no repeats."""
    questions = _dedup(q for s in symptoms for q in s.definition.questions)
    return questions[:limit]


def select_suggestions(
    symptoms: Sequence[SymptomMatch],
    kb: KnowledgeBase,
    limit: int = MAX_SUGGESTIONS,
) -> List[str]:
    suggestions = _dedup(t for s in symptoms for t in kb.treatments.get(s.key, ()))
    return suggestions[:limit]


class FollowUpNode(AsyncNode):
    """Pick follow-up questions and treatment suggestions for the matched symptoms."""

    async def prep_async(self, shared: Dict[str, Any]) -> Dict[str, Any]:
        return {
            "symptoms": list(shared.get("symptoms") or []),
            "knowledge": shared.get("knowledge") or get_knowledge_base(),
        }

    async def exec_async(self, prep: Dict[str, Any]) -> Dict[str, Any]:
        return {
            "follow_up_questions": select_follow_ups(prep["symptoms"]),
            "suggestions": select_suggestions(prep["symptoms"], prep["knowledge"]),
        }

    async def post_async(self, shared: Dict[str, Any], prep: Dict[str, Any], exec_res: Dict[str, Any]) -> str:
        shared["follow_up_questions"] = exec_res["follow_up_questions"]
        shared["suggestions"] = exec_res["suggestions"]
        return "ok"
