# app/services/knowledge.py
from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field, fields
from functools import lru_cache
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Tuple

logger = logging.getLogger(__name__)

SEVERITIES = ("low", "medium", "high")

DEFAULT_KNOWLEDGE_PATH = Path(__file__).resolve().parent.parent / "knowledge" / "medical_knowledge.json"


class KnowledgeBaseError(ValueError):
    pass


# ---------------------------
# Records
# ---------------------------

@dataclass(frozen=True)
class SymptomDefinition:
    key: str
    keywords: Tuple[str, ...]
    severity: str
    possible_conditions: Tuple[str, ...] = ()
    questions: Tuple[str, ...] = ()


@dataclass(frozen=True)
class Vocabulary:
    """Fixed word lists used by the entity, sentiment and emergency scanners."""
    body_parts: Tuple[str, ...] = ()
    intensity_words: Tuple[str, ...] = ()
    medications: Tuple[str, ...] = ()
    positive_words: Tuple[str, ...] = ()
    negative_words: Tuple[str, ...] = ()
    urgent_words: Tuple[str, ...] = ()
    emergency_keywords: Tuple[str, ...] = ()


@dataclass(frozen=True)
class KnowledgeBase:
    """
    Immutable symptom/treatment tables shared by every pipeline stage.
    `symptoms` keeps declaration order; it is the tie-break order for ranking.
    """
    symptoms: Tuple[SymptomDefinition, ...]
    treatments: Mapping[str, Tuple[str, ...]]
    vocabulary: Vocabulary
    health_tips: Tuple[str, ...] = ()
    by_key: Mapping[str, SymptomDefinition] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "by_key", MappingProxyType({s.key: s for s in self.symptoms})
        )

    @property
    def symptom_keys(self) -> Tuple[str, ...]:
        return tuple(s.key for s in self.symptoms)


# ---------------------------
# Loading
# ---------------------------

def _str_tuple(raw: Any, where: str, *, lower: bool = False) -> Tuple[str, ...]:
    if raw is None:
        return ()
    if not isinstance(raw, list):
        raise KnowledgeBaseError(f"{where}: expected a list, got {type(raw).__name__}")
    out = []
    for item in raw:
        s = str(item).strip()
        if s:
            out.append(s.lower() if lower else s)
    return tuple(out)


def _parse_symptom(raw: Any, idx: int) -> SymptomDefinition:
    if not isinstance(raw, dict):
        raise KnowledgeBaseError(f"symptoms[{idx}]: expected an object")
    key = str(raw.get("key") or "").strip()
    if not key:
        raise KnowledgeBaseError(f"symptoms[{idx}]: missing key")
    keywords = _str_tuple(raw.get("keywords"), f"symptom {key!r} keywords", lower=True)
    if not keywords:
        raise KnowledgeBaseError(f"symptom {key!r} has no keywords")
    severity = str(raw.get("severity") or "").strip().lower()
    if severity not in SEVERITIES:
        raise KnowledgeBaseError(f"symptom {key!r} has invalid severity {severity!r}")
    return SymptomDefinition(
        key=key,
        keywords=keywords,
        severity=severity,
        possible_conditions=_str_tuple(raw.get("possible_conditions"), f"symptom {key!r} conditions"),
        questions=_str_tuple(raw.get("questions"), f"symptom {key!r} questions"),
    )


def build_knowledge_base(data: Dict[str, Any]) -> KnowledgeBase:
    """Validate a decoded knowledge document and freeze it."""
    raw_symptoms = data.get("symptoms")
    if not isinstance(raw_symptoms, list):
        raise KnowledgeBaseError("'symptoms' must be a list of symptom records")

    symptoms = tuple(_parse_symptom(s, i) for i, s in enumerate(raw_symptoms))
    keys = [s.key for s in symptoms]
    dupes = sorted({k for k in keys if keys.count(k) > 1})
    if dupes:
        raise KnowledgeBaseError(f"duplicate symptom keys: {', '.join(dupes)}")

    raw_treatments = data.get("treatments") or {}
    if not isinstance(raw_treatments, dict):
        raise KnowledgeBaseError("'treatments' must be a mapping of symptom key to list")
    unknown = [k for k in raw_treatments if k not in keys]
    if unknown:
        raise KnowledgeBaseError(f"treatments reference unknown symptoms: {', '.join(unknown)}")
    treatments = MappingProxyType(
        {k: _str_tuple(v, f"treatments {k!r}") for k, v in raw_treatments.items()}
    )

    vocab_raw = data.get("vocabulary") or {}
    vocabulary = Vocabulary(**{
        f.name: _str_tuple(vocab_raw.get(f.name), f"vocabulary {f.name!r}", lower=True)
        for f in fields(Vocabulary)
    })

    return KnowledgeBase(
        symptoms=symptoms,
        treatments=treatments,
        vocabulary=vocabulary,
        health_tips=_str_tuple(data.get("health_tips"), "health_tips"),
    )


def load_knowledge_base(path: Optional[str | os.PathLike] = None) -> KnowledgeBase:
    """Read and validate a knowledge JSON file. Raises KnowledgeBaseError."""
    src = Path(path) if path else DEFAULT_KNOWLEDGE_PATH
    try:
        with src.open("r", encoding="utf-8") as fh:
            data = json.load(fh)
    except (OSError, json.JSONDecodeError) as e:
        raise KnowledgeBaseError(f"cannot read knowledge base {src}: {e}") from e
    if not isinstance(data, dict):
        raise KnowledgeBaseError(f"{src}: top level must be an object")

    kb = build_knowledge_base(data)
    logger.info(
        "Loaded knowledge base from %s: %d symptoms, %d treatment entries",
        src, len(kb.symptoms), len(kb.treatments),
    )
    return kb


@lru_cache(maxsize=1)
def get_knowledge_base() -> KnowledgeBase:
    """Process-wide knowledge base, loaded once (KNOWLEDGE_BASE_PATH overrides the bundled file)."""
    return load_knowledge_base(os.getenv("KNOWLEDGE_BASE_PATH") or None)
