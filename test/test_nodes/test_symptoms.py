# tests/test_nodes/test_symptoms.py
import pytest
from typing import Any, Dict

from pocketflow import AsyncFlow as Flow

from app.runtime.nodes.symptoms import SymptomExtractNode, extract_symptoms
from app.services.knowledge import build_knowledge_base


def _keys(matches):
    return [m.key for m in matches]


@pytest.mark.parametrize("text", ["", "   ", "\n\t", None])
def test_empty_text_yields_nothing(kb, text):
    assert extract_symptoms(text, kb) == []


def test_text_without_keywords_yields_nothing(kb):
    assert extract_symptoms("I would like to book a routine appointment", kb) == []


def test_single_keyword_confidence_and_severity(kb):
    matches = extract_symptoms("I have a mild headache", kb)
    assert _keys(matches) == ["headache"]
    m = matches[0]
    assert m.confidence == pytest.approx(0.25)
    assert m.confidence_percent == 25
    assert m.severity == "low"
    assert m.matched_keywords == ("headache",)
    assert m.definition is kb.by_key["headache"]


def test_all_keywords_give_full_confidence(kb):
    matches = extract_symptoms("headache, head pain, migraine and my head hurt", kb)
    headache = next(m for m in matches if m.key == "headache")
    assert headache.confidence == pytest.approx(1.0)
    assert headache.confidence_percent == 100


def test_case_is_normalized_and_punctuation_kept(kb):
    matches = extract_symptoms("FEVER!", kb)
    assert _keys(matches) == ["fever"]
    assert matches[0].confidence == pytest.approx(1 / 6)
    assert matches[0].confidence_percent == 17


def test_half_percentages_round_up():
    kb8 = build_knowledge_base({
        "symptoms": [{
            "key": "rash",
            "keywords": ["rash", "itch", "hives", "welts", "redness", "bumps", "blisters", "flaking"],
            "severity": "low",
        }],
    })
    assert extract_symptoms("a rash", kb8)[0].confidence_percent == 13
    assert extract_symptoms("rash, bumps and blisters", kb8)[0].confidence_percent == 38
    five = extract_symptoms("rash, itch, hives, welts and redness", kb8)[0]
    assert five.to_dict() == {"name": "rash", "confidence": 63, "severity": "low"}


def test_multi_word_keyword_matches_as_literal_substring(kb):
    assert _keys(extract_symptoms("sharp chest pain since noon", kb)) == ["chest_pain"]
    # words present but not adjacent: no literal "chest pain"
    assert extract_symptoms("pain in my chest", kb) == []


def test_repeated_keyword_counts_once(kb):
    once = extract_symptoms("cough", kb)[0]
    many = extract_symptoms("cough cough cough", kb)[0]
    assert once.confidence == many.confidence == pytest.approx(0.25)


def test_substring_keywords_each_count(kb):
    # "coughing" contains both "cough" and "coughing"
    m = extract_symptoms("I keep coughing", kb)[0]
    assert m.key == "cough"
    assert m.matched_keywords == ("cough", "coughing")
    assert m.confidence == pytest.approx(0.5)


def test_ranked_by_confidence_descending(kb):
    matches = extract_symptoms("chills, sweating and a fever, also a migraine", kb)
    assert _keys(matches) == ["fever", "headache"]
    assert matches[0].confidence == pytest.approx(3 / 6)
    assert matches[1].confidence == pytest.approx(1 / 4)


def test_ties_keep_declaration_order(kb):
    # chest_pain and stomach_pain both 1/5; chest_pain is declared first
    assert _keys(extract_symptoms("cramps and angina", kb)) == ["chest_pain", "stomach_pain"]
    assert _keys(extract_symptoms("angina and cramps", kb)) == ["chest_pain", "stomach_pain"]


def test_overlapping_symptoms_match_independently(kb):
    matches = extract_symptoms("I have a severe fever and chest pain, I can't breathe", kb)
    assert _keys(matches) == ["chest_pain", "fever"]


@pytest.mark.asyncio
async def test_node_writes_matches_to_shared(kb):
    shared: Dict[str, Any] = {"user_text": "bad cough", "knowledge": kb}

    node = SymptomExtractNode()
    node.successors = {}
    flow = Flow(start=node)

    action = await flow.run_async(shared)

    assert action == "ok"
    assert _keys(shared["symptoms"]) == ["cough"]
    assert shared["knowledge"] is kb


@pytest.mark.asyncio
async def test_node_falls_back_to_bundled_knowledge():
    shared: Dict[str, Any] = {"user_text": "fever"}

    node = SymptomExtractNode()
    node.successors = {}
    await Flow(start=node).run_async(shared)

    assert _keys(shared["symptoms"]) == ["fever"]
    assert "knowledge" in shared
