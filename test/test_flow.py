# tests/test_flow.py
import pytest
from typing import Any, Dict, List

from app.runtime.analysis import collect_analysis
from app.runtime.flow import make_intake_flow
from app.runtime.nodes.compose import EMERGENCY_BANNER
from app.runtime.nodes.gemini import FALLBACK_REPLY
from app.services.gemini_client import GeminiError


# -----------------------------
# Fakes
# -----------------------------
class FakeGeminiClient:
    """Captures prompts and returns a fixed reply."""
    def __init__(self) -> None:
        self.prompts: List[str] = []

    async def generate(self, prompt: str, temperature: float = 0.2) -> str:
        self.prompts.append(prompt)
        return "I'm sorry you're feeling unwell."


class DownGeminiClient:
    async def generate(self, prompt: str, temperature: float = 0.2) -> str:
        raise GeminiError("503 from upstream")


def _shared(text: str, client, kb, **extra) -> Dict[str, Any]:
    shared: Dict[str, Any] = {
        "knowledge": kb,
        "user_text": text,
        "current_step": "initial",
        "conversation_history": [],
        "gemini_client": client,
    }
    shared.update(extra)
    return shared


# -----------------------------
# Tests
# -----------------------------
@pytest.mark.asyncio
async def test_flow_symptom_path_appends_follow_ups(kb):
    client = FakeGeminiClient()
    shared = _shared("I have had a fever since yesterday", client, kb)

    action = await make_intake_flow().run_async(shared)

    assert action == "ok"
    assert len(client.prompts) == 1
    assert "fever (medium severity)" in client.prompts[0]

    assert shared["risk"].level == "moderate"
    assert shared["next_step"] == "symptom_analysis"
    assert shared["response"].startswith("I'm sorry you're feeling unwell.")
    assert "To better assist you, could you please tell me:\n1. What is your current temperature?" in shared["response"]
    assert shared["suggestions"][0] == "Rest and stay well-hydrated"


@pytest.mark.asyncio
async def test_flow_emergency_path_adds_banner(kb):
    client = FakeGeminiClient()
    shared = _shared("I have a severe fever and chest pain, I can't breathe", client, kb)

    await make_intake_flow().run_async(shared)

    analysis = collect_analysis(shared)
    assert analysis.risk.level == "emergency"
    assert analysis.risk.score >= 8
    assert len(analysis.emergency_keywords) >= 2
    assert shared["next_step"] == "emergency"
    assert shared["response"].startswith(EMERGENCY_BANNER)
    assert "To better assist you" not in shared["response"]
    # the model is still asked for a reply on the emergency path
    assert len(client.prompts) == 1


@pytest.mark.asyncio
async def test_flow_model_outage_keeps_analysis_and_banner(kb):
    shared = _shared("there is blood and crushing pain in my chest", DownGeminiClient(), kb)

    action = await make_intake_flow().run_async(shared)

    assert action == "ok"
    assert shared["model_degraded"] is True
    assert shared["assistant_reply"] == FALLBACK_REPLY
    assert shared["risk"].level == "emergency"
    assert shared["response"] == f"{EMERGENCY_BANNER}\n\n{FALLBACK_REPLY}"


@pytest.mark.asyncio
async def test_flow_empty_message(kb):
    client = FakeGeminiClient()
    shared = _shared("", client, kb)

    await make_intake_flow().run_async(shared)

    analysis = collect_analysis(shared)
    assert analysis.symptoms == ()
    assert analysis.sentiment.score == 0
    assert analysis.sentiment.urgency == "low"
    assert analysis.risk.level == "low"
    assert analysis.follow_up_questions == ()
    assert shared["next_step"] == "continue"
    assert "none detected" in client.prompts[0]


@pytest.mark.asyncio
async def test_flow_forwards_conversation_history(kb):
    client = FakeGeminiClient()
    history = [
        {"role": "user", "content": "I had a cough last week"},
        {"role": "assistant", "content": "How long did it last?"},
    ]
    shared = _shared("It is back today", client, kb, conversation_history=history, current_step="continue")

    await make_intake_flow().run_async(shared)

    prompt = client.prompts[0]
    assert "- user: I had a cough last week" in prompt
    assert "- assistant: How long did it last?" in prompt
    assert shared["next_step"] == "continue"
