# app/runtime/flow.py
from __future__ import annotations

from pocketflow import AsyncFlow
from app.runtime.nodes.symptoms import SymptomExtractNode
from app.runtime.nodes.entities import EntityAnalysisNode
from app.runtime.nodes.risk import RISK_LEVELS, RiskAssessNode
from app.runtime.nodes.followups import FollowUpNode
from app.runtime.nodes.gemini import GeminiChatNode
from app.runtime.nodes.compose import ResponseComposeNode


def make_intake_flow(*, max_retries: int = 1) -> AsyncFlow:
    """Intake chat flow:
    symptoms → entities → risk → (any level) → followups → gemini → compose

    The keyword analysis is complete before the model is called, so a model
    outage only swaps the reply text for the fallback apology.
    """

    # Instantiate all nodes
    symptoms = SymptomExtractNode()
    entities = EntityAnalysisNode()
    risk = RiskAssessNode()
    followups = FollowUpNode()
    gemini = GeminiChatNode(max_retries=max_retries)
    compose = ResponseComposeNode()

    # --- Routing setup ---

    # 1. analysis
    symptoms.successors = {"ok": entities}
    entities.successors = {"ok": risk}

    # 2. risk routes: every level continues; compose reads the level
    risk.successors = {level: followups for level in RISK_LEVELS}

    # 3. reply
    followups.successors = {"ok": gemini}
    gemini.successors = {"ok": compose}

    # --- Flow entry point ---
    return AsyncFlow(start=symptoms)
