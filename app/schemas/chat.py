from pydantic import AliasChoices, BaseModel, Field
from typing import Dict, List, Optional


class HistoryMessage(BaseModel):
    # the web client sends "type": "user" | "bot"
    role: Optional[str] = None
    type: Optional[str] = None
    content: str = ""

    def as_turn(self) -> Dict[str, str]:
        who = self.role or self.type or "user"
        return {"role": "assistant" if who == "bot" else who, "content": self.content}


class ChatIn(BaseModel):
    # the web client posts camelCase keys
    message: str = ""
    conversation_history: List[HistoryMessage] = Field(
        default_factory=list,
        validation_alias=AliasChoices("conversation_history", "conversationHistory"),
    )
    current_step: str = Field(
        default="initial",
        validation_alias=AliasChoices("current_step", "currentStep"),
    )


class SymptomOut(BaseModel):
    name: str
    confidence: int  # percent
    severity: str


class EntitiesOut(BaseModel):
    body_parts: List[str] = Field(default_factory=list)
    time_expressions: List[str] = Field(default_factory=list)
    intensity_words: List[str] = Field(default_factory=list)
    medications: List[str] = Field(default_factory=list)


class SentimentOut(BaseModel):
    score: float = 0.0
    urgency: str = "low"


class AnalysisOut(BaseModel):
    symptoms: List[SymptomOut] = Field(default_factory=list)
    entities: EntitiesOut = Field(default_factory=EntitiesOut)
    sentiment: SentimentOut = Field(default_factory=SentimentOut)
    risk_level: str = "low"
    risk_factors: List[str] = Field(default_factory=list)


class ChatOut(BaseModel):
    success: bool = True
    response: str
    analysis: AnalysisOut
    # treatment suggestions for the matched symptoms
    suggestions: List[str] = Field(default_factory=list)
    severity: str = "low"
    next_step: str = "continue"
    follow_up_questions: List[str] = Field(default_factory=list)
