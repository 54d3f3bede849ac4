"""
SLA Application DTOs
=====================

Data Transfer Objects for the SLA API layer.
"""

from typing import Literal, Optional

from pydantic import BaseModel, Field


# ========== Type Aliases for Literals ==========
PriorityStr = Literal["high", "low"]
SentimentStr = Literal["angry", "neutral", "cool"]
SLALevelStr = Literal["express", "standard", "batched"]


# ========== Request DTOs ==========

class SentimentRequest(BaseModel):
    """Text to score."""
    text: str = Field(..., description="Free text to analyze")


class SLAComputeRequest(BaseModel):
    """
    SLA computation input.

    When `sentiment` is omitted and `text` is given, the sentiment is
    derived from the text.
    """
    priority: PriorityStr = Field(default="low")
    sentiment: Optional[SentimentStr] = Field(default=None)
    text: Optional[str] = Field(default=None, description="Message used to derive sentiment")


# ========== Response DTOs ==========

class SentimentResponse(BaseModel):
    """Sentiment label and score."""
    label: SentimentStr
    score: float = Field(..., ge=-1.0, le=1.0)


class SLAResponse(BaseModel):
    """Selected SLA tier."""
    level: SLALevelStr
    target_minutes: int = Field(..., serialization_alias="targetMinutes")
    priority: PriorityStr
    sentiment: SentimentStr

    model_config = {"populate_by_name": True}
