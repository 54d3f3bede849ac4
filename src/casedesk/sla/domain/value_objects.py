"""
SLA Value Objects
==================

Immutable value objects for the SLA domain.

Value objects are defined by their attributes rather than an identity.
They are immutable and can be freely shared.
"""

from dataclasses import dataclass
from typing import Dict, Optional

from pydantic import BaseModel, Field, field_validator

from casedesk.config import (
    Priority, SentimentLabel, SLALevel, Settings
)


DEFAULT_SLA_TARGETS = {
    SLALevel.EXPRESS: 15,
    SLALevel.STANDARD: 60,
    SLALevel.BATCHED: 180,
}


@dataclass(frozen=True)
class SLATarget:
    """Response-time tier and its target in minutes."""
    level: str
    target_minutes: int

    def to_dict(self) -> dict:
        return {"level": self.level, "targetMinutes": self.target_minutes}


class SLACalculator:
    """
    Pure functions for SLA calculations.

    Stateless utility class - all SLA calculation logic in one place.
    """

    @staticmethod
    def select_level(
        priority: str = Priority.LOW,
        sentiment: str = SentimentLabel.NEUTRAL
    ) -> str:
        """
        Pick the response tier. First match wins:
        angry -> express, high priority -> express, cool -> batched,
        otherwise standard.
        """
        if sentiment == SentimentLabel.ANGRY:
            return SLALevel.EXPRESS
        if priority == Priority.HIGH:
            return SLALevel.EXPRESS
        if sentiment == SentimentLabel.COOL:
            return SLALevel.BATCHED
        return SLALevel.STANDARD

    @staticmethod
    def compute_sla(
        priority: str = Priority.LOW,
        sentiment: str = SentimentLabel.NEUTRAL,
        targets: Optional[Dict[str, int]] = None
    ) -> SLATarget:
        """
        Map priority and sentiment to an SLA target.

        Args:
            priority: Case priority (high/low), defaults to low
            sentiment: Sentiment label of the conversation
            targets: Minutes per level, defaults to 15/60/180

        Returns:
            SLATarget with the selected level and its minutes
        """
        minutes = dict(DEFAULT_SLA_TARGETS)
        if targets:
            minutes.update(targets)
        level = SLACalculator.select_level(priority, sentiment)
        return SLATarget(level=level, target_minutes=int(minutes[level]))


def compute_sla(
    priority: str = Priority.LOW,
    sentiment: str = SentimentLabel.NEUTRAL,
    targets: Optional[Dict[str, int]] = None
) -> SLATarget:
    """Module-level shortcut for SLACalculator.compute_sla."""
    return SLACalculator.compute_sla(priority, sentiment, targets)


class TriageConfig(BaseModel):
    """
    Triage tunables loaded from YAML.

    Missing keys fall back to the defaults defined in Settings, so a
    partial file only overrides what it names.
    """
    sla_targets: Dict[str, int] = Field(
        default_factory=lambda: dict(DEFAULT_SLA_TARGETS),
        description="SLA target minutes by level"
    )
    faq_threshold: float = Field(default=0.76, ge=0.0, le=1.0)
    faq_top_k: int = Field(default=3, ge=1)
    case_memory_threshold: float = Field(default=0.72, ge=0.0, le=1.0)
    case_memory_top_k: int = Field(default=3, ge=1)
    agent_only_ttl_seconds: int = Field(default=1800, ge=1)
    chat_log_retention_seconds: int = Field(default=86400, ge=1)
    selected_product_ttl_seconds: int = Field(default=3600, ge=1)

    @field_validator("sla_targets")
    @classmethod
    def validate_sla_targets(cls, v: Dict[str, int]) -> Dict[str, int]:
        """Fill in missing levels and reject unknown ones."""
        unknown = set(v) - set(DEFAULT_SLA_TARGETS)
        if unknown:
            raise ValueError(f"unknown SLA levels: {sorted(unknown)}")
        for level, minutes in v.items():
            if minutes < 1:
                raise ValueError(f"SLA target for '{level}' must be positive")
        return {**DEFAULT_SLA_TARGETS, **v}

    @classmethod
    def from_settings(cls, settings: Settings, **overrides) -> "TriageConfig":
        """Build the baseline config from application settings."""
        data = {
            "sla_targets": {
                SLALevel.EXPRESS: settings.sla_express_minutes,
                SLALevel.STANDARD: settings.sla_standard_minutes,
                SLALevel.BATCHED: settings.sla_batched_minutes,
            },
            "faq_threshold": settings.faq_similarity_threshold,
            "faq_top_k": settings.faq_top_k,
            "case_memory_threshold": settings.case_memory_threshold,
            "case_memory_top_k": settings.case_memory_top_k,
            "agent_only_ttl_seconds": settings.agent_only_ttl_seconds,
            "chat_log_retention_seconds": settings.chat_log_retention_seconds,
            "selected_product_ttl_seconds": settings.selected_product_ttl_seconds,
        }
        if "sla_targets" in overrides:
            data["sla_targets"] = {**data["sla_targets"], **(overrides.pop("sla_targets") or {})}
        data.update(overrides)
        return cls(**data)

    def compute_sla(self, priority: str, sentiment: str) -> SLATarget:
        """Compute an SLA target using this config's minutes."""
        return SLACalculator.compute_sla(priority, sentiment, self.sla_targets)
