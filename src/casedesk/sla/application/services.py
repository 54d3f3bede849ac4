"""
SLA Application Services
=========================

Application services combine the sentiment classifier and the SLA
calculator with the current triage configuration.
"""

from abc import ABC, abstractmethod
from typing import Optional

from casedesk.config import Priority
from casedesk.sla.domain import SentimentResult, SLATarget, TriageConfig, analyze


# ========== Config Interface (Dependency Inversion) ==========

class ITriageConfigProvider(ABC):
    """Interface for triage configuration access."""

    @abstractmethod
    def get_config(self) -> TriageConfig:
        """Get current triage configuration."""


class StaticConfigProvider(ITriageConfigProvider):
    """Fixed configuration, used when hot-reload is not wanted."""

    def __init__(self, config: Optional[TriageConfig] = None):
        self._config = config or TriageConfig()

    def get_config(self) -> TriageConfig:
        return self._config


# ========== Application Services ==========

class SLAService:
    """Computes sentiment and SLA targets against the live configuration."""

    def __init__(self, config_provider: ITriageConfigProvider):
        self._config_provider = config_provider

    def analyze(self, text: str) -> SentimentResult:
        return analyze(text)

    def compute(
        self,
        priority: str = Priority.LOW,
        sentiment: Optional[str] = None,
        text: Optional[str] = None
    ) -> tuple[SentimentResult, SLATarget]:
        """
        Compute the SLA target for a priority and a sentiment.

        When sentiment is not given it is derived from text (neutral
        when text is empty too).
        """
        if sentiment is None:
            result = analyze(text or "")
        else:
            result = SentimentResult(label=sentiment, score=0.0)
        target = self._config_provider.get_config().compute_sla(priority, result.label)
        return result, target
