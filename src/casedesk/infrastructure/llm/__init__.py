"""
LLM Client Infrastructure
==========================

Wrapper for OpenAI-compatible providers (OpenAI, Gemini, Z.AI endpoints)
providing a clean interface for embedding and completion calls.

This module abstracts the LLM client implementation following the
Dependency Inversion Principle - the application layer depends on
abstractions, not concrete implementations.

Completion calls never raise: each call returns a GenerationAttempt whose
outcome tells the caller whether to try the next model or stop.
"""

import hashlib
import random
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Optional

import openai
from openai import AsyncOpenAI

from casedesk.config import Settings, settings as default_settings
from casedesk.core import ConfigurationException, EmbeddingUnavailableException
from casedesk.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)


class EmbeddingResult:
    """Result of an embedding generation."""

    def __init__(self, embedding: List[float], model: str):
        self.embedding = embedding
        self.model = model
        self.dimension = len(embedding)


class AttemptOutcome(str):
    """Outcome of a single completion attempt against one model."""
    SUCCESS = "success"
    QUOTA_EXCEEDED = "quota_exceeded"
    BAD_REQUEST = "bad_request"
    AUTH_FAILURE = "auth_failure"
    TRANSPORT_ERROR = "transport_error"


# Outcomes after which the next model in the list is tried
RETRYABLE_OUTCOMES = {AttemptOutcome.QUOTA_EXCEEDED}


@dataclass
class GenerationAttempt:
    """Result of one completion call."""
    model: str
    outcome: str
    content: Optional[str] = None
    latency_ms: int = 0
    error: Optional[str] = None

    @property
    def text(self) -> str:
        return (self.content or "").strip()

    @property
    def succeeded(self) -> bool:
        return self.outcome == AttemptOutcome.SUCCESS and bool(self.text)


def classify_error(exc: Exception) -> str:
    """Map an OpenAI SDK exception to an attempt outcome."""
    if isinstance(exc, openai.RateLimitError):
        return AttemptOutcome.QUOTA_EXCEEDED
    if isinstance(exc, openai.BadRequestError):
        return AttemptOutcome.BAD_REQUEST
    if isinstance(exc, (openai.AuthenticationError, openai.PermissionDeniedError)):
        return AttemptOutcome.AUTH_FAILURE
    return AttemptOutcome.TRANSPORT_ERROR


class ILLMClient(ABC):
    """
    Interface for LLM client operations.

    Following Interface Segregation Principle - only methods
    actually needed by the application are defined.
    """

    @abstractmethod
    async def generate_embedding(self, text: str) -> EmbeddingResult:
        """
        Generate embedding for text.

        Raises:
            EmbeddingUnavailableException: If the backend fails
        """

    @abstractmethod
    async def attempt_completion(
        self,
        model: str,
        messages: List[dict],
        temperature: float = 0.3,
        max_tokens: int = 600
    ) -> GenerationAttempt:
        """Run one completion against one model and report its outcome."""


class OpenAILLMClient(ILLMClient):
    """
    OpenAI SDK client for any OpenAI-compatible endpoint.

    SDK retries are disabled: retry policy belongs to the caller's model
    list, and every call carries its own timeout.
    """

    def __init__(self, config: Optional[Settings] = None):
        self._settings = config or default_settings
        if not self._settings.llm_api_key:
            raise ConfigurationException("LLM API key not configured")

        self._client = AsyncOpenAI(
            api_key=self._settings.llm_api_key,
            base_url=self._settings.llm_base_url,
            timeout=self._settings.llm_timeout_seconds,
            max_retries=0,
        )
        self._embedding_model = self._settings.embedding_model
        self._max_chars = self._settings.embedding_max_chars

    async def generate_embedding(self, text: str) -> EmbeddingResult:
        """
        Generate embedding for text, truncated to the input budget.

        Raises:
            EmbeddingUnavailableException: If embedding generation fails
        """
        try:
            response = await self._client.with_options(
                timeout=self._settings.embedding_timeout_seconds
            ).embeddings.create(
                model=self._embedding_model,
                input=(text or "")[:self._max_chars]
            )
        except openai.OpenAIError as e:
            raise EmbeddingUnavailableException(
                f"Embedding generation failed: {e}",
                details={"outcome": classify_error(e)}
            )

        if not response.data or not response.data[0].embedding:
            raise EmbeddingUnavailableException("Embedding response was empty")

        return EmbeddingResult(
            embedding=list(response.data[0].embedding),
            model=self._embedding_model
        )

    async def attempt_completion(
        self,
        model: str,
        messages: List[dict],
        temperature: float = 0.3,
        max_tokens: int = 600
    ) -> GenerationAttempt:
        start_time = time.perf_counter()

        try:
            response = await self._client.chat.completions.create(
                model=model,
                messages=messages,
                temperature=temperature,
                max_tokens=max_tokens
            )
        except openai.OpenAIError as e:
            return GenerationAttempt(
                model=model,
                outcome=classify_error(e),
                latency_ms=int((time.perf_counter() - start_time) * 1000),
                error=str(e)
            )

        content = response.choices[0].message.content if response.choices else None
        return GenerationAttempt(
            model=model,
            outcome=AttemptOutcome.SUCCESS,
            content=content,
            latency_ms=int((time.perf_counter() - start_time) * 1000)
        )


class MockLLMClient(ILLMClient):
    """
    Mock LLM client for testing and offline development.

    Returns predictable responses without calling external APIs.
    """

    def __init__(self, dimension: Optional[int] = None):
        self._dimension = dimension or default_settings.embedding_dimension

    async def generate_embedding(self, text: str) -> EmbeddingResult:
        """Deterministic pseudo-embedding seeded by the text hash."""
        normalized = (text or "").strip().lower()[:default_settings.embedding_max_chars]
        seed = int(hashlib.sha256(normalized.encode()).hexdigest()[:8], 16)
        rng = random.Random(seed)
        embedding = [rng.uniform(-1, 1) for _ in range(self._dimension)]
        return EmbeddingResult(embedding=embedding, model="mock-embedding")

    async def attempt_completion(
        self,
        model: str,
        messages: List[dict],
        temperature: float = 0.3,
        max_tokens: int = 600
    ) -> GenerationAttempt:
        content = (
            "Thanks for reaching out. I've noted the details of your order "
            "and a specialist will follow up if anything else is needed."
        )
        return GenerationAttempt(
            model=model,
            outcome=AttemptOutcome.SUCCESS,
            content=content,
            latency_ms=1
        )


def create_llm_client(config: Optional[Settings] = None) -> ILLMClient:
    """Build the configured client, falling back to the mock without a key."""
    config = config or default_settings
    if config.mock_llm:
        return MockLLMClient(config.embedding_dimension)
    if not config.llm_api_key:
        logger.warning("LLM API key not configured, using mock LLM client")
        return MockLLMClient(config.embedding_dimension)
    return OpenAILLMClient(config)
