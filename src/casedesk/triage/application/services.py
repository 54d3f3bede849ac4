"""
Triage Application Services
============================

Application services for FAQ matching, case memory and the generative
fallback.

Orchestrates business logic between domain entities and repositories.
Matching is best-effort: any failure inside a matcher degrades to
"no match" so the pipeline can move on to its next stage.
"""

import time
from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Sequence, Tuple

from casedesk.cases.application import ICaseIndexer
from casedesk.cases.domain import Case
from casedesk.config import DEFAULT_DOMAIN
from casedesk.core import GenerativeTextUnavailableException
from casedesk.infrastructure.llm import (
    RETRYABLE_OUTCOMES, AttemptOutcome, GenerationAttempt, ILLMClient
)
from casedesk.shared.infrastructure.logging import get_logger
from casedesk.sla.application import ITriageConfigProvider
from casedesk.triage.domain import (
    CaseMemoryRecord,
    ChatTurn,
    FaqEntry,
    FaqMatch,
    SelectedProduct,
    SimilarCase,
    rank_by_similarity,
)

logger = get_logger(__name__)

# Upper bound on case-memory records scored per search
MEMORY_SCAN_LIMIT = 200
SUMMARY_MAX_CHARS = 512


# ========== Repository Interfaces ==========

class IFaqRepository(ABC):
    """Interface for FAQ corpus access."""

    @abstractmethod
    async def list_by_domain(self, domain: Optional[str]) -> List[FaqEntry]:
        """List FAQ entries for a domain (all entries when domain is None)."""

    @abstractmethod
    async def exists(self, question: str, domain: str) -> bool:
        """Check whether a question is already present for a domain."""

    @abstractmethod
    async def create(self, entry: FaqEntry) -> FaqEntry:
        """Store a new FAQ entry."""

    @abstractmethod
    async def count_by_domain(self) -> Dict[str, int]:
        """Count FAQ entries per domain."""


class ICaseMemoryRepository(ABC):
    """Interface for case-memory storage."""

    @abstractmethod
    async def upsert(self, record: CaseMemoryRecord) -> None:
        """Insert or replace the record keyed by case id."""

    @abstractmethod
    async def list_by_domain(
        self,
        domain: Optional[str],
        limit: int,
        exclude_case_id: Optional[str] = None
    ) -> List[CaseMemoryRecord]:
        """List up to `limit` records for a domain (all domains when None)."""

    @abstractmethod
    async def count(self) -> int:
        """Count stored records."""


class IEmbeddingProvider(ABC):
    """Interface for text embedding."""

    @abstractmethod
    async def embed(self, text: str) -> List[float]:
        """
        Embed text.

        Raises:
            EmbeddingUnavailableException: If the backend fails
        """


class IChatLogStore(ABC):
    """Interface for the per-product chat log."""

    @abstractmethod
    async def append(self, user_id: str, turn: ChatTurn, retention_seconds: int) -> None:
        """Append a turn and refresh the retention window."""

    @abstractmethod
    async def list_turns(self, user_id: str, order_id: str, product_index: int) -> List[ChatTurn]:
        """Turns of one product conversation, oldest first."""

    @abstractmethod
    async def list_user_turns(self, user_id: str) -> List[ChatTurn]:
        """Turns across all of a user's product conversations, newest first."""


class ISessionStore(ABC):
    """Interface for per-user selected-product session state."""

    @abstractmethod
    async def get_selected_product(self, user_id: str) -> Optional[SelectedProduct]:
        """Current selection, or None when unset or expired."""

    @abstractmethod
    async def set_selected_product(
        self, user_id: str, product: SelectedProduct, ttl_seconds: int
    ) -> None:
        """Store the selection with an expiry."""

    @abstractmethod
    async def clear_selected_product(self, user_id: str) -> None:
        """Forget the selection."""


# ========== Application Services ==========

class FaqMatcher:
    """
    Domain-filtered similarity search over the curated FAQ corpus.

    Coordinates between the embedding provider and the FAQ repository.
    """

    def __init__(
        self,
        faq_repository: IFaqRepository,
        embedder: IEmbeddingProvider,
        config_provider: ITriageConfigProvider
    ):
        self._repo = faq_repository
        self._embedder = embedder
        self._config_provider = config_provider

    async def check_faq(self, message: str, domain: Optional[str]) -> Optional[FaqMatch]:
        """
        Return the best FAQ answer when it clears the threshold.

        Any internal error (embedding, storage) is logged and treated as
        no match.
        """
        config = self._config_provider.get_config()
        try:
            query = await self._embedder.embed(message)
            entries = await self._repo.list_by_domain(domain)
            ranked = rank_by_similarity(
                query, [(entry, entry.embedding) for entry in entries], config.faq_top_k
            )
        except Exception as e:
            logger.warning("FAQ check failed, treating as no match", extra={"error": str(e)})
            return None

        if not ranked:
            return None

        best, score = ranked[0]
        if score < config.faq_threshold:
            logger.debug("FAQ best score below threshold", extra={"score": score})
            return None

        return FaqMatch(answer=best.answer, score=score, question=best.question)

    async def seed(self, entries: Sequence[dict]) -> Tuple[int, int]:
        """
        Add FAQ entries, embedding each question.

        Entries whose (question, domain) already exist are skipped.
        Embedding failures propagate: seeding is an explicit operation.
        Every question is embedded before the first insert.

        Returns:
            Tuple of (added, skipped)
        """
        pending: List[FaqEntry] = []
        seen = set()
        skipped = 0
        for raw in entries:
            question = raw["question"].strip()
            domain = raw.get("domain") or DEFAULT_DOMAIN
            if (question, domain) in seen or await self._repo.exists(question, domain):
                skipped += 1
                continue
            seen.add((question, domain))
            pending.append(FaqEntry(
                question=question,
                answer=raw["answer"],
                domain=domain,
                embedding=await self._embedder.embed(question),
            ))

        for entry in pending:
            await self._repo.create(entry)
            logger.info("Added FAQ", extra={"question": entry.question, "domain": entry.domain})
        return len(pending), skipped

    async def count_by_domain(self) -> Dict[str, int]:
        return await self._repo.count_by_domain()


class CaseMemoryService(ICaseIndexer):
    """
    Similarity search over summaries of earlier cases.

    Indexing and search are best-effort: indexing failures are logged,
    search failures return an empty list.
    """

    def __init__(
        self,
        memory_repository: ICaseMemoryRepository,
        embedder: IEmbeddingProvider,
        config_provider: ITriageConfigProvider
    ):
        self._repo = memory_repository
        self._embedder = embedder
        self._config_provider = config_provider

    async def index_case(self, case: Case) -> None:
        """Upsert the case's record using its (truncated) description."""
        text = (case.description or "")[:SUMMARY_MAX_CHARS] or f"Case {case.id}"
        await self._upsert(case, text, kind="description")

    async def index_resolution_summary(self, case: Case, text: str) -> None:
        """Upsert the case's record using a resolution summary."""
        if not text:
            return
        await self._upsert(case, text[:SUMMARY_MAX_CHARS], kind="resolution")

    async def _upsert(self, case: Case, text: str, kind: str) -> None:
        if not case.id:
            return
        try:
            embedding = await self._embedder.embed(text)
            await self._repo.upsert(CaseMemoryRecord(
                case_id=case.id,
                summary=text,
                domain=case.domain or DEFAULT_DOMAIN,
                embedding=embedding,
                order_id=case.order_id,
                product_index=case.product_index,
            ))
        except Exception as e:
            logger.error(
                "Case memory indexing failed",
                extra={"case_id": case.id, "kind": kind, "error": str(e)}
            )
            return
        logger.info("Indexed case memory", extra={"case_id": case.id, "kind": kind})

    async def search_similar_cases(
        self,
        query: str,
        domain: Optional[str],
        k: Optional[int] = None,
        exclude_case_id: Optional[str] = None
    ) -> List[SimilarCase]:
        """Top-k most similar case summaries for the query."""
        k = k or self._config_provider.get_config().case_memory_top_k
        try:
            query_embedding = await self._embedder.embed(query)
            records = await self._repo.list_by_domain(
                domain, limit=MEMORY_SCAN_LIMIT, exclude_case_id=exclude_case_id
            )
        except Exception as e:
            logger.warning("Case memory search failed", extra={"error": str(e)})
            return []

        ranked = rank_by_similarity(
            query_embedding, [(record, record.embedding) for record in records], k
        )
        return [
            SimilarCase(
                case_id=record.case_id,
                summary=record.summary,
                score=score,
                order_id=record.order_id,
                product_index=record.product_index,
            )
            for record, score in ranked
        ]

    async def count(self) -> int:
        return await self._repo.count()


class GenerativeReplyService:
    """
    Generates replies over an ordered list of models.

    One loop consumes typed attempt outcomes: quota-exceeded (or an empty
    completion) moves on to the next model, any other failure stops.
    """

    def __init__(
        self,
        llm_client: ILLMClient,
        models: Sequence[str],
        temperature: float = 0.3,
        max_tokens: int = 600
    ):
        if not models:
            raise ValueError("At least one model is required")
        self._llm = llm_client
        self._models = list(models)
        self._temperature = temperature
        self._max_tokens = max_tokens

    @property
    def models(self) -> List[str]:
        return list(self._models)

    async def generate(self, prompt: str) -> str:
        """
        Generate reply text for a prompt.

        Raises:
            GenerativeTextUnavailableException: On an aborting outcome or
                when every model was tried without usable text
        """
        start_time = time.perf_counter()
        messages = [{"role": "user", "content": prompt}]
        attempts: List[GenerationAttempt] = []

        for model in self._models:
            attempt = await self._llm.attempt_completion(
                model,
                messages,
                temperature=self._temperature,
                max_tokens=self._max_tokens
            )
            attempts.append(attempt)

            if attempt.succeeded:
                logger.info(
                    "Generative reply produced",
                    extra={
                        "model": model,
                        "attempts": len(attempts),
                        "latency_ms": int((time.perf_counter() - start_time) * 1000)
                    }
                )
                return attempt.text

            empty = attempt.outcome == AttemptOutcome.SUCCESS
            if empty or attempt.outcome in RETRYABLE_OUTCOMES:
                logger.warning(
                    "Model unavailable, trying next",
                    extra={"model": model, "outcome": "empty" if empty else attempt.outcome}
                )
                continue

            logger.error(
                "Generative call aborted",
                extra={"model": model, "outcome": attempt.outcome, "error": attempt.error}
            )
            raise GenerativeTextUnavailableException(
                f"Model {model} failed: {attempt.error or attempt.outcome}",
                reason=attempt.outcome,
                model=model
            )

        raise GenerativeTextUnavailableException(
            "All models exhausted",
            reason="exhausted",
            details={"models": [a.model for a in attempts]}
        )
