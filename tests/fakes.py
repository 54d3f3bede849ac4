"""
In-memory stand-ins for the storage, embedding and LLM backends.

They implement the same application-layer interfaces as the SQLAlchemy
and Redis adapters so services can be exercised without infrastructure.
"""

from collections import Counter
from typing import Dict, List, Optional, Sequence, Tuple
from uuid import uuid4

from casedesk.cases.application import IAgentLockStore, ICaseRepository
from casedesk.cases.domain import Case, CaseResponse
from casedesk.core import EmbeddingUnavailableException
from casedesk.infrastructure.llm import (
    AttemptOutcome, EmbeddingResult, GenerationAttempt, ILLMClient
)
from casedesk.infrastructure.realtime import Event, IEventPublisher
from casedesk.triage.application import (
    ICaseMemoryRepository,
    IChatLogStore,
    IEmbeddingProvider,
    IFaqRepository,
    ISessionStore,
)
from casedesk.triage.domain import CaseMemoryRecord, ChatTurn, FaqEntry, SelectedProduct


class FakeEmbedder(IEmbeddingProvider):
    """
    Looks embeddings up by normalized text.

    Unknown text maps to `default`. With `fail=True` every call raises
    like an unavailable backend.
    """

    def __init__(
        self,
        vectors: Optional[Dict[str, List[float]]] = None,
        default: Optional[List[float]] = None,
        fail: bool = False
    ):
        self.vectors = {k.strip().lower(): v for k, v in (vectors or {}).items()}
        self.default = default if default is not None else [0.0, 0.0, 0.0, 1.0]
        self.fail = fail
        self.calls: List[str] = []

    async def embed(self, text: str) -> List[float]:
        self.calls.append(text)
        if self.fail:
            raise EmbeddingUnavailableException("embedding backend down")
        return list(self.vectors.get((text or "").strip().lower(), self.default))


class InMemoryFaqRepository(IFaqRepository):

    def __init__(self, entries: Sequence[FaqEntry] = ()):
        self.entries: List[FaqEntry] = list(entries)

    async def list_by_domain(self, domain: Optional[str]) -> List[FaqEntry]:
        return [e for e in self.entries if domain is None or e.domain == domain]

    async def exists(self, question: str, domain: str) -> bool:
        return any(e.question == question and e.domain == domain for e in self.entries)

    async def create(self, entry: FaqEntry) -> FaqEntry:
        entry.id = entry.id or str(uuid4())
        self.entries.append(entry)
        return entry

    async def count_by_domain(self) -> Dict[str, int]:
        return dict(Counter(e.domain for e in self.entries))


class InMemoryCaseMemoryRepository(ICaseMemoryRepository):

    def __init__(self):
        self.records: Dict[str, CaseMemoryRecord] = {}

    async def upsert(self, record: CaseMemoryRecord) -> None:
        self.records[record.case_id] = record

    async def list_by_domain(
        self,
        domain: Optional[str],
        limit: int,
        exclude_case_id: Optional[str] = None
    ) -> List[CaseMemoryRecord]:
        return [
            r for r in self.records.values()
            if (domain is None or r.domain == domain) and r.case_id != exclude_case_id
        ][:limit]

    async def count(self) -> int:
        return len(self.records)


class InMemoryCaseRepository(ICaseRepository):
    """Cases keyed by id, unique per (user, order, product index)."""

    def __init__(self):
        self.cases: Dict[str, Case] = {}
        self.commits = 0

    def _by_key(self, user_id: str, order_id: str, product_index: int) -> Optional[Case]:
        for case in self.cases.values():
            if (case.user_id, case.order_id, case.product_index) == (user_id, order_id, product_index):
                return case
        return None

    async def get_by_id(self, case_id: str) -> Optional[Case]:
        return self.cases.get(case_id)

    async def get_by_key(self, user_id: str, order_id: str, product_index: int) -> Optional[Case]:
        return self._by_key(user_id, order_id, product_index)

    async def get_or_create(self, case: Case) -> Tuple[Case, bool]:
        existing = self._by_key(case.user_id, case.order_id, case.product_index)
        if existing is not None:
            return existing, False
        case.id = str(uuid4())
        self.cases[case.id] = case
        return case, True

    async def upsert(self, case: Case) -> Case:
        existing = self._by_key(case.user_id, case.order_id, case.product_index)
        if existing is None:
            case.id = str(uuid4())
            self.cases[case.id] = case
            return case
        existing.description = case.description
        existing.priority = case.priority
        existing.domain = case.domain
        existing.status = case.status
        existing.updated_at = case.updated_at
        return existing

    async def save(self, case: Case) -> Case:
        self.cases[case.id] = case
        return case

    async def append_response(self, case_id: str, response: CaseResponse) -> None:
        stored = self.cases[case_id]
        if response not in stored.responses:
            stored.responses.append(response)

    async def list_by_user(self, user_id: str) -> List[Case]:
        return [c for c in self.cases.values() if c.user_id == user_id]

    async def list(self, filters: dict, limit: int = 100, offset: int = 0) -> List[Case]:
        cases = [
            c for c in self.cases.values()
            if all(getattr(c, key) == value for key, value in filters.items())
        ]
        return cases[offset:offset + limit]

    async def count_by_status(self) -> Dict[str, int]:
        return dict(Counter(c.status for c in self.cases.values()))

    async def commit(self) -> None:
        self.commits += 1


class InMemoryLockStore(IAgentLockStore):
    """Agent-only locks with the TTL recorded but never expiring."""

    def __init__(self):
        self.locks: Dict[str, int] = {}

    async def is_locked(self, case_id: str) -> bool:
        return case_id in self.locks

    async def lock(self, case_id: str, ttl_seconds: int) -> None:
        self.locks[case_id] = ttl_seconds

    async def unlock(self, case_id: str) -> None:
        self.locks.pop(case_id, None)


class InMemoryChatLog(IChatLogStore):

    def __init__(self, fail: bool = False):
        self.turns: Dict[str, List[ChatTurn]] = {}
        self.fail = fail

    async def append(self, user_id: str, turn: ChatTurn, retention_seconds: int) -> None:
        if self.fail:
            raise RuntimeError("chat log unavailable")
        self.turns.setdefault(user_id, []).append(turn)

    async def list_turns(self, user_id: str, order_id: str, product_index: int) -> List[ChatTurn]:
        return [
            t for t in self.turns.get(user_id, [])
            if t.order_id == order_id and t.product_index == product_index
        ]

    async def list_user_turns(self, user_id: str) -> List[ChatTurn]:
        return sorted(self.turns.get(user_id, []), key=lambda t: t.timestamp, reverse=True)


class InMemorySessionStore(ISessionStore):

    def __init__(self):
        self.products: Dict[str, SelectedProduct] = {}

    async def get_selected_product(self, user_id: str) -> Optional[SelectedProduct]:
        return self.products.get(user_id)

    async def set_selected_product(
        self, user_id: str, product: SelectedProduct, ttl_seconds: int
    ) -> None:
        self.products[user_id] = product

    async def clear_selected_product(self, user_id: str) -> None:
        self.products.pop(user_id, None)


class RecordingPublisher(IEventPublisher):
    """Keeps every (topic, event) pair published."""

    def __init__(self):
        self.published: List[Tuple[str, Event]] = []

    async def publish(self, topic: str, event: Event) -> int:
        self.published.append((topic, event))
        return 1

    def events(self, event_type: str, topic: Optional[str] = None) -> List[Event]:
        return [
            e for t, e in self.published
            if e.type == event_type and (topic is None or t == topic)
        ]


class ScriptedLLMClient(ILLMClient):
    """
    Completion outcomes scripted per model.

    `script` maps a model name to (outcome, content). Models not in the
    script succeed with "model reply".
    """

    def __init__(self, script: Optional[Dict[str, Tuple[str, Optional[str]]]] = None):
        self.script = script or {}
        self.calls: List[str] = []

    async def generate_embedding(self, text: str) -> EmbeddingResult:
        return EmbeddingResult(embedding=[float(len(text or "")), 1.0], model="fake")

    async def attempt_completion(
        self,
        model: str,
        messages: List[dict],
        temperature: float = 0.3,
        max_tokens: int = 600
    ) -> GenerationAttempt:
        self.calls.append(model)
        outcome, content = self.script.get(model, (AttemptOutcome.SUCCESS, "model reply"))
        return GenerationAttempt(
            model=model,
            outcome=outcome,
            content=content,
            error=None if outcome == AttemptOutcome.SUCCESS else f"{outcome} from {model}"
        )
