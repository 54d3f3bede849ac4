"""
Case Application Services
==========================

Application services for the case lifecycle: creation, agent replies,
status changes and the agent-only lock.

Following SOLID principles:
- Single Responsibility: CaseService owns case mutations and their events
- Dependency Inversion: Depend on abstractions (repositories, stores), not
  concrete implementations
"""

from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Tuple

from casedesk.cases.domain import (
    CLOSING_NOTE,
    Case,
    CaseResponse,
    build_resolution_summary,
    classify_priority,
)
from casedesk.config import (
    CaseStatus, DEFAULT_DOMAIN, DOMAINS, ReplySource, VALID_PRIORITIES, VALID_STATUSES
)
from casedesk.core import ResourceNotFoundException, ValidationException, ForbiddenException
from casedesk.infrastructure.realtime import (
    AGENTS_TOPIC, Event, EventType, IEventPublisher, case_topic, user_topic
)
from casedesk.shared.infrastructure.logging import get_logger
from casedesk.sla.application import ITriageConfigProvider

logger = get_logger(__name__)


# ========== Repository Interfaces (Dependency Inversion) ==========

class ICaseRepository(ABC):
    """Interface for case data access."""

    @abstractmethod
    async def get_by_id(self, case_id: str) -> Optional[Case]:
        """Get case by ID, with its responses."""

    @abstractmethod
    async def get_by_key(
        self, user_id: str, order_id: str, product_index: int
    ) -> Optional[Case]:
        """Get the case for one (user, order, product) triple."""

    @abstractmethod
    async def get_or_create(self, case: Case) -> Tuple[Case, bool]:
        """Return the existing case for the key, or insert this one."""

    @abstractmethod
    async def upsert(self, case: Case) -> Case:
        """Insert, or update description/priority/domain/status of the existing case."""

    @abstractmethod
    async def save(self, case: Case) -> Case:
        """Persist scalar fields of an existing case."""

    @abstractmethod
    async def append_response(self, case_id: str, response: CaseResponse) -> None:
        """Append one response to a case."""

    @abstractmethod
    async def list_by_user(self, user_id: str) -> List[Case]:
        """List a user's cases, newest first."""

    @abstractmethod
    async def list(
        self,
        filters: dict,
        limit: int = 100,
        offset: int = 0
    ) -> List[Case]:
        """List cases with filters, newest first."""

    @abstractmethod
    async def count_by_status(self) -> Dict[str, int]:
        """Count cases per status."""

    @abstractmethod
    async def commit(self) -> None:
        """Make pending changes durable and end the current transaction."""


class IAgentLockStore(ABC):
    """Interface for the per-case agent-only lock (an expiring key)."""

    @abstractmethod
    async def is_locked(self, case_id: str) -> bool:
        """Check whether automation is suppressed for a case."""

    @abstractmethod
    async def lock(self, case_id: str, ttl_seconds: int) -> None:
        """Set or renew the lock."""

    @abstractmethod
    async def unlock(self, case_id: str) -> None:
        """Clear the lock."""


class ICaseIndexer(ABC):
    """Interface for case-memory indexing. Implementations must not raise."""

    @abstractmethod
    async def index_case(self, case: Case) -> None:
        """Upsert the case's memory record from its description."""

    @abstractmethod
    async def index_resolution_summary(self, case: Case, text: str) -> None:
        """Upsert the case's memory record from a resolution summary."""


# ========== Application Services ==========

class CaseService:
    """
    Service for case lifecycle operations.

    Publishes case:message / case:status / chat:reply events for every
    mutation so the user, the case room and the agents stay in sync.

    Every mutation is committed before events go out and before any
    embedding call, so no row lock is held while an external service runs.
    """

    def __init__(
        self,
        case_repository: ICaseRepository,
        lock_store: IAgentLockStore,
        config_provider: ITriageConfigProvider,
        indexer: Optional[ICaseIndexer] = None,
        publisher: Optional[IEventPublisher] = None
    ):
        self._repo = case_repository
        self._locks = lock_store
        self._config_provider = config_provider
        self._indexer = indexer
        self._publisher = publisher

    # ----- queries -----

    async def get_case(self, case_id: str) -> Case:
        case = await self._repo.get_by_id(case_id)
        if case is None:
            raise ResourceNotFoundException("Case", case_id)
        return case

    async def get_case_for_viewer(self, case_id: str, user_id: str, is_agent: bool) -> Case:
        """Load a case visible to its owner or to any agent."""
        case = await self.get_case(case_id)
        if not is_agent and case.user_id != user_id:
            raise ForbiddenException("Forbidden", details={"case_id": case_id})
        return case

    async def check_case_rooms(
        self, case_ids: List[str], user_id: str, is_agent: bool
    ) -> List[str]:
        """
        Case rooms a viewer may join.

        Agents may join any room. Users may only join rooms of their own
        cases; an unknown or foreign id raises before anything is joined.

        Raises:
            ResourceNotFoundException: If a case does not exist
            ForbiddenException: If a user asks for someone else's case
        """
        rooms = [case_id for case_id in case_ids if case_id]
        if rooms and not is_agent:
            for case_id in rooms:
                await self.get_case_for_viewer(case_id, user_id, is_agent=False)
            await self._commit()
        return rooms

    async def find_case(self, user_id: str, order_id: str, product_index: int) -> Optional[Case]:
        return await self._repo.get_by_key(user_id, order_id, product_index)

    async def list_user_cases(self, user_id: str) -> List[Case]:
        return await self._repo.list_by_user(user_id)

    async def list_cases(
        self,
        status: Optional[str] = None,
        priority: Optional[str] = None,
        domain: Optional[str] = None,
        limit: int = 100,
        offset: int = 0
    ) -> List[Case]:
        filters = {}
        if status:
            filters["status"] = status
        if priority:
            filters["priority"] = priority
        if domain:
            filters["domain"] = domain
        return await self._repo.list(filters, limit=limit, offset=offset)

    async def count_by_status(self) -> Dict[str, int]:
        return await self._repo.count_by_status()

    # ----- creation -----

    async def create_case(
        self,
        user_id: str,
        order_id: str,
        product_index: int,
        description: str,
        domain: Optional[str] = None
    ) -> Case:
        """
        Create the case for a product, or refresh the existing one.

        Priority comes from the description. The case is indexed into
        case memory afterwards.

        Raises:
            ValidationException: If required fields are missing
        """
        self._validate_key(order_id, product_index)
        if not description or not description.strip():
            raise ValidationException("Order ID, product index, and description are required")
        domain = self._validate_domain(domain or DEFAULT_DOMAIN)

        case = await self._repo.upsert(Case(
            user_id=user_id,
            order_id=order_id,
            product_index=product_index,
            description=description,
            domain=domain,
            priority=classify_priority(description),
        ))
        await self._commit()
        logger.info(
            "Case processed",
            extra={"case_id": case.id, "user_id": user_id, "priority": case.priority}
        )
        await self._index(case)
        return case

    async def ensure_case(
        self,
        user_id: str,
        order_id: str,
        product_index: int,
        description: str,
        domain: str
    ) -> Tuple[Case, bool]:
        """
        Make sure a case exists for the product before triage runs.

        A new case is minimal: open, classified, and not indexed. The
        transaction is closed before returning because the triage stages
        that follow call out to the embedding and generative backends.
        """
        self._validate_key(order_id, product_index)
        case, created = await self._repo.get_or_create(Case(
            user_id=user_id,
            order_id=order_id,
            product_index=product_index,
            description=description,
            domain=domain,
            priority=classify_priority(description),
        ))
        await self._commit()
        return case, created

    # ----- updates driven by inbound messages -----

    async def reopen_if_resolved(self, case: Case) -> bool:
        """Return a resolved case to open when the customer writes again."""
        if not case.reopen():
            return False
        await self._repo.save(case)
        await self._commit()
        logger.info("Case reopened by new message", extra={"case_id": case.id})
        await self._publish_status(case)
        return True

    async def apply_inbound_message(
        self,
        case: Case,
        description: str,
        priority: str,
        domain: str,
        force_open: bool = False
    ) -> Case:
        """
        Refresh a case from a triaged message and re-index it.

        force_open moves the case back to open from any status.
        """
        case.description = description
        case.priority = priority
        case.domain = domain
        if force_open or case.is_resolved:
            case.status = CaseStatus.OPEN
        case.touch()
        case = await self._repo.upsert(case)
        await self._commit()
        await self._index(case)
        return case

    # ----- agent operations -----

    async def add_agent_response(self, case_id: str, agent_id: str, message: str) -> Case:
        """
        Append an agent reply.

        The case moves to in-progress unless resolved, and the agent-only
        lock is set (or renewed) so automation stays out of the way.

        Raises:
            ValidationException: If the message is empty
            ResourceNotFoundException: If the case does not exist
        """
        if not message or not message.strip():
            raise ValidationException("Message required")

        case = await self.get_case(case_id)
        response = case.add_agent_response(agent_id, message)
        await self._repo.append_response(case.id, response)
        await self._repo.save(case)
        await self._commit()

        await self._publish_case_message(case, message)
        await self._publish_status(case)
        await self._publish_agent_reply(case, message)

        ttl = self._config_provider.get_config().agent_only_ttl_seconds
        await self._locks.lock(case.id, ttl)

        logger.info(
            "Agent response added",
            extra={"case_id": case.id, "agent_id": agent_id, "status": case.status}
        )
        return case

    async def update_case(
        self,
        case_id: str,
        agent_id: str,
        status: Optional[str] = None,
        priority: Optional[str] = None,
        domain: Optional[str] = None,
        description: Optional[str] = None
    ) -> Case:
        """
        Apply an agent's changes to a case.

        Resolving appends the closing note, clears the agent-only lock and
        indexes a resolution summary into case memory.

        Raises:
            ValidationException: On unknown status/priority/domain values
            DomainException: On a disallowed status transition
            ResourceNotFoundException: If the case does not exist
        """
        if priority is not None and priority not in VALID_PRIORITIES:
            raise ValidationException("Invalid priority value")
        if status is not None and status not in VALID_STATUSES:
            raise ValidationException("Invalid status value")
        if domain is not None:
            domain = self._validate_domain(domain)

        case = await self.get_case(case_id)

        status_changed = case.transition_to(status) if status is not None else False
        if priority is not None:
            case.priority = priority
        if domain is not None:
            case.domain = domain
        if description is not None and description.strip():
            case.description = description
        case.touch()

        if status_changed and case.is_resolved:
            note = case.add_agent_response(agent_id, CLOSING_NOTE)
            await self._repo.append_response(case.id, note)
            await self._repo.save(case)
            await self._commit()
            await self._on_resolved(case)
        else:
            await self._repo.save(case)
            await self._commit()
            await self._publish_status(case)
            if description is not None or domain is not None:
                await self._index(case)

        logger.info(
            "Case updated",
            extra={"case_id": case.id, "agent_id": agent_id, "status": case.status}
        )
        return case

    async def set_agent_only(self, case_id: str, enabled: bool) -> bool:
        """Manually enable or disable the agent-only lock for a case."""
        await self.get_case(case_id)
        if enabled:
            ttl = self._config_provider.get_config().agent_only_ttl_seconds
            await self._locks.lock(case_id, ttl)
        else:
            await self._locks.unlock(case_id)
        logger.info("Agent-only toggled", extra={"case_id": case_id, "enabled": enabled})
        return enabled

    async def is_agent_only(self, case_id: str) -> bool:
        return await self._locks.is_locked(case_id)

    # ----- helpers -----

    async def _on_resolved(self, case: Case) -> None:
        await self._publish_case_message(case, CLOSING_NOTE)
        await self._publish_status(case)
        await self._publish_agent_reply(case, CLOSING_NOTE)

        await self._locks.unlock(case.id)

        if self._indexer is not None:
            summary = build_resolution_summary(case.responses)
            await self._indexer.index_resolution_summary(case, summary)
            await self._commit()

    async def _index(self, case: Case) -> None:
        if self._indexer is not None:
            await self._indexer.index_case(case)
            await self._commit()

    async def _commit(self) -> None:
        await self._repo.commit()

    @staticmethod
    def _validate_key(order_id: str, product_index: int) -> None:
        if not order_id or product_index is None or product_index < 0:
            raise ValidationException("Invalid order or product index")

    @staticmethod
    def _validate_domain(domain: str) -> str:
        if domain not in DOMAINS:
            raise ValidationException(
                f"Unknown domain '{domain}'", details={"allowed": DOMAINS}
            )
        return domain

    async def _publish(self, topics: List[str], event_type: str, data: dict) -> None:
        if self._publisher is None:
            return
        await self._publisher.publish_many(topics, Event(type=event_type, data=data))

    async def _publish_status(self, case: Case) -> None:
        await self._publish(
            [case_topic(case.id), user_topic(case.user_id)],
            EventType.STATUS_CHANGED,
            {"caseId": case.id, "status": case.status},
        )

    async def _publish_case_message(self, case: Case, message: str) -> None:
        await self._publish(
            [case_topic(case.id), user_topic(case.user_id)],
            EventType.CASE_MESSAGE,
            {"caseId": case.id, "sender": "agent", "message": message},
        )

    async def _publish_agent_reply(self, case: Case, message: str) -> None:
        await self._publish(
            [user_topic(case.user_id), AGENTS_TOPIC],
            EventType.REPLY_DELIVERED,
            {
                "userId": case.user_id,
                "orderId": case.order_id,
                "productIndex": case.product_index,
                "caseId": case.id,
                "source": ReplySource.AGENT,
                "message": message,
            },
        )
