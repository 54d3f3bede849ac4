"""
Triage Pipeline
===============

Decides how to answer one inbound customer message.

Stages run in strict precedence and the first match wins:
1. agent-only lock   -> queue the message for a human agent
2. refund keywords   -> escalate as a high-priority refund case
3. FAQ match         -> curated answer
4. case memory match -> suggestion built from a similar earlier case
5. generative reply  -> model answer (static escalation text on failure)

Every path records a chat turn and fans the result out to the user and
the agents. Chat-log failures are logged and never block fanout.

Case writes are committed by CaseService before any stage calls the
embedding or generative backends and before events are published.
"""

import time
from typing import List, Optional

from casedesk.cases.application import CaseService
from casedesk.cases.domain import Case, classify_priority
from casedesk.config import Priority, ReplySource, Routing
from casedesk.core import GenerativeTextUnavailableException, ValidationException
from casedesk.infrastructure.realtime import (
    AGENTS_TOPIC, Event, EventType, IEventPublisher, user_topic
)
from casedesk.shared.api.identity import Identity
from casedesk.shared.infrastructure.logging import get_logger
from casedesk.sla.application import ITriageConfigProvider
from casedesk.sla.domain import analyze
from casedesk.triage.application.services import (
    CaseMemoryService,
    FaqMatcher,
    GenerativeReplyService,
    IChatLogStore,
)
from casedesk.triage.domain import (
    FALLBACK_REPLY,
    REFUND_DESCRIPTION_TAG,
    REFUND_REPLY,
    ChatTurn,
    ReplyPromptBuilder,
    SelectedProduct,
    TriageReply,
    build_memory_reply,
    is_refund_request,
)

logger = get_logger(__name__)


class TriagePipeline:
    """Orchestrates the triage stages for one message at a time."""

    def __init__(
        self,
        case_service: CaseService,
        faq_matcher: FaqMatcher,
        case_memory: CaseMemoryService,
        generator: GenerativeReplyService,
        chat_log: IChatLogStore,
        publisher: IEventPublisher,
        config_provider: ITriageConfigProvider
    ):
        self._cases = case_service
        self._faq = faq_matcher
        self._memory = case_memory
        self._generator = generator
        self._chat_log = chat_log
        self._publisher = publisher
        self._config_provider = config_provider

    async def handle(
        self,
        identity: Identity,
        message: str,
        product: Optional[SelectedProduct]
    ) -> TriageReply:
        """
        Triage one inbound message for the user's selected product.

        Raises:
            ValidationException: If the message is empty or no product is selected
        """
        if not message or not message.strip():
            raise ValidationException("Message is required")
        if product is None:
            raise ValidationException("Select an order/product first")

        start_time = time.perf_counter()
        domain = product.domain

        case, created = await self._cases.ensure_case(
            identity.user_id, product.order_id, product.product_index, message, domain
        )
        if not created:
            await self._cases.reopen_if_resolved(case)

        if await self._cases.is_agent_only(case.id):
            result = await self._queue_for_agent(identity, message, product, case)
        elif is_refund_request(message):
            result = await self._handle_refund(identity, message, product, case)
        else:
            result = (
                await self._try_faq(identity, message, product, case)
                or await self._try_case_memory(identity, message, product, case)
                or await self._handle_generative(identity, message, product, case)
            )

        logger.info(
            "Message triaged",
            extra={
                "user_id": identity.user_id,
                "case_id": result.case_id,
                "source": result.source,
                "routed": result.routed,
                "response_time_ms": int((time.perf_counter() - start_time) * 1000)
            }
        )
        return result

    # ----- stages -----

    async def _queue_for_agent(
        self, identity: Identity, message: str, product: SelectedProduct, case: Case
    ) -> TriageReply:
        await self._record_turn(identity.user_id, ChatTurn(
            prompt=message,
            reply=None,
            source=ReplySource.USER,
            order_id=product.order_id,
            product_index=product.product_index,
            case_id=case.id,
        ))
        await self._publisher.publish(AGENTS_TOPIC, Event(
            type=EventType.INBOUND_QUEUED,
            data={
                "userId": identity.user_id,
                "orderId": product.order_id,
                "productIndex": product.product_index,
                "caseId": case.id,
                "message": message,
            },
        ))
        return TriageReply(
            source=ReplySource.USER,
            case_id=case.id,
            queued=True,
            routed=Routing.HUMAN_AGENT,
        )

    async def _handle_refund(
        self, identity: Identity, message: str, product: SelectedProduct, case: Case
    ) -> TriageReply:
        sentiment = analyze(message)
        sla = self._config_provider.get_config().compute_sla(Priority.HIGH, sentiment.label)

        case = await self._cases.apply_inbound_message(
            case,
            description=f"{REFUND_DESCRIPTION_TAG} {message}",
            priority=Priority.HIGH,
            domain=product.domain,
            force_open=True,
        )
        await self._deliver(identity, message, product, REFUND_REPLY, ReplySource.REFUND, case.id)
        await self._publish_status(identity, case)

        return TriageReply(
            source=ReplySource.REFUND,
            case_id=case.id,
            reply=REFUND_REPLY,
            routed=Routing.CS_AGENT,
            sla=sla.to_dict(),
        )

    async def _try_faq(
        self, identity: Identity, message: str, product: SelectedProduct, case: Case
    ) -> Optional[TriageReply]:
        match = await self._faq.check_faq(message, product.domain)
        if match is None:
            return None

        await self._deliver(
            identity, message, product, match.answer, ReplySource.FAQ, case.id, match.score
        )
        return TriageReply(
            source=ReplySource.FAQ,
            case_id=case.id,
            reply=match.answer,
            score=match.score,
        )

    async def _try_case_memory(
        self, identity: Identity, message: str, product: SelectedProduct, case: Case
    ) -> Optional[TriageReply]:
        config = self._config_provider.get_config()
        similar = await self._memory.search_similar_cases(
            message, product.domain, config.case_memory_top_k, exclude_case_id=case.id
        )
        if not similar or similar[0].score < config.case_memory_threshold:
            return None

        top = similar[0]
        reply = build_memory_reply(top.summary, order_id=product.order_id, product_name=product.name)
        await self._deliver(
            identity, message, product, reply, ReplySource.CASE_MEMORY, case.id, top.score
        )
        return TriageReply(
            source=ReplySource.CASE_MEMORY,
            case_id=case.id,
            reply=reply,
            score=top.score,
            similar_cases=similar,
        )

    async def _handle_generative(
        self, identity: Identity, message: str, product: SelectedProduct, case: Case
    ) -> TriageReply:
        prompt = ReplyPromptBuilder.build_prompt(
            product.domain, message, product, identity.name, identity.email
        )
        try:
            reply = await self._generator.generate(prompt)
        except GenerativeTextUnavailableException as e:
            logger.warning(
                "Generative reply unavailable, using escalation text",
                extra={"case_id": case.id, "reason": e.reason, "model": e.model}
            )
            reply = FALLBACK_REPLY

        sentiment = analyze(f"{message} {reply}")
        priority = classify_priority(message)
        sla = self._config_provider.get_config().compute_sla(priority, sentiment.label)

        case = await self._cases.apply_inbound_message(
            case, description=message, priority=priority, domain=product.domain
        )
        await self._deliver(identity, message, product, reply, ReplySource.LLM, case.id)
        await self._publish_status(identity, case)

        return TriageReply(
            source=ReplySource.LLM,
            case_id=case.id,
            reply=reply,
            routed=Routing.CS_AGENT,
            sla=sla.to_dict(),
        )

    # ----- recording and fanout -----

    async def _record_turn(self, user_id: str, turn: ChatTurn) -> None:
        retention = self._config_provider.get_config().chat_log_retention_seconds
        try:
            await self._chat_log.append(user_id, turn, retention)
        except Exception as e:
            logger.error(
                "Failed to record chat turn",
                extra={"user_id": user_id, "case_id": turn.case_id, "error": str(e)}
            )

    async def _deliver(
        self,
        identity: Identity,
        message: str,
        product: SelectedProduct,
        reply: str,
        source: str,
        case_id: Optional[str],
        score: Optional[float] = None
    ) -> None:
        await self._record_turn(identity.user_id, ChatTurn(
            prompt=message,
            reply=reply,
            source=source,
            order_id=product.order_id,
            product_index=product.product_index,
            case_id=case_id,
            score=score,
        ))
        topics: List[str] = [user_topic(identity.user_id), AGENTS_TOPIC]
        await self._publisher.publish_many(topics, Event(
            type=EventType.REPLY_DELIVERED,
            data={
                "userId": identity.user_id,
                "orderId": product.order_id,
                "productIndex": product.product_index,
                "caseId": case_id,
                "source": source,
                "message": reply,
            },
        ))

    async def _publish_status(self, identity: Identity, case: Case) -> None:
        await self._publisher.publish(user_topic(identity.user_id), Event(
            type=EventType.STATUS_CHANGED,
            data={"caseId": case.id, "status": case.status},
        ))
