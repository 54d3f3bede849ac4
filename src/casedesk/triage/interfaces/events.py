"""
Event Stream (Server-Sent Events)
=================================

Pushes chat replies, status changes and queued messages to connected
clients.

Users receive their own topic. Agents additionally receive the `agents`
topic. Either may join case rooms with `?case_ids=<id>&case_ids=<id>`;
users only for their own cases.
"""

import asyncio
import json
from typing import AsyncGenerator, List, Optional

from fastapi import APIRouter, Depends, Query, Request
from sse_starlette.sse import EventSourceResponse

from casedesk.cases.application import CaseService
from casedesk.cases.interfaces import get_case_service
from casedesk.infrastructure.realtime import (
    AGENTS_TOPIC, EventBus, Subscription, case_topic, user_topic
)
from casedesk.shared.api.dependencies import get_event_bus
from casedesk.shared.api.identity import Identity, get_identity
from casedesk.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)
router = APIRouter(prefix="/events", tags=["Events"])

# Idle interval before a keep-alive ping is sent
PING_INTERVAL_SECONDS = 15.0


def topics_for(identity: Identity, case_ids: Optional[List[str]] = None) -> List[str]:
    topics = [user_topic(identity.user_id)]
    if identity.is_agent:
        topics.append(AGENTS_TOPIC)
    for case_id in case_ids or []:
        if case_id:
            topics.append(case_topic(case_id))
    return topics


async def _event_generator(
    request: Request,
    subscription: Subscription,
    ping_interval: float = PING_INTERVAL_SECONDS
) -> AsyncGenerator[dict, None]:
    """
    Yield bus events as SSE messages until the client disconnects.

    The event type travels inside the JSON payload so clients can use a
    single onmessage handler.
    """
    try:
        while True:
            if await request.is_disconnected():
                break
            try:
                event = await subscription.get(timeout=ping_interval)
                yield {"data": json.dumps(event.to_dict())}
            except asyncio.TimeoutError:
                yield {"data": json.dumps({"event": "ping"})}
    finally:
        subscription.close()
        logger.debug("Event stream closed", extra={"topics": subscription.topics})


@router.get("/stream", summary="Subscribe to live events (SSE)")
async def stream_events(
    request: Request,
    case_ids: List[str] = Query(default=[]),
    identity: Identity = Depends(get_identity),
    event_bus: EventBus = Depends(get_event_bus),
    case_service: CaseService = Depends(get_case_service)
) -> EventSourceResponse:
    rooms = await case_service.check_case_rooms(case_ids, identity.user_id, identity.is_agent)
    subscription = event_bus.subscribe(topics_for(identity, rooms))
    logger.info(
        "Event stream opened",
        extra={"user_id": identity.user_id, "topics": subscription.topics}
    )
    return EventSourceResponse(
        _event_generator(request, subscription),
        media_type="text/event-stream",
    )
