"""
Triage External Service Adapters
==================================

Adapters for external services (embedding backend, Redis) used by the
triage module.

Implements the interfaces defined in the application layer using concrete
external service implementations.

Redis layout:
- chat:<user>:<order>:<product index>  list of JSON chat turns, expiring
- selected-product:<user>              JSON selected product, expiring
"""

import json
from typing import List, Optional

from redis.asyncio import Redis
from redis.exceptions import RedisError

from casedesk.core import ExternalServiceException
from casedesk.infrastructure.llm import ILLMClient
from casedesk.shared.infrastructure.logging import get_logger
from casedesk.triage.application import IChatLogStore, IEmbeddingProvider, ISessionStore
from casedesk.triage.domain import ChatTurn, SelectedProduct

logger = get_logger(__name__)


def chat_log_key(user_id: str, order_id: str, product_index: int) -> str:
    return f"chat:{user_id}:{order_id}:{product_index}"


def selected_product_key(user_id: str) -> str:
    return f"selected-product:{user_id}"


class EmbeddingAdapter(IEmbeddingProvider):
    """
    Adapter that wraps the infrastructure LLM client.

    Implements the application layer IEmbeddingProvider interface.
    """

    def __init__(self, llm_client: ILLMClient):
        self._client = llm_client

    async def embed(self, text: str) -> List[float]:
        result = await self._client.generate_embedding(text)
        return result.embedding


class RedisChatLogStore(IChatLogStore):
    """
    Chat turns stored as Redis lists, one list per product conversation.

    Every append refreshes the retention window of that list. Reads
    degrade to an empty history when Redis is unavailable; appends raise
    so the caller decides how to handle a lost turn.
    """

    def __init__(self, client: Redis):
        self._redis = client

    async def append(self, user_id: str, turn: ChatTurn, retention_seconds: int) -> None:
        key = chat_log_key(user_id, turn.order_id, turn.product_index)
        try:
            await self._redis.rpush(key, json.dumps(turn.to_dict()))
            await self._redis.expire(key, retention_seconds)
        except RedisError as e:
            raise ExternalServiceException(
                "Chat Log", f"Failed to append turn: {e}", details={"key": key}
            )

    async def list_turns(self, user_id: str, order_id: str, product_index: int) -> List[ChatTurn]:
        key = chat_log_key(user_id, order_id, product_index)
        try:
            raw = await self._redis.lrange(key, 0, -1)
        except RedisError as e:
            logger.warning("Chat log read failed", extra={"key": key, "error": str(e)})
            return []
        return self._parse(raw, key)

    async def list_user_turns(self, user_id: str) -> List[ChatTurn]:
        turns: List[ChatTurn] = []
        try:
            async for key in self._redis.scan_iter(match=f"chat:{user_id}:*"):
                turns.extend(self._parse(await self._redis.lrange(key, 0, -1), key))
        except RedisError as e:
            logger.warning(
                "Chat history read failed", extra={"user_id": user_id, "error": str(e)}
            )
            return []
        turns.sort(key=lambda turn: turn.timestamp, reverse=True)
        return turns

    @staticmethod
    def _parse(raw: List[str], key: str) -> List[ChatTurn]:
        turns = []
        for item in raw:
            try:
                turns.append(ChatTurn.from_dict(json.loads(item)))
            except (ValueError, KeyError, TypeError) as e:
                logger.warning("Skipping malformed chat turn", extra={"key": key, "error": str(e)})
        return turns


class RedisSessionStore(ISessionStore):
    """Selected product per user, stored as an expiring JSON string."""

    def __init__(self, client: Redis):
        self._redis = client

    async def get_selected_product(self, user_id: str) -> Optional[SelectedProduct]:
        key = selected_product_key(user_id)
        try:
            raw = await self._redis.get(key)
        except RedisError as e:
            raise ExternalServiceException("Session Store", f"Failed to read selection: {e}")
        if not raw:
            return None
        try:
            return SelectedProduct.from_dict(json.loads(raw))
        except (ValueError, KeyError, TypeError) as e:
            logger.warning("Discarding malformed selection", extra={"user_id": user_id, "error": str(e)})
            return None

    async def set_selected_product(
        self, user_id: str, product: SelectedProduct, ttl_seconds: int
    ) -> None:
        try:
            await self._redis.set(
                selected_product_key(user_id), json.dumps(product.to_dict()), ex=ttl_seconds
            )
        except RedisError as e:
            raise ExternalServiceException("Session Store", f"Failed to store selection: {e}")

    async def clear_selected_product(self, user_id: str) -> None:
        try:
            await self._redis.delete(selected_product_key(user_id))
        except RedisError as e:
            raise ExternalServiceException("Session Store", f"Failed to clear selection: {e}")
