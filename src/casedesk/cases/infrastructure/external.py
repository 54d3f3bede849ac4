"""
Case External Integrations
===========================

Redis-backed agent-only lock.

The lock is a plain expiring key (`agent-only:<case id>`). A missed clear
heals itself when the TTL runs out, so lock calls degrade instead of
failing the request when Redis is unavailable.
"""

from redis.asyncio import Redis
from redis.exceptions import RedisError

from casedesk.cases.application import IAgentLockStore
from casedesk.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)


def agent_only_key(case_id: str) -> str:
    return f"agent-only:{case_id}"


class RedisAgentLockStore(IAgentLockStore):
    """Agent-only lock stored as `SET agent-only:<id> 1 EX <ttl>`."""

    def __init__(self, client: Redis):
        self._redis = client

    async def is_locked(self, case_id: str) -> bool:
        try:
            return await self._redis.get(agent_only_key(case_id)) == "1"
        except RedisError as e:
            logger.warning(
                "Agent-only lock check failed, treating as unlocked",
                extra={"case_id": case_id, "error": str(e)}
            )
            return False

    async def lock(self, case_id: str, ttl_seconds: int) -> None:
        try:
            await self._redis.set(agent_only_key(case_id), "1", ex=ttl_seconds)
        except RedisError as e:
            logger.error(
                "Failed to set agent-only lock",
                extra={"case_id": case_id, "error": str(e)}
            )

    async def unlock(self, case_id: str) -> None:
        try:
            await self._redis.delete(agent_only_key(case_id))
        except RedisError as e:
            logger.error(
                "Failed to clear agent-only lock",
                extra={"case_id": case_id, "error": str(e)}
            )
