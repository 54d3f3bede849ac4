"""
Shared API Dependencies
=======================

FastAPI dependencies exposing the process-wide resources created in the
application lifespan (stored on app.state).
"""

from fastapi import Request
from redis.asyncio import Redis

from casedesk.config import Settings, settings as default_settings
from casedesk.infrastructure.llm import ILLMClient
from casedesk.infrastructure.realtime import EventBus
from casedesk.sla.application import ITriageConfigProvider


def get_app_settings(request: Request) -> Settings:
    return getattr(request.app.state, "settings", default_settings)


def get_config_provider(request: Request) -> ITriageConfigProvider:
    return request.app.state.triage_config


def get_event_bus(request: Request) -> EventBus:
    return request.app.state.event_bus


def get_redis_client(request: Request) -> Redis:
    return request.app.state.redis


def get_llm_client(request: Request) -> ILLMClient:
    return request.app.state.llm_client
