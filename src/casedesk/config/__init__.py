"""
Configuration Module
====================

Application settings and configuration management using Pydantic.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, field_validator
from functools import lru_cache
from pathlib import Path
from typing import List, Optional


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Uses Pydantic for validation and type safety.
    """

    # ========== Application ==========
    app_name: str = Field(default="casedesk", description="Application name")
    app_version: str = Field(default="1.0.0", description="Application version")
    environment: str = Field(default="development", description="Environment name")
    debug: bool = Field(default=False, description="Enable debug mode")
    log_level: str = Field(default="INFO", description="Root log level")

    # ========== Server ==========
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=8000, description="Server port", ge=1, le=65535)

    # ========== Database ==========
    database_url: str = Field(
        default="postgresql+asyncpg://localhost:5432/casedesk",
        description="PostgreSQL connection URL (async)"
    )
    db_pool_size: int = Field(default=5, description="Database connection pool size", ge=1)
    db_max_overflow: int = Field(default=10, description="Max overflow connections", ge=0)

    # ========== Redis (locks, chat log, session state) ==========
    redis_url: str = Field(
        default="redis://localhost:6379/0",
        description="Redis connection URL"
    )
    redis_password: Optional[str] = Field(default=None, description="Redis password")
    redis_timeout_seconds: float = Field(
        default=2.0,
        description="Socket timeout for each Redis call",
        ge=0.1,
        le=30
    )

    # ========== Triage configuration file ==========
    triage_config_path: Path = Field(
        default=Path("triage_config.yaml"),
        description="Path to the triage/SLA tunables YAML file"
    )

    # ========== Triage defaults (overridable by the YAML file) ==========
    faq_similarity_threshold: float = Field(default=0.76, ge=0.0, le=1.0)
    faq_top_k: int = Field(default=3, ge=1, le=50)
    case_memory_threshold: float = Field(default=0.72, ge=0.0, le=1.0)
    case_memory_top_k: int = Field(default=3, ge=1, le=50)
    agent_only_ttl_seconds: int = Field(default=1800, ge=1)
    chat_log_retention_seconds: int = Field(default=86400, ge=1)
    selected_product_ttl_seconds: int = Field(default=3600, ge=1)
    seed_faqs_on_startup: bool = Field(
        default=False,
        description="Seed the built-in FAQ catalogue at startup (existing entries are skipped)"
    )
    sla_express_minutes: int = Field(default=15, ge=1)
    sla_standard_minutes: int = Field(default=60, ge=1)
    sla_batched_minutes: int = Field(default=180, ge=1)

    # ========== LLM (OpenAI-compatible endpoint) ==========
    llm_api_key: Optional[str] = Field(
        default=None,
        description="API key for the OpenAI-compatible generative/embedding endpoint"
    )
    llm_base_url: Optional[str] = Field(
        default=None,
        description="Base URL of the OpenAI-compatible endpoint (None = api.openai.com)"
    )
    llm_models: List[str] = Field(
        default=[
            "gemini-2.0-flash",
            "gemini-2.5-pro",
            "gemini-2.5-flash",
            "gemini-2.5-flash-lite",
            "gemini-2.0-flash-lite",
        ],
        description="Generative models, tried in order"
    )
    embedding_model: str = Field(
        default="text-embedding-004",
        description="Embedding model"
    )
    embedding_dimension: int = Field(
        default=768,
        description="Embedding vector dimension (used by the mock client)",
        ge=8
    )
    embedding_max_chars: int = Field(
        default=512,
        description="Input budget for a single embedding call",
        ge=16
    )
    llm_temperature: float = Field(
        default=0.3,
        description="Default temperature for LLM",
        ge=0.0,
        le=1.0
    )
    llm_max_tokens: int = Field(
        default=600,
        description="Default max tokens for LLM generation",
        ge=1,
        le=8000
    )
    llm_timeout_seconds: float = Field(
        default=20.0,
        description="Timeout for a single generative call",
        ge=0.5
    )
    embedding_timeout_seconds: float = Field(
        default=5.0,
        description="Timeout for a single embedding call",
        ge=0.5
    )
    mock_llm: bool = Field(
        default=False,
        description="Use mock LLM responses for testing (no API calls)"
    )

    # ========== CORS ==========
    cors_origins: List[str] = Field(
        default=["http://localhost:5173", "http://localhost:3000"],
        description="Allowed CORS origins"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Ensure environment is one of allowed values."""
        allowed = {"development", "staging", "production"}
        if v not in allowed:
            raise ValueError(f"environment must be one of {allowed}")
        return v

    @field_validator("llm_models")
    @classmethod
    def validate_llm_models(cls, v: List[str]) -> List[str]:
        """At least one generative model must be configured."""
        models = [m.strip() for m in v if m and m.strip()]
        if not models:
            raise ValueError("llm_models must contain at least one model")
        return models


@lru_cache()
def get_settings() -> Settings:
    """Returns cached Settings instance."""
    return Settings()


# Global settings instance
settings = get_settings()


# ========== Constants ==========

class Domain(str):
    """Business verticals partitioning the FAQ and case-memory corpora."""
    ECOMMERCE = "E-commerce"
    TRAVEL = "Travel"
    TELECOM = "Telecommunications"
    BANKING = "Banking Services"


class Priority(str):
    """Case priority levels."""
    HIGH = "high"
    LOW = "low"


class CaseStatus(str):
    """Case lifecycle statuses."""
    OPEN = "open"
    IN_PROGRESS = "in-progress"
    RESOLVED = "resolved"


class SentimentLabel(str):
    """Sentiment classifier labels."""
    ANGRY = "angry"
    NEUTRAL = "neutral"
    COOL = "cool"


class SLALevel(str):
    """Response-time tiers."""
    EXPRESS = "express"
    STANDARD = "standard"
    BATCHED = "batched"


class ReplySource(str):
    """Origin of a chat turn."""
    FAQ = "faq"
    CASE_MEMORY = "case-memory"
    LLM = "llm"
    REFUND = "refund"
    AGENT = "agent"
    USER = "user"


class UserRole(str):
    """Roles supplied by the identity gateway."""
    USER = "user"
    AGENT = "agent"


class Routing(str):
    """Where a conversation was routed."""
    HUMAN_AGENT = "human_agent"
    CS_AGENT = "cs_agent"


# ========== Lists for validation ==========

DOMAINS = [Domain.ECOMMERCE, Domain.TRAVEL, Domain.TELECOM, Domain.BANKING]
DEFAULT_DOMAIN = Domain.ECOMMERCE
VALID_PRIORITIES = [Priority.HIGH, Priority.LOW]
VALID_STATUSES = [CaseStatus.OPEN, CaseStatus.IN_PROGRESS, CaseStatus.RESOLVED]
VALID_ROLES = [UserRole.USER, UserRole.AGENT]
