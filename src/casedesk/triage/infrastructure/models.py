"""
Triage Infrastructure Models
=============================

SQLAlchemy ORM models for the triage module.

Embeddings are stored as JSON arrays and scored in process, so both
corpora work on PostgreSQL and SQLite alike.
"""

from datetime import datetime, timezone
from typing import List, Optional
from uuid import UUID, uuid4

from sqlalchemy import JSON, DateTime, Integer, String, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from casedesk.config import DEFAULT_DOMAIN
from casedesk.infrastructure.database import Base


class FaqModel(Base):
    """
    Database model for one curated FAQ entry.

    A question appears at most once per domain.
    """
    __tablename__ = "faq_entries"
    __table_args__ = (
        UniqueConstraint("domain", "question", name="uq_faq_domain_question"),
    )

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)

    question: Mapped[str] = mapped_column(String(1000), nullable=False)
    answer: Mapped[str] = mapped_column(Text, nullable=False)
    domain: Mapped[str] = mapped_column(
        String(50), nullable=False, default=DEFAULT_DOMAIN, index=True
    )
    embedding: Mapped[List[float]] = mapped_column(JSON, nullable=False, default=list)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc)
    )


class CaseMemoryModel(Base):
    """
    Database model for the searchable summary of one case.

    Keyed by case id: re-indexing overwrites the row.
    """
    __tablename__ = "case_memories"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)

    case_id: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    summary: Mapped[str] = mapped_column(Text, nullable=False)
    domain: Mapped[str] = mapped_column(
        String(50), nullable=False, default=DEFAULT_DOMAIN, index=True
    )
    embedding: Mapped[List[float]] = mapped_column(JSON, nullable=False, default=list)

    order_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    product_index: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc)
    )
