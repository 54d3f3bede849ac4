"""
Case Infrastructure Models
===========================

SQLAlchemy ORM models for the cases module.
"""

from datetime import datetime, timezone
from typing import Optional
from uuid import UUID, uuid4

from sqlalchemy import (
    DateTime, ForeignKey, Integer, String, Text, UniqueConstraint, Uuid
)
from sqlalchemy.orm import Mapped, mapped_column

from casedesk.config import CaseStatus, DEFAULT_DOMAIN, Priority
from casedesk.infrastructure.database import Base


class CaseModel(Base):
    """
    Database model for the Case entity.

    One row per (user, order, product index).
    """
    __tablename__ = "cases"
    __table_args__ = (
        UniqueConstraint("user_id", "order_id", "product_index", name="uq_cases_user_order_product"),
    )

    # Primary key
    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)

    # Business key
    user_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    order_id: Mapped[str] = mapped_column(String(255), nullable=False)
    product_index: Mapped[int] = mapped_column(Integer, nullable=False)

    # Classification
    domain: Mapped[str] = mapped_column(String(50), nullable=False, default=DEFAULT_DOMAIN)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    priority: Mapped[str] = mapped_column(String(10), nullable=False, default=Priority.LOW)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=CaseStatus.OPEN, index=True
    )

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc)
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc)
    )


class CaseResponseModel(Base):
    """
    Database model for one message appended to a case.

    `position` keeps the append order stable when timestamps collide.
    """
    __tablename__ = "case_responses"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)

    case_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("cases.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False)

    agent_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    message: Mapped[str] = mapped_column(Text, nullable=False)

    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc)
    )
