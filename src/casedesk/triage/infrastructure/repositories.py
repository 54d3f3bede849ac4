"""
Triage Infrastructure Repositories
====================================

SQLAlchemy implementations of the FAQ and case-memory repositories.
"""

from datetime import datetime, timezone
from typing import Dict, List, Optional
from uuid import uuid4

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from casedesk.shared.infrastructure.logging import get_logger
from casedesk.triage.application import ICaseMemoryRepository, IFaqRepository
from casedesk.triage.domain import CaseMemoryRecord, FaqEntry
from casedesk.triage.infrastructure.models import CaseMemoryModel, FaqModel

logger = get_logger(__name__)


class SQLAlchemyFaqRepository(IFaqRepository):
    """SQLAlchemy implementation for the FAQ corpus."""

    def __init__(self, session: AsyncSession):
        self._session = session

    @staticmethod
    def _to_domain(model: FaqModel) -> FaqEntry:
        return FaqEntry(
            id=str(model.id),
            question=model.question,
            answer=model.answer,
            domain=model.domain,
            embedding=list(model.embedding or []),
        )

    async def list_by_domain(self, domain: Optional[str]) -> List[FaqEntry]:
        stmt = select(FaqModel)
        if domain:
            stmt = stmt.where(FaqModel.domain == domain)
        stmt = stmt.order_by(FaqModel.created_at, FaqModel.question)
        result = await self._session.execute(stmt)
        return [self._to_domain(m) for m in result.scalars().all()]

    async def exists(self, question: str, domain: str) -> bool:
        stmt = select(FaqModel.id).where(
            FaqModel.domain == domain,
            FaqModel.question == question,
        )
        result = await self._session.execute(stmt)
        return result.first() is not None

    async def create(self, entry: FaqEntry) -> FaqEntry:
        model = FaqModel(
            id=uuid4(),
            question=entry.question,
            answer=entry.answer,
            domain=entry.domain,
            embedding=list(entry.embedding),
        )
        self._session.add(model)
        await self._session.flush()
        return self._to_domain(model)

    async def count_by_domain(self) -> Dict[str, int]:
        stmt = select(FaqModel.domain, func.count(FaqModel.id)).group_by(FaqModel.domain)
        result = await self._session.execute(stmt)
        return {domain: count for domain, count in result.all()}


class SQLAlchemyCaseMemoryRepository(ICaseMemoryRepository):
    """
    SQLAlchemy implementation for case memory.

    One row per case id. Upserts update in place; a concurrent insert for
    the same case is retried as an update.
    """

    def __init__(self, session: AsyncSession):
        self._session = session

    @staticmethod
    def _to_domain(model: CaseMemoryModel) -> CaseMemoryRecord:
        return CaseMemoryRecord(
            case_id=model.case_id,
            summary=model.summary,
            domain=model.domain,
            embedding=list(model.embedding or []),
            order_id=model.order_id,
            product_index=model.product_index,
            updated_at=model.updated_at,
        )

    async def _get(self, case_id: str) -> Optional[CaseMemoryModel]:
        result = await self._session.execute(
            select(CaseMemoryModel).where(CaseMemoryModel.case_id == case_id)
        )
        return result.scalar_one_or_none()

    @staticmethod
    def _apply(model: CaseMemoryModel, record: CaseMemoryRecord) -> None:
        model.summary = record.summary
        model.domain = record.domain
        model.embedding = list(record.embedding)
        model.order_id = record.order_id
        model.product_index = record.product_index
        model.updated_at = datetime.now(timezone.utc)

    async def upsert(self, record: CaseMemoryRecord) -> None:
        model = await self._get(record.case_id)
        if model is not None:
            self._apply(model, record)
            await self._session.flush()
            return

        model = CaseMemoryModel(id=uuid4(), case_id=record.case_id)
        self._apply(model, record)
        try:
            async with self._session.begin_nested():
                self._session.add(model)
        except IntegrityError:
            logger.info(
                "Concurrent case memory insert, updating existing row",
                extra={"case_id": record.case_id}
            )
            existing = await self._get(record.case_id)
            if existing is None:
                raise
            self._apply(existing, record)
            await self._session.flush()

    async def list_by_domain(
        self,
        domain: Optional[str],
        limit: int,
        exclude_case_id: Optional[str] = None
    ) -> List[CaseMemoryRecord]:
        stmt = select(CaseMemoryModel)
        if domain:
            stmt = stmt.where(CaseMemoryModel.domain == domain)
        if exclude_case_id:
            stmt = stmt.where(CaseMemoryModel.case_id != exclude_case_id)
        stmt = stmt.order_by(CaseMemoryModel.updated_at.desc()).limit(limit)
        result = await self._session.execute(stmt)
        return [self._to_domain(m) for m in result.scalars().all()]

    async def count(self) -> int:
        result = await self._session.execute(select(func.count(CaseMemoryModel.id)))
        return result.scalar_one()
