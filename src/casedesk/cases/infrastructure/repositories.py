"""
Case Infrastructure Repositories
=================================

SQLAlchemy implementation of the case repository.
"""

from collections import defaultdict
from typing import Dict, List, Optional, Tuple
from uuid import UUID, uuid4

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from casedesk.cases.application import ICaseRepository
from casedesk.cases.domain import Case, CaseResponse
from casedesk.cases.infrastructure.models import CaseModel, CaseResponseModel
from casedesk.core import PersistenceConflictException
from casedesk.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)


def _parse_uuid(value: str) -> Optional[UUID]:
    try:
        return UUID(str(value))
    except ValueError:
        return None


class SQLAlchemyCaseRepository(ICaseRepository):
    """
    SQLAlchemy implementation for cases.

    Upserts select first and insert when missing. A concurrent insert of
    the same (user, order, product) key surfaces as an IntegrityError;
    only the savepoint around the insert is rolled back and the winner's
    row is updated instead.
    """

    def __init__(self, session: AsyncSession):
        self._session = session

    # ----- mapping -----

    @staticmethod
    def _to_domain(model: CaseModel, responses: List[CaseResponseModel]) -> Case:
        return Case(
            id=str(model.id),
            user_id=model.user_id,
            order_id=model.order_id,
            product_index=model.product_index,
            domain=model.domain,
            description=model.description,
            priority=model.priority,
            status=model.status,
            responses=[
                CaseResponse(message=r.message, agent_id=r.agent_id, timestamp=r.timestamp)
                for r in responses
            ],
            created_at=model.created_at,
            updated_at=model.updated_at,
        )

    async def _responses_for(self, case_ids: List[UUID]) -> Dict[UUID, List[CaseResponseModel]]:
        grouped: Dict[UUID, List[CaseResponseModel]] = defaultdict(list)
        if not case_ids:
            return grouped
        stmt = (
            select(CaseResponseModel)
            .where(CaseResponseModel.case_id.in_(case_ids))
            .order_by(CaseResponseModel.case_id, CaseResponseModel.position)
        )
        result = await self._session.execute(stmt)
        for row in result.scalars().all():
            grouped[row.case_id].append(row)
        return grouped

    async def _hydrate(self, model: Optional[CaseModel]) -> Optional[Case]:
        if model is None:
            return None
        responses = await self._responses_for([model.id])
        return self._to_domain(model, responses.get(model.id, []))

    async def _hydrate_all(self, models: List[CaseModel]) -> List[Case]:
        responses = await self._responses_for([m.id for m in models])
        return [self._to_domain(m, responses.get(m.id, [])) for m in models]

    async def _model_by_key(
        self, user_id: str, order_id: str, product_index: int
    ) -> Optional[CaseModel]:
        stmt = select(CaseModel).where(
            CaseModel.user_id == user_id,
            CaseModel.order_id == order_id,
            CaseModel.product_index == product_index,
        )
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def _model_by_id(self, case_id: str) -> Optional[CaseModel]:
        case_uuid = _parse_uuid(case_id)
        if case_uuid is None:
            return None
        result = await self._session.execute(select(CaseModel).where(CaseModel.id == case_uuid))
        return result.scalar_one_or_none()

    @staticmethod
    def _apply(model: CaseModel, case: Case) -> None:
        model.description = case.description
        model.priority = case.priority
        model.domain = case.domain
        model.status = case.status
        model.updated_at = case.updated_at

    def _new_model(self, case: Case) -> CaseModel:
        return CaseModel(
            id=uuid4(),
            user_id=case.user_id,
            order_id=case.order_id,
            product_index=case.product_index,
            domain=case.domain,
            description=case.description,
            priority=case.priority,
            status=case.status,
            created_at=case.created_at,
            updated_at=case.updated_at,
        )

    async def _insert(self, case: Case) -> Optional[CaseModel]:
        """Insert a new row; returns None when the key was taken concurrently."""
        model = self._new_model(case)
        try:
            async with self._session.begin_nested():
                self._session.add(model)
        except IntegrityError:
            logger.info(
                "Concurrent case insert, using existing row",
                extra={"user_id": case.user_id, "order_id": case.order_id}
            )
            return None
        return model

    async def _winner(self, case: Case) -> CaseModel:
        model = await self._model_by_key(case.user_id, case.order_id, case.product_index)
        if model is None:
            raise PersistenceConflictException(
                "Case insert conflicted but no existing row was found",
                details={"user_id": case.user_id, "order_id": case.order_id}
            )
        return model

    # ----- ICaseRepository -----

    async def get_by_id(self, case_id: str) -> Optional[Case]:
        return await self._hydrate(await self._model_by_id(case_id))

    async def get_by_key(
        self, user_id: str, order_id: str, product_index: int
    ) -> Optional[Case]:
        return await self._hydrate(await self._model_by_key(user_id, order_id, product_index))

    async def get_or_create(self, case: Case) -> Tuple[Case, bool]:
        existing = await self._model_by_key(case.user_id, case.order_id, case.product_index)
        if existing is not None:
            return await self._hydrate(existing), False

        model = await self._insert(case)
        if model is None:
            return await self._hydrate(await self._winner(case)), False
        return self._to_domain(model, []), True

    async def upsert(self, case: Case) -> Case:
        model = await self._model_by_key(case.user_id, case.order_id, case.product_index)
        if model is None:
            model = await self._insert(case)
            if model is not None:
                return self._to_domain(model, [])
            model = await self._winner(case)

        self._apply(model, case)
        await self._session.flush()
        return await self._hydrate(model)

    async def save(self, case: Case) -> Case:
        model = await self._model_by_id(case.id)
        if model is None:
            raise PersistenceConflictException(
                f"Case '{case.id}' no longer exists", details={"case_id": case.id}
            )
        self._apply(model, case)
        await self._session.flush()
        return case

    async def append_response(self, case_id: str, response: CaseResponse) -> None:
        case_uuid = _parse_uuid(case_id)
        stmt = select(func.coalesce(func.max(CaseResponseModel.position), 0)).where(
            CaseResponseModel.case_id == case_uuid
        )
        last_position = (await self._session.execute(stmt)).scalar_one()

        self._session.add(CaseResponseModel(
            id=uuid4(),
            case_id=case_uuid,
            position=last_position + 1,
            agent_id=response.agent_id,
            message=response.message,
            timestamp=response.timestamp,
        ))
        await self._session.flush()

    async def list_by_user(self, user_id: str) -> List[Case]:
        stmt = (
            select(CaseModel)
            .where(CaseModel.user_id == user_id)
            .order_by(CaseModel.updated_at.desc())
        )
        result = await self._session.execute(stmt)
        return await self._hydrate_all(list(result.scalars().all()))

    async def list(
        self,
        filters: dict,
        limit: int = 100,
        offset: int = 0
    ) -> List[Case]:
        stmt = select(CaseModel)
        if filters.get("status"):
            stmt = stmt.where(CaseModel.status == filters["status"])
        if filters.get("priority"):
            stmt = stmt.where(CaseModel.priority == filters["priority"])
        if filters.get("domain"):
            stmt = stmt.where(CaseModel.domain == filters["domain"])
        stmt = stmt.order_by(CaseModel.updated_at.desc()).limit(limit).offset(offset)

        result = await self._session.execute(stmt)
        return await self._hydrate_all(list(result.scalars().all()))

    async def count_by_status(self) -> Dict[str, int]:
        stmt = select(CaseModel.status, func.count(CaseModel.id)).group_by(CaseModel.status)
        result = await self._session.execute(stmt)
        return {status: count for status, count in result.all()}

    async def commit(self) -> None:
        await self._session.commit()
