"""
Repository Pattern for database access with built-in partner isolation.

Usage:
    from backoffice.services.crud.repository import PartnerRepository, BranchRepository

    courier_repo = PartnerRepository(Courier, db)
    couriers = courier_repo.find_all(partner_id=1, where=[Courier.is_own.is_(True)])
    courier = courier_repo.find_by_id(42, partner_id=1)

    shift_repo = BranchRepository(Shift, db)
    shifts = shift_repo.find_by_branches([3, 4], partner_id=1)
"""

from __future__ import annotations

from typing import Any, Generic, Sequence, TypeVar

from sqlalchemy import select
from sqlalchemy.orm import Session
from sqlalchemy.sql import Select

from backoffice.models import Base

ModelT = TypeVar("ModelT", bound=Base)


class PartnerRepository(Generic[ModelT]):
    """
    Repository with automatic multi-tenant isolation.

    All queries are filtered by partner_id. The model must have a
    `partner_id` column.
    """

    def __init__(self, model: type[ModelT], session: Session):
        if not hasattr(model, "partner_id"):
            raise AttributeError(f"Model {model.__name__} does not have partner_id column")
        self._model = model
        self._session = session

    def _partner_query(self, partner_id: int) -> Select:
        return select(self._model).where(self._model.partner_id == partner_id)

    @staticmethod
    def _apply(
        query: Select,
        *,
        where: Sequence[Any] | None = None,
        options: Sequence[Any] | None = None,
        order_by: Any | None = None,
        limit: int | None = None,
        offset: int | None = None,
    ) -> Select:
        if where:
            query = query.where(*where)
        if options:
            query = query.options(*options)
        if order_by is not None:
            if isinstance(order_by, (list, tuple)):
                query = query.order_by(*order_by)
            else:
                query = query.order_by(order_by)
        if offset is not None:
            query = query.offset(offset)
        if limit is not None:
            query = query.limit(limit)
        return query

    def find_by_id(
        self,
        entity_id: int,
        partner_id: int,
        *,
        options: Sequence[Any] | None = None,
        for_update: bool = False,
    ) -> ModelT | None:
        """Entity or None if not found or owned by another partner."""
        query = self._partner_query(partner_id).where(self._model.id == entity_id)
        query = self._apply(query, options=options)
        if for_update:
            query = query.with_for_update()
        return self._session.scalar(query)

    def find_all(
        self,
        partner_id: int,
        *,
        where: Sequence[Any] | None = None,
        options: Sequence[Any] | None = None,
        order_by: Any | None = None,
        limit: int | None = None,
        offset: int | None = None,
    ) -> Sequence[ModelT]:
        query = self._apply(
            self._partner_query(partner_id),
            where=where,
            options=options,
            order_by=order_by if order_by is not None else self._model.id,
            limit=limit,
            offset=offset,
        )
        return self._session.scalars(query).all()

    def find_one(self, partner_id: int, *where: Any) -> ModelT | None:
        query = self._partner_query(partner_id).where(*where).limit(1)
        return self._session.scalar(query)


class BranchRepository(PartnerRepository[ModelT]):
    """
    Repository for branch-scoped entities.
    The model must have both `partner_id` and `branch_id` columns.
    """

    def __init__(self, model: type[ModelT], session: Session):
        super().__init__(model, session)
        if not hasattr(model, "branch_id"):
            raise AttributeError(f"Model {model.__name__} does not have branch_id column")

    def branch_filter(self, branch_ids: Sequence[int] | None) -> list[Any]:
        """WHERE clause for a branch scope; None means every branch."""
        if branch_ids is None:
            return []
        return [self._model.branch_id.in_(list(branch_ids))]

    def find_by_branches(
        self,
        branch_ids: Sequence[int] | None,
        partner_id: int,
        *,
        where: Sequence[Any] | None = None,
        options: Sequence[Any] | None = None,
        order_by: Any | None = None,
        limit: int | None = None,
    ) -> Sequence[ModelT]:
        clauses = self.branch_filter(branch_ids) + list(where or [])
        return self.find_all(
            partner_id,
            where=clauses,
            options=options,
            order_by=order_by,
            limit=limit,
        )
