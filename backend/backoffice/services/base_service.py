"""
Base Service Classes.

Architecture:
    Router (thin) -> Service (business logic) -> Repository (data access) -> Model

Usage:
    from backoffice.services.base_service import BaseCRUDService

    class PaymentMethodService(BaseCRUDService[PaymentMethod, PaymentMethodOutput]):
        def __init__(self, db: Session):
            super().__init__(
                db=db,
                model=PaymentMethod,
                output_schema=PaymentMethodOutput,
                entity_name="Payment method",
                log_section=LogSection.PAYMENT_METHODS,
            )
"""

from __future__ import annotations

from typing import Any, Generic, Sequence, Type, TypeVar

from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from backoffice.models import Base
from backoffice.services.crud.repository import PartnerRepository
from backoffice.services.domain.log_service import record_log
from shared.config.logging import get_logger
from shared.infrastructure.db import safe_commit
from shared.utils.exceptions import DatabaseError, NotFoundError, ValidationError

logger = get_logger(__name__)

ModelT = TypeVar("ModelT", bound=Base)
OutputT = TypeVar("OutputT", bound=BaseModel)


class BaseService(Generic[ModelT]):
    """Common infrastructure for domain services (session, repository)."""

    def __init__(self, db: Session, model: Type[ModelT]):
        self._db = db
        self._model = model
        self._repo = PartnerRepository(model, db)

    def _commit(self, operation: str, **log_context: Any) -> None:
        """Commit, turning database failures into DatabaseError."""
        try:
            safe_commit(self._db)
        except SQLAlchemyError as e:
            logger.error(f"Failed to {operation}", error=str(e), **log_context)
            raise DatabaseError(operation, **log_context)


class BaseCRUDService(BaseService[ModelT], Generic[ModelT, OutputT]):
    """
    Partner-scoped CRUD with validation and lifecycle hooks.

    Every mutation is recorded in the partner's domain log when the service
    has a log_section.
    """

    def __init__(
        self,
        db: Session,
        model: Type[ModelT],
        output_schema: Type[OutputT],
        entity_name: str,
        *,
        log_section: str | None = None,
    ):
        super().__init__(db, model)
        self._output_schema = output_schema
        self._entity_name = entity_name
        self._log_section = log_section

    @property
    def entity_name(self) -> str:
        return self._entity_name

    # =========================================================================
    # Read Operations
    # =========================================================================

    def get_entity(self, entity_id: int, partner_id: int) -> ModelT:
        """Raw entity, raising NotFoundError."""
        entity = self._repo.find_by_id(entity_id, partner_id)
        if entity is None:
            raise NotFoundError(self._entity_name, entity_id, partner_id=partner_id)
        return entity

    def get_by_id(self, entity_id: int, partner_id: int) -> OutputT:
        return self.to_output(self.get_entity(entity_id, partner_id))

    def list_all(
        self,
        partner_id: int,
        *,
        where: Sequence[Any] | None = None,
        order_by: Any | None = None,
        limit: int | None = None,
    ) -> list[OutputT]:
        entities = self._repo.find_all(partner_id, where=where, order_by=order_by, limit=limit)
        return [self.to_output(e) for e in entities]

    # =========================================================================
    # Write Operations
    # =========================================================================

    def create(self, data: dict[str, Any], partner_id: int, user_id: int | None) -> OutputT:
        """
        Create new entity.

        Raises:
            ValidationError: If data is invalid.
            DatabaseError: If creation fails.
        """
        data = self._validate_create(dict(data), partner_id)
        data["partner_id"] = partner_id

        entity = self._model(**data)
        self._before_create(entity, data)
        self._db.add(entity)
        self._db.flush()
        self._record(partner_id, user_id, "create", f"{self._entity_name} created", entity)
        self._commit(f"create {self._entity_name.lower()}", partner_id=partner_id)
        self._db.refresh(entity)

        self._after_create(entity, user_id)
        return self.to_output(entity)

    def update(
        self,
        entity_id: int,
        data: dict[str, Any],
        partner_id: int,
        user_id: int | None,
    ) -> OutputT:
        """
        Update existing entity with the fields present in data.

        Raises:
            NotFoundError: If entity not found.
            ValidationError: If data is invalid.
        """
        entity = self.get_entity(entity_id, partner_id)
        data = self._validate_update(entity, dict(data), partner_id)

        for field_name, value in data.items():
            if hasattr(entity, field_name):
                setattr(entity, field_name, value)

        self._record(
            partner_id,
            user_id,
            "update",
            f"{self._entity_name} updated",
            entity,
            fields=sorted(data.keys()),
        )
        self._commit(f"update {self._entity_name.lower()}", entity_id=entity_id)
        self._db.refresh(entity)

        self._after_update(entity, user_id)
        return self.to_output(entity)

    def delete(self, entity_id: int, partner_id: int, user_id: int | None) -> dict[str, Any]:
        """
        Delete entity. Returns the entity info captured before deletion.
        """
        entity = self.get_entity(entity_id, partner_id)
        self._validate_delete(entity, partner_id)

        entity_info = self._entity_info(entity)
        self._before_delete(entity)
        self._db.delete(entity)
        self._record(partner_id, user_id, "delete", f"{self._entity_name} deleted", entity)
        self._commit(f"delete {self._entity_name.lower()}", entity_id=entity_id)

        self._after_delete(entity_info, user_id)
        return entity_info

    # =========================================================================
    # Transformation
    # =========================================================================

    def to_output(self, entity: ModelT) -> OutputT:
        return self._output_schema.model_validate(entity)

    # =========================================================================
    # Validation Hooks (override in subclasses)
    # =========================================================================

    def _validate_create(self, data: dict[str, Any], partner_id: int) -> dict[str, Any]:
        """Validate (and normalize) data before create."""
        return data

    def _validate_update(self, entity: ModelT, data: dict[str, Any], partner_id: int) -> dict[str, Any]:
        return data

    def _validate_delete(self, entity: ModelT, partner_id: int) -> None:
        pass

    # =========================================================================
    # Lifecycle Hooks (override in subclasses)
    # =========================================================================

    def _before_create(self, entity: ModelT, data: dict[str, Any]) -> None:
        pass

    def _after_create(self, entity: ModelT, user_id: int | None) -> None:
        pass

    def _after_update(self, entity: ModelT, user_id: int | None) -> None:
        pass

    def _before_delete(self, entity: ModelT) -> None:
        pass

    def _after_delete(self, entity_info: dict[str, Any], user_id: int | None) -> None:
        pass

    def _entity_info(self, entity: ModelT) -> dict[str, Any]:
        return {
            "id": entity.id,
            "name": getattr(entity, "name", None),
            "partner_id": getattr(entity, "partner_id", None),
            "branch_id": getattr(entity, "branch_id", None),
        }

    # =========================================================================
    # Internal Helpers
    # =========================================================================

    def _require_name(self, data: dict[str, Any], field: str = "name") -> None:
        """Strip a required text field in place; empty values are rejected."""
        if field not in data:
            return
        value = (data[field] or "").strip()
        if not value:
            raise ValidationError(f"{self._entity_name} {field} is required", field=field)
        data[field] = value

    def _record(
        self,
        partner_id: int,
        user_id: int | None,
        action: str,
        message: str,
        entity: ModelT,
        **details: Any,
    ) -> None:
        if self._log_section is None:
            return
        record_log(
            self._db,
            partner_id=partner_id,
            section=self._log_section,
            message=message,
            action=action,
            user_id=user_id,
            details={"id": entity.id, "name": getattr(entity, "name", None), **details},
        )
