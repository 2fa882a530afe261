"""Repository para movimientos financieros."""

from decimal import Decimal
from typing import Any

from gimnasio.db.models import FinancialMovementModel
from gimnasio.db.repositories.base import SQLAlchemyRepository
from gimnasio.domain.entities.finance import FinancialMovement, MovementType
from gimnasio.domain.repositories.base import IFinancialMovementRepository


class FinancialMovementRepository(
    SQLAlchemyRepository[FinancialMovement, FinancialMovementModel],
    IFinancialMovementRepository,
):
    """Repository para operaciones CRUD de movimientos financieros."""

    model = FinancialMovementModel
    default_sort = [("date", True)]

    def _to_entity(self, model: FinancialMovementModel) -> FinancialMovement:
        return FinancialMovement(
            id=model.id,
            type=MovementType(model.type),
            amount=Decimal(model.amount),
            date=model.date,
            category=model.category,
            description=model.description,
            client_id=model.client_id,
            created_at=model.created_at,
        )

    def _to_values(self, entity: FinancialMovement) -> dict[str, Any]:
        return {
            "id": entity.id,
            "type": entity.type.value,
            "amount": entity.amount,
            "date": entity.date,
            "category": entity.category,
            "description": entity.description,
            "client_id": entity.client_id,
        }
