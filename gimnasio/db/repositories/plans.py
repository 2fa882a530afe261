"""Repository para planes de entrenamiento y su lista de clientes."""

import logging
from typing import Any

from sqlalchemy import select

from gimnasio.db.models import PlanModel
from gimnasio.db.repositories.base import SQLAlchemyRepository
from gimnasio.domain.entities.plan import Plan, PlanLevel, PlanStatus
from gimnasio.domain.repositories.base import IPlanRepository
from gimnasio.utils.errors import NotFoundError

logger = logging.getLogger(__name__)


class PlanRepository(SQLAlchemyRepository[Plan, PlanModel], IPlanRepository):
    """Repository para operaciones CRUD de planes."""

    model = PlanModel
    default_sort = [("name", False)]
    immutable_fields = frozenset({"id", "client_ids"})

    def _to_entity(self, model: PlanModel) -> Plan:
        return Plan(
            id=model.id,
            name=model.name,
            duration_weeks=model.duration_weeks,
            goals=model.goals,
            level=PlanLevel(model.level),
            status=PlanStatus(model.status),
            client_ids=list(model.client_ids or []),
            created_at=model.created_at,
        )

    def _to_values(self, entity: Plan) -> dict[str, Any]:
        return {
            "id": entity.id,
            "name": entity.name,
            "duration_weeks": entity.duration_weeks,
            "goals": entity.goals,
            "level": entity.level.value,
            "status": entity.status.value,
            "client_ids": list(dict.fromkeys(entity.client_ids)),
        }

    async def _get_for_update(self, plan_id: str) -> PlanModel:
        result = await self.session.execute(
            select(PlanModel)
            .where(PlanModel.id == plan_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        model = result.scalar_one_or_none()
        if model is None:
            raise NotFoundError("Plan", plan_id)
        return model

    async def add_client(self, plan_id: str, client_id: str) -> bool:
        """Agrega un cliente al plan si no lo tiene."""
        model = await self._get_for_update(plan_id)
        current = list(model.client_ids or [])
        if client_id in current:
            return False
        model.client_ids = [*current, client_id]
        await self.session.flush()
        logger.debug(f"Cliente {client_id} agregado al plan {plan_id}")
        return True

    async def remove_client(self, plan_id: str, client_id: str) -> bool:
        """Quita un cliente del plan si lo tiene."""
        model = await self._get_for_update(plan_id)
        current = list(model.client_ids or [])
        if client_id not in current:
            return False
        model.client_ids = [cid for cid in current if cid != client_id]
        await self.session.flush()
        logger.debug(f"Cliente {client_id} removido del plan {plan_id}")
        return True
