"""Repository para contratos."""

import logging
from datetime import datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import update

from gimnasio.db.models import ContractModel
from gimnasio.db.repositories.base import SQLAlchemyRepository
from gimnasio.domain.entities.contract import Contract, ContractStatus
from gimnasio.domain.repositories.base import IContractRepository
from gimnasio.utils.errors import ValidationError

logger = logging.getLogger(__name__)


class ContractRepository(SQLAlchemyRepository[Contract, ContractModel], IContractRepository):
    """Repository para operaciones CRUD de contratos."""

    model = ContractModel
    default_sort = [("start_date", True)]
    immutable_fields = frozenset({"id", "client_id", "plan_id", "created_at"})

    def _to_entity(self, model: ContractModel) -> Contract:
        return Contract(
            id=model.id,
            client_id=model.client_id,
            plan_id=model.plan_id,
            price=Decimal(model.price),
            start_date=model.start_date,
            end_date=model.end_date,
            status=ContractStatus(model.status),
            conditions=model.conditions or "",
            duration_months=model.duration_months,
            previous_contract_id=model.previous_contract_id,
            cancellation_reason=model.cancellation_reason,
            renewed_at=model.renewed_at,
            created_at=model.created_at,
        )

    def _to_values(self, entity: Contract) -> dict[str, Any]:
        values = {
            "id": entity.id,
            "client_id": entity.client_id,
            "plan_id": entity.plan_id,
            "conditions": entity.conditions,
            "duration_months": entity.duration_months,
            "price": entity.price,
            "start_date": entity.start_date,
            "end_date": entity.end_date,
            "status": entity.status.value,
            "previous_contract_id": entity.previous_contract_id,
            "cancellation_reason": entity.cancellation_reason,
            "renewed_at": entity.renewed_at,
        }
        if entity.created_at:
            values["created_at"] = entity.created_at
        return values

    async def find_vigente(self, client_id: str, plan_id: str) -> list[Contract]:
        """Contratos vigentes para el par (cliente, plan)."""
        return await self.get_all(
            {"client_id": client_id, "plan_id": plan_id, "status": ContractStatus.VIGENTE}
        )

    async def get_by_client(self, client_id: str) -> list[Contract]:
        """Contratos de un cliente, más recientes primero."""
        return await self.get_all({"client_id": client_id})

    async def update_in_status(
        self,
        id: str,
        statuses: set[ContractStatus],
        patch: dict[str, Any],
    ) -> bool:
        """Parche condicionado al estado actual. False si el estado ya cambió."""
        forbidden = set(patch) & (self.immutable_fields | {"status"})
        if forbidden:
            raise ValidationError(
                f"Campos no modificables: {', '.join(sorted(forbidden))}",
                field=sorted(forbidden)[0],
            )
        values = {self._column(name).key: self._coerce(value) for name, value in patch.items()}
        result = await self.session.execute(
            update(ContractModel)
            .where(
                ContractModel.id == id,
                ContractModel.status.in_([s.value for s in statuses]),
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount > 0

    async def transition(
        self,
        id: str,
        from_statuses: set[ContractStatus],
        to_status: ContractStatus,
        patch: dict[str, Any] | None = None,
    ) -> bool:
        """Cambio de estado condicionado al estado actual (compare-and-set)."""
        values = {self._column(name).key: self._coerce(value) for name, value in (patch or {}).items()}
        values["status"] = to_status.value
        result = await self.session.execute(
            update(ContractModel)
            .where(
                ContractModel.id == id,
                ContractModel.status.in_([s.value for s in from_statuses]),
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        changed = result.rowcount > 0
        if changed:
            logger.debug(f"Contrato {id} -> {to_status.value}")
        return changed

    async def get_overdue(self, now: datetime) -> list[Contract]:
        """Contratos vigentes con fecha de fin pasada."""
        query = self._select().where(
            ContractModel.status == ContractStatus.VIGENTE.value,
            ContractModel.end_date < now,
        ).order_by(ContractModel.end_date.asc())
        result = await self.session.execute(query)
        return [self._to_entity(model) for model in result.scalars().all()]

    async def get_expiring(self, now: datetime, until: datetime) -> list[Contract]:
        """Contratos vigentes que vencen en la ventana [now, until]."""
        query = self._select().where(
            ContractModel.status == ContractStatus.VIGENTE.value,
            ContractModel.end_date >= now,
            ContractModel.end_date <= until,
        ).order_by(ContractModel.end_date.asc())
        result = await self.session.execute(query)
        return [self._to_entity(model) for model in result.scalars().all()]
