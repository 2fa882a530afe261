"""Repository para clientes y su lista de planes."""

import logging
from typing import Any

from sqlalchemy import select

from gimnasio.db.models import ClientModel
from gimnasio.db.repositories.base import SQLAlchemyRepository
from gimnasio.domain.entities.client import Client
from gimnasio.domain.repositories.base import IClientRepository
from gimnasio.utils.errors import NotFoundError

logger = logging.getLogger(__name__)


class ClientRepository(SQLAlchemyRepository[Client, ClientModel], IClientRepository):
    """Repository para operaciones CRUD de clientes."""

    model = ClientModel
    default_sort = [("last_name", False), ("first_name", False)]
    # plan_ids solo cambia vía add_plan/remove_plan
    immutable_fields = frozenset({"id", "plan_ids"})

    def _to_entity(self, model: ClientModel) -> Client:
        return Client(
            id=model.id,
            first_name=model.first_name,
            last_name=model.last_name,
            email=model.email,
            phone=model.phone,
            active=model.active,
            plan_ids=list(model.plan_ids or []),
            registered_at=model.registered_at,
        )

    def _to_values(self, entity: Client) -> dict[str, Any]:
        values = {
            "id": entity.id,
            "first_name": entity.first_name,
            "last_name": entity.last_name,
            "email": entity.email,
            "phone": entity.phone,
            "active": entity.active,
            "plan_ids": list(dict.fromkeys(entity.plan_ids)),
        }
        if entity.registered_at:
            values["registered_at"] = entity.registered_at
        return values

    async def _get_for_update(self, client_id: str) -> ClientModel:
        result = await self.session.execute(
            select(ClientModel)
            .where(ClientModel.id == client_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        model = result.scalar_one_or_none()
        if model is None:
            raise NotFoundError("Cliente", client_id)
        return model

    async def lock(self, client_id: str) -> Client:
        """Lee el cliente con su fila bloqueada; falla si no existe."""
        return self._to_entity(await self._get_for_update(client_id))

    async def add_plan(self, client_id: str, plan_id: str) -> bool:
        """Agrega un plan al cliente si no lo tiene."""
        model = await self._get_for_update(client_id)
        current = list(model.plan_ids or [])
        if plan_id in current:
            return False
        model.plan_ids = [*current, plan_id]
        await self.session.flush()
        logger.debug(f"Plan {plan_id} agregado al cliente {client_id}")
        return True

    async def remove_plan(self, client_id: str, plan_id: str) -> bool:
        """Quita un plan del cliente si lo tiene."""
        model = await self._get_for_update(client_id)
        current = list(model.plan_ids or [])
        if plan_id not in current:
            return False
        model.plan_ids = [pid for pid in current if pid != plan_id]
        await self.session.flush()
        logger.debug(f"Plan {plan_id} removido del cliente {client_id}")
        return True
