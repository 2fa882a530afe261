"""
Association Manager - Referencias cruzadas cliente <-> plan.

`Client.plan_ids` y `Plan.client_ids` son espejos: cada cambio toca ambos
lados dentro de la misma unidad atómica del llamador, por lo que nunca
queda un lado actualizado sin el otro.
"""

import logging

from gimnasio.db.unit_of_work import UnitOfWork

logger = logging.getLogger(__name__)


class AssociationManager:
    """Mantiene la simetría de la relación muchos-a-muchos cliente-plan."""

    async def link(self, unit: UnitOfWork, client_id: str, plan_id: str) -> bool:
        """
        Asocia cliente y plan en ambos lados. Idempotente.

        Returns:
            True si alguno de los dos lados cambió
        """
        unit.require_atomic("link")
        client_changed = await unit.clients.add_plan(client_id, plan_id)
        plan_changed = await unit.plans.add_client(plan_id, client_id)

        changed = client_changed or plan_changed
        if changed:
            logger.info(f"Asociados cliente {client_id} y plan {plan_id}")
        return changed

    async def unlink(self, unit: UnitOfWork, client_id: str, plan_id: str) -> bool:
        """
        Quita la asociación en ambos lados. Idempotente.

        Returns:
            True si alguno de los dos lados cambió
        """
        unit.require_atomic("unlink")
        client_changed = await unit.clients.remove_plan(client_id, plan_id)
        plan_changed = await unit.plans.remove_client(plan_id, client_id)

        changed = client_changed or plan_changed
        if changed:
            logger.info(f"Desasociados cliente {client_id} y plan {plan_id}")
        return changed

    async def unlink_all(self, unit: UnitOfWork, client_id: str) -> list[str]:
        """Quita todas las asociaciones de un cliente. Devuelve los planes afectados."""
        unit.require_atomic("unlink_all")
        client = await unit.clients.get(client_id)
        if client is None:
            return []

        unlinked = []
        for plan_id in list(client.plan_ids):
            await self.unlink(unit, client_id, plan_id)
            unlinked.append(plan_id)
        return unlinked
