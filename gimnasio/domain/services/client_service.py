"""
Client Service - Baja de clientes.

La baja no borra al cliente: cancela sus contratos (si se fuerza), limpia
sus seguimientos, rompe todas sus asociaciones y lo marca inactivo.
"""

import logging
from dataclasses import dataclass, field

from gimnasio.db.unit_of_work import EntityStore, UnitOfWork, get_entity_store
from gimnasio.domain.entities.contract import ContractStatus
from gimnasio.domain.services.association_manager import AssociationManager
from gimnasio.domain.services.compensation_engine import (
    CompensationEngine,
    CompensationResult,
)
from gimnasio.domain.services.contract_service import ContractService, get_contract_service
from gimnasio.utils.errors import CompensationWarning, ConflictError, NotFoundError

logger = logging.getLogger(__name__)

OPEN_STATUSES = [ContractStatus.VIGENTE, ContractStatus.VENCIDO]


@dataclass
class OffboardingResult:
    """Resultado de dar de baja a un cliente."""

    client_id: str
    cancelled_contract_ids: list[str] = field(default_factory=list)
    unlinked_plan_ids: list[str] = field(default_factory=list)
    compensated: CompensationResult | None = None
    warnings: list[CompensationWarning] = field(default_factory=list)


class ClientService:
    """Operaciones de cliente que cruzan varios agregados."""

    def __init__(
        self,
        store: EntityStore,
        contracts: ContractService,
        associations: AssociationManager | None = None,
        compensation: CompensationEngine | None = None,
    ):
        self._store = store
        self._contracts = contracts
        self._associations = associations or AssociationManager()
        self._compensation = compensation or CompensationEngine(store)

    async def offboard_client(
        self,
        client_id: str,
        reason: str = "",
        force: bool = False,
    ) -> OffboardingResult:
        """
        Da de baja a un cliente.

        Args:
            client_id: Cliente a dar de baja
            reason: Motivo, se registra en las cancelaciones
            force: Cancela los contratos vigentes o vencidos en lugar de fallar

        Raises:
            NotFoundError: El cliente no existe
            ConflictError: Tiene contratos o planes asociados y no se forzó,
                o recibió un contrato nuevo mientras se procesaba la baja
        """
        reason = (reason or "").strip() or "sin motivo"

        async with self._store.reading() as unit:
            client = await unit.clients.get(client_id)
            if client is None:
                raise NotFoundError("Cliente", client_id)
            open_contracts = await unit.contracts.get_all(
                {"client_id": client_id, "status": OPEN_STATUSES}
            )

        if (open_contracts or client.has_plans) and not force:
            raise ConflictError(
                f"El cliente tiene {len(open_contracts)} contratos abiertos y "
                f"{len(client.plan_ids)} planes asociados; use force=True",
                details={"client_id": client_id},
            )

        result = OffboardingResult(client_id=client_id)

        for contract in open_contracts:
            cancellation = await self._contracts.cancel_contract(
                contract.id, f"Baja de cliente: {reason}"
            )
            result.cancelled_contract_ids.append(contract.id)
            if cancellation.warning:
                result.warnings.append(cancellation.warning)

        result.compensated, warning = await self._compensation.try_delete_by_client(
            client_id, f"Baja de cliente: {reason}"
        )
        if warning:
            result.warnings.append(warning)

        async def _deactivate(unit: UnitOfWork) -> list[str]:
            # Con la fila del cliente bloqueada ya no puede entrar un contrato nuevo
            await unit.clients.lock(client_id)
            still_open = await unit.contracts.count(
                {"client_id": client_id, "status": OPEN_STATUSES}
            )
            if still_open:
                raise ConflictError(
                    f"El cliente recibió {still_open} contratos durante la baja",
                    details={"client_id": client_id},
                )
            unlinked = await self._associations.unlink_all(unit, client_id)
            await unit.clients.update(client_id, {"active": False})
            return unlinked

        result.unlinked_plan_ids = await self._store.with_atomic_unit(
            _deactivate, operation="offboard_client"
        )
        logger.info(
            f"Cliente {client_id} dado de baja: {len(result.cancelled_contract_ids)} contratos "
            f"cancelados, {len(result.unlinked_plan_ids)} planes desasociados - Motivo: {reason}"
        )
        return result


# Singleton
_client_service: ClientService | None = None


def get_client_service() -> ClientService:
    """Obtiene la instancia del ClientService."""
    global _client_service
    if _client_service is None:
        _client_service = ClientService(get_entity_store(), get_contract_service())
    return _client_service
