"""
Compensation Engine - Limpieza best-effort de seguimientos.

Corre en su propia unidad atómica, después de que la operación principal
ya se confirmó. Una falla aquí nunca revierte ni aborta la operación
principal: el llamador la recibe como CompensationWarning.
"""

import logging
from dataclasses import dataclass

from gimnasio.db.unit_of_work import EntityStore, UnitOfWork
from gimnasio.utils.errors import (
    CompensationWarning,
    ErrorCategory,
    log_error,
)

logger = logging.getLogger(__name__)


@dataclass
class CompensationResult:
    """Resultado de una compensación."""

    scope: str  # "contract" | "client"
    target_id: str
    deleted_count: int
    reason: str


class CompensationEngine:
    """Elimina seguimientos ligados a un contrato o a un cliente."""

    def __init__(self, store: EntityStore):
        self._store = store

    async def delete_by_contract(
        self,
        contract_id: str,
        reason: str = "Cancelación de contrato",
    ) -> CompensationResult:
        """Elimina los seguimientos del contrato. Sin registros no escribe nada."""
        async with self._store.reading() as unit:
            existing = await unit.tracking.count({"contract_id": contract_id})

        if existing == 0:
            logger.debug(f"Contrato {contract_id} sin seguimientos que compensar")
            return CompensationResult("contract", contract_id, 0, reason)

        async def _delete(unit: UnitOfWork) -> int:
            return await unit.tracking.delete_by_contract(contract_id)

        deleted = await self._store.with_atomic_unit(
            _delete, operation="compensation.delete_by_contract"
        )
        logger.info(
            f"Eliminados {deleted} seguimientos del contrato {contract_id} - Motivo: {reason}"
        )
        return CompensationResult("contract", contract_id, deleted, reason)

    async def delete_by_client(
        self,
        client_id: str,
        reason: str = "Baja de cliente",
    ) -> CompensationResult:
        """Elimina todos los seguimientos de un cliente."""
        async with self._store.reading() as unit:
            existing = await unit.tracking.count({"client_id": client_id})

        if existing == 0:
            logger.debug(f"Cliente {client_id} sin seguimientos que compensar")
            return CompensationResult("client", client_id, 0, reason)

        async def _delete(unit: UnitOfWork) -> int:
            return await unit.tracking.delete_by_client(client_id)

        deleted = await self._store.with_atomic_unit(
            _delete, operation="compensation.delete_by_client"
        )
        logger.info(
            f"Eliminados {deleted} seguimientos del cliente {client_id} - Motivo: {reason}"
        )
        return CompensationResult("client", client_id, deleted, reason)

    # ==================== Best-effort ====================

    async def try_delete_by_contract(
        self, contract_id: str, reason: str
    ) -> tuple[CompensationResult | None, CompensationWarning | None]:
        """Como delete_by_contract, pero convierte la falla en un aviso."""
        try:
            return await self.delete_by_contract(contract_id, reason), None
        except Exception as e:
            return None, self._warning("delete_by_contract", e, {"contract_id": contract_id})

    async def try_delete_by_client(
        self, client_id: str, reason: str
    ) -> tuple[CompensationResult | None, CompensationWarning | None]:
        """Como delete_by_client, pero convierte la falla en un aviso."""
        try:
            return await self.delete_by_client(client_id, reason), None
        except Exception as e:
            return None, self._warning("delete_by_client", e, {"client_id": client_id})

    @staticmethod
    def _warning(operation: str, error: Exception, details: dict) -> CompensationWarning:
        log_error(
            error,
            f"compensation.{operation}",
            ErrorCategory.COMPENSATION,
            extra=details,
            level=logging.WARNING,
        )
        return CompensationWarning(
            operation=operation,
            message=f"No se pudieron eliminar los seguimientos: {error}",
            details=details,
        )
