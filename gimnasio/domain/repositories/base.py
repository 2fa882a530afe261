"""
Repository Interfaces - Contratos para la capa de persistencia.

Estas interfaces definen los métodos que cualquier implementación
de repositorio debe proveer. Cada instancia queda ligada a la sesión
de una unidad de trabajo, de modo que todas las escrituras emitidas
dentro de una unidad atómica se confirman o se revierten juntas.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Generic, TypeVar

from gimnasio.domain.entities.client import Client
from gimnasio.domain.entities.contract import Contract, ContractStatus
from gimnasio.domain.entities.finance import FinancialMovement
from gimnasio.domain.entities.plan import Plan
from gimnasio.domain.entities.tracking import TrackingRecord

T = TypeVar("T")


@dataclass
class QueryOptions:
    """Opciones de consulta: paginación y orden."""

    limit: int = 0
    skip: int = 0
    # Lista de (campo, descendente)
    sort: list[tuple[str, bool]] | None = None


class IRepository(ABC, Generic[T]):
    """
    Interface base para repositorios.

    Define operaciones CRUD genéricas sobre un agregado.
    """

    @abstractmethod
    async def get(self, id: str) -> T | None:
        """Obtiene una entidad por su ID."""
        pass

    @abstractmethod
    async def get_all(
        self,
        filter: dict[str, Any] | None = None,
        options: QueryOptions | None = None,
    ) -> list[T]:
        """Lista entidades por igualdad de campos."""
        pass

    @abstractmethod
    async def create(self, entity: T) -> str:
        """Crea una nueva entidad y devuelve su ID."""
        pass

    @abstractmethod
    async def update(self, id: str, patch: dict[str, Any]) -> bool:
        """Aplica un parche parcial. True si se modificó alguna fila."""
        pass

    @abstractmethod
    async def delete(self, id: str) -> bool:
        """Elimina una entidad por su ID."""
        pass

    @abstractmethod
    async def count(self, filter: dict[str, Any] | None = None) -> int:
        """Cuenta entidades por igualdad de campos."""
        pass


class IClientRepository(IRepository[Client]):
    """Interface para repositorio de clientes."""

    @abstractmethod
    async def lock(self, client_id: str) -> Client:
        """Lee el cliente bloqueando su fila hasta el fin de la unidad."""
        pass

    @abstractmethod
    async def add_plan(self, client_id: str, plan_id: str) -> bool:
        """Agrega el plan a `plan_ids` (sin duplicar). True si cambió."""
        pass

    @abstractmethod
    async def remove_plan(self, client_id: str, plan_id: str) -> bool:
        """Quita el plan de `plan_ids`. True si cambió."""
        pass


class IPlanRepository(IRepository[Plan]):
    """Interface para repositorio de planes."""

    @abstractmethod
    async def add_client(self, plan_id: str, client_id: str) -> bool:
        """Agrega el cliente a `client_ids` (sin duplicar). True si cambió."""
        pass

    @abstractmethod
    async def remove_client(self, plan_id: str, client_id: str) -> bool:
        """Quita el cliente de `client_ids`. True si cambió."""
        pass


class IContractRepository(IRepository[Contract]):
    """Interface para repositorio de contratos."""

    @abstractmethod
    async def find_vigente(self, client_id: str, plan_id: str) -> list[Contract]:
        """Contratos vigentes para el par (cliente, plan)."""
        pass

    @abstractmethod
    async def update_in_status(
        self,
        id: str,
        statuses: set[ContractStatus],
        patch: dict[str, Any],
    ) -> bool:
        """Aplica el parche solo si el estado actual está en `statuses`."""
        pass

    @abstractmethod
    async def transition(
        self,
        id: str,
        from_statuses: set[ContractStatus],
        to_status: ContractStatus,
        patch: dict[str, Any] | None = None,
    ) -> bool:
        """
        Cambia el estado solo si el estado actual está en `from_statuses`.

        Returns:
            True si la fila cambió; False si el estado ya no era el esperado.
        """
        pass

    @abstractmethod
    async def get_overdue(self, now: datetime) -> list[Contract]:
        """Contratos vigentes cuya fecha de fin ya pasó."""
        pass

    @abstractmethod
    async def get_expiring(self, now: datetime, until: datetime) -> list[Contract]:
        """Contratos vigentes que vencen entre `now` y `until`."""
        pass


class IFinancialMovementRepository(IRepository[FinancialMovement]):
    """Interface para repositorio de movimientos financieros."""


class ITrackingRecordRepository(IRepository[TrackingRecord]):
    """Interface para repositorio de seguimientos."""

    @abstractmethod
    async def delete_by_contract(self, contract_id: str) -> int:
        """Elimina en bloque los seguimientos de un contrato."""
        pass

    @abstractmethod
    async def delete_by_client(self, client_id: str) -> int:
        """Elimina en bloque los seguimientos de un cliente."""
        pass
