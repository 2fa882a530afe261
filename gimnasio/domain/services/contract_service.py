"""
Contract Service - Orquestador del ciclo de vida de contratos.

Valida precondiciones contra el almacén, abre una unidad atómica y dentro
de ella escribe el contrato, la asociación cliente-plan y el movimiento
financiero. Solo la cancelación dispara, ya confirmada, la compensación
best-effort de seguimientos.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Callable

from gimnasio.config import Settings, get_settings
from gimnasio.db.unit_of_work import EntityStore, UnitOfWork, get_entity_store
from gimnasio.domain.entities.client import Client
from gimnasio.domain.entities.contract import (
    ALLOWED_TRANSITIONS,
    Contract,
    ContractInput,
    ContractStatus,
    ContractTerms,
    ensure_transition,
    validate_conditions,
)
from gimnasio.domain.entities.plan import Plan
from gimnasio.domain.repositories.base import QueryOptions
from gimnasio.domain.services.association_manager import AssociationManager
from gimnasio.domain.services.compensation_engine import (
    CompensationEngine,
    CompensationResult,
)
from gimnasio.domain.services.ledger_poster import LedgerPoster
from gimnasio.utils.errors import (
    CompensationWarning,
    ConflictError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)

logger = logging.getLogger(__name__)

# Campos administrativos editables y el estado en que se permiten
EDITABLE_FIELDS: dict[str, frozenset[ContractStatus]] = {
    "conditions": frozenset({ContractStatus.VIGENTE}),
    "cancellation_reason": frozenset({ContractStatus.CANCELADO}),
}


@dataclass
class ContractCreated:
    """Resultado de crear o renovar un contrato."""

    contract_id: str
    previous_contract_id: str | None = None
    movement_id: str | None = None


@dataclass
class CancellationResult:
    """Resultado de cancelar un contrato."""

    contract_id: str
    success: bool
    compensated: CompensationResult | None = None
    warning: CompensationWarning | None = None

    @property
    def deleted_count(self) -> int | None:
        return self.compensated.deleted_count if self.compensated else None


@dataclass
class ContractDetails:
    """Contrato enriquecido con el resumen de cliente y plan."""

    contract: Contract
    client: dict[str, Any] | None = None
    plan: dict[str, Any] | None = None

    def to_dict(self) -> dict[str, Any]:
        return {**self.contract.to_dict(), "client": self.client, "plan": self.plan}


@dataclass
class ExpiryResult:
    """Contratos movidos a 'vencido' por el barrido."""

    expired_ids: list[str] = field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.expired_ids)


class ContractService:
    """
    Orquestador del ciclo de vida de contratos.

    Sin estado propio: todas las dependencias llegan por constructor.
    `clock` permite fijar el "ahora" en pruebas.
    """

    def __init__(
        self,
        store: EntityStore,
        associations: AssociationManager | None = None,
        ledger: LedgerPoster | None = None,
        compensation: CompensationEngine | None = None,
        settings: Settings | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        self._settings = settings or get_settings()
        self._store = store
        self._associations = associations or AssociationManager()
        self._ledger = ledger or LedgerPoster(self._settings.contract_payment_category)
        self._compensation = compensation or CompensationEngine(store)
        self._clock = clock or datetime.now

    # ==================== Helpers ====================

    async def _load_contract(self, contract_id: str) -> Contract:
        async with self._store.reading() as unit:
            contract = await unit.contracts.get(contract_id)
        if contract is None:
            raise NotFoundError("Contrato", contract_id)
        return contract

    async def _expire_stale(self, unit: UnitOfWork, contract: Contract) -> None:
        expired = await unit.contracts.transition(
            contract.id, ALLOWED_TRANSITIONS[ContractStatus.VENCIDO], ContractStatus.VENCIDO
        )
        if expired:
            logger.info(f"Contrato {contract.id} vencido al crear uno nuevo para el mismo par")

    async def _require_active_client(self, unit: UnitOfWork, client_id: str) -> None:
        # Bloquea al cliente: una baja concurrente espera o ve el contrato nuevo
        client = await unit.clients.lock(client_id)
        if not client.active:
            raise ValidationError("El cliente está inactivo", field="client_id")

    def _new_contract(
        self,
        client_id: str,
        plan_id: str,
        terms: ContractTerms,
        previous_contract_id: str | None = None,
    ) -> Contract:
        return Contract(
            id="",
            client_id=client_id,
            plan_id=plan_id,
            price=terms.price,
            start_date=terms.start_date,
            end_date=terms.end_date,
            status=ContractStatus.VIGENTE,
            conditions=terms.conditions or "",
            duration_months=terms.duration_months,
            previous_contract_id=previous_contract_id,
        )

    # ==================== Create ====================

    async def create_contract(self, data: ContractInput) -> ContractCreated:
        """
        Crea un contrato vigente y asocia cliente y plan.

        Raises:
            ValidationError: Términos inválidos o plan inactivo
            NotFoundError: Cliente o plan inexistente
            ConflictError: Ya existe un contrato vigente para el par
            PersistenceError: La unidad atómica falló
        """
        now = self._clock()
        terms = data.terms.validated(now)

        async with self._store.reading() as unit:
            client = await unit.clients.get(data.client_id)
            plan = await unit.plans.get(data.plan_id)
            existing = await unit.contracts.find_vigente(data.client_id, data.plan_id)

        if client is None:
            raise NotFoundError("Cliente", data.client_id)
        if plan is None:
            raise NotFoundError("Plan", data.plan_id)
        if not client.active:
            raise ValidationError("El cliente está inactivo", field="client_id")
        if not plan.is_active:
            raise ValidationError("El plan no está activo", field="plan_id")
        if any(not c.is_overdue(now) for c in existing):
            raise ConflictError(
                "Ya existe un contrato vigente para este cliente y plan",
                details={"client_id": data.client_id, "plan_id": data.plan_id},
            )

        async def _create(unit: UnitOfWork) -> ContractCreated:
            await self._require_active_client(unit, data.client_id)
            for stale in await unit.contracts.find_vigente(data.client_id, data.plan_id):
                if not stale.is_overdue(now):
                    raise ConflictError(
                        "Ya existe un contrato vigente para este cliente y plan",
                        details={"client_id": data.client_id, "plan_id": data.plan_id},
                    )
                await self._expire_stale(unit, stale)

            contract_id = await unit.contracts.create(
                self._new_contract(data.client_id, data.plan_id, terms)
            )
            await self._associations.link(unit, data.client_id, data.plan_id)

            movement_id = None
            if data.record_payment:
                movement_id = await self._ledger.post_income(
                    unit,
                    data.client_id,
                    terms.price,
                    now,
                    description=f"Pago contrato - {plan.name}",
                )
            return ContractCreated(contract_id=contract_id, movement_id=movement_id)

        result = await self._store.with_atomic_unit(_create, operation="create_contract")
        logger.info(
            f"Contrato {result.contract_id} creado: cliente {data.client_id}, plan {data.plan_id}"
        )
        return result

    # ==================== Update ====================

    async def update_contract(self, contract_id: str, patch: dict[str, Any]) -> bool:
        """
        Actualiza metadatos administrativos del contrato.

        Precio, fechas, partes y estado no se editan: cambian por
        renovación o por la máquina de estados.

        Raises:
            ValidationError: Campo no editable o valor inválido
            InvalidStateError: El campo no se edita en el estado actual
            ConflictError: El estado cambió entre la lectura y la escritura
        """
        if not patch:
            raise ValidationError("No hay campos para actualizar")
        not_editable = sorted(set(patch) - set(EDITABLE_FIELDS))
        if not_editable:
            raise ValidationError(
                f"Campos no editables: {', '.join(not_editable)}. "
                "Use la renovación o la cancelación",
                field=not_editable[0],
            )

        contract = await self._load_contract(contract_id)
        values: dict[str, Any] = {}
        for name, value in patch.items():
            if contract.status not in EDITABLE_FIELDS[name]:
                raise InvalidStateError(
                    f"No se puede modificar '{name}' de un contrato {contract.status.value}",
                    state=contract.status.value,
                )
            values[name] = validate_conditions(value)

        allowed = frozenset.intersection(*(EDITABLE_FIELDS[name] for name in values))

        async def _update(unit: UnitOfWork) -> bool:
            changed = await unit.contracts.update_in_status(contract_id, allowed, values)
            if not changed:
                raise ConflictError(
                    "El contrato cambió de estado durante la actualización",
                    details={"contract_id": contract_id},
                )
            return changed

        updated = await self._store.with_atomic_unit(_update, operation="update_contract")
        logger.info(f"Contrato {contract_id} actualizado: {', '.join(values)}")
        return updated

    # ==================== Cancel ====================

    async def cancel_contract(self, contract_id: str, reason: str = "") -> CancellationResult:
        """
        Cancela un contrato y desasocia el par si no queda otro vigente.

        Después del commit elimina (best-effort) los seguimientos del
        contrato; si falla, el resultado lleva un CompensationWarning.

        Raises:
            NotFoundError: El contrato no existe
            ConflictError: El contrato ya está cancelado
            InvalidStateError: El contrato fue renovado
            PersistenceError: La unidad atómica falló
        """
        reason = (reason or "").strip()
        contract = await self._load_contract(contract_id)

        if contract.status == ContractStatus.CANCELADO:
            raise ConflictError(
                "El contrato ya está cancelado", details={"contract_id": contract_id}
            )
        ensure_transition(contract.status, ContractStatus.CANCELADO)

        async def _cancel(unit: UnitOfWork) -> None:
            changed = await unit.contracts.transition(
                contract_id,
                ALLOWED_TRANSITIONS[ContractStatus.CANCELADO],
                ContractStatus.CANCELADO,
                {"cancellation_reason": reason},
            )
            if not changed:
                raise ConflictError(
                    "El contrato cambió de estado durante la cancelación",
                    details={"contract_id": contract_id},
                )
            remaining = await unit.contracts.find_vigente(contract.client_id, contract.plan_id)
            if not remaining:
                await self._associations.unlink(unit, contract.client_id, contract.plan_id)

        await self._store.with_atomic_unit(_cancel, operation="cancel_contract")
        logger.info(f"Contrato {contract_id} cancelado - Motivo: {reason or 'sin motivo'}")

        compensated, warning = await self._compensation.try_delete_by_contract(
            contract_id, f"Cancelación de contrato: {reason or 'sin motivo'}"
        )
        return CancellationResult(
            contract_id=contract_id,
            success=True,
            compensated=compensated,
            warning=warning,
        )

    # ==================== Renew ====================

    async def renew_contract(
        self,
        contract_id: str,
        terms: ContractTerms,
        record_payment: bool = False,
    ) -> ContractCreated:
        """
        Renueva un contrato vigente o vencido.

        El original pasa a 'renovado' y se crea un contrato vigente nuevo
        con `previous_contract_id` apuntando a él. Si no se envían
        condiciones se conservan las del original.

        Raises:
            NotFoundError: El contrato no existe
            InvalidStateError: El contrato está cancelado o ya renovado
            ValidationError: Términos nuevos inválidos
            PersistenceError: La unidad atómica falló
        """
        now = self._clock()
        contract = await self._load_contract(contract_id)

        ensure_transition(contract.status, ContractStatus.RENOVADO)

        validated = terms.validated(now)
        if not validated.conditions:
            validated.conditions = contract.conditions

        async def _renew(unit: UnitOfWork) -> ContractCreated:
            await self._require_active_client(unit, contract.client_id)
            changed = await unit.contracts.transition(
                contract_id,
                ALLOWED_TRANSITIONS[ContractStatus.RENOVADO],
                ContractStatus.RENOVADO,
                {"renewed_at": now},
            )
            if not changed:
                raise ConflictError(
                    "El contrato cambió de estado durante la renovación",
                    details={"contract_id": contract_id},
                )

            new_id = await unit.contracts.create(
                self._new_contract(
                    contract.client_id,
                    contract.plan_id,
                    validated,
                    previous_contract_id=contract_id,
                )
            )
            await self._associations.link(unit, contract.client_id, contract.plan_id)

            movement_id = None
            if record_payment:
                movement_id = await self._ledger.post_income(
                    unit,
                    contract.client_id,
                    validated.price,
                    now,
                    description=f"Renovación contrato {contract_id}",
                )
            return ContractCreated(
                contract_id=new_id,
                previous_contract_id=contract_id,
                movement_id=movement_id,
            )

        result = await self._store.with_atomic_unit(_renew, operation="renew_contract")
        logger.info(f"Contrato {contract_id} renovado como {result.contract_id}")
        return result

    # ==================== Expiry ====================

    async def expire_overdue(self, now: datetime | None = None) -> ExpiryResult:
        """Mueve a 'vencido' los contratos vigentes con fecha de fin pasada."""
        now = now or self._clock()

        async def _expire(unit: UnitOfWork) -> list[str]:
            expired = []
            for contract in await unit.contracts.get_overdue(now):
                changed = await unit.contracts.transition(
                    contract.id,
                    ALLOWED_TRANSITIONS[ContractStatus.VENCIDO],
                    ContractStatus.VENCIDO,
                )
                if changed:
                    expired.append(contract.id)
            return expired

        expired_ids = await self._store.with_atomic_unit(_expire, operation="expire_overdue")
        if expired_ids:
            logger.info(f"{len(expired_ids)} contratos vencidos")
        return ExpiryResult(expired_ids=expired_ids)

    # ==================== Queries ====================

    async def get_contract(self, contract_id: str) -> ContractDetails:
        """Obtiene un contrato con el resumen de su cliente y su plan."""
        async with self._store.reading() as unit:
            contract = await unit.contracts.get(contract_id)
            if contract is None:
                raise NotFoundError("Contrato", contract_id)
            client: Client | None = await unit.clients.get(contract.client_id)
            plan: Plan | None = await unit.plans.get(contract.plan_id)

        return ContractDetails(
            contract=contract,
            client=client.summary() if client else None,
            plan=plan.summary() if plan else None,
        )

    async def list_contracts(
        self,
        filter: dict[str, Any] | None = None,
        options: QueryOptions | None = None,
    ) -> list[Contract]:
        """Lista contratos; por defecto los más recientes primero."""
        async with self._store.reading() as unit:
            return await unit.contracts.get_all(filter, options)

    async def get_client_contracts(self, client_id: str) -> list[Contract]:
        """Contratos de un cliente."""
        async with self._store.reading() as unit:
            if await unit.clients.get(client_id) is None:
                raise NotFoundError("Cliente", client_id)
            return await unit.contracts.get_by_client(client_id)

    async def get_expiring_contracts(self, days: int | None = None) -> list[Contract]:
        """Contratos vigentes que vencen en los próximos `days` días."""
        days = self._settings.expiring_soon_days if days is None else days
        if days < 0:
            raise ValidationError("Los días deben ser positivos", field="days")
        now = self._clock()
        async with self._store.reading() as unit:
            return await unit.contracts.get_expiring(now, now + timedelta(days=days))


# Singleton
_contract_service: ContractService | None = None


def get_contract_service() -> ContractService:
    """Obtiene la instancia del ContractService."""
    global _contract_service
    if _contract_service is None:
        _contract_service = ContractService(get_entity_store())
    return _contract_service
