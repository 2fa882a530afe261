"""
Contract Entity - Contrato entre un cliente y un plan.

Incluye la máquina de estados del ciclo de vida y las validaciones
de términos (fechas y precio) que comparten creación y renovación.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from enum import Enum
from typing import Any

from gimnasio.utils.errors import InvalidStateError, ValidationError

MAX_PRICE = Decimal("1000000")
MAX_CONDITIONS_LENGTH = 2000
MAX_DURATION_MONTHS = 60
AVERAGE_DAYS_PER_MONTH = 30.44


class ContractStatus(str, Enum):
    """Estado de contrato."""
    VIGENTE = "vigente"
    VENCIDO = "vencido"
    CANCELADO = "cancelado"
    RENOVADO = "renovado"


# Transiciones permitidas: estado destino -> estados origen
ALLOWED_TRANSITIONS: dict[ContractStatus, frozenset[ContractStatus]] = {
    ContractStatus.VENCIDO: frozenset({ContractStatus.VIGENTE}),
    ContractStatus.CANCELADO: frozenset({ContractStatus.VIGENTE, ContractStatus.VENCIDO}),
    ContractStatus.RENOVADO: frozenset({ContractStatus.VIGENTE, ContractStatus.VENCIDO}),
}


def can_transition(current: ContractStatus, target: ContractStatus) -> bool:
    """Indica si la máquina de estados permite ir de current a target."""
    return current in ALLOWED_TRANSITIONS.get(target, frozenset())


def ensure_transition(current: ContractStatus, target: ContractStatus) -> None:
    """Lanza InvalidStateError si la transición no está permitida."""
    if not can_transition(current, target):
        raise InvalidStateError(
            f"No se puede pasar un contrato de '{current.value}' a '{target.value}'",
            state=current.value,
            details={"target": target.value},
        )


def normalize_price(price: Any) -> Decimal:
    """Convierte el precio a Decimal con dos decimales y valida sus límites."""
    if price is None or isinstance(price, bool):
        raise ValidationError("El precio es obligatorio", field="price")
    try:
        value = Decimal(str(price))
    except (InvalidOperation, ValueError):
        raise ValidationError(f"Precio inválido: {price!r}", field="price") from None
    if not value.is_finite():
        raise ValidationError(f"Precio inválido: {price!r}", field="price")
    # Los límites se validan sobre el valor ya redondeado a centavos
    value = value.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    if value <= 0:
        raise ValidationError("El precio debe ser mayor a cero", field="price")
    if value > MAX_PRICE:
        raise ValidationError(f"El precio no puede exceder {MAX_PRICE}", field="price")
    return value


def validate_dates(start_date: datetime, end_date: datetime, now: datetime) -> None:
    """
    Valida las fechas de un contrato.

    La fecha de inicio debe ser anterior a la de fin y la fecha de fin
    debe estar estrictamente en el futuro respecto a `now`. Las fechas se
    manejan sin zona horaria (hora local del gimnasio).
    """
    if not isinstance(start_date, datetime) or not isinstance(end_date, datetime):
        raise ValidationError("Las fechas deben ser datetime", field="start_date")
    if start_date.tzinfo is not None or end_date.tzinfo is not None:
        raise ValidationError(
            "Las fechas deben ir sin zona horaria (hora local)", field="start_date"
        )
    if start_date >= end_date:
        raise ValidationError(
            "La fecha de inicio debe ser anterior a la fecha de fin", field="end_date"
        )
    if end_date <= now:
        raise ValidationError("La fecha de fin debe ser futura", field="end_date")


def validate_conditions(conditions: str | None) -> str:
    """Normaliza las condiciones del contrato."""
    if conditions is None:
        return ""
    if not isinstance(conditions, str):
        raise ValidationError("Las condiciones deben ser texto", field="conditions")
    conditions = conditions.strip()
    if len(conditions) > MAX_CONDITIONS_LENGTH:
        raise ValidationError(
            f"Las condiciones no pueden exceder {MAX_CONDITIONS_LENGTH} caracteres",
            field="conditions",
        )
    return conditions


def months_between(start_date: datetime, end_date: datetime) -> int:
    """Duración aproximada en meses entre dos fechas."""
    days = (end_date - start_date) / timedelta(days=1)
    return max(1, round(days / AVERAGE_DAYS_PER_MONTH))


@dataclass
class ContractTerms:
    """Términos de un contrato nuevo o de su renovación."""

    start_date: datetime
    end_date: datetime
    price: Decimal | float | int | str
    conditions: str | None = None
    duration_months: int | None = None

    def validated(self, now: datetime) -> "ContractTerms":
        """Devuelve una copia validada y normalizada de los términos."""
        validate_dates(self.start_date, self.end_date, now)
        price = normalize_price(self.price)
        conditions = validate_conditions(self.conditions)

        duration = self.duration_months
        if duration is None:
            duration = months_between(self.start_date, self.end_date)
        if not isinstance(duration, int) or isinstance(duration, bool):
            raise ValidationError("La duración en meses debe ser entera", field="duration_months")
        if duration < 1 or duration > MAX_DURATION_MONTHS:
            raise ValidationError(
                f"La duración debe estar entre 1 y {MAX_DURATION_MONTHS} meses",
                field="duration_months",
            )

        return ContractTerms(
            start_date=self.start_date,
            end_date=self.end_date,
            price=price,
            conditions=conditions,
            duration_months=duration,
        )


@dataclass
class ContractInput:
    """Datos para crear un contrato."""

    client_id: str
    plan_id: str
    terms: ContractTerms
    record_payment: bool = False


@dataclass
class Contract:
    """
    Entidad de Contrato.

    Vincula un cliente con un plan por un periodo y precio definidos.
    Una vez fuera de 'vigente' solo cambian los metadatos administrativos.
    """

    id: str
    client_id: str
    plan_id: str
    price: Decimal
    start_date: datetime
    end_date: datetime
    status: ContractStatus = ContractStatus.VIGENTE

    conditions: str = ""
    duration_months: int | None = None

    # Renovación / cancelación
    previous_contract_id: str | None = None
    cancellation_reason: str | None = None
    renewed_at: datetime | None = None

    # Metadata
    created_at: datetime | None = None

    _raw: dict[str, Any] = field(default_factory=dict, repr=False)

    @property
    def is_vigente(self) -> bool:
        return self.status == ContractStatus.VIGENTE

    def is_overdue(self, now: datetime) -> bool:
        """Vigente en el almacén pero con la fecha de fin ya pasada."""
        return self.is_vigente and self.end_date < now

    def to_dict(self) -> dict[str, Any]:
        """Convierte a diccionario."""
        return {
            "id": self.id,
            "client_id": self.client_id,
            "plan_id": self.plan_id,
            "price": float(self.price),
            "start_date": self.start_date.isoformat(),
            "end_date": self.end_date.isoformat(),
            "status": self.status.value,
            "conditions": self.conditions,
            "duration_months": self.duration_months,
            "previous_contract_id": self.previous_contract_id,
            "cancellation_reason": self.cancellation_reason,
            "renewed_at": self.renewed_at.isoformat() if self.renewed_at else None,
        }
