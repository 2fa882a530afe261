"""
Plan Entity - Plan de entrenamiento.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


class PlanStatus(str, Enum):
    """Estado de plan."""
    ACTIVE = "active"
    INACTIVE = "inactive"


class PlanLevel(str, Enum):
    """Nivel del plan."""
    PRINCIPIANTE = "principiante"
    INTERMEDIO = "intermedio"
    AVANZADO = "avanzado"


@dataclass
class Plan:
    """
    Entidad de Plan de entrenamiento.

    `client_ids` es el espejo de `Client.plan_ids`.
    """

    id: str
    name: str
    duration_weeks: int | None = None
    goals: str | None = None
    level: PlanLevel = PlanLevel.PRINCIPIANTE
    status: PlanStatus = PlanStatus.ACTIVE
    client_ids: list[str] = field(default_factory=list)

    created_at: datetime | None = None

    _raw: dict[str, Any] = field(default_factory=dict, repr=False)

    @property
    def is_active(self) -> bool:
        return self.status == PlanStatus.ACTIVE

    def has_client(self, client_id: str) -> bool:
        return client_id in self.client_ids

    def summary(self) -> dict[str, Any]:
        """Resumen para enriquecer contratos."""
        return {
            "id": self.id,
            "name": self.name,
            "level": self.level.value,
            "duration_weeks": self.duration_weeks,
        }

    def to_dict(self) -> dict[str, Any]:
        """Convierte a diccionario."""
        return {
            "id": self.id,
            "name": self.name,
            "duration_weeks": self.duration_weeks,
            "goals": self.goals,
            "level": self.level.value,
            "status": self.status.value,
            "client_ids": list(self.client_ids),
        }
