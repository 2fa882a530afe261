"""
Client Entity - Cliente del gimnasio.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any


@dataclass
class Client:
    """
    Entidad de Cliente.

    `plan_ids` es la lista desnormalizada de planes asociados; solo la
    modifica el AssociationManager.
    """

    id: str
    first_name: str
    last_name: str
    email: str
    phone: str | None = None
    active: bool = True
    plan_ids: list[str] = field(default_factory=list)

    registered_at: datetime | None = None

    _raw: dict[str, Any] = field(default_factory=dict, repr=False)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @property
    def has_plans(self) -> bool:
        return len(self.plan_ids) > 0

    def has_plan(self, plan_id: str) -> bool:
        return plan_id in self.plan_ids

    def summary(self) -> dict[str, Any]:
        """Resumen para enriquecer contratos."""
        return {
            "id": self.id,
            "name": self.full_name,
            "email": self.email,
            "phone": self.phone,
        }

    def to_dict(self) -> dict[str, Any]:
        """Convierte a diccionario."""
        return {
            "id": self.id,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "email": self.email,
            "phone": self.phone,
            "active": self.active,
            "plan_ids": list(self.plan_ids),
        }
