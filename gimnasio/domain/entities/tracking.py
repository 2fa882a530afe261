"""
Tracking Entity - Seguimiento de progreso del cliente.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any


@dataclass
class TrackingRecord:
    """Registro de seguimiento (peso, grasa, medidas)."""

    id: str
    client_id: str
    date: datetime
    contract_id: str | None = None

    weight: float | None = None  # kg
    body_fat: float | None = None  # %
    measurements: dict[str, float] = field(default_factory=dict)
    comments: str = ""

    _raw: dict[str, Any] = field(default_factory=dict, repr=False)

    def to_dict(self) -> dict[str, Any]:
        """Convierte a diccionario."""
        return {
            "id": self.id,
            "client_id": self.client_id,
            "contract_id": self.contract_id,
            "date": self.date.isoformat(),
            "weight": self.weight,
            "body_fat": self.body_fat,
            "measurements": dict(self.measurements),
            "comments": self.comments,
        }
