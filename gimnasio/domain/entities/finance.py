"""
Finance Entities - Movimientos financieros.
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any


class MovementType(str, Enum):
    """Tipo de movimiento."""
    INCOME = "income"
    EXPENSE = "expense"


@dataclass
class FinancialMovement:
    """
    Entidad de Movimiento Financiero.

    Solo se agrega; el núcleo de contratos nunca la modifica ni la borra.
    """

    id: str
    type: MovementType
    amount: Decimal
    date: datetime
    category: str
    description: str | None = None
    client_id: str | None = None

    created_at: datetime | None = None

    _raw: dict[str, Any] = field(default_factory=dict, repr=False)

    @property
    def is_income(self) -> bool:
        return self.type == MovementType.INCOME

    def to_dict(self) -> dict[str, Any]:
        """Convierte a diccionario."""
        return {
            "id": self.id,
            "type": self.type.value,
            "amount": float(self.amount),
            "date": self.date.isoformat(),
            "category": self.category,
            "description": self.description,
            "client_id": self.client_id,
        }
