"""
Ledger Poster - Registro de ingresos derivados de contratos.

Los movimientos solo se agregan. Se escriben dentro de la unidad atómica
del contrato: si la unidad se revierte, el movimiento tampoco existe.
"""

import logging
from datetime import datetime
from decimal import Decimal

from gimnasio.db.unit_of_work import UnitOfWork
from gimnasio.domain.entities.contract import normalize_price
from gimnasio.domain.entities.finance import FinancialMovement, MovementType

logger = logging.getLogger(__name__)


class LedgerPoster:
    """Agrega movimientos financieros de contratos."""

    def __init__(self, category: str = "contrato"):
        self._category = category

    async def post_income(
        self,
        unit: UnitOfWork,
        client_id: str,
        amount: Decimal,
        date: datetime,
        description: str | None = None,
        category: str | None = None,
    ) -> str:
        """
        Registra un ingreso asociado a un cliente.

        Args:
            unit: Unidad atómica del llamador
            client_id: Cliente que paga
            amount: Monto (positivo)
            date: Fecha del movimiento
            description: Texto libre
            category: Categoría; por defecto la de contratos

        Returns:
            ID del movimiento creado
        """
        unit.require_atomic("post_income")
        movement = FinancialMovement(
            id="",
            type=MovementType.INCOME,
            amount=normalize_price(amount),
            date=date,
            category=category or self._category,
            description=description,
            client_id=client_id,
        )
        movement_id = await unit.movements.create(movement)
        logger.info(f"Ingreso {movement_id} registrado para cliente {client_id}: {movement.amount}")
        return movement_id
