"""Repositories SQLAlchemy para acceso a datos."""

from gimnasio.db.repositories.clients import ClientRepository
from gimnasio.db.repositories.contracts import ContractRepository
from gimnasio.db.repositories.finance import FinancialMovementRepository
from gimnasio.db.repositories.plans import PlanRepository
from gimnasio.db.repositories.tracking import TrackingRecordRepository

__all__ = [
    "ClientRepository",
    "ContractRepository",
    "FinancialMovementRepository",
    "PlanRepository",
    "TrackingRecordRepository",
]
