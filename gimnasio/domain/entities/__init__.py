"""Domain Entities - Dataclasses del dominio."""

from gimnasio.domain.entities.client import Client
from gimnasio.domain.entities.plan import Plan, PlanLevel, PlanStatus
from gimnasio.domain.entities.contract import (
    Contract,
    ContractInput,
    ContractStatus,
    ContractTerms,
)
from gimnasio.domain.entities.finance import FinancialMovement, MovementType
from gimnasio.domain.entities.tracking import TrackingRecord

__all__ = [
    "Client",
    "Plan",
    "PlanLevel",
    "PlanStatus",
    "Contract",
    "ContractInput",
    "ContractStatus",
    "ContractTerms",
    "FinancialMovement",
    "MovementType",
    "TrackingRecord",
]
