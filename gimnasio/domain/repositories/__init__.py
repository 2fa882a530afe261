"""Domain Repositories - Interfaces."""

from gimnasio.domain.repositories.base import (
    QueryOptions,
    IRepository,
    IClientRepository,
    IPlanRepository,
    IContractRepository,
    IFinancialMovementRepository,
    ITrackingRecordRepository,
)

__all__ = [
    "QueryOptions",
    "IRepository",
    "IClientRepository",
    "IPlanRepository",
    "IContractRepository",
    "IFinancialMovementRepository",
    "ITrackingRecordRepository",
]
