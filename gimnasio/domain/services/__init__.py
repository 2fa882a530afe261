"""
Domain Services - Orquestación de operaciones sobre varios agregados.

El ContractService coordina al AssociationManager, al LedgerPoster y al
CompensationEngine; el ClientService reutiliza al orquestador para la baja.
"""

from gimnasio.domain.services.association_manager import AssociationManager
from gimnasio.domain.services.ledger_poster import LedgerPoster
from gimnasio.domain.services.compensation_engine import (
    CompensationEngine,
    CompensationResult,
)
from gimnasio.domain.services.contract_service import (
    CancellationResult,
    ContractCreated,
    ContractDetails,
    ContractService,
    ExpiryResult,
    get_contract_service,
)
from gimnasio.domain.services.client_service import (
    ClientService,
    OffboardingResult,
    get_client_service,
)

__all__ = [
    "AssociationManager",
    "LedgerPoster",
    "CompensationEngine",
    "CompensationResult",
    "CancellationResult",
    "ContractCreated",
    "ContractDetails",
    "ContractService",
    "ExpiryResult",
    "get_contract_service",
    "ClientService",
    "OffboardingResult",
    "get_client_service",
]
