"""Contract Expiry Jobs - Vencimiento de contratos."""

import logging

from gimnasio.domain.services.contract_service import get_contract_service
from gimnasio.utils.errors import ErrorCategory, log_error

logger = logging.getLogger(__name__)


async def contract_expiry_job() -> int:
    """
    Mueve a 'vencido' los contratos vigentes cuya fecha de fin ya pasó.

    Returns:
        Cantidad de contratos vencidos (0 si el barrido falla)
    """
    logger.info("Ejecutando barrido de vencimiento de contratos...")

    try:
        result = await get_contract_service().expire_overdue()
    except Exception as e:
        log_error(e, "contract_expiry_job", ErrorCategory.SCHEDULER)
        return 0

    logger.info(f"Barrido de vencimiento completado: {result.count} contratos vencidos")
    return result.count


async def expiring_contracts_report_job() -> int:
    """Registra los contratos vigentes que vencen pronto."""
    try:
        contracts = await get_contract_service().get_expiring_contracts()
    except Exception as e:
        log_error(e, "expiring_contracts_report_job", ErrorCategory.SCHEDULER)
        return 0

    for contract in contracts:
        logger.info(
            f"Contrato {contract.id} (cliente {contract.client_id}) vence el "
            f"{contract.end_date:%Y-%m-%d}"
        )
    logger.info(f"{len(contracts)} contratos por vencer")
    return len(contracts)
