"""Jobs del scheduler."""

from gimnasio.scheduler.jobs.contract_expiry import (
    contract_expiry_job,
    expiring_contracts_report_job,
)

__all__ = [
    "contract_expiry_job",
    "expiring_contracts_report_job",
]
