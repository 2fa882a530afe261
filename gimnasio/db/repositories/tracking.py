"""Repository para seguimientos de progreso."""

import logging
from typing import Any

from sqlalchemy import delete

from gimnasio.db.models import TrackingRecordModel
from gimnasio.db.repositories.base import SQLAlchemyRepository
from gimnasio.domain.entities.tracking import TrackingRecord
from gimnasio.domain.repositories.base import ITrackingRecordRepository

logger = logging.getLogger(__name__)


class TrackingRecordRepository(
    SQLAlchemyRepository[TrackingRecord, TrackingRecordModel],
    ITrackingRecordRepository,
):
    """Repository para operaciones CRUD de seguimientos."""

    model = TrackingRecordModel
    default_sort = [("date", True)]

    def _to_entity(self, model: TrackingRecordModel) -> TrackingRecord:
        return TrackingRecord(
            id=model.id,
            client_id=model.client_id,
            contract_id=model.contract_id,
            date=model.date,
            weight=model.weight,
            body_fat=model.body_fat,
            measurements=dict(model.measurements or {}),
            comments=model.comments or "",
        )

    def _to_values(self, entity: TrackingRecord) -> dict[str, Any]:
        return {
            "id": entity.id,
            "client_id": entity.client_id,
            "contract_id": entity.contract_id,
            "date": entity.date,
            "weight": entity.weight,
            "body_fat": entity.body_fat,
            "measurements": dict(entity.measurements),
            "comments": entity.comments,
        }

    async def delete_by_contract(self, contract_id: str) -> int:
        """Elimina en bloque los seguimientos de un contrato."""
        result = await self.session.execute(
            delete(TrackingRecordModel)
            .where(TrackingRecordModel.contract_id == contract_id)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount or 0

    async def delete_by_client(self, client_id: str) -> int:
        """Elimina en bloque los seguimientos de un cliente."""
        result = await self.session.execute(
            delete(TrackingRecordModel)
            .where(TrackingRecordModel.client_id == client_id)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount or 0
