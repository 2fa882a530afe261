"""Tests for the compensation engine."""

from unittest.mock import AsyncMock, patch

import pytest

from gimnasio.domain.services import CompensationEngine
from gimnasio.utils.errors import PersistenceError


class TestCompensationEngine:
    """Test suite for tracking cleanup."""

    @pytest.mark.asyncio
    async def test_noop_when_nothing_matches(self, store):
        engine = CompensationEngine(store)

        with patch.object(store, "with_atomic_unit", AsyncMock()) as atomic:
            result = await engine.delete_by_contract("sin-seguimientos", "prueba")

        assert result.deleted_count == 0
        atomic.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_delete_by_client_logs_reason(self, store, client_id, add_tracking, caplog):
        await add_tracking(client_id)
        await add_tracking(client_id)

        with caplog.at_level("INFO"):
            result = await CompensationEngine(store).delete_by_client(client_id, "baja voluntaria")

        assert result.deleted_count == 2
        assert result.scope == "client"
        assert "baja voluntaria" in caplog.text

    @pytest.mark.asyncio
    async def test_delete_failure_raises(self, store, client_id, add_tracking):
        await add_tracking(client_id)
        engine = CompensationEngine(store)

        with patch.object(
            store, "with_atomic_unit", AsyncMock(side_effect=PersistenceError("bloqueo"))
        ):
            with pytest.raises(PersistenceError):
                await engine.delete_by_client(client_id)

            result, warning = await engine.try_delete_by_client(client_id, "baja")

        assert result is None
        assert warning.details == {"client_id": client_id}
        assert "bloqueo" in warning.message
