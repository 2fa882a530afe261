"""Tests for the contract lifecycle orchestrator."""

import asyncio
from datetime import timedelta, timezone
from decimal import Decimal
from unittest.mock import AsyncMock, patch

import pytest

from gimnasio.db.repositories import ClientRepository, ContractRepository
from gimnasio.domain.entities import ContractStatus, MovementType
from gimnasio.domain.services import (
    AssociationManager,
    CompensationEngine,
    ContractService,
    LedgerPoster,
)
from gimnasio.utils.errors import (
    CompensationWarning,
    ConflictError,
    InvalidStateError,
    NotFoundError,
    PersistenceError,
    ValidationError,
)


async def _snapshot(store, client_id, plan_id):
    """Estado de referencias, contratos y movimientos."""
    async with store.reading() as unit:
        client = await unit.clients.get(client_id)
        plan = await unit.plans.get(plan_id)
        contracts = await unit.contracts.get_all({"client_id": client_id})
        movements = await unit.movements.get_all({"client_id": client_id})
    return client, plan, contracts, movements


def _load_then_move(store, to_status, from_statuses=frozenset({ContractStatus.VIGENTE})):
    """Reemplazo de _load_contract: otra unidad cambia el estado justo después de leer."""
    original_load = ContractService._load_contract

    async def _load(self, contract_id):
        contract = await original_load(self, contract_id)
        await store.with_atomic_unit(
            lambda unit: unit.contracts.transition(contract_id, from_statuses, to_status)
        )
        return contract

    return _load


class TestEndToEndScenarios:
    """The six reference scenarios, run in sequence where they depend on each other."""

    @pytest.mark.asyncio
    async def test_create_duplicate_cancel_renew(
        self, store, contract_service, client_id, plan_id, contract_input, add_tracking
    ):
        # 1. Crear contrato
        created = await contract_service.create_contract(
            contract_input(client_id, plan_id, price=100, days=30)
        )
        client, plan, contracts, _ = await _snapshot(store, client_id, plan_id)
        assert plan_id in client.plan_ids
        assert client_id in plan.client_ids
        assert contracts[0].id == created.contract_id
        assert contracts[0].status == ContractStatus.VIGENTE

        # 2. Duplicado vigente
        with pytest.raises(ConflictError):
            await contract_service.create_contract(
                contract_input(client_id, plan_id, price=50, days=30)
            )

        # 3. Cancelar con seguimientos ligados
        await add_tracking(client_id, created.contract_id, weight=80.0)
        await add_tracking(client_id, created.contract_id, weight=79.5)

        result = await contract_service.cancel_contract(created.contract_id, "client request")

        assert result.success
        assert result.deleted_count == 2
        assert result.warning is None
        client, plan, contracts, _ = await _snapshot(store, client_id, plan_id)
        assert contracts[0].status == ContractStatus.CANCELADO
        assert contracts[0].cancellation_reason == "client request"
        assert plan_id not in client.plan_ids
        assert client_id not in plan.client_ids
        async with store.reading() as unit:
            assert await unit.tracking.count({"contract_id": created.contract_id}) == 0

        # 4. Renovar un cancelado
        with pytest.raises(InvalidStateError):
            await contract_service.renew_contract(created.contract_id, contract_input(
                client_id, plan_id
            ).terms)

    @pytest.mark.asyncio
    async def test_invalid_dates_rejected_before_any_write(
        self, store, contract_service, other_client_id, plan_id, now, terms
    ):
        """5. end = start - 1 day."""
        from gimnasio.domain.entities import ContractInput, ContractTerms

        data = ContractInput(
            client_id=other_client_id,
            plan_id=plan_id,
            terms=ContractTerms(start_date=now, end_date=now - timedelta(days=1), price=100),
        )
        with pytest.raises(ValidationError):
            await contract_service.create_contract(data)

        client, plan, contracts, movements = await _snapshot(store, other_client_id, plan_id)
        assert contracts == [] and movements == []
        assert client.plan_ids == [] and plan.client_ids == []

    @pytest.mark.asyncio
    async def test_renew_vigente(self, store, contract_service, client_id, plan_id, contract_input, terms, now):
        """6. Renew with new price and dates."""
        created = await contract_service.create_contract(
            contract_input(client_id, plan_id, price=100, days=30, conditions="pago mensual")
        )

        renewed = await contract_service.renew_contract(
            created.contract_id, terms(price=120, start=now + timedelta(days=30), days=30)
        )

        async with store.reading() as unit:
            old = await unit.contracts.get(created.contract_id)
            new = await unit.contracts.get(renewed.contract_id)
            client = await unit.clients.get(client_id)

        assert old.status == ContractStatus.RENOVADO
        assert old.renewed_at == now
        assert new.status == ContractStatus.VIGENTE
        assert new.previous_contract_id == created.contract_id
        assert new.price == Decimal("120.00")
        assert new.conditions == "pago mensual"
        assert client.plan_ids == [plan_id]
        assert renewed.previous_contract_id == created.contract_id


class TestCreateContract:
    """Test suite for contract creation."""

    @pytest.mark.asyncio
    async def test_records_payment(self, store, contract_service, client_id, plan_id, contract_input, now):
        created = await contract_service.create_contract(
            contract_input(client_id, plan_id, record_payment=True, price="150.50")
        )

        _, _, _, movements = await _snapshot(store, client_id, plan_id)
        assert len(movements) == 1
        movement = movements[0]
        assert movement.id == created.movement_id
        assert movement.type == MovementType.INCOME
        assert movement.amount == Decimal("150.50")
        assert movement.category == "contrato"
        assert movement.date == now

    @pytest.mark.asyncio
    async def test_without_payment_no_movement(self, store, contract_service, client_id, plan_id, contract_input):
        created = await contract_service.create_contract(contract_input(client_id, plan_id))

        _, _, _, movements = await _snapshot(store, client_id, plan_id)
        assert movements == []
        assert created.movement_id is None

    @pytest.mark.asyncio
    async def test_unknown_client(self, contract_service, plan_id, contract_input):
        with pytest.raises(NotFoundError):
            await contract_service.create_contract(contract_input("no-existe", plan_id))

    @pytest.mark.asyncio
    async def test_unknown_plan(self, contract_service, client_id, contract_input):
        with pytest.raises(NotFoundError):
            await contract_service.create_contract(contract_input(client_id, "no-existe"))

    @pytest.mark.asyncio
    async def test_inactive_plan(self, contract_service, client_id, inactive_plan_id, contract_input):
        with pytest.raises(ValidationError) as exc:
            await contract_service.create_contract(contract_input(client_id, inactive_plan_id))
        assert exc.value.field == "plan_id"

    @pytest.mark.asyncio
    async def test_zero_price(self, store, contract_service, client_id, plan_id, contract_input):
        with pytest.raises(ValidationError):
            await contract_service.create_contract(contract_input(client_id, plan_id, price=0))

        _, _, contracts, _ = await _snapshot(store, client_id, plan_id)
        assert contracts == []

    @pytest.mark.asyncio
    async def test_price_rounding_to_zero_is_rejected(
        self, store, contract_service, client_id, plan_id, contract_input
    ):
        with pytest.raises(ValidationError) as exc:
            await contract_service.create_contract(
                contract_input(client_id, plan_id, record_payment=True, price="0.001")
            )
        assert exc.value.field == "price"

        client, _, contracts, movements = await _snapshot(store, client_id, plan_id)
        assert contracts == []
        assert movements == []
        assert client.plan_ids == []

    @pytest.mark.asyncio
    async def test_timezone_aware_dates_are_a_validation_error(
        self, store, contract_service, client_id, plan_id, contract_input, now
    ):
        with pytest.raises(ValidationError) as exc:
            await contract_service.create_contract(
                contract_input(client_id, plan_id, start=now.replace(tzinfo=timezone.utc))
            )
        assert exc.value.field == "start_date"

        _, _, contracts, _ = await _snapshot(store, client_id, plan_id)
        assert contracts == []

    @pytest.mark.asyncio
    async def test_client_deactivated_after_precheck(
        self, store, contract_service, client_id, plan_id, contract_input
    ):
        """The client is checked again under its row lock inside the unit."""
        original_lock = ClientRepository.lock

        async def lock_after_offboarding(self, locked_id):
            await self.update(locked_id, {"active": False})
            return await original_lock(self, locked_id)

        with patch.object(ClientRepository, "lock", lock_after_offboarding):
            with pytest.raises(ValidationError) as exc:
                await contract_service.create_contract(contract_input(client_id, plan_id))
        assert exc.value.field == "client_id"

        client, plan, contracts, _ = await _snapshot(store, client_id, plan_id)
        assert contracts == []
        assert client.active
        assert client.plan_ids == [] and plan.client_ids == []

    @pytest.mark.asyncio
    async def test_same_client_different_plans(
        self, store, contract_service, client_id, plan_id, contract_input
    ):
        from gimnasio.domain.entities import Plan

        second_plan = await store.with_atomic_unit(
            lambda unit: unit.plans.create(Plan(id="", name="Cardio"))
        )
        await contract_service.create_contract(contract_input(client_id, plan_id))
        await contract_service.create_contract(contract_input(client_id, second_plan))

        async with store.reading() as unit:
            client = await unit.clients.get(client_id)
        assert sorted(client.plan_ids) == sorted([plan_id, second_plan])

    @pytest.mark.asyncio
    async def test_link_failure_rolls_back_contract(
        self, store, contract_service, client_id, plan_id, contract_input
    ):
        """A failure after the contract insert leaves no trace."""
        with patch.object(
            AssociationManager, "link", AsyncMock(side_effect=RuntimeError("sin conexión"))
        ):
            with pytest.raises(PersistenceError):
                await contract_service.create_contract(
                    contract_input(client_id, plan_id, record_payment=True)
                )

        client, plan, contracts, movements = await _snapshot(store, client_id, plan_id)
        assert contracts == []
        assert movements == []
        assert client.plan_ids == [] and plan.client_ids == []

    @pytest.mark.asyncio
    async def test_ledger_failure_rolls_back_contract_and_links(
        self, store, contract_service, client_id, plan_id, contract_input
    ):
        with patch.object(
            LedgerPoster, "post_income", AsyncMock(side_effect=RuntimeError("sin conexión"))
        ):
            with pytest.raises(PersistenceError):
                await contract_service.create_contract(
                    contract_input(client_id, plan_id, record_payment=True)
                )

        client, plan, contracts, _ = await _snapshot(store, client_id, plan_id)
        assert contracts == []
        assert client.plan_ids == [] and plan.client_ids == []

    @pytest.mark.asyncio
    async def test_concurrent_creates_leave_one_vigente(
        self, store, contract_service, client_id, plan_id, contract_input
    ):
        results = await asyncio.gather(
            *[
                contract_service.create_contract(contract_input(client_id, plan_id, price=100 + i))
                for i in range(5)
            ],
            return_exceptions=True,
        )

        succeeded = [r for r in results if not isinstance(r, Exception)]
        failed = [r for r in results if isinstance(r, Exception)]
        assert len(succeeded) == 1
        assert all(isinstance(e, (ConflictError, PersistenceError)) for e in failed)

        client, plan, contracts, _ = await _snapshot(store, client_id, plan_id)
        assert [c.status for c in contracts] == [ContractStatus.VIGENTE]
        assert client.plan_ids == [plan_id]
        assert plan.client_ids == [client_id]

    @pytest.mark.asyncio
    async def test_overdue_vigente_is_expired_lazily(
        self, store, settings, client_id, plan_id, contract_input, now
    ):
        first = await ContractService(store, settings=settings, clock=lambda: now).create_contract(
            contract_input(client_id, plan_id, days=30)
        )

        later = now + timedelta(days=40)
        second = await ContractService(store, settings=settings, clock=lambda: later).create_contract(
            contract_input(client_id, plan_id, start=later, days=30)
        )

        async with store.reading() as unit:
            old = await unit.contracts.get(first.contract_id)
            new = await unit.contracts.get(second.contract_id)
        assert old.status == ContractStatus.VENCIDO
        assert new.status == ContractStatus.VIGENTE


class TestCancelContract:
    """Test suite for cancellation."""

    @pytest.mark.asyncio
    async def test_unknown_contract(self, contract_service):
        with pytest.raises(NotFoundError):
            await contract_service.cancel_contract("no-existe", "x")

    @pytest.mark.asyncio
    async def test_cancel_twice_is_conflict_without_writes(
        self, store, contract_service, client_id, plan_id, contract_input
    ):
        created = await contract_service.create_contract(contract_input(client_id, plan_id))
        await contract_service.cancel_contract(created.contract_id, "primera")

        with pytest.raises(ConflictError):
            await contract_service.cancel_contract(created.contract_id, "segunda")

        async with store.reading() as unit:
            contract = await unit.contracts.get(created.contract_id)
        assert contract.cancellation_reason == "primera"

    @pytest.mark.asyncio
    async def test_cancel_renovado_is_invalid_state(
        self, store, contract_service, client_id, plan_id, contract_input, terms, now
    ):
        created = await contract_service.create_contract(contract_input(client_id, plan_id))
        renewed = await contract_service.renew_contract(
            created.contract_id, terms(start=now + timedelta(days=30))
        )

        with pytest.raises(InvalidStateError):
            await contract_service.cancel_contract(created.contract_id, "tarde")

        async with store.reading() as unit:
            old = await unit.contracts.get(created.contract_id)
            client = await unit.clients.get(client_id)
        assert old.status == ContractStatus.RENOVADO
        assert old.cancellation_reason is None
        assert client.plan_ids == [plan_id]
        assert renewed.contract_id != created.contract_id

    @pytest.mark.asyncio
    async def test_cancel_vencido(self, store, contract_service, client_id, plan_id, contract_input, now):
        created = await contract_service.create_contract(contract_input(client_id, plan_id, days=10))
        await contract_service.expire_overdue(now + timedelta(days=11))

        result = await contract_service.cancel_contract(created.contract_id, "no renovó")

        assert result.success
        client, _, contracts, _ = await _snapshot(store, client_id, plan_id)
        assert contracts[0].status == ContractStatus.CANCELADO
        assert client.plan_ids == []

    @pytest.mark.asyncio
    async def test_keeps_link_when_another_vigente_remains(
        self, store, contract_service, client_id, plan_id, contract_input, now
    ):
        """Cancelling an old vencido contract does not unlink an active one."""
        old = await contract_service.create_contract(contract_input(client_id, plan_id, days=10))

        later = now + timedelta(days=20)
        later_service = ContractService(store, clock=lambda: later)
        await later_service.create_contract(contract_input(client_id, plan_id, start=later, days=30))

        await later_service.cancel_contract(old.contract_id, "limpieza")

        async with store.reading() as unit:
            client = await unit.clients.get(client_id)
            plan = await unit.plans.get(plan_id)
        assert client.plan_ids == [plan_id]
        assert plan.client_ids == [client_id]

    @pytest.mark.asyncio
    async def test_compensation_failure_is_a_warning(
        self, store, contract_service, client_id, plan_id, contract_input, add_tracking
    ):
        created = await contract_service.create_contract(contract_input(client_id, plan_id))
        await add_tracking(client_id, created.contract_id)

        with patch.object(
            CompensationEngine,
            "delete_by_contract",
            AsyncMock(side_effect=PersistenceError("tabla bloqueada")),
        ):
            result = await contract_service.cancel_contract(created.contract_id, "client request")

        assert result.success
        assert result.compensated is None
        assert isinstance(result.warning, CompensationWarning)
        assert result.warning.details == {"contract_id": created.contract_id}

        async with store.reading() as unit:
            contract = await unit.contracts.get(created.contract_id)
            remaining = await unit.tracking.count({"contract_id": created.contract_id})
        assert contract.status == ContractStatus.CANCELADO
        assert remaining == 1

    @pytest.mark.asyncio
    async def test_no_tracking_reports_zero(self, contract_service, client_id, plan_id, contract_input):
        created = await contract_service.create_contract(contract_input(client_id, plan_id))

        result = await contract_service.cancel_contract(created.contract_id)

        assert result.deleted_count == 0
        assert result.warning is None

    @pytest.mark.asyncio
    async def test_unlink_failure_keeps_contract_vigente(
        self, store, contract_service, client_id, plan_id, contract_input, add_tracking
    ):
        created = await contract_service.create_contract(contract_input(client_id, plan_id))
        await add_tracking(client_id, created.contract_id)

        with patch.object(
            AssociationManager, "unlink", AsyncMock(side_effect=RuntimeError("sin conexión"))
        ):
            with pytest.raises(PersistenceError):
                await contract_service.cancel_contract(created.contract_id, "mudanza")

        client, plan, contracts, _ = await _snapshot(store, client_id, plan_id)
        assert contracts[0].status == ContractStatus.VIGENTE
        assert contracts[0].cancellation_reason is None
        assert client.plan_ids == [plan_id] and plan.client_ids == [client_id]
        async with store.reading() as unit:
            assert await unit.tracking.count({"contract_id": created.contract_id}) == 1

    @pytest.mark.asyncio
    async def test_state_changed_after_read_is_conflict(
        self, store, contract_service, client_id, plan_id, contract_input
    ):
        """A renewal that lands between the read and the unit wins."""
        created = await contract_service.create_contract(contract_input(client_id, plan_id))

        with patch.object(
            ContractService, "_load_contract", _load_then_move(store, ContractStatus.RENOVADO)
        ):
            with pytest.raises(ConflictError):
                await contract_service.cancel_contract(created.contract_id, "tarde")

        client, _, contracts, _ = await _snapshot(store, client_id, plan_id)
        assert contracts[0].status == ContractStatus.RENOVADO
        assert contracts[0].cancellation_reason is None
        assert client.plan_ids == [plan_id]

    @pytest.mark.asyncio
    async def test_transition_mismatch_aborts_unit(
        self, store, contract_service, client_id, plan_id, contract_input
    ):
        created = await contract_service.create_contract(contract_input(client_id, plan_id))

        with patch.object(ContractRepository, "transition", AsyncMock(return_value=False)):
            with pytest.raises(ConflictError):
                await contract_service.cancel_contract(created.contract_id, "x")

        client, _, contracts, _ = await _snapshot(store, client_id, plan_id)
        assert contracts[0].status == ContractStatus.VIGENTE
        assert client.plan_ids == [plan_id]


class TestRenewContract:
    """Test suite for renewal."""

    @pytest.mark.asyncio
    async def test_renew_vencido_with_payment(
        self, store, contract_service, client_id, plan_id, contract_input, terms, now
    ):
        created = await contract_service.create_contract(contract_input(client_id, plan_id, days=10))
        await contract_service.expire_overdue(now + timedelta(days=11))

        renewed = await contract_service.renew_contract(
            created.contract_id, terms(price=90, days=60), record_payment=True
        )

        _, _, contracts, movements = await _snapshot(store, client_id, plan_id)
        statuses = {c.id: c.status for c in contracts}
        assert statuses[created.contract_id] == ContractStatus.RENOVADO
        assert statuses[renewed.contract_id] == ContractStatus.VIGENTE
        assert [m.amount for m in movements] == [Decimal("90.00")]

    @pytest.mark.asyncio
    async def test_renew_twice_is_invalid_state(
        self, contract_service, client_id, plan_id, contract_input, terms, now
    ):
        created = await contract_service.create_contract(contract_input(client_id, plan_id))
        await contract_service.renew_contract(created.contract_id, terms(start=now + timedelta(days=30)))

        with pytest.raises(InvalidStateError):
            await contract_service.renew_contract(created.contract_id, terms(start=now + timedelta(days=60)))

    @pytest.mark.asyncio
    async def test_renew_with_invalid_terms_keeps_original(
        self, store, contract_service, client_id, plan_id, contract_input, terms
    ):
        created = await contract_service.create_contract(contract_input(client_id, plan_id))

        with pytest.raises(ValidationError):
            await contract_service.renew_contract(created.contract_id, terms(price=-5))

        async with store.reading() as unit:
            contract = await unit.contracts.get(created.contract_id)
        assert contract.status == ContractStatus.VIGENTE

    @pytest.mark.asyncio
    async def test_unknown_contract(self, contract_service, terms):
        with pytest.raises(NotFoundError):
            await contract_service.renew_contract("no-existe", terms())

    @pytest.mark.parametrize(
        "target,method",
        [(AssociationManager, "link"), (ContractRepository, "create"), (LedgerPoster, "post_income")],
    )
    @pytest.mark.asyncio
    async def test_failure_after_transition_keeps_original(
        self, store, contract_service, client_id, plan_id, contract_input, terms, now, target, method
    ):
        """Nothing of the renewal survives when any step of its unit fails."""
        created = await contract_service.create_contract(contract_input(client_id, plan_id))

        with patch.object(target, method, AsyncMock(side_effect=RuntimeError("sin conexión"))):
            with pytest.raises(PersistenceError):
                await contract_service.renew_contract(
                    created.contract_id,
                    terms(price=120, start=now + timedelta(days=30)),
                    record_payment=True,
                )

        client, plan, contracts, movements = await _snapshot(store, client_id, plan_id)
        assert [c.id for c in contracts] == [created.contract_id]
        assert contracts[0].status == ContractStatus.VIGENTE
        assert contracts[0].renewed_at is None
        assert movements == []
        assert client.plan_ids == [plan_id] and plan.client_ids == [client_id]

    @pytest.mark.asyncio
    async def test_state_changed_after_read_is_conflict(
        self, store, contract_service, client_id, plan_id, contract_input, terms, now
    ):
        """A cancellation that lands between the read and the unit wins."""
        created = await contract_service.create_contract(contract_input(client_id, plan_id))

        with patch.object(
            ContractService, "_load_contract", _load_then_move(store, ContractStatus.CANCELADO)
        ):
            with pytest.raises(ConflictError):
                await contract_service.renew_contract(
                    created.contract_id, terms(start=now + timedelta(days=30))
                )

        _, _, contracts, _ = await _snapshot(store, client_id, plan_id)
        assert [c.status for c in contracts] == [ContractStatus.CANCELADO]
        assert contracts[0].renewed_at is None

    @pytest.mark.asyncio
    async def test_transition_mismatch_aborts_unit(
        self, store, contract_service, client_id, plan_id, contract_input, terms, now
    ):
        created = await contract_service.create_contract(contract_input(client_id, plan_id))

        with patch.object(ContractRepository, "transition", AsyncMock(return_value=False)):
            with pytest.raises(ConflictError):
                await contract_service.renew_contract(
                    created.contract_id, terms(start=now + timedelta(days=30))
                )

        _, _, contracts, _ = await _snapshot(store, client_id, plan_id)
        assert [c.id for c in contracts] == [created.contract_id]
        assert contracts[0].status == ContractStatus.VIGENTE


class TestUpdateContract:
    """Test suite for administrative updates."""

    @pytest.mark.asyncio
    async def test_update_conditions(self, store, contract_service, client_id, plan_id, contract_input):
        created = await contract_service.create_contract(contract_input(client_id, plan_id))

        assert await contract_service.update_contract(
            created.contract_id, {"conditions": "  incluye nutrición "}
        )

        details = await contract_service.get_contract(created.contract_id)
        assert details.contract.conditions == "incluye nutrición"

    @pytest.mark.parametrize(
        "patch_",
        [{"price": 10}, {"end_date": None}, {"status": "cancelado"}, {"plan_id": "x"}],
    )
    @pytest.mark.asyncio
    async def test_protected_fields(self, contract_service, client_id, plan_id, contract_input, patch_):
        created = await contract_service.create_contract(contract_input(client_id, plan_id))

        with pytest.raises(ValidationError):
            await contract_service.update_contract(created.contract_id, patch_)

    @pytest.mark.asyncio
    async def test_conditions_frozen_after_cancel(self, contract_service, client_id, plan_id, contract_input):
        created = await contract_service.create_contract(contract_input(client_id, plan_id))
        await contract_service.cancel_contract(created.contract_id, "motivo")

        with pytest.raises(InvalidStateError):
            await contract_service.update_contract(created.contract_id, {"conditions": "nuevas"})

        assert await contract_service.update_contract(
            created.contract_id, {"cancellation_reason": "motivo corregido"}
        )

    @pytest.mark.asyncio
    async def test_conditions_frozen_once_vencido(
        self, store, contract_service, client_id, plan_id, contract_input, now
    ):
        created = await contract_service.create_contract(
            contract_input(client_id, plan_id, days=10, conditions="pago mensual")
        )
        await contract_service.expire_overdue(now + timedelta(days=11))

        with pytest.raises(InvalidStateError) as exc:
            await contract_service.update_contract(created.contract_id, {"conditions": "nuevas"})
        assert exc.value.state == "vencido"

        details = await contract_service.get_contract(created.contract_id)
        assert details.contract.conditions == "pago mensual"

    @pytest.mark.asyncio
    async def test_cancel_between_read_and_update_is_conflict(
        self, store, contract_service, client_id, plan_id, contract_input
    ):
        created = await contract_service.create_contract(
            contract_input(client_id, plan_id, conditions="pago mensual")
        )

        with patch.object(
            ContractService, "_load_contract", _load_then_move(store, ContractStatus.CANCELADO)
        ):
            with pytest.raises(ConflictError):
                await contract_service.update_contract(
                    created.contract_id, {"conditions": "reescritas"}
                )

        details = await contract_service.get_contract(created.contract_id)
        assert details.contract.status == ContractStatus.CANCELADO
        assert details.contract.conditions == "pago mensual"


class TestExpiryAndQueries:
    """Test suite for the expiry sweep and read operations."""

    @pytest.mark.asyncio
    async def test_expire_overdue_keeps_association(
        self, store, contract_service, client_id, plan_id, contract_input, now
    ):
        created = await contract_service.create_contract(contract_input(client_id, plan_id, days=10))

        result = await contract_service.expire_overdue(now + timedelta(days=11))
        again = await contract_service.expire_overdue(now + timedelta(days=12))

        assert result.expired_ids == [created.contract_id]
        assert again.count == 0
        client, _, contracts, _ = await _snapshot(store, client_id, plan_id)
        assert contracts[0].status == ContractStatus.VENCIDO
        assert client.plan_ids == [plan_id]

    @pytest.mark.asyncio
    async def test_get_contract_details(self, contract_service, client_id, plan_id, contract_input):
        created = await contract_service.create_contract(contract_input(client_id, plan_id))

        details = await contract_service.get_contract(created.contract_id)

        assert details.client["name"] == "Ana Gómez"
        assert details.plan["name"] == "Fuerza 12 semanas"
        assert details.to_dict()["status"] == "vigente"

    @pytest.mark.asyncio
    async def test_get_contract_not_found(self, contract_service):
        with pytest.raises(NotFoundError):
            await contract_service.get_contract("no-existe")

    @pytest.mark.asyncio
    async def test_list_and_client_contracts(
        self, contract_service, client_id, other_client_id, plan_id, contract_input
    ):
        await contract_service.create_contract(contract_input(client_id, plan_id))
        await contract_service.create_contract(contract_input(other_client_id, plan_id))

        assert len(await contract_service.list_contracts({"plan_id": plan_id})) == 2
        mine = await contract_service.get_client_contracts(client_id)
        assert [c.client_id for c in mine] == [client_id]

        with pytest.raises(NotFoundError):
            await contract_service.get_client_contracts("no-existe")

    @pytest.mark.asyncio
    async def test_get_expiring_contracts(
        self, contract_service, client_id, other_client_id, plan_id, contract_input
    ):
        soon = await contract_service.create_contract(contract_input(client_id, plan_id, days=20))
        await contract_service.create_contract(contract_input(other_client_id, plan_id, days=90))

        expiring = await contract_service.get_expiring_contracts(days=30)

        assert [c.id for c in expiring] == [soon.contract_id]
