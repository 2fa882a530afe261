"""Pytest configuration and fixtures for Gimnasio tests."""

import os
from datetime import datetime, timedelta
from typing import AsyncGenerator

import pytest
from sqlalchemy.ext.asyncio import AsyncEngine

# Set test environment
os.environ["APP_ENV"] = "test"
os.environ["DEBUG"] = "false"
os.environ["DATABASE_DSN"] = "sqlite+aiosqlite:///:memory:"

from gimnasio.config import Settings
from gimnasio.db.database import Base, build_engine, build_session_factory
from gimnasio.db import models  # noqa: F401
from gimnasio.db.unit_of_work import EntityStore, UnitOfWork
from gimnasio.domain.entities import (
    Client,
    ContractInput,
    ContractTerms,
    Plan,
    PlanStatus,
    TrackingRecord,
)
from gimnasio.domain.services import ClientService, ContractService

# Reloj fijo para todas las pruebas
NOW = datetime(2026, 3, 2, 9, 0, 0)


def make_terms(
    price=100,
    start: datetime = NOW,
    days: int = 30,
    conditions: str | None = None,
) -> ContractTerms:
    """Términos válidos respecto a NOW."""
    return ContractTerms(
        start_date=start,
        end_date=start + timedelta(days=days),
        price=price,
        conditions=conditions,
    )


def make_input(client_id: str, plan_id: str, record_payment: bool = False, **kwargs) -> ContractInput:
    return ContractInput(
        client_id=client_id,
        plan_id=plan_id,
        terms=make_terms(**kwargs),
        record_payment=record_payment,
    )


# ==================== DATABASE ====================

@pytest.fixture
async def engine(tmp_path) -> AsyncGenerator[AsyncEngine, None]:
    """SQLite en archivo temporal, una base por prueba."""
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'gimnasio.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def settings() -> Settings:
    return Settings(
        app_env="test",
        atomic_retry_attempts=3,
        atomic_retry_wait_min=0.01,
        atomic_retry_wait_max=0.05,
    )


@pytest.fixture
def store(engine, settings) -> EntityStore:
    return EntityStore(
        build_session_factory(engine),
        retry_attempts=settings.atomic_retry_attempts,
        retry_wait_min=settings.atomic_retry_wait_min,
        retry_wait_max=settings.atomic_retry_wait_max,
    )


# ==================== SERVICES ====================

@pytest.fixture
def contract_service(store, settings) -> ContractService:
    return ContractService(store, settings=settings, clock=lambda: NOW)


@pytest.fixture
def client_service(store, contract_service) -> ClientService:
    return ClientService(store, contract_service)


# ==================== SEED DATA ====================

async def _insert(store: EntityStore, entity, repo: str) -> str:
    async def _create(unit: UnitOfWork) -> str:
        return await getattr(unit, repo).create(entity)

    return await store.with_atomic_unit(_create)


@pytest.fixture
async def client_id(store) -> str:
    """Cliente C1."""
    return await _insert(
        store,
        Client(id="", first_name="Ana", last_name="Gómez", email="ana@example.com"),
        "clients",
    )


@pytest.fixture
async def other_client_id(store) -> str:
    """Cliente C2."""
    return await _insert(
        store,
        Client(id="", first_name="Luis", last_name="Pérez", email="luis@example.com"),
        "clients",
    )


@pytest.fixture
async def plan_id(store) -> str:
    """Plan P1."""
    return await _insert(store, Plan(id="", name="Fuerza 12 semanas", duration_weeks=12), "plans")


@pytest.fixture
async def inactive_plan_id(store) -> str:
    return await _insert(
        store, Plan(id="", name="Plan retirado", status=PlanStatus.INACTIVE), "plans"
    )


@pytest.fixture
def add_tracking(store):
    """Factory para crear seguimientos."""

    async def _add(client_id: str, contract_id: str | None = None, weight: float = 70.0) -> str:
        return await _insert(
            store,
            TrackingRecord(
                id="",
                client_id=client_id,
                contract_id=contract_id,
                date=NOW,
                weight=weight,
            ),
            "tracking",
        )

    return _add


# ==================== FACTORIES ====================

@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def terms():
    """Factory de ContractTerms válidos."""
    return make_terms


@pytest.fixture
def contract_input():
    """Factory de ContractInput válidos."""
    return make_input
