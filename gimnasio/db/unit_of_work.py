"""
Unidad de trabajo y almacén de entidades.

Una `UnitOfWork` agrupa los repositorios de todos los agregados sobre una
misma `AsyncSession`. El `EntityStore` la entrega de dos formas:

- `reading()`: sesión sin transacción explícita, para lecturas y
  validación de precondiciones.
- `with_atomic_unit(fn)`: ejecuta `fn(unit)` dentro de una transacción;
  todas las escrituras se confirman juntas o se revierten juntas.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Awaitable, Callable, TypeVar

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from gimnasio.config import get_settings
from gimnasio.db.repositories import (
    ClientRepository,
    ContractRepository,
    FinancialMovementRepository,
    PlanRepository,
    TrackingRecordRepository,
)
from gimnasio.utils.errors import (
    ConflictError,
    ErrorCategory,
    GimnasioError,
    PersistenceError,
    log_error,
    retry_atomic_unit,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


class UnitOfWork:
    """Repositorios de todos los agregados ligados a una sola sesión."""

    def __init__(self, session: AsyncSession, atomic: bool = False):
        self.session = session
        self.atomic = atomic
        self.clients = ClientRepository(session)
        self.plans = PlanRepository(session)
        self.contracts = ContractRepository(session)
        self.movements = FinancialMovementRepository(session)
        self.tracking = TrackingRecordRepository(session)

    def require_atomic(self, operation: str) -> None:
        """Falla si la operación se invoca fuera de una unidad atómica."""
        if not self.atomic:
            raise PersistenceError(
                f"{operation} debe ejecutarse dentro de una unidad atómica",
                details={"operation": operation},
            )


class EntityStore:
    """
    Almacén de entidades con soporte de unidades atómicas.

    Uso:
        store = get_entity_store()

        async with store.reading() as unit:
            client = await unit.clients.get(client_id)

        contract_id = await store.with_atomic_unit(
            lambda unit: unit.contracts.create(contract),
            operation="create_contract",
        )
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        retry_attempts: int = 3,
        retry_wait_min: float = 0.05,
        retry_wait_max: float = 1.0,
    ):
        self._session_factory = session_factory
        self._retry = retry_atomic_unit(retry_attempts, retry_wait_min, retry_wait_max)

    @asynccontextmanager
    async def reading(self) -> AsyncIterator[UnitOfWork]:
        """Unidad de solo lectura."""
        try:
            async with self._session_factory() as session:
                yield UnitOfWork(session)
        except GimnasioError:
            raise
        except SQLAlchemyError as e:
            log_error(e, "reading", ErrorCategory.PERSISTENCE)
            raise PersistenceError(f"Error leyendo del almacén: {e}") from e

    async def with_atomic_unit(
        self,
        fn: Callable[[UnitOfWork], Awaitable[T]],
        operation: str = "atomic_unit",
    ) -> T:
        """
        Ejecuta `fn` dentro de una transacción.

        Errores transitorios (OperationalError) se reintentan con una sesión
        nueva. Cualquier otra falla revierte la unidad completa:

        - errores de dominio se propagan tal cual;
        - IntegrityError se traduce a ConflictError;
        - el resto se traduce a PersistenceError.
        """
        runner = self._retry(self._run_atomic)
        try:
            return await runner(fn)
        except GimnasioError:
            raise
        except IntegrityError as e:
            logger.warning(f"Restricción de integridad violada en {operation}: {e.orig}")
            raise ConflictError(
                f"La operación {operation} viola una restricción de unicidad",
                details={"operation": operation},
            ) from e
        except Exception as e:
            log_error(e, operation, ErrorCategory.PERSISTENCE)
            raise PersistenceError(
                f"La unidad atómica {operation} falló y fue revertida: {e}",
                details={"operation": operation},
            ) from e

    async def _run_atomic(self, fn: Callable[[UnitOfWork], Awaitable[T]]) -> T:
        async with self._session_factory() as session:
            async with session.begin():
                return await fn(UnitOfWork(session, atomic=True))


_entity_store: EntityStore | None = None


def get_entity_store() -> EntityStore:
    """Obtiene el almacén de entidades (singleton)."""
    global _entity_store
    if _entity_store is None:
        from gimnasio.db.database import get_session_factory

        settings = get_settings()
        _entity_store = EntityStore(
            get_session_factory(),
            retry_attempts=settings.atomic_retry_attempts,
            retry_wait_min=settings.atomic_retry_wait_min,
            retry_wait_max=settings.atomic_retry_wait_max,
        )
    return _entity_store
