"""Repository base con el CRUD genérico sobre una AsyncSession."""

import logging
from enum import Enum
from typing import Any, ClassVar, Generic, TypeVar

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from gimnasio.db.database import Base
from gimnasio.db.models import new_id
from gimnasio.domain.repositories.base import QueryOptions
from gimnasio.utils.errors import ValidationError

logger = logging.getLogger(__name__)

E = TypeVar("E")
M = TypeVar("M", bound=Base)


class SQLAlchemyRepository(Generic[E, M]):
    """
    CRUD genérico para un agregado.

    Las subclases definen `model`, `_to_entity` y `_to_values`. Los filtros
    son por igualdad de columnas; una lista o conjunto se traduce a IN.
    """

    model: ClassVar[type[Base]]
    default_sort: ClassVar[list[tuple[str, bool]]] = []
    # Columnas que no se pueden modificar con update()
    immutable_fields: ClassVar[frozenset[str]] = frozenset({"id"})

    def __init__(self, session: AsyncSession):
        self.session = session

    # ==================== Mapeo ====================

    def _to_entity(self, model: M) -> E:
        raise NotImplementedError

    def _to_values(self, entity: E) -> dict[str, Any]:
        raise NotImplementedError

    # ==================== Helpers ====================

    def _column(self, name: str):
        if name not in self.model.__table__.columns:
            raise ValidationError(
                f"Campo desconocido para {self.model.__tablename__}: {name}", field=name
            )
        return getattr(self.model, name)

    @staticmethod
    def _coerce(value: Any) -> Any:
        if isinstance(value, Enum):
            return value.value
        return value

    def _conditions(self, filter: dict[str, Any] | None) -> list[Any]:
        conditions = []
        for name, value in (filter or {}).items():
            column = self._column(name)
            if value is None:
                conditions.append(column.is_(None))
            elif isinstance(value, (list, tuple, set, frozenset)):
                conditions.append(column.in_([self._coerce(v) for v in value]))
            else:
                conditions.append(column == self._coerce(value))
        return conditions

    def _select(self):
        return select(self.model).execution_options(populate_existing=True)

    # ==================== CRUD ====================

    async def get(self, id: str) -> E | None:
        """Obtiene una entidad por su ID."""
        result = await self.session.execute(self._select().where(self.model.id == id))
        model = result.scalar_one_or_none()
        return self._to_entity(model) if model else None

    async def get_all(
        self,
        filter: dict[str, Any] | None = None,
        options: QueryOptions | None = None,
    ) -> list[E]:
        """Lista entidades aplicando filtro, orden y paginación."""
        options = options or QueryOptions()
        query = self._select().where(*self._conditions(filter))

        for name, descending in options.sort or self.default_sort:
            column = self._column(name)
            query = query.order_by(column.desc() if descending else column.asc())

        if options.skip > 0:
            query = query.offset(options.skip)
        if options.limit > 0:
            query = query.limit(options.limit)

        result = await self.session.execute(query)
        return [self._to_entity(model) for model in result.scalars().all()]

    async def create(self, entity: E) -> str:
        """Inserta la entidad y devuelve su ID."""
        values = self._to_values(entity)
        if not values.get("id"):
            values["id"] = new_id()
        self.session.add(self.model(**values))
        await self.session.flush()
        logger.debug(f"{self.model.__tablename__}: creado {values['id']}")
        return values["id"]

    async def update(self, id: str, patch: dict[str, Any]) -> bool:
        """Aplica un parche parcial. True si alguna fila coincidió."""
        forbidden = set(patch) & self.immutable_fields
        if forbidden:
            raise ValidationError(
                f"Campos no modificables: {', '.join(sorted(forbidden))}",
                field=sorted(forbidden)[0],
            )
        if not patch:
            return False
        values = {self._column(name).key: self._coerce(value) for name, value in patch.items()}
        result = await self.session.execute(
            update(self.model)
            .where(self.model.id == id)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount > 0

    async def delete(self, id: str) -> bool:
        """Elimina una entidad por su ID."""
        result = await self.session.execute(
            delete(self.model)
            .where(self.model.id == id)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount > 0

    async def count(self, filter: dict[str, Any] | None = None) -> int:
        """Cuenta entidades que cumplen el filtro."""
        result = await self.session.execute(
            select(func.count()).select_from(self.model).where(*self._conditions(filter))
        )
        return result.scalar() or 0
