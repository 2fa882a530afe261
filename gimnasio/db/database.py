"""
Database - SQLAlchemy asíncrono.

PostgreSQL (asyncpg) en producción; cualquier DSN asíncrono vía DATABASE_DSN.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from gimnasio.config import get_settings

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """Base class para modelos SQLAlchemy."""
    pass


# Engine y session factory
_engine: AsyncEngine | None = None
_async_session_factory: async_sessionmaker[AsyncSession] | None = None


def build_engine(url: str, echo: bool = False) -> AsyncEngine:
    """Crea un engine con el pool adecuado para el dialecto."""
    if url.startswith("sqlite"):
        return create_async_engine(url, echo=echo)
    return create_async_engine(
        url,
        echo=echo,
        pool_size=5,
        max_overflow=10,
        pool_pre_ping=True,
        connect_args={
            "server_settings": {"jit": "off"}
        },
    )


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


def get_engine() -> AsyncEngine:
    """Obtiene el engine de la base de datos."""
    global _engine
    if _engine is None:
        settings = get_settings()
        _engine = build_engine(settings.database_url, echo=settings.debug)
    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Obtiene la factory de sesiones."""
    global _async_session_factory
    if _async_session_factory is None:
        _async_session_factory = build_session_factory(get_engine())
    return _async_session_factory


@asynccontextmanager
async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """Context manager para obtener una sesión."""
    factory = get_session_factory()
    async with factory() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise


async def init_db() -> None:
    """Inicializa la base de datos."""
    settings = get_settings()
    if settings.is_sqlite:
        logger.info(f"Conectando a SQLite: {settings.database_url}")
    else:
        logger.info(
            f"Conectando a PostgreSQL: {settings.postgres_host}:{settings.postgres_port}/{settings.postgres_db}"
        )

    # Importar modelos para que se registren
    from gimnasio.db import models  # noqa: F401

    engine = get_engine()

    # En desarrollo, crear tablas automáticamente
    # En producción, usar migraciones
    if settings.is_development:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    logger.info("Base de datos inicializada")


async def close_db() -> None:
    """Cierra las conexiones de la base de datos."""
    global _engine, _async_session_factory

    if _engine:
        await _engine.dispose()
        _engine = None
        _async_session_factory = None

    logger.info("Conexiones de base de datos cerradas")


async def check_db_connection() -> bool:
    """Verifica la conexión a la base de datos."""
    try:
        async with get_session() as session:
            await session.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logger.error(f"Error conectando a la base de datos: {e}")
        return False
