"""
Alembic Environment Configuration.

Toma la URL de la base de datos de Settings y la convierte a su driver
síncrono para correr las migraciones.
"""

import os
import sys
from logging.config import fileConfig

from alembic import context
from sqlalchemy import engine_from_config, pool

# Agregar el directorio raiz al path para importar gimnasio
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from gimnasio.config import get_settings
from gimnasio.db.database import Base
from gimnasio.db import models  # noqa: F401

# Alembic Config object
config = context.config

# Logging configuration
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

# Metadata de los modelos para autogenerate
target_metadata = Base.metadata

settings = get_settings()

# Drivers asíncronos -> síncronos
SYNC_DRIVERS = {
    "postgresql+asyncpg": "postgresql",
    "sqlite+aiosqlite": "sqlite",
}


def get_url() -> str:
    """Obtiene la URL de conexion sincrona para Alembic."""
    url = settings.database_url
    scheme, sep, rest = url.partition("://")
    return f"{SYNC_DRIVERS.get(scheme, scheme)}{sep}{rest}"


def run_migrations_offline() -> None:
    """
    Run migrations in 'offline' mode.

    Genera SQL sin conectar a la base de datos.
    """
    context.configure(
        url=get_url(),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        render_as_batch=settings.is_sqlite,
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    """
    Run migrations in 'online' mode.

    Conecta a la base de datos y aplica las migraciones.
    """
    configuration = config.get_section(config.config_ini_section) or {}
    configuration["sqlalchemy.url"] = get_url()

    connectable = engine_from_config(
        configuration,
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )

    with connectable.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            render_as_batch=settings.is_sqlite,
        )

        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
