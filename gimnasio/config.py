"""Configuracion de la aplicacion usando Pydantic Settings."""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Configuracion principal de Gimnasio."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # App
    app_env: str = "development"
    debug: bool = False
    log_level: str = "INFO"

    # PostgreSQL
    postgres_host: str = "localhost"
    postgres_port: int = 5432
    postgres_db: str = "gimnasio"
    postgres_user: str = "gimnasio"
    postgres_password: str = ""

    # DSN completo (tiene prioridad sobre postgres_*)
    database_dsn: str = ""

    # Timezone
    tz: str = "America/Bogota"

    # Reintentos de unidades atómicas ante errores transitorios
    atomic_retry_attempts: int = 3
    atomic_retry_wait_min: float = 0.05
    atomic_retry_wait_max: float = 1.0

    # Contratos
    contract_payment_category: str = "contrato"
    contract_expiry_interval_minutes: int = 60
    expiring_soon_days: int = 30

    @property
    def database_url(self) -> str:
        """URL de conexion a la base de datos."""
        if self.database_dsn:
            return self.database_dsn
        return (
            f"postgresql+asyncpg://{self.postgres_user}:{self.postgres_password}"
            f"@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"
        )

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")

    @property
    def is_development(self) -> bool:
        return self.app_env == "development"


@lru_cache
def get_settings() -> Settings:
    """Obtiene la configuracion cacheada."""
    return Settings()
