"""Manejo centralizado de errores y excepciones."""

import logging
import traceback
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from sqlalchemy.exc import OperationalError
from tenacity import (
    retry,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception_type,
    before_sleep_log,
)

logger = logging.getLogger(__name__)


class ErrorCategory(str, Enum):
    """Categorías de errores."""

    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    INVALID_STATE = "invalid_state"
    PERSISTENCE = "persistence"
    COMPENSATION = "compensation"
    SCHEDULER = "scheduler"
    UNKNOWN = "unknown"


@dataclass
class ErrorContext:
    """Contexto de un error para logging."""

    category: ErrorCategory
    operation: str
    error_type: str
    message: str
    details: dict[str, Any] | None = None
    traceback_str: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convierte a diccionario para logging."""
        return {
            "category": self.category.value,
            "operation": self.operation,
            "error_type": self.error_type,
            "message": self.message,
            "details": self.details,
        }


class GimnasioError(Exception):
    """Excepción base para Gimnasio."""

    def __init__(
        self,
        message: str,
        category: ErrorCategory = ErrorCategory.UNKNOWN,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category
        self.details = details or {}

    def __str__(self) -> str:
        return f"[{self.category.value}] {self.message}"


class ValidationError(GimnasioError):
    """Datos de entrada mal formados o inválidos para el negocio."""

    def __init__(self, message: str, field: str | None = None, details: dict[str, Any] | None = None):
        details = details or {}
        if field:
            details["field"] = field
        super().__init__(message, ErrorCategory.VALIDATION, details)
        self.field = field


class NotFoundError(GimnasioError):
    """La entidad referenciada no existe."""

    def __init__(self, entity: str, entity_id: str, details: dict[str, Any] | None = None):
        details = details or {}
        details.update({"entity": entity, "id": entity_id})
        super().__init__(f"{entity} no encontrado: {entity_id}", ErrorCategory.NOT_FOUND, details)
        self.entity = entity
        self.entity_id = entity_id


class ConflictError(GimnasioError):
    """Se violaría una restricción de unicidad o de estado."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message, ErrorCategory.CONFLICT, details)


class InvalidStateError(GimnasioError):
    """La operación no está permitida desde el estado actual."""

    def __init__(self, message: str, state: str | None = None, details: dict[str, Any] | None = None):
        details = details or {}
        if state:
            details["state"] = state
        super().__init__(message, ErrorCategory.INVALID_STATE, details)
        self.state = state


class PersistenceError(GimnasioError):
    """La unidad atómica falló; no quedó ningún efecto parcial."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message, ErrorCategory.PERSISTENCE, details)


@dataclass(frozen=True)
class CompensationWarning:
    """
    Aviso no fatal de una compensación fallida.

    Se adjunta al resultado exitoso de la operación principal; nunca se lanza.
    """

    operation: str
    message: str
    details: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "category": ErrorCategory.COMPENSATION.value,
            "operation": self.operation,
            "message": self.message,
            "details": self.details,
        }


def log_error(
    error: Exception,
    operation: str,
    category: ErrorCategory = ErrorCategory.UNKNOWN,
    extra: dict[str, Any] | None = None,
    level: int = logging.ERROR,
) -> ErrorContext:
    """
    Registra un error con contexto estructurado.

    Args:
        error: La excepción capturada
        operation: Nombre de la operación que falló
        category: Categoría del error
        extra: Información adicional
        level: Nivel de logging

    Returns:
        ErrorContext con los detalles del error
    """
    if isinstance(error, GimnasioError):
        category = error.category
        details = {**(error.details or {}), **(extra or {})}
    else:
        details = extra or {}

    context = ErrorContext(
        category=category,
        operation=operation,
        error_type=type(error).__name__,
        message=str(error),
        details=details,
        traceback_str=traceback.format_exc(),
    )

    logger.log(
        level,
        f"Error en {operation}: {error}",
        extra={"error_context": context.to_dict()},
    )

    return context


def retry_atomic_unit(attempts: int = 3, wait_min: float = 0.05, wait_max: float = 1.0):
    """Retry configurado para unidades atómicas ante errores transitorios de la BD."""
    return retry(
        stop=stop_after_attempt(attempts),
        wait=wait_exponential(multiplier=wait_min, min=wait_min, max=wait_max),
        retry=retry_if_exception_type(OperationalError),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )
