"""Utilidades de Gimnasio."""

from gimnasio.utils.errors import (
    GimnasioError,
    ValidationError,
    NotFoundError,
    ConflictError,
    InvalidStateError,
    PersistenceError,
    CompensationWarning,
    ErrorCategory,
    ErrorContext,
    log_error,
    retry_atomic_unit,
)

__all__ = [
    "GimnasioError",
    "ValidationError",
    "NotFoundError",
    "ConflictError",
    "InvalidStateError",
    "PersistenceError",
    "CompensationWarning",
    "ErrorCategory",
    "ErrorContext",
    "log_error",
    "retry_atomic_unit",
]
