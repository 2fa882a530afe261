"""Gimnasio - Gestión de contratos, clientes y planes de entrenamiento."""

__version__ = "0.1.0"
