"""
Domain Layer - Entidades, contratos de repositorio y servicios de dominio.
"""
