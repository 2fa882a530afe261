"""Capa de persistencia: engine, modelos, repositorios y unidades atómicas."""
