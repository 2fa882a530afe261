"""Tareas programadas con APScheduler."""
