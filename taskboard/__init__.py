"""Kanban task board API with session, bearer and basic authentication."""

__version__ = "1.0.0"
