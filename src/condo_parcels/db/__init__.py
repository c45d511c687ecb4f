# src/condo_parcels/db/__init__.py
"""Local database configuration and utilities."""

from .session import SessionLocal, get_db

__all__ = ["get_db", "SessionLocal"]
