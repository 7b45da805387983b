# src/postwatch/db/__init__.py
"""Database configuration and utilities."""

from .session import SessionLocal, get_db
from .transaction import run_in_transaction

__all__ = ["get_db", "SessionLocal", "run_in_transaction"]
