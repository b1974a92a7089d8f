"""
Database layer - async engine, SQLite backend, schema and SQL builders.
"""

from .engine import Database
from .query import UpdateBuilder
from .schema import create_schema

__all__ = [
    "Database",
    "UpdateBuilder",
    "create_schema",
]
