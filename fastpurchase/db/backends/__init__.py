"""
Database backend adapters.
"""

from .base import DatabaseAdapter

__all__ = ["DatabaseAdapter"]
