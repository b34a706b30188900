"""Database module for livedir."""

from livedir.db.connection import MEMORY, Database

__all__ = ["MEMORY", "Database"]
