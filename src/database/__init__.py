"""Database module for grades data storage."""

from .connection import get_db, init_database, verify_database
from .repository import Repository
from .seed import seed_demo_data
from .store import SqliteGradesStore

__all__ = ["Repository", "SqliteGradesStore", "get_db", "init_database", "seed_demo_data", "verify_database"]
