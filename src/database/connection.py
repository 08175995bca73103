"""Database connection management for the grades store.

This module provides connection pooling, WAL mode, and path validation for
the SQLite database that backs the grades engine.
"""

import os
import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from queue import Empty, Full, Queue
from typing import Optional

from dotenv import load_dotenv

from src.logutils import get_logger

load_dotenv()

# Module logger
logger = get_logger(__name__)

# Default database path
DEFAULT_DB_PATH = Path(__file__).parent.parent.parent / "grades.db"
DB_PATH = Path(os.getenv("GRADES_DB_PATH") or os.getenv("DATABASE_PATH") or str(DEFAULT_DB_PATH))

SCHEMA_PATH = Path(__file__).parent / "schema.sql"

# Connection pool settings
_POOL_SIZE = int(os.getenv("DB_POOL_SIZE", "5"))
_POOL_TIMEOUT = float(os.getenv("DB_POOL_TIMEOUT", "30.0"))


class ConnectionPool:
    """Thread-safe SQLite connection pool with WAL mode support.

    The async store runs queries in worker threads, so connections are
    created with ``check_same_thread=False`` and handed out one per call.
    """

    def __init__(self, db_path: Path, pool_size: int = 5, timeout: float = 30.0):
        """Initialize the connection pool.

        Args:
            db_path: Path to the SQLite database file
            pool_size: Maximum number of idle connections to keep
            timeout: Seconds to wait for an available connection
        """
        self._db_path = self._validate_path(db_path)
        self._pool_size = pool_size
        self._timeout = timeout
        self._pool: Queue[sqlite3.Connection] = Queue(maxsize=pool_size)
        self._lock = threading.Lock()

    @property
    def db_path(self) -> Path:
        return self._db_path

    @staticmethod
    def _validate_path(db_path: Path) -> Path:
        """Reject traversal and system locations.

        Raises:
            ValueError: If the path contains ``..`` or points into /etc
        """
        if ".." in Path(db_path).parts:
            raise ValueError(f"Invalid database path: {db_path}")
        resolved = Path(db_path).resolve()
        if str(resolved).startswith("/etc"):
            raise ValueError(f"Invalid database path: {db_path}")
        return resolved

    def _create_connection(self) -> sqlite3.Connection:
        conn = sqlite3.connect(
            str(self._db_path),
            check_same_thread=False,  # Allow cross-thread usage with pool
            timeout=self._timeout,
        )
        conn.row_factory = sqlite3.Row

        # Enable WAL mode for better concurrency (readers don't block writers)
        conn.execute("PRAGMA journal_mode = WAL")
        conn.execute("PRAGMA foreign_keys = ON")
        conn.execute("PRAGMA busy_timeout = 5000")
        conn.execute("PRAGMA synchronous = NORMAL")

        return conn

    def get_connection(self) -> sqlite3.Connection:
        """Get a pooled connection, or a new one when none is idle."""
        try:
            conn = self._pool.get_nowait()
        except Empty:
            logger.debug("Pool empty, creating new connection", extra={"extra_data": {"path": str(self._db_path)}})
            return self._create_connection()

        try:
            conn.execute("SELECT 1")
            return conn
        except sqlite3.Error:
            logger.debug("Dead connection detected, creating new one")
            return self._create_connection()

    def return_connection(self, conn: sqlite3.Connection) -> None:
        try:
            self._pool.put_nowait(conn)
        except Full:
            conn.close()

    def close_all(self) -> None:
        """Close all idle connections in the pool."""
        while True:
            try:
                conn = self._pool.get_nowait()
            except Empty:
                break
            conn.close()


# Global connection pools (one per database path)
_pools: dict[Path, ConnectionPool] = {}
_pools_lock = threading.Lock()


def _get_pool(db_path: Optional[Path] = None) -> ConnectionPool:
    path = ConnectionPool._validate_path(Path(db_path or DB_PATH))

    with _pools_lock:
        if path not in _pools:
            _pools[path] = ConnectionPool(path, _POOL_SIZE, _POOL_TIMEOUT)
        return _pools[path]


def close_pool(db_path: Optional[Path] = None) -> None:
    """Close and forget the pool for a database path."""
    path = Path(db_path or DB_PATH).resolve()
    with _pools_lock:
        pool = _pools.pop(path, None)
    if pool is not None:
        pool.close_all()


def get_connection(db_path: Optional[Path] = None) -> sqlite3.Connection:
    return _get_pool(db_path).get_connection()


@contextmanager
def get_db(db_path: Optional[Path] = None):
    """Context manager for database connections with automatic pool return.

    Commits on success and rolls back when the block raises.

    Args:
        db_path: Path to database file (uses default if not provided)

    Yields:
        SQLite connection

    Example:
        with get_db() as conn:
            cursor = conn.execute("SELECT * FROM levels")
            results = cursor.fetchall()
    """
    pool = _get_pool(db_path)
    conn = pool.get_connection()
    try:
        yield conn
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        pool.return_connection(conn)


def init_database(db_path: Optional[Path] = None, force: bool = False) -> Path:
    """Create the grades schema.

    Args:
        db_path: Path to database file (uses default if not provided)
        force: If True, delete the existing database and recreate it

    Returns:
        Path to the database file
    """
    path = Path(db_path or DB_PATH)

    if force and path.exists():
        logger.info("Removing existing database", extra={"extra_data": {"path": str(path)}})
        close_pool(path)
        path.unlink()

    path.parent.mkdir(parents=True, exist_ok=True)
    with get_db(path) as conn:
        conn.executescript(SCHEMA_PATH.read_text())
        logger.info("Schema created", extra={"extra_data": {"source": str(SCHEMA_PATH)}})

    logger.info("Database initialized", extra={"extra_data": {"path": str(path)}})
    return path


def verify_database(db_path: Optional[Path] = None) -> dict:
    """Report which tables exist and how many rows each holds."""
    path = Path(db_path or DB_PATH)

    if not path.exists():
        return {"exists": False, "tables": [], "error": "Database file not found"}

    try:
        with get_db(path) as conn:
            cursor = conn.execute(
                "SELECT name FROM sqlite_master WHERE type='table' AND name NOT LIKE 'sqlite_%' ORDER BY name"
            )
            tables = [row["name"] for row in cursor.fetchall()]

            counts = {}
            for table in tables:
                # names come from sqlite_master; still only quote plain identifiers
                if table.replace("_", "").isalnum():
                    cursor = conn.execute(f"SELECT COUNT(*) as cnt FROM [{table}]")
                    counts[table] = cursor.fetchone()["cnt"]

            return {
                "exists": True,
                "path": str(path),
                "tables": tables,
                "row_counts": counts,
            }
    except sqlite3.Error as e:
        return {"exists": True, "path": str(path), "tables": [], "error": str(e)}
