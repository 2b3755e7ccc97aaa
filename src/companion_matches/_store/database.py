# Area: Store
# PRD: docs/prd-match-lifecycle.md
"""
companion_matches._store.database — Database Initialization
===========================================================

Handles SQLite database initialization and connection management
for match state persistence. Every sqlite3 failure leaves this module
as a StoreError.
"""

import sqlite3
import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

from ..errors import StoreError

logger = logging.getLogger("companion_matches.store.database")

# Path to schema file
SCHEMA_PATH = Path(__file__).parent / "schema.sql"

# Seconds a connection waits on a locked database before failing
BUSY_TIMEOUT_SECS = 30.0


def get_connection(db_path: str = "companion_matches.db") -> sqlite3.Connection:
    """
    Get a database connection.

    Args:
        db_path: Path to the SQLite database file

    Returns:
        SQLite connection with row factory and foreign keys enabled

    Raises:
        StoreError: If the database cannot be opened
    """
    try:
        conn = sqlite3.connect(db_path, timeout=BUSY_TIMEOUT_SECS)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
    except sqlite3.Error as e:
        raise StoreError(f"Cannot open database {db_path}: {e}") from e
    return conn


def init_database(db_path: str = "companion_matches.db") -> None:
    """
    Initialize the database with schema. Safe to run on every start.

    Args:
        db_path: Path to the SQLite database file
    """
    conn = get_connection(db_path)
    try:
        with open(SCHEMA_PATH, "r", encoding="utf-8") as f:
            schema = f.read()
        conn.executescript(schema)
        conn.commit()
        logger.info(f"Database initialized at {db_path}")
    except sqlite3.Error as e:
        raise StoreError(f"Cannot initialize database {db_path}: {e}") from e
    finally:
        conn.close()


class BaseRepository:
    """
    Base class for database repositories.

    Methods of subclasses accept an optional ``conn``: when given, the
    statement joins that connection's open transaction (see
    ``transaction()``); otherwise it runs on its own connection and
    commits immediately.
    """

    def __init__(self, db_path: str = "companion_matches.db"):
        """
        Initialize repository.

        Args:
            db_path: Path to the SQLite database file
        """
        self.db_path = db_path

    def _get_conn(self) -> sqlite3.Connection:
        """Get a database connection."""
        return get_connection(self.db_path)

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """
        Run a block in one write transaction (BEGIN IMMEDIATE).

        Commits on success and rolls back on any exception. sqlite3
        errors are re-raised as StoreError.
        """
        conn = self._get_conn()
        try:
            conn.execute("BEGIN IMMEDIATE")
            yield conn
            conn.commit()
        except sqlite3.Error as e:
            conn.rollback()
            raise StoreError(f"Transaction failed: {e}") from e
        except BaseException:
            conn.rollback()
            raise
        finally:
            conn.close()

    @contextmanager
    def _use(self, conn: Optional[sqlite3.Connection] = None) -> Iterator[sqlite3.Connection]:
        """Yield ``conn`` if given, else a short-lived committing connection."""
        if conn is not None:
            yield conn
            return
        own = self._get_conn()
        try:
            yield own
            own.commit()
        except sqlite3.Error as e:
            own.rollback()
            raise StoreError(f"Query failed: {e}") from e
        finally:
            own.close()

    def _execute(
        self,
        query: str,
        params: tuple = (),
        fetch: bool = False,
        conn: Optional[sqlite3.Connection] = None,
    ) -> Optional[list]:
        """
        Execute a query.

        Args:
            query: SQL query string
            params: Query parameters
            fetch: If True, fetch and return results
            conn: Connection of an enclosing transaction, if any

        Returns:
            Query results as dicts if fetch=True, else None
        """
        with self._use(conn) as c:
            cursor = c.execute(query, params)
            if fetch:
                return [dict(row) for row in cursor.fetchall()]
            return None

    def _execute_one(
        self,
        query: str,
        params: tuple = (),
        conn: Optional[sqlite3.Connection] = None,
    ) -> Optional[dict]:
        """Execute query and return single result."""
        results = self._execute(query, params, fetch=True, conn=conn)
        return results[0] if results else None
