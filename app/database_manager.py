"""
Low-level database interaction management.

This module provides a `DatabaseManager` class and a `get_database_connection`
context manager to handle SQLite connections, query execution and transaction
management. Every connection handed out here has foreign keys enabled, returns
`sqlite3.Row` objects, and carries the `haversine_m` SQL function used by the
"stores near me" query.
"""
import sqlite3
import os
import math
import logging
from contextlib import contextmanager
from flask import current_app

# Mean equatorial radius used for spherical distance calculations, in meters.
EARTH_RADIUS_METERS = 6378100.0

# Largest value SQLite stores in an INTEGER column; bigger Python ints overflow on bind.
SQLITE_MAX_INTEGER = 2 ** 63 - 1


def haversine_m(lat1, lng1, lat2, lng2):
    """
    Great-circle distance in meters between two (lat, lng) points given in degrees.

    Registered on every connection as the SQL function `haversine_m`, so it can be
    used directly in WHERE and ORDER BY clauses. Returns None when any argument is
    NULL, which keeps SQL NULL semantics intact.
    """
    if None in (lat1, lng1, lat2, lng2):
        return None
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lng2 - lng1)
    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    return 2 * EARTH_RADIUS_METERS * math.asin(min(1.0, math.sqrt(a)))


def _get_db_path_for_manager():
    """
    Retrieves and validates the database path from the Flask app configuration.

    Raises:
        RuntimeError: If the application context or 'DATABASE' config is not available.
    """
    if not hasattr(current_app, 'config'):
        raise RuntimeError("DBManager: Application context or config not available.")

    db_path_config = current_app.config.get('DATABASE')
    if not db_path_config:
        raise RuntimeError("DBManager: 'DATABASE' key not found, not configured, or empty in current_app.config.")
    return db_path_config


@contextmanager
def get_database_connection():
    """
    Provides and manages a database connection using a context manager.

    1. Connects to the SQLite database named by `current_app.config['DATABASE']`.
    2. Sets `row_factory = sqlite3.Row` for name-based column access.
    3. Enables foreign key constraints and registers `haversine_m`.
    4. Commits when the `with` block succeeds, rolls back when it raises.
    5. Always closes the connection.

    Yields:
        sqlite3.Connection: An active SQLite database connection object.
    """
    logger = current_app.logger
    db_path = _get_db_path_for_manager()

    conn = None
    try:
        conn = sqlite3.connect(db_path, timeout=10)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        conn.create_function("haversine_m", 4, haversine_m, deterministic=True)

        yield conn

        conn.commit()
    except sqlite3.Error as e:
        logger.error(f"DBManager: SQLite error occurred with database '{db_path}': {e}", exc_info=True)
        if conn:
            try:
                conn.rollback()
            except sqlite3.Error as rb_e:
                logger.error(f"DBManager: Error during rollback for '{db_path}': {rb_e}", exc_info=True)
        raise
    except Exception:
        # Non-database errors raised inside the block still must not leave a half-written transaction.
        if conn:
            try:
                conn.rollback()
            except sqlite3.Error as rb_e:
                logger.error(f"DBManager: Error during rollback for '{db_path}': {rb_e}", exc_info=True)
        raise
    finally:
        if conn:
            conn.close()


class DatabaseManager:
    """
    Manages database operations by providing a simplified interface
    for common SQL tasks like SELECT, INSERT, UPDATE, DELETE.
    Each call runs in its own connection and transaction; use `transaction()`
    when several statements must succeed or fail together.
    """
    def __init__(self):
        self.logger = logging.getLogger(__name__)

    def _execute_raw_query(self, query_type, query, params=None):
        """
        Internal helper to execute queries and handle common cursor logic.
        Not meant to be called directly from outside.
        """
        params = params or ()
        self.logger.debug(f"DBManager: _execute_raw_query (type: {query_type}): {query} with params: {params}")
        with get_database_connection() as conn:
            cursor = conn.cursor()
            try:
                cursor.execute(query, params)

                if query_type == "fetchone":
                    return cursor.fetchone()
                elif query_type == "fetchall":
                    return cursor.fetchall()
                elif query_type == "insert":
                    return cursor.lastrowid
                elif query_type in ["update", "delete", "execute_query"]:
                    return cursor.rowcount
                else:
                    raise ValueError(f"Unsupported query_type: {query_type}")
            finally:
                cursor.close()

    def execute_query(self, query, params=None):
        """
        Executes a general SQL statement (DDL, or DML where only the rowcount matters).

        Returns:
            int: The number of rows affected, or -1 for DDL.
        """
        return self._execute_raw_query("execute_query", query, params)

    def execute_script(self, script):
        """Executes a multi-statement SQL script (schema creation) in one transaction."""
        with get_database_connection() as conn:
            conn.executescript(script)

    def fetchone(self, query, params=None):
        """
        Executes a SELECT query and fetches the first row.

        Returns:
            sqlite3.Row or None: The first row if found, otherwise None.
        """
        return self._execute_raw_query("fetchone", query, params)

    def fetchall(self, query, params=None):
        """
        Executes a SELECT query and fetches all rows.

        Returns:
            list: A list of sqlite3.Row objects (empty when nothing matched).
        """
        return self._execute_raw_query("fetchall", query, params)

    def insert(self, query, params=None):
        """
        Executes an INSERT SQL query.

        Returns:
            int: The rowid of the inserted row.
        """
        last_id = self._execute_raw_query("insert", query, params)
        self.logger.debug(f"DBManager: insert - lastrowid: {last_id}")
        return last_id

    def update(self, query, params=None):
        """Executes an UPDATE SQL query and returns the number of rows affected."""
        return self._execute_raw_query("update", query, params)

    def delete(self, query, params=None):
        """Executes a DELETE SQL query and returns the number of rows affected."""
        return self._execute_raw_query("delete", query, params)

    @contextmanager
    def transaction(self):
        """
        Yields a single connection for a group of statements that must commit together.

        Example:
            with db_manager.transaction() as conn:
                store_id = conn.execute("INSERT INTO stores ...", params).lastrowid
                conn.executemany("INSERT INTO store_tags ...", rows)
        """
        with get_database_connection() as conn:
            yield conn
