"""
db/database.py -- SQLAlchemy engine wrapper for the application database.

One Database instance is created per process by the lifespan (or the migrate
CLI) and closed at shutdown. It owns the connection pool; callers never
create engines of their own.

Connection discipline: every method checks out a connection, runs one
statement (or one migration script), and releases it before returning.
No connection is held across an await.

Layer rule: no imports from api/, web/, or auth/. Import from core/ is allowed.
"""

from __future__ import annotations

import logging
import time
from typing import Any

from sqlalchemy import create_engine, text
from sqlalchemy.engine import URL, Engine, Row
from sqlalchemy.exc import SQLAlchemyError

from core.config import Settings
from core.exceptions import DatabaseUnavailableError

logger = logging.getLogger("predix.db")


class Database:
    """Thin wrapper around a pooled SQLAlchemy engine.

    Usage:
        database = Database.from_settings(settings)
        database.ping()
        database.execute_script(Path("001_init.sql").read_text())
        database.close()
    """

    def __init__(self, url: URL | str, connect_args: dict | None = None) -> None:
        connect_args = dict(connect_args or {})
        if str(url).startswith("sqlite"):
            connect_args["check_same_thread"] = False
        self.engine: Engine = create_engine(url, connect_args=connect_args, pool_pre_ping=True)

    @classmethod
    def from_settings(cls, settings: Settings) -> "Database":
        """Build a Database from Settings. Raises ConfigurationError on missing credentials."""
        url = settings.sqlalchemy_url()
        connect_args: dict = {}
        if str(url).startswith("postgresql"):
            connect_args["sslmode"] = settings.db_sslmode
        return cls(url, connect_args=connect_args)

    def ping(self) -> None:
        """Verify the database is reachable. Raises DatabaseUnavailableError otherwise."""
        try:
            self.query("SELECT 1")
        except SQLAlchemyError as exc:
            raise DatabaseUnavailableError(f"Database unreachable: {exc}") from exc

    def query(self, sql: str, params: dict[str, Any] | None = None) -> list[Row]:
        """Execute one parameterized statement and log its duration.

        Rows are fetched before the connection is released. Statements that
        return no rows yield an empty list.
        """
        start = time.perf_counter()
        try:
            with self.engine.connect() as conn:
                result = conn.execute(text(sql), params or {})
                rows = result.fetchall() if result.returns_rows else []
                rowcount = result.rowcount
                conn.commit()
        except SQLAlchemyError:
            logger.exception("Query error")
            raise
        ms = (time.perf_counter() - start) * 1000
        logger.debug("Executed query %r in %.1fms (rows=%s)", sql, ms, rowcount)
        return rows

    def execute_script(self, sql: str) -> None:
        """Execute a full SQL script (possibly several statements) and commit.

        Postgres runs the whole text in one simple-protocol call; sqlite3 only
        accepts multi-statement text through executescript().
        """
        with self.engine.connect() as conn:
            if self.engine.dialect.name == "sqlite":
                conn.connection.driver_connection.executescript(sql)
            else:
                conn.execution_options(no_parameters=True).exec_driver_sql(sql)
            conn.commit()

    def close(self) -> None:
        self.engine.dispose()
