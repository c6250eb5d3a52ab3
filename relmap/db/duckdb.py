"""DuckDB record store adapter."""

import logging
from typing import Any

import duckdb

from relmap.db.base import SQLRecordStore
from relmap.validation import PersistenceError

logger = logging.getLogger(__name__)


class DuckDBAdapter(SQLRecordStore):
    """DuckDB record store adapter.

    Wraps a DuckDB connection to provide the SQL record store interface.
    Parameters are bound by name using DuckDB's ``$name`` syntax.
    """

    def __init__(self, path: str = ":memory:"):
        """Initialize DuckDB adapter.

        Args:
            path: Database file path or ":memory:" for in-memory database
        """
        self.path = path
        self.conn = duckdb.connect(path)

    def execute(self, sql: str, params: dict | None = None) -> Any:
        """Execute SQL and return the DuckDB result."""
        logger.debug("duckdb: %s %s", sql, params or {})
        if params:
            return self.conn.execute(sql, params)
        return self.conn.execute(sql)

    def select(self, sql: str, params: dict | None = None) -> list[dict]:
        result = self.execute(sql, params)
        columns = [col[0] for col in result.description]
        return [dict(zip(columns, row)) for row in result.fetchall()]

    def insert(self, sql: str, params: dict | None = None) -> int:
        row = self.execute(sql, params).fetchone()
        if row is None or row[0] is None:
            raise PersistenceError(f"Insert did not return an id: {sql}")
        return int(row[0])

    def update(self, sql: str, params: dict | None = None) -> int:
        return self._affected(self.execute(sql, params))

    def delete(self, sql: str, params: dict | None = None) -> int:
        return self._affected(self.execute(sql, params))

    def placeholder(self, name: str) -> str:
        return f"${name}"

    def close(self) -> None:
        """Close database connection."""
        self.conn.close()

    @staticmethod
    def _affected(result: Any) -> int:
        # DML statements return a single row holding the changed row count.
        row = result.fetchone()
        return int(row[0]) if row else 0

    @property
    def dialect(self) -> str:
        """Get SQLGlot dialect name."""
        return "duckdb"

    @property
    def raw_connection(self) -> Any:
        """Get underlying DuckDB connection."""
        return self.conn

    @classmethod
    def from_url(cls, url: str) -> "DuckDBAdapter":
        """Create adapter from connection URL.

        Args:
            url: Connection URL (e.g., "duckdb:///:memory:" or "duckdb:///path/to/db.duckdb")

        Returns:
            DuckDBAdapter instance
        """
        if not url.startswith("duckdb://"):
            raise ValueError(f"Invalid DuckDB URL: {url}")

        # duckdb:///:memory: -> :memory:
        # duckdb:///tmp/app.db -> /tmp/app.db
        # duckdb:/// -> :memory:
        db_path = url[len("duckdb://") :]

        if db_path in ("/:memory:", ":memory:", "", "/"):
            db_path = ":memory:"

        return cls(db_path)
