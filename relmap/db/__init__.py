"""Record store abstraction layer."""

from relmap.db.base import RecordStore, SQLRecordStore, validate_identifier
from relmap.db.json_store import JSONFileStore

__all__ = ["JSONFileStore", "RecordStore", "SQLRecordStore", "validate_identifier"]


def __getattr__(name):
    """Lazy import SQL adapters to avoid importing optional dependencies."""
    if name == "DuckDBAdapter":
        from relmap.db.duckdb import DuckDBAdapter

        return DuckDBAdapter
    raise AttributeError(f"module '{__name__}' has no attribute '{name}'")
