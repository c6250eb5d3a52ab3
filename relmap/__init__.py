"""relmap: Active-Record style data mapper with join-based eager loading."""

__version__ = "0.1.0"

from relmap.core.entity import Entity, EntityQuery
from relmap.core.query_options import QueryOptions
from relmap.core.relationship import Relationship, belongs_to, has_many, has_one
from relmap.db.json_store import JSONFileStore
from relmap.validation import (
    ConfigurationError,
    EntityValidationError,
    PersistenceError,
    RelationNotFoundError,
    RelmapError,
    UnsupportedOperationError,
)

__all__ = [
    "ConfigurationError",
    "DuckDBAdapter",
    "Entity",
    "EntityQuery",
    "EntityValidationError",
    "JSONFileStore",
    "PersistenceError",
    "QueryOptions",
    "RelationNotFoundError",
    "Relationship",
    "RelmapError",
    "UnsupportedOperationError",
    "belongs_to",
    "has_many",
    "has_one",
]


def __getattr__(name):  # Lazy import to avoid importing duckdb on package import
    if name == "DuckDBAdapter":
        from relmap.db.duckdb import DuckDBAdapter

        return DuckDBAdapter
    raise AttributeError(name)
