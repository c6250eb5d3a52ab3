"""Pytest configuration and fixtures."""

import pytest

from relmap.db.duckdb import DuckDBAdapter
from relmap.db.json_store import JSONFileStore
from tests.entities import ALL_TYPES, SCHEMA


class CountingDuckDBAdapter(DuckDBAdapter):
    """DuckDB adapter recording every SELECT it runs."""

    def __init__(self, path: str = ":memory:"):
        super().__init__(path)
        self.queries: list[str] = []

    def select(self, sql: str, params: dict | None = None) -> list[dict]:
        self.queries.append(sql)
        return super().select(sql, params)


class CountingJSONFileStore(JSONFileStore):
    """JSON store recording every filtered fetch."""

    def __init__(self, directory):
        super().__init__(directory)
        self.lookups: list[tuple[str, str, object]] = []

    def fetch_by(self, collection, column, value, limit=None):
        self.lookups.append((collection, column, value))
        return super().fetch_by(collection, column, value, limit)


def create_schema(adapter: DuckDBAdapter) -> None:
    """Create the test tables with sequence-backed ids."""
    for table, columns in SCHEMA.items():
        adapter.execute(f"CREATE SEQUENCE {table}_id_seq START 1")
        adapter.execute(
            f"CREATE TABLE {table} ("
            f"id INTEGER PRIMARY KEY DEFAULT nextval('{table}_id_seq'), {columns}, "
            f"created_at TIMESTAMP, updated_at TIMESTAMP)"
        )


@pytest.fixture(autouse=True)
def reset_stores():
    """Unbind every test entity type before and after each test.

    Stores are bound at the type level, so this keeps tests isolated.
    """
    for entity_type in ALL_TYPES:
        entity_type.store = None

    yield

    for entity_type in ALL_TYPES:
        entity_type.store = None


@pytest.fixture
def duck():
    """In-memory DuckDB store with the test schema, bound to every test entity type."""
    adapter = CountingDuckDBAdapter()
    create_schema(adapter)
    for entity_type in ALL_TYPES:
        entity_type.bind(adapter)

    yield adapter

    adapter.close()


@pytest.fixture
def json_store(tmp_path):
    """JSON file store in a temporary directory, bound to every test entity type."""
    store = CountingJSONFileStore(tmp_path / "data")
    for entity_type in ALL_TYPES:
        entity_type.bind(store)
    return store


@pytest.fixture(params=["duckdb", "json"])
def store(request):
    """Each test entity type bound to one backend, parametrized over both."""
    return request.getfixturevalue("duck" if request.param == "duckdb" else "json_store")


@pytest.fixture
def isolated_registry(monkeypatch):
    """Keep entity types defined inside a test out of the global registry."""
    from relmap.core import registry

    monkeypatch.setattr(registry, "_entity_types", dict(registry._entity_types))
    return registry
