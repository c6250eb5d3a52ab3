"""Base record store interfaces."""

import re
from abc import ABC, abstractmethod
from typing import Any

from relmap.validation import UnsupportedOperationError

# Pattern for valid SQL identifiers: starts with letter or underscore,
# followed by letters, digits, or underscores. Also allows dots for
# qualified names (schema.table).
_IDENTIFIER_PATTERN = re.compile(r"^[a-zA-Z_][a-zA-Z0-9_]*(\.[a-zA-Z_][a-zA-Z0-9_]*)*$")


def validate_identifier(value: str, name: str = "identifier") -> str:
    """Validate that a value is a safe SQL identifier.

    Prevents SQL injection by ensuring identifiers only contain safe characters.
    Allows: letters, digits, underscores, and dots (for qualified names).
    Must start with a letter or underscore.

    Args:
        value: The identifier value to validate
        name: Human-readable name for error messages (e.g., "table name", "column")

    Returns:
        The validated identifier (unchanged if valid)

    Raises:
        ValueError: If the identifier contains invalid characters
    """
    if not value:
        raise ValueError(f"Invalid {name}: cannot be empty")

    if not _IDENTIFIER_PATTERN.match(value):
        raise ValueError(
            f"Invalid {name}: '{value}'. "
            f"Identifiers must start with a letter or underscore and contain only "
            f"letters, digits, underscores, and dots."
        )

    return value


class RecordStore(ABC):
    """Abstract base class for record stores.

    Stores provide the uniform read/write primitives entities are persisted
    with. They know nothing about relations.
    """

    supports_joins: bool = False

    @abstractmethod
    def fetch_all(self, collection: str) -> list[dict]:
        """Fetch every record of a collection in storage order.

        Args:
            collection: Collection (table) name

        Returns:
            List of records
        """
        raise NotImplementedError

    @abstractmethod
    def fetch_by(self, collection: str, column: str, value: Any, limit: int | None = None) -> list[dict]:
        """Fetch records whose column equals value.

        Args:
            collection: Collection (table) name
            column: Column to filter on
            value: Value the column must equal
            limit: Maximum number of records (optional)

        Returns:
            List of matching records in storage order
        """
        raise NotImplementedError

    @abstractmethod
    def insert_record(self, collection: str, record: dict) -> int:
        """Insert a record and return the store-assigned id.

        Args:
            collection: Collection (table) name
            record: Field values, without id

        Returns:
            New record id
        """
        raise NotImplementedError

    @abstractmethod
    def update_record(self, collection: str, record_id: int, record: dict) -> int:
        """Update the record with the given id.

        Args:
            collection: Collection (table) name
            record_id: Id of the record to update
            record: Field values, without id

        Returns:
            Number of affected records
        """
        raise NotImplementedError

    @abstractmethod
    def delete_record(self, collection: str, record_id: int) -> int:
        """Delete the record with the given id.

        Args:
            collection: Collection (table) name
            record_id: Id of the record to delete

        Returns:
            Number of affected records
        """
        raise NotImplementedError

    def fetch_one(self, collection: str, record_id: int) -> dict | None:
        """Fetch a single record by id, or None."""
        rows = self.fetch_by(collection, "id", record_id, limit=1)
        return rows[0] if rows else None


class SQLRecordStore(RecordStore):
    """Base class for SQL record stores.

    Subclasses implement the four parameterized statement primitives; the
    entity-facing operations are built on top of them. Parameters are always
    bound by name, identifiers are validated before interpolation.
    """

    supports_joins = True

    @abstractmethod
    def select(self, sql: str, params: dict | None = None) -> list[dict]:
        """Run a SELECT and return rows as dicts keyed by column name."""
        raise NotImplementedError

    @abstractmethod
    def insert(self, sql: str, params: dict | None = None) -> int:
        """Run an INSERT and return the new id."""
        raise NotImplementedError

    @abstractmethod
    def update(self, sql: str, params: dict | None = None) -> int:
        """Run an UPDATE and return the affected row count."""
        raise NotImplementedError

    @abstractmethod
    def delete(self, sql: str, params: dict | None = None) -> int:
        """Run a DELETE and return the affected row count."""
        raise NotImplementedError

    @abstractmethod
    def placeholder(self, name: str) -> str:
        """Get the named placeholder syntax for a parameter."""
        raise NotImplementedError

    @property
    @abstractmethod
    def dialect(self) -> str:
        """Get SQLGlot dialect name.

        Returns:
            Dialect name (e.g., 'duckdb')
        """
        raise NotImplementedError

    def next_id(self, collection: str) -> int:
        raise UnsupportedOperationError(
            f"next_id is not supported by {type(self).__name__}; ids are assigned by the database"
        )

    def fetch_all(self, collection: str) -> list[dict]:
        table = validate_identifier(collection, "table name")
        return self.select(f"SELECT * FROM {table} ORDER BY id")

    def fetch_by(self, collection: str, column: str, value: Any, limit: int | None = None) -> list[dict]:
        table = validate_identifier(collection, "table name")
        column = validate_identifier(column, "column")
        sql = f"SELECT * FROM {table} WHERE {column} = {self.placeholder('value')} ORDER BY id"
        if limit is not None:
            sql += f" LIMIT {int(limit)}"
        return self.select(sql, {"value": value})

    def insert_record(self, collection: str, record: dict) -> int:
        table = validate_identifier(collection, "table name")
        columns = [validate_identifier(col, "column") for col in record]
        placeholders = [self.placeholder(col) for col in columns]
        sql = f"INSERT INTO {table} ({', '.join(columns)}) VALUES ({', '.join(placeholders)}) RETURNING id"
        return self.insert(sql, dict(record))

    def update_record(self, collection: str, record_id: int, record: dict) -> int:
        table = validate_identifier(collection, "table name")
        assignments = [f"{validate_identifier(col, 'column')} = {self.placeholder(col)}" for col in record]
        sql = f"UPDATE {table} SET {', '.join(assignments)} WHERE id = {self.placeholder('id')}"
        return self.update(sql, {**record, "id": record_id})

    def delete_record(self, collection: str, record_id: int) -> int:
        table = validate_identifier(collection, "table name")
        return self.delete(f"DELETE FROM {table} WHERE id = {self.placeholder('id')}", {"id": record_id})
