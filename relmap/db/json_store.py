"""Flat JSON-file record store."""

import json
import logging
from pathlib import Path
from typing import Any

from pydantic_core import to_jsonable_python

from relmap.db.base import RecordStore, validate_identifier

logger = logging.getLogger(__name__)


class JSONFileStore(RecordStore):
    """Record store keeping one JSON file per collection.

    Each collection lives in ``<directory>/<collection>.json`` as a list of
    records. Every write rewrites the whole collection file, so two processes
    saving to the same collection at once can lose an update.

    Example:
        >>> store = JSONFileStore("data/json")
        >>> store.write("authors", [{"id": 1, "name": "Ada"}])
        True
        >>> store.next_id("authors")
        2
    """

    def __init__(self, directory: str | Path):
        """Initialize JSON file store.

        Args:
            directory: Directory holding the collection files (created on first write)
        """
        self.directory = Path(directory)

    def path_for(self, collection: str) -> Path:
        validate_identifier(collection, "collection name")
        return self.directory / f"{collection}.json"

    def read(self, collection: str) -> list[dict]:
        """Read a whole collection; a missing file is an empty collection."""
        path = self.path_for(collection)
        if not path.exists():
            return []
        with open(path) as f:
            data = json.load(f)
        if not isinstance(data, list):
            raise ValueError(f"Collection file {path} must contain a JSON list")
        return data

    def write(self, collection: str, records: list[dict]) -> bool:
        """Replace a whole collection."""
        path = self.path_for(collection)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            json.dump(to_jsonable_python(records), f, indent=2)
        return True

    def next_id(self, collection: str) -> int:
        """Next sequential id of a collection, starting at 1."""
        ids = [record["id"] for record in self.read(collection) if isinstance(record.get("id"), int)]
        return max(ids, default=0) + 1

    def fetch_all(self, collection: str) -> list[dict]:
        return self.read(collection)

    def fetch_by(self, collection: str, column: str, value: Any, limit: int | None = None) -> list[dict]:
        if value is None:
            return []
        matches = []
        for record in self.read(collection):
            if record.get(column) == value:
                matches.append(record)
                if limit is not None and len(matches) >= limit:
                    break
        return matches

    def insert_record(self, collection: str, record: dict) -> int:
        records = self.read(collection)
        new_id = self.next_id(collection)
        records.append({"id": new_id, **record})
        self.write(collection, records)
        logger.debug("json: inserted %s #%s", collection, new_id)
        return new_id

    def update_record(self, collection: str, record_id: int, record: dict) -> int:
        records = self.read(collection)
        affected = 0
        for i, item in enumerate(records):
            if item.get("id") == record_id:
                records[i] = {"id": record_id, **record}
                affected += 1
        if affected:
            self.write(collection, records)
        return affected

    def delete_record(self, collection: str, record_id: int) -> int:
        records = self.read(collection)
        remaining = [item for item in records if item.get("id") != record_id]
        affected = len(records) - len(remaining)
        if affected:
            self.write(collection, remaining)
        return affected
