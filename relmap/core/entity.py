"""Entity base class: persistence and relation resolution."""

import logging
from collections.abc import Iterable
from datetime import datetime, timezone
from typing import Any, ClassVar

from pydantic import BaseModel, ConfigDict, PrivateAttr

from relmap.core.eager import EagerLoader
from relmap.core.join_plan import JoinPlan
from relmap.core.query_options import QueryOptions, normalize_paths, split_paths
from relmap.core.registry import register_entity_type
from relmap.core.relationship import Relationship, belongs_to, has_many, has_one
from relmap.db.base import RecordStore
from relmap.validation import (
    ConfigurationError,
    EntityValidationError,
    PersistenceError,
    RelationNotFoundError,
    validate_entity_type,
)

logger = logging.getLogger(__name__)

# Fields only the persistence layer may set.
GUARDED_FIELDS = frozenset({"id", "created_at", "updated_at"})


def utc_now() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _entities(value: Any) -> list["Entity"]:
    """Flatten a relation value into a list of entities."""
    if isinstance(value, list):
        return [item for item in value if item is not None]
    if value is None:
        return []
    return [value]


class Entity(BaseModel):
    """Base class for persisted entity types.

    Subclasses declare their fields as pydantic fields, the collection (table)
    they live in and their relationships. A store is bound once per type,
    either with ``bind()`` or through ``relmap.config.configure``.

    Example::

        class Author(Entity):
            collection: ClassVar[str] = "authors"
            relationships: ClassVar[dict[str, Relationship]] = {"posts": has_many("Post")}

            name: str | None = None

        Author.bind(DuckDBAdapter())
        authors = Author.with_("posts").all()
    """

    model_config = ConfigDict(extra="ignore")

    collection: ClassVar[str] = ""
    relationships: ClassVar[dict[str, Relationship]] = {}
    store: ClassVar[RecordStore | None] = None

    id: int | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    _relations: dict[str, Any] = PrivateAttr(default_factory=dict)

    @classmethod
    def __pydantic_init_subclass__(cls, **kwargs: Any) -> None:
        super().__pydantic_init_subclass__(**kwargs)
        register_entity_type(cls)

    def __setattr__(self, name: str, value: Any) -> None:
        if name == "id" and self.id is not None and value != self.id:
            raise AttributeError(f"{type(self).__name__}.id is already assigned ({self.id})")
        super().__setattr__(name, value)

    # Configuration

    @classmethod
    def bind(cls, store: RecordStore) -> type["Entity"]:
        """Bind a record store to this entity type.

        Raises:
            EntityValidationError: If the entity type declaration is invalid
        """
        errors = validate_entity_type(cls)
        if errors:
            raise EntityValidationError(
                f"Entity '{cls.__name__}' validation failed:\n" + "\n".join(f"  - {e}" for e in errors)
            )
        cls.store = store
        return cls

    @classmethod
    def get_store(cls) -> RecordStore:
        if cls.store is None:
            raise ConfigurationError(f"Entity '{cls.__name__}' is not bound to a store")
        return cls.store

    @classmethod
    def get_relationship(cls, name: str) -> Relationship | None:
        return cls.relationships.get(name)

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> "Entity":
        """Materialize an entity from an untyped store record."""
        return cls.model_validate(record)

    # Reading

    @classmethod
    def all(cls, options: "QueryOptions | str | Iterable[str] | None" = None) -> list["Entity"]:
        """Load every entity of this type in storage order.

        Args:
            options: Relations to eager-load, as QueryOptions or relation paths
        """
        options = QueryOptions.of(options)
        store = cls.get_store()
        if options.eager and store.supports_joins:
            return EagerLoader(cls).load(options)

        entities = [cls.from_record(record) for record in store.fetch_all(cls.collection)]
        if options.eager:
            cls._check_relations(options)
            for entity in entities:
                entity.load(options.relations)
        return entities

    @classmethod
    def find(cls, entity_id: int, options: "QueryOptions | str | Iterable[str] | None" = None) -> "Entity | None":
        """Load the entity with the given id, or None if there is none.

        Args:
            entity_id: Entity id
            options: Relations to eager-load, as QueryOptions or relation paths
        """
        options = QueryOptions.of(options)
        store = cls.get_store()
        if options.eager and store.supports_joins:
            entities = EagerLoader(cls).load(options, ids=[entity_id])
            return entities[0] if entities else None

        record = store.fetch_one(cls.collection, entity_id)
        if record is None:
            return None
        entity = cls.from_record(record)
        if options.eager:
            cls._check_relations(options)
            entity.load(options.relations)
        return entity

    @classmethod
    def with_(cls, *relations: str, strict: bool = False) -> "EntityQuery":
        """Request relations to eager-load with the next find/all on the returned handle.

        Example:
            >>> Author.with_("posts", "posts.comments").find(1)
        """
        return EntityQuery(cls, QueryOptions(relations=relations, strict=strict))

    @classmethod
    def _check_relations(cls, options: QueryOptions) -> None:
        if not options.strict:
            return
        for name in options.tree():
            if name not in cls.relationships:
                raise RelationNotFoundError(f"Entity '{cls.__name__}' has no relation '{name}'")

    # Writing

    @classmethod
    def create(cls, fields: dict[str, Any] | None = None, **kwargs: Any) -> "Entity":
        """Construct and persist a new entity."""
        values = {**(fields or {}), **kwargs}
        entity = cls.model_validate({key: value for key, value in values.items() if key not in GUARDED_FIELDS})
        entity.save()
        return entity

    def fill(self, fields: dict[str, Any]) -> "Entity":
        """Assign known, caller-settable fields; other keys are ignored."""
        for key, value in fields.items():
            if key in GUARDED_FIELDS or key not in type(self).model_fields:
                continue
            setattr(self, key, value)
        return self

    def update(self, fields: dict[str, Any] | None = None, **kwargs: Any) -> "Entity":
        """Merge fields into the entity and persist it."""
        self.fill({**(fields or {}), **kwargs})
        self.save()
        return self

    def save(self) -> "Entity":
        """Insert the entity on first save, update it afterwards.

        Raises:
            PersistenceError: If an update affects no rows
        """
        store = self.get_store()
        now = utc_now()
        if self.created_at is None:
            self.created_at = now
        self.updated_at = max(now, self.created_at)

        record = self.model_dump(exclude={"id"})
        if self.id is None:
            self.id = store.insert_record(self.collection, record)
            logger.debug("inserted %s #%s", type(self).__name__, self.id)
        else:
            affected = store.update_record(self.collection, self.id, record)
            if affected == 0:
                raise PersistenceError(f"Update of {type(self).__name__} #{self.id} affected no rows")
        return self

    def delete(self) -> int:
        """Remove the entity from its store.

        Returns:
            Number of removed records

        Raises:
            PersistenceError: If no record was removed
        """
        affected = self.get_store().delete_record(self.collection, self.id)
        if affected == 0:
            raise PersistenceError(f"Delete of {type(self).__name__} #{self.id} affected no rows")
        logger.debug("deleted %s #%s", type(self).__name__, self.id)
        return affected

    # Lazy relation resolution

    def has_many(
        self, target: "type[Entity] | str", foreign_key: str | None = None, local_key: str = "id"
    ) -> list["Entity"]:
        """Load every target whose foreign key equals this entity's local key."""
        return self._resolve(has_many(target, foreign_key, local_key))

    def belongs_to(
        self, target: "type[Entity] | str", foreign_key: str | None = None, owner_key: str = "id"
    ) -> "Entity | None":
        """Load the target this entity's foreign key points at."""
        return self._resolve(belongs_to(target, foreign_key, owner_key))

    def has_one(
        self, target: "type[Entity] | str", foreign_key: str | None = None, local_key: str = "id"
    ) -> "Entity | None":
        """Load the first target whose foreign key equals this entity's local key."""
        return self._resolve(has_one(target, foreign_key, local_key))

    def _resolve(self, relationship: Relationship) -> Any:
        target = relationship.target_type
        store = target.get_store()
        foreign_key = relationship.foreign_key_for(type(self).__name__)

        if relationship.type == "belongs_to":
            value = getattr(self, foreign_key, None)
            if value is None:
                return None
            records = store.fetch_by(target.collection, relationship.local_key, value, limit=1)
            return target.from_record(records[0]) if records else None

        value = getattr(self, relationship.local_key, None)
        if value is None:
            return [] if relationship.many else None
        if relationship.many:
            return [target.from_record(record) for record in store.fetch_by(target.collection, foreign_key, value)]
        records = store.fetch_by(target.collection, foreign_key, value, limit=1)
        return target.from_record(records[0]) if records else None

    def resolve_relation(self, name: str) -> Any:
        """Resolve a declared relation against the store, bypassing the cache.

        Raises:
            RelationNotFoundError: If the entity type does not declare the relation
        """
        relationship = self.get_relationship(name)
        if relationship is None:
            raise RelationNotFoundError(f"Entity '{type(self).__name__}' has no relation '{name}'")
        return self._resolve(relationship)

    # Relation cache

    @property
    def relations(self) -> dict[str, Any]:
        """Currently cached relations."""
        return dict(self._relations)

    def related(self, name: str) -> Any:
        """Get a relation, resolving and caching it if it is not cached yet."""
        if name not in self._relations:
            self._relations[name] = self.resolve_relation(name)
        return self._relations[name]

    def get_relation(self, name: str, default: Any = None) -> Any:
        return self._relations.get(name, default)

    def set_relation(self, name: str, value: Any) -> "Entity":
        self._relations[name] = value
        return self

    def relation_loaded(self, name: str) -> bool:
        return name in self._relations

    def load(self, relations: str | Iterable[str]) -> "Entity":
        """Resolve and cache relations on this instance, replacing cached values.

        Dotted paths ("posts.author") load the nested relation on every
        resolved child. Undeclared relation names are ignored.
        """
        for name, nested in split_paths(normalize_paths(relations)).items():
            if name not in self.relationships:
                logger.warning("Entity '%s' has no relation '%s'; skipping load", type(self).__name__, name)
                continue
            value = self.resolve_relation(name)
            self._relations[name] = value
            if nested:
                for child in _entities(value):
                    child.load(nested)
        return self

    def load_missing(self, relations: str | Iterable[str]) -> "Entity":
        """Like load(), but relations already cached are not resolved again."""
        for name, nested in split_paths(normalize_paths(relations)).items():
            if name not in self._relations:
                self.load([name, *(f"{name}.{path}" for path in nested)])
            elif nested:
                for child in _entities(self._relations[name]):
                    child.load_missing(nested)
        return self

    # Serialization

    def to_dict(self) -> dict[str, Any]:
        """Persisted fields plus every cached relation, recursively."""
        data = self.model_dump()
        for name, value in self._relations.items():
            if isinstance(value, list):
                data[name] = [item.to_dict() if isinstance(item, Entity) else item for item in value]
            elif isinstance(value, Entity):
                data[name] = value.to_dict()
            else:
                data[name] = value
        return data


class EntityQuery:
    """Entity type handle carrying eager-load options for one find/all call."""

    def __init__(self, entity_type: type[Entity], options: QueryOptions):
        self.entity_type = entity_type
        self.options = options

    def with_(self, *relations: str) -> "EntityQuery":
        return EntityQuery(
            self.entity_type,
            QueryOptions(relations=self.options.relations + relations, strict=self.options.strict),
        )

    def all(self) -> list[Entity]:
        return self.entity_type.all(self.options)

    def find(self, entity_id: int) -> Entity | None:
        return self.entity_type.find(entity_id, self.options)

    def explain(self, entity_id: int | None = None) -> JoinPlan:
        """Build the join plan the SQL backend would run, without executing it."""
        ids = None if entity_id is None else [entity_id]
        return EagerLoader(self.entity_type).explain(self.options, ids=ids)

    def __repr__(self) -> str:
        return f"EntityQuery({self.entity_type.__name__}, relations={list(self.options.relations)})"
