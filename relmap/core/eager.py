"""Eager loading through a single join query per call."""

import logging
from typing import TYPE_CHECKING

from relmap.core.join_plan import JoinPlan
from relmap.core.query_options import QueryOptions
from relmap.db.base import SQLRecordStore
from relmap.sql.planner import EagerLoadPlanner
from relmap.sql.reassembler import reassemble
from relmap.validation import UnsupportedOperationError

if TYPE_CHECKING:
    from relmap.core.entity import Entity

logger = logging.getLogger(__name__)


class EagerLoader:
    """Loads an entity type with its requested relations joined in.

    Nested paths ("posts.author") join their first segment, then run the same
    procedure once on the distinct child entities for the remaining segments.
    """

    def __init__(self, entity_type: "type[Entity]"):
        store = entity_type.get_store()
        if not isinstance(store, SQLRecordStore) or not store.supports_joins:
            raise UnsupportedOperationError(
                f"Entity '{entity_type.__name__}' is stored in {type(store).__name__}, which cannot join"
            )
        self.entity_type = entity_type
        self.store = store
        self.planner = EagerLoadPlanner(entity_type, store)

    def explain(self, options: QueryOptions, ids: list | None = None) -> JoinPlan:
        """Build the join plan without executing it."""
        return self.planner.plan(options.tree(), ids=ids, strict=options.strict)

    def load(self, options: QueryOptions, ids: list | None = None) -> list["Entity"]:
        """Run the join query and return fully populated entities.

        Args:
            options: Relation paths to load
            ids: Restrict to these ids (None loads every row)

        Returns:
            Distinct entities in id order
        """
        if ids is not None and not ids:
            return []

        tree = options.tree()
        plan = self.planner.plan(tree, ids=ids, strict=options.strict)
        rows = self.store.select(plan.sql, plan.params)
        entities = reassemble(rows, plan)

        for name in plan.deferred:
            logger.debug("%s: loading '%s' per entity from another store", self.entity_type.__name__, name)
            paths = [name, *(f"{name}.{path}" for path in tree[name])]
            for entity in entities:
                entity.load(paths)

        for join in plan.joins:
            nested = tree[join.name]
            if nested:
                self._load_nested(entities, join.name, join.target_type, QueryOptions(tuple(nested), options.strict))

        return entities

    def _load_nested(
        self,
        entities: list["Entity"],
        name: str,
        target_type: "type[Entity]",
        options: QueryOptions,
    ) -> None:
        children = []
        for entity in entities:
            value = entity.get_relation(name)
            if isinstance(value, list):
                children.extend(value)
            elif value is not None:
                children.append(value)
        if not children:
            return

        ids = list(dict.fromkeys(child.id for child in children if child.id is not None))
        logger.debug("%s: batch loading %s for %d %s", self.entity_type.__name__, options.relations, len(ids), name)
        loaded = {entity.id: entity for entity in EagerLoader(target_type).load(options, ids=ids)}

        for child in children:
            source = loaded.get(child.id)
            if source is None:
                continue
            for relation_name, value in source.relations.items():
                child.set_relation(relation_name, value)
