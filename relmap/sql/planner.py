"""Eager-load planner: builds the single LEFT JOIN query for an eager load."""

import logging
from collections.abc import Iterable
from typing import TYPE_CHECKING

from sqlglot import exp, select

from relmap.core.join_plan import JoinPlan, RelationJoin
from relmap.db.base import SQLRecordStore, validate_identifier
from relmap.validation import COLUMN_SEPARATOR, MAIN_ALIAS, RelationNotFoundError

if TYPE_CHECKING:
    from relmap.core.entity import Entity

logger = logging.getLogger(__name__)


class EagerLoadPlanner:
    """Plans and renders the join query for an entity type.

    Every relation in the request becomes one LEFT JOIN against the target's
    table, aliased by relation name, so the whole request is one statement.
    """

    def __init__(self, entity_type: "type[Entity]", store: SQLRecordStore):
        """Initialize planner.

        Args:
            entity_type: Entity type being loaded (the main table)
            store: SQL store the entity type is bound to
        """
        self.entity_type = entity_type
        self.store = store
        self.dialect = store.dialect

    def plan(
        self,
        relation_names: Iterable[str],
        ids: list | None = None,
        strict: bool = False,
    ) -> JoinPlan:
        """Build a join plan and its SQL.

        Args:
            relation_names: Top-level relation names to join
            ids: Restrict the main table to these ids (None loads every row)
            strict: Raise on relation names the entity type does not declare

        Returns:
            JoinPlan with SQL and parameters ready to execute

        Raises:
            RelationNotFoundError: If strict and a relation is not declared
        """
        table = validate_identifier(self.entity_type.collection, "table name")
        plan = JoinPlan(
            entity_type=self.entity_type,
            table=table,
            main_alias=MAIN_ALIAS,
            main_columns=list(self.entity_type.model_fields),
        )

        for name in relation_names:
            target_type = self._target_type(name, strict)
            if target_type is None:
                plan.skipped.append(name)
            elif target_type.store is not self.store:
                logger.debug(
                    "Entity '%s': relation '%s' is not joinable; loading lazily", self.entity_type.__name__, name
                )
                plan.deferred.append(name)
            else:
                plan.joins.append(self._build_join(name, target_type))

        plan.sql, plan.params = self._render(plan, ids)
        logger.debug("eager load %s: %s", self.entity_type.__name__, plan.sql)
        return plan

    def _target_type(self, name: str, strict: bool) -> "type[Entity] | None":
        owner = self.entity_type.__name__
        relationship = self.entity_type.relationships.get(name)
        if relationship is None:
            if strict:
                raise RelationNotFoundError(f"Entity '{owner}' has no relation '{name}'")
            logger.warning("Entity '%s' has no relation '%s'; skipping eager load", owner, name)
            return None

        try:
            return relationship.target_type
        except KeyError:
            if strict:
                raise RelationNotFoundError(
                    f"Entity '{owner}': relation '{name}' targets unknown entity '{relationship.target_name}'"
                ) from None
            logger.warning(
                "Entity '%s': relation '%s' targets unknown entity '%s'; skipping eager load",
                owner,
                name,
                relationship.target_name,
            )
            return None

    def _build_join(self, name: str, target_type: "type[Entity]") -> RelationJoin:
        relationship = self.entity_type.relationships[name]
        owner_key, target_key = relationship.join_keys(self.entity_type.__name__)
        return RelationJoin(
            name=name,
            relationship=relationship,
            target_type=target_type,
            table=validate_identifier(target_type.collection, "table name"),
            alias=validate_identifier(name, "relation name"),
            owner_key=validate_identifier(owner_key, "column"),
            target_key=validate_identifier(target_key, "column"),
            columns={field: f"{name}{COLUMN_SEPARATOR}{field}" for field in target_type.model_fields},
        )

    def _render(self, plan: JoinPlan, ids: list | None) -> tuple[str, dict]:
        """Render the plan to SQL using the SQLGlot builder API."""
        select_exprs = [exp.column(column, table=plan.main_alias) for column in plan.main_columns]
        for join in plan.joins:
            for field_name, column_alias in join.columns.items():
                select_exprs.append(exp.alias_(exp.column(field_name, table=join.alias), column_alias))

        query = select(*select_exprs).from_(exp.alias_(exp.to_table(plan.table), plan.main_alias, table=True))

        for join in plan.joins:
            join_cond = exp.EQ(
                this=exp.column(join.owner_key, table=plan.main_alias),
                expression=exp.column(join.target_key, table=join.alias),
            )
            query = query.join(
                exp.alias_(exp.to_table(join.table), join.alias, table=True),
                on=join_cond,
                join_type="left",
            )

        sql = query.sql(dialect=self.dialect)
        main_id = exp.column("id", table=plan.main_alias).sql(dialect=self.dialect)

        # WHERE and ORDER BY use store placeholders and are appended after rendering.
        params: dict = {}
        if ids is not None:
            if len(ids) == 1:
                params["id"] = ids[0]
                sql += f" WHERE {main_id} = {self.store.placeholder('id')}"
            else:
                names = [f"id_{i}" for i in range(len(ids))]
                params.update(zip(names, ids))
                sql += f" WHERE {main_id} IN ({', '.join(self.store.placeholder(n) for n in names)})"

        order_by = [main_id]
        for join in plan.joins:
            order_by.append(exp.column("id", table=join.alias).sql(dialect=self.dialect))
        sql += f" ORDER BY {', '.join(order_by)}"

        return sql, params
