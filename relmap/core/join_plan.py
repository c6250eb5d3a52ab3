"""Join plan types for eager loading."""

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from relmap.core.relationship import Relationship
from relmap.validation import MAIN_ALIAS

if TYPE_CHECKING:
    from relmap.core.entity import Entity


@dataclass
class RelationJoin:
    """One LEFT JOIN of an eager-load plan."""

    name: str
    relationship: Relationship
    target_type: "type[Entity]"
    table: str
    alias: str
    owner_key: str  # column on the main table
    target_key: str  # column on the joined table
    columns: dict[str, str] = field(default_factory=dict)  # target field -> selected column alias

    @property
    def many(self) -> bool:
        return self.relationship.many

    def extract(self, row: dict[str, Any]) -> dict[str, Any] | None:
        """Pull this relation's fields out of a joined row.

        Returns:
            Field values, or None when every aliased column is null (no match)
        """
        record = {field_name: row.get(column) for field_name, column in self.columns.items()}
        if all(value is None for value in record.values()):
            return None
        return record

    def __str__(self) -> str:
        return (
            f"{self.name} ({self.relationship.type} {self.target_type.__name__}): "
            f"LEFT JOIN {self.table} AS {self.alias} ON {MAIN_ALIAS}.{self.owner_key} = {self.alias}.{self.target_key}"
        )


@dataclass
class JoinPlan:
    """Eager-load plan for one find/all call.

    Built fresh for every call and never cached.

    Example::

        plan = Author.with_("posts").explain()
        print(plan)
    """

    entity_type: "type[Entity]"
    table: str
    main_alias: str
    main_columns: list[str] = field(default_factory=list)
    joins: list[RelationJoin] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    deferred: list[str] = field(default_factory=list)  # declared, but the target lives in another store
    sql: str = ""
    params: dict[str, Any] = field(default_factory=dict)

    def main_record(self, row: dict[str, Any]) -> dict[str, Any]:
        return {column: row.get(column) for column in self.main_columns}

    def __str__(self) -> str:
        lines = ["Join Plan", f"  Entity: {self.entity_type.__name__} ({self.table} AS {self.main_alias})"]

        if self.joins:
            lines.append("  Relations:")
            for join in self.joins:
                lines.append(f"    {join}")
        else:
            lines.append("  Relations: none")
        if self.skipped:
            lines.append(f"  Skipped: {', '.join(self.skipped)}")
        if self.deferred:
            lines.append(f"  Deferred: {', '.join(self.deferred)}")
        lines.append("")

        lines.append("  SQL:")
        for sql_line in self.sql.strip().split("\n"):
            lines.append(f"    {sql_line}")

        return "\n".join(lines)
