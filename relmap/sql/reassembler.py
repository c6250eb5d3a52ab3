"""Rebuild entities from flat join rows."""

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from relmap.core.join_plan import JoinPlan

if TYPE_CHECKING:
    from relmap.core.entity import Entity


@dataclass
class _Group:
    """Rows sharing one main entity id."""

    main: dict[str, Any]
    relations: dict[str, Any] = field(default_factory=dict)
    seen: dict[str, set] = field(default_factory=dict)


def reassemble(rows: list[dict[str, Any]], plan: JoinPlan) -> list["Entity"]:
    """Rebuild distinct main entities with their relation caches populated.

    A one-to-many LEFT JOIN repeats the main columns once per matching child,
    and a row whose aliased columns are all null means the join found nothing.

    Args:
        rows: Rows returned by the plan's query
        plan: The join plan the rows were produced by

    Returns:
        Main entities in first-seen order; has_many relations hold lists
        deduplicated by target id (empty when unmatched), belongs_to/has_one
        relations hold the first match or None
    """
    groups: dict[Any, _Group] = {}

    for row in rows:
        main_id = row.get("id")
        if main_id is None:
            continue

        group = groups.get(main_id)
        if group is None:
            group = _Group(main=plan.main_record(row))
            for join in plan.joins:
                group.relations[join.name] = [] if join.many else None
                group.seen[join.name] = set()
            groups[main_id] = group

        for join in plan.joins:
            record = join.extract(row)
            if record is None:
                continue

            if join.many:
                target_id = record.get("id")
                if target_id is not None:
                    if target_id in group.seen[join.name]:
                        continue
                    group.seen[join.name].add(target_id)
                group.relations[join.name].append(record)
            elif group.relations[join.name] is None:
                group.relations[join.name] = record

    entities = []
    for group in groups.values():
        entity = plan.entity_type.from_record(group.main)
        for join in plan.joins:
            data = group.relations[join.name]
            if join.many:
                value = [join.target_type.from_record(record) for record in data]
            else:
                value = join.target_type.from_record(data) if data is not None else None
            entity.set_relation(join.name, value)
        entities.append(entity)

    return entities
