"""Global registry of entity types, for resolving relationship targets by name."""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .entity import Entity

_entity_types: dict[str, "type[Entity]"] = {}


def register_entity_type(entity_type: "type[Entity]") -> None:
    """Register an entity type under its class name.

    Called for every Entity subclass at class creation. A later class with the
    same name replaces the earlier one.
    """
    _entity_types[entity_type.__name__] = entity_type


def get_entity_type(name: str) -> "type[Entity]":
    """Get an entity type by name.

    Raises:
        KeyError: If no entity type with that name exists
    """
    if name not in _entity_types:
        raise KeyError(f"Entity type {name} not found")
    return _entity_types[name]


def list_entity_types() -> list["type[Entity]"]:
    """List registered entity types in definition order."""
    return list(_entity_types.values())
