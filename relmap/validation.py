"""Error types and entity type validation."""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from relmap.core.entity import Entity


class RelmapError(Exception):
    """Base class for all relmap errors."""

    pass


class PersistenceError(RelmapError):
    """Raised when a store write fails or affects no rows."""

    pass


class UnsupportedOperationError(RelmapError):
    """Raised when a backend does not support the requested operation."""

    pass


class ConfigurationError(RelmapError):
    """Raised when an entity type or config file is not usable."""

    pass


class EntityValidationError(ConfigurationError):
    """Raised when an entity type declaration is invalid."""

    pass


class RelationNotFoundError(RelmapError, KeyError):
    """Raised by strict eager loading when a relation is not declared."""

    pass


# Alias used for the main table in eager-load join queries.
MAIN_ALIAS = "main"

# Joins select target columns as <relation>__<field>.
COLUMN_SEPARATOR = "__"


def validate_entity_type(entity_type: "type[Entity]") -> list[str]:
    """Validate an entity type declaration.

    Args:
        entity_type: Entity subclass to validate

    Returns:
        List of validation errors (empty if valid)
    """
    from relmap.db.base import validate_identifier

    errors = []
    name = entity_type.__name__

    collection = getattr(entity_type, "collection", None)
    if not collection:
        errors.append(f"Entity '{name}' must define a collection")
    else:
        try:
            validate_identifier(collection, "collection name")
        except ValueError as e:
            errors.append(f"Entity '{name}': {e}")

    fields = set(entity_type.model_fields)
    for field_name in sorted(fields):
        if COLUMN_SEPARATOR in field_name:
            errors.append(f"Entity '{name}': field '{field_name}' may not contain '{COLUMN_SEPARATOR}'")

    for relation_name, relationship in entity_type.relationships.items():
        if relation_name in fields:
            errors.append(f"Entity '{name}': relation '{relation_name}' shadows a field of the same name")
        if relation_name == MAIN_ALIAS:
            errors.append(f"Entity '{name}': relation name '{MAIN_ALIAS}' is reserved")
        if COLUMN_SEPARATOR in relation_name:
            errors.append(f"Entity '{name}': relation '{relation_name}' may not contain '{COLUMN_SEPARATOR}'")

        keys = [("relation name", relation_name), ("local key", relationship.local_key)]
        if relationship.foreign_key:
            keys.append(("foreign key", relationship.foreign_key))
        for label, value in keys:
            try:
                validate_identifier(value, label)
            except ValueError as e:
                errors.append(f"Entity '{name}': relation '{relation_name}': {e}")

        if relationship.type == "belongs_to" and relationship.foreign_key_for(name) not in fields:
            errors.append(
                f"Entity '{name}': relation '{relation_name}' expects foreign key "
                f"'{relationship.foreign_key_for(name)}' to be a field"
            )

    return errors
