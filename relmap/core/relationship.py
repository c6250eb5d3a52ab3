"""Relationship definitions for entity types."""

from typing import TYPE_CHECKING, Any, Literal

from pydantic import BaseModel, ConfigDict, Field

if TYPE_CHECKING:
    from relmap.core.entity import Entity


class Relationship(BaseModel):
    """Represents a relationship from an entity type to another.

    Rails-like syntax:
    - belongs_to: This entity has a foreign key to the target (many-to-one)
    - has_one: The target has a foreign key to this entity, one row expected (one-to-one)
    - has_many: The target has a foreign key to this entity (one-to-many)
    """

    model_config = ConfigDict(frozen=True)

    type: Literal["has_many", "belongs_to", "has_one"] = Field(description="Type of relationship")
    target: Any = Field(description="Target entity type, or its registered type name")
    foreign_key: str | None = Field(
        default=None,
        description="Foreign key column (defaults to {owner}_id for has_*, {target}_id for belongs_to)",
    )
    local_key: str = Field(
        default="id",
        description="Local key for has_many/has_one, owner key on the target for belongs_to",
    )

    @property
    def many(self) -> bool:
        return self.type == "has_many"

    @property
    def target_name(self) -> str:
        """Get the target entity type name."""
        if isinstance(self.target, type):
            return self.target.__name__
        return str(self.target)

    @property
    def target_type(self) -> "type[Entity]":
        """Resolve the target entity type.

        Raises:
            KeyError: If the target is a name that was never registered
        """
        if isinstance(self.target, type):
            return self.target
        from relmap.core.registry import get_entity_type

        return get_entity_type(self.target)

    def foreign_key_for(self, owner_name: str) -> str:
        """Get the foreign key column, applying the naming default.

        Args:
            owner_name: Name of the entity type declaring the relationship

        Returns:
            Foreign key column name
        """
        if self.foreign_key:
            return self.foreign_key

        if self.type == "belongs_to":
            return f"{self.target_name.lower()}_id"
        return f"{owner_name.lower()}_id"

    def join_keys(self, owner_name: str) -> tuple[str, str]:
        """Get the (owner column, target column) pair the relationship joins on.

        Example: Post belongs_to Author joins posts.author_id = authors.id,
        Author has_many Post joins authors.id = posts.author_id.
        """
        foreign_key = self.foreign_key_for(owner_name)
        if self.type == "belongs_to":
            return foreign_key, self.local_key
        return self.local_key, foreign_key


def has_many(target: "type[Entity] | str", foreign_key: str | None = None, local_key: str = "id") -> Relationship:
    """Declare a one-to-many relationship."""
    return Relationship(type="has_many", target=target, foreign_key=foreign_key, local_key=local_key)


def has_one(target: "type[Entity] | str", foreign_key: str | None = None, local_key: str = "id") -> Relationship:
    """Declare a one-to-one relationship where the target holds the foreign key."""
    return Relationship(type="has_one", target=target, foreign_key=foreign_key, local_key=local_key)


def belongs_to(target: "type[Entity] | str", foreign_key: str | None = None, owner_key: str = "id") -> Relationship:
    """Declare a many-to-one relationship where this entity holds the foreign key."""
    return Relationship(type="belongs_to", target=target, foreign_key=foreign_key, local_key=owner_key)
