"""Eager-load request options for find/all calls."""

from collections.abc import Iterable
from dataclasses import dataclass, field


def normalize_paths(relations: str | Iterable[str] | None) -> tuple[str, ...]:
    """Normalize relation paths to an ordered tuple without duplicates or blanks."""
    if relations is None:
        return ()
    if isinstance(relations, str):
        relations = [relations]

    paths: list[str] = []
    for path in relations:
        path = ".".join(part.strip() for part in path.split(".") if part.strip())
        if path and path not in paths:
            paths.append(path)
    return tuple(paths)


def split_paths(paths: Iterable[str]) -> dict[str, list[str]]:
    """Group dotted paths by their first segment.

    Example: ["posts.author", "posts.tags", "profile"] ->
    {"posts": ["author", "tags"], "profile": []}
    """
    tree: dict[str, list[str]] = {}
    for path in paths:
        first, _, rest = path.partition(".")
        nested = tree.setdefault(first, [])
        if rest and rest not in nested:
            nested.append(rest)
    return tree


@dataclass(frozen=True)
class QueryOptions:
    """Options for a single find/all call.

    Carries the relation paths to eager-load with the call itself, so no state
    is shared between callers.

    Example::

        Author.all(QueryOptions(relations=("posts", "posts.comments")))
    """

    relations: tuple[str, ...] = field(default=())
    strict: bool = False

    def __post_init__(self):
        object.__setattr__(self, "relations", normalize_paths(self.relations))

    @classmethod
    def of(cls, relations: "str | Iterable[str] | QueryOptions | None" = None, strict: bool = False) -> "QueryOptions":
        """Build options from relation paths, passing existing options through."""
        if isinstance(relations, QueryOptions):
            return relations
        return cls(relations=normalize_paths(relations), strict=strict)

    @property
    def eager(self) -> bool:
        return bool(self.relations)

    def tree(self) -> dict[str, list[str]]:
        return split_paths(self.relations)
