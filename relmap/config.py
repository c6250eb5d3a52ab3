"""Configuration file format for relmap."""

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field

from relmap.db.base import RecordStore
from relmap.validation import ConfigurationError


class DuckDBStoreConfig(BaseModel):
    """DuckDB store configuration."""

    type: Literal["duckdb"] = "duckdb"
    path: str = Field(default=":memory:", description="Path to DuckDB database file or :memory:")


class JSONStoreConfig(BaseModel):
    """JSON file store configuration."""

    type: Literal["json"] = "json"
    path: str = Field(..., description="Directory holding one <collection>.json file per entity type")


StoreConfig = DuckDBStoreConfig | JSONStoreConfig


class RelmapConfig(BaseModel):
    """relmap configuration file format.

    Can be saved as relmap.yaml or relmap.json.

    Example YAML:
        default_store: main
        stores:
          main:
            type: duckdb
            path: data/app.duckdb
          files:
            type: json
            path: data/json
        entities:
          Author: files
    """

    stores: dict[str, StoreConfig] = Field(default_factory=dict, description="Named store definitions")
    default_store: str | None = Field(
        default=None, description="Store for entity types not listed in entities (defaults to the only store)"
    )
    entities: dict[str, str] = Field(default_factory=dict, description="Entity type name -> store name")

    def store_for(self, entity_name: str) -> str | None:
        """Get the store name an entity type is configured with."""
        if entity_name in self.entities:
            return self.entities[entity_name]
        if self.default_store:
            return self.default_store
        if len(self.stores) == 1:
            return next(iter(self.stores))
        return None

    def resolve_paths(self, base_dir: Path | None = None) -> "RelmapConfig":
        """Resolve relative store paths to absolute paths.

        Args:
            base_dir: Base directory for resolving relative paths (defaults to cwd)

        Returns:
            New config with resolved paths
        """
        base = base_dir or Path.cwd()

        stores: dict[str, StoreConfig] = {}
        for name, store in self.stores.items():
            if isinstance(store, DuckDBStoreConfig) and store.path == ":memory:":
                stores[name] = store
                continue
            path = Path(store.path)
            if not path.is_absolute():
                path = (base / path).resolve()
            stores[name] = store.model_copy(update={"path": str(path)})

        return RelmapConfig(stores=stores, default_store=self.default_store, entities=dict(self.entities))


def load_config(config_path: Path) -> RelmapConfig:
    """Load configuration from YAML or JSON file.

    Args:
        config_path: Path to config file (relmap.yaml or relmap.json)

    Returns:
        Loaded and validated configuration

    Raises:
        FileNotFoundError: If config file doesn't exist
        ValueError: If config file format is invalid
    """
    import json

    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    suffix = config_path.suffix.lower()

    if suffix in {".yaml", ".yml"}:
        import yaml

        with open(config_path) as f:
            data = yaml.safe_load(f)
    elif suffix == ".json":
        with open(config_path) as f:
            data = json.load(f)
    else:
        raise ValueError(f"Unsupported config format: {suffix}. Use .yaml, .yml, or .json")

    config = RelmapConfig(**(data or {}))

    # Resolve relative paths relative to config file directory
    return config.resolve_paths(config_path.parent)


def find_config(start_dir: Path | None = None) -> Path | None:
    """Find config file by searching up the directory tree.

    Searches for relmap.yaml, relmap.yml, or relmap.json.

    Args:
        start_dir: Directory to start searching from (defaults to cwd)

    Returns:
        Path to config file if found, None otherwise
    """
    current = (start_dir or Path.cwd()).resolve()

    while True:
        for name in ["relmap.yaml", "relmap.yml", "relmap.json"]:
            config_path = current / name
            if config_path.exists():
                return config_path

        parent = current.parent
        if parent == current:
            break
        current = parent

    return None


def build_store(config: StoreConfig) -> RecordStore:
    """Create the record store a store configuration describes."""
    if isinstance(config, DuckDBStoreConfig):
        from relmap.db.duckdb import DuckDBAdapter

        return DuckDBAdapter(config.path)
    elif isinstance(config, JSONStoreConfig):
        from relmap.db.json_store import JSONFileStore

        return JSONFileStore(config.path)
    else:
        raise ValueError(f"Unknown store type: {type(config)}")


def configure(config: RelmapConfig) -> dict[str, RecordStore]:
    """Build every configured store and bind each registered entity type to its store.

    Args:
        config: relmap configuration

    Returns:
        Stores by name

    Raises:
        ConfigurationError: If the config names a store or entity type that does not exist
    """
    from relmap.core.registry import get_entity_type, list_entity_types

    stores = {name: build_store(store) for name, store in config.stores.items()}

    for entity_name, store_name in config.entities.items():
        try:
            get_entity_type(entity_name)
        except KeyError:
            raise ConfigurationError(f"Config maps unknown entity type '{entity_name}'") from None
        if store_name not in stores:
            raise ConfigurationError(f"Entity '{entity_name}' is mapped to unknown store '{store_name}'")
    if config.default_store and config.default_store not in stores:
        raise ConfigurationError(f"Default store '{config.default_store}' is not defined")

    for entity_type in list_entity_types():
        if not entity_type.collection:
            continue
        store_name = config.store_for(entity_type.__name__)
        if store_name is not None:
            entity_type.bind(stores[store_name])

    return stores
