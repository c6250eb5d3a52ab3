"""Test config file loading and store binding."""

import json

import pytest
import yaml

from relmap import ConfigurationError, JSONFileStore
from relmap.config import (
    DuckDBStoreConfig,
    JSONStoreConfig,
    RelmapConfig,
    build_store,
    configure,
    find_config,
    load_config,
)
from relmap.db.duckdb import DuckDBAdapter
from tests.entities import Author, Comment, Post, Profile


def test_load_yaml_config(tmp_path):
    """Test loading a YAML config resolves store paths against its directory."""
    config_path = tmp_path / "relmap.yaml"
    config_path.write_text(
        yaml.safe_dump(
            {
                "default_store": "main",
                "stores": {
                    "main": {"type": "duckdb", "path": "data/app.duckdb"},
                    "files": {"type": "json", "path": "data/json"},
                },
                "entities": {"Profile": "files"},
            }
        )
    )

    config = load_config(config_path)

    assert isinstance(config.stores["main"], DuckDBStoreConfig)
    assert isinstance(config.stores["files"], JSONStoreConfig)
    assert config.stores["main"].path == str((tmp_path / "data" / "app.duckdb").resolve())
    assert config.stores["files"].path == str((tmp_path / "data" / "json").resolve())
    assert config.store_for("Profile") == "files"
    assert config.store_for("Author") == "main"


def test_load_json_config(tmp_path):
    """Test loading a JSON config keeps in-memory DuckDB paths."""
    config_path = tmp_path / "relmap.json"
    config_path.write_text(json.dumps({"stores": {"main": {"type": "duckdb"}}}))

    config = load_config(config_path)

    assert config.stores["main"].path == ":memory:"
    # A single store is the default.
    assert config.store_for("Author") == "main"


def test_load_empty_config(tmp_path):
    config_path = tmp_path / "relmap.yml"
    config_path.write_text("")

    config = load_config(config_path)

    assert config.stores == {}
    assert config.store_for("Author") is None


def test_load_config_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_config(tmp_path / "relmap.yaml")


def test_load_config_unsupported_format(tmp_path):
    config_path = tmp_path / "relmap.toml"
    config_path.write_text("")

    with pytest.raises(ValueError, match="Unsupported config format"):
        load_config(config_path)


def test_invalid_store_type(tmp_path):
    """Test unknown store types fail validation."""
    config_path = tmp_path / "relmap.json"
    config_path.write_text(json.dumps({"stores": {"main": {"type": "mongo", "path": "x"}}}))

    with pytest.raises(ValueError):
        load_config(config_path)


def test_find_config_searches_parents(tmp_path):
    """Test find_config walks up from a nested directory."""
    (tmp_path / "relmap.yaml").write_text("stores: {}\n")
    nested = tmp_path / "a" / "b"
    nested.mkdir(parents=True)

    assert find_config(nested) == (tmp_path / "relmap.yaml").resolve()


def test_find_config_none(tmp_path, monkeypatch):
    nested = tmp_path / "empty"
    nested.mkdir()
    monkeypatch.setattr("pathlib.Path.exists", lambda self: False)

    assert find_config(nested) is None


def test_build_store(tmp_path):
    """Test each store config builds its backend."""
    duck = build_store(DuckDBStoreConfig())
    files = build_store(JSONStoreConfig(path=str(tmp_path)))

    assert isinstance(duck, DuckDBAdapter)
    assert isinstance(files, JSONFileStore)
    assert files.directory == tmp_path
    duck.close()


def test_configure_binds_entity_types(tmp_path):
    """Test configure binds mapped types to their store and the rest to the default."""
    config = RelmapConfig(
        stores={"main": DuckDBStoreConfig(), "files": JSONStoreConfig(path=str(tmp_path))},
        default_store="main",
        entities={"Profile": "files"},
    )

    stores = configure(config)

    assert Author.store is stores["main"]
    assert Post.store is stores["main"]
    assert Comment.store is stores["main"]
    assert Profile.store is stores["files"]
    stores["main"].close()


def test_configure_without_default_leaves_types_unbound(tmp_path):
    """Test types with no configured store stay unbound."""
    config = RelmapConfig(
        stores={"a": JSONStoreConfig(path=str(tmp_path / "a")), "b": JSONStoreConfig(path=str(tmp_path / "b"))},
        entities={"Author": "b"},
    )

    stores = configure(config)

    assert Author.store is stores["b"]
    assert Post.store is None


def test_configure_unknown_entity_type():
    config = RelmapConfig(stores={"main": DuckDBStoreConfig()}, entities={"Ghost": "main"})

    with pytest.raises(ConfigurationError, match="unknown entity type 'Ghost'"):
        configure(config)


def test_configure_unknown_store():
    config = RelmapConfig(stores={"main": DuckDBStoreConfig()}, entities={"Author": "other"})

    with pytest.raises(ConfigurationError, match="unknown store 'other'"):
        configure(config)


def test_configure_unknown_default_store():
    config = RelmapConfig(stores={"main": DuckDBStoreConfig()}, default_store="other")

    with pytest.raises(ConfigurationError, match="Default store 'other'"):
        configure(config)


def test_configured_store_round_trip(tmp_path):
    """Test entities persist through a store built from config."""
    config = RelmapConfig(stores={"files": JSONStoreConfig(path=str(tmp_path))})
    configure(config)

    author = Author.create(name="Ada")

    assert Author.find(author.id).name == "Ada"
    assert (tmp_path / "authors.json").exists()
