"""
modelstore — versioned, schema-validated persistence of structured data.

Public API::

    from modelstore import MigrationStep, json_store

    store = json_store(Settings, default_factory=Settings, version=2,
                       migrations=[MigrationStep(1, SettingsV1, upgrade_v1)])
    settings = await store.load("settings.json")
    await store.save(settings, "settings.json")
"""

from modelstore.core.exceptions import ConfigError, ErrorCode, ModelStoreError, StoreError
from modelstore.core.migrations import MigrationStep, build_chain, run_migrations
from modelstore.core.schema import PydanticSchema, Schema, as_schema, format_validation_error
from modelstore.core.serializers import (
    JsonSerializer,
    Serializer,
    TomlSerializer,
    YamlSerializer,
    get_serializer,
)
from modelstore.core.store import Store, create_store, json_store, toml_store, yaml_store

__version__ = "0.1.0"

__all__ = [
    "ConfigError",
    "ErrorCode",
    "JsonSerializer",
    "MigrationStep",
    "ModelStoreError",
    "PydanticSchema",
    "Schema",
    "Serializer",
    "Store",
    "StoreError",
    "TomlSerializer",
    "YamlSerializer",
    "as_schema",
    "build_chain",
    "create_store",
    "format_validation_error",
    "get_serializer",
    "json_store",
    "run_migrations",
    "toml_store",
    "yaml_store",
]
