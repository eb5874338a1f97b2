"""modelstore constants: reserved fields, formats, and formatting."""

from __future__ import annotations

# ---------------------------------------------------------------------------
# On-disk layout
# ---------------------------------------------------------------------------

# Reserved key carrying the schema version in versioned files
VERSION_FIELD = "_version"

# ---------------------------------------------------------------------------
# Formats
# ---------------------------------------------------------------------------

FORMAT_JSON = "json"
FORMAT_YAML = "yaml"
FORMAT_TOML = "toml"

DEFAULT_FORMAT = FORMAT_JSON

# Consulted by create_store() when no format is passed
FORMAT_ENV_VAR = "MODELSTORE_FORMAT"

JSON_INDENT = 2
YAML_INDENT = 2
