"""
Serializers — convert between plain values and file text.

Each serializer exposes ``parse(text)``, ``stringify(value, compact)`` and a
``format_name`` used in error messages.  YAML and TOML writing depend on
optional libraries that are imported on first use.
"""

from __future__ import annotations

import json
import os
from abc import ABC, abstractmethod
from typing import Any

from modelstore.core.constants import (
    DEFAULT_FORMAT,
    FORMAT_ENV_VAR,
    FORMAT_JSON,
    FORMAT_TOML,
    FORMAT_YAML,
    JSON_INDENT,
    YAML_INDENT,
)
from modelstore.core.exceptions import ConfigError, ErrorCode, StoreError

# Characters YAML treats as line breaks
_YAML_LINE_BREAKS = ("\n", "\r", "\x85", "\u2028", "\u2029")


class Serializer(ABC):
    """Interface for a text format."""

    format_name: str = ""

    @abstractmethod
    def parse(self, text: str) -> Any:
        """Parse *text* into a plain value. Raises on malformed input."""
        ...

    @abstractmethod
    def stringify(self, value: Any, compact: bool = False) -> str:
        """Render *value* as text, on a single line when *compact* is set."""
        ...

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class JsonSerializer(Serializer):
    format_name = "JSON"

    def parse(self, text: str) -> Any:
        return json.loads(text)

    def stringify(self, value: Any, compact: bool = False) -> str:
        if compact:
            return json.dumps(value, separators=(",", ":"), ensure_ascii=False)
        return json.dumps(value, indent=JSON_INDENT, ensure_ascii=False)


class YamlSerializer(Serializer):
    format_name = "YAML"

    def parse(self, text: str) -> Any:
        yaml = _import_yaml()
        return yaml.safe_load(text)

    def stringify(self, value: Any, compact: bool = False) -> str:
        yaml = _import_yaml()
        if compact:
            text = yaml.dump(
                value,
                Dumper=_compact_dumper(yaml),
                default_flow_style=True,
                width=float("inf"),
                sort_keys=False,
                allow_unicode=True,
            )
            # Scalars get an explicit document end marker
            return text.removesuffix("\n...\n").rstrip("\n")
        return yaml.safe_dump(
            value,
            default_flow_style=False,
            indent=YAML_INDENT,
            sort_keys=False,
            allow_unicode=True,
        )


class TomlSerializer(Serializer):
    """TOML has no compact form; the ``compact`` flag is ignored."""

    format_name = "TOML"

    def parse(self, text: str) -> Any:
        import tomllib

        return tomllib.loads(text)

    def stringify(self, value: Any, compact: bool = False) -> str:
        try:
            import tomli_w
        except ImportError as exc:
            raise StoreError(
                ErrorCode.MISSING_DEPENDENCY,
                "tomli-w is required for TOML support. Install it with: pip install tomli-w",
            ) from exc
        if not isinstance(value, dict):
            raise TypeError(f"TOML documents must be tables (got {type(value).__name__})")
        return tomli_w.dumps(value)


def _import_yaml() -> Any:
    try:
        import yaml
    except ImportError as exc:
        raise StoreError(
            ErrorCode.MISSING_DEPENDENCY,
            "PyYAML is required for YAML support. Install it with: pip install PyYAML",
        ) from exc
    return yaml


def _compact_dumper(yaml: Any) -> Any:
    """
    Return a SafeDumper subclass that keeps flow output on one line.

    Strings containing line breaks are emitted double-quoted, where breaks
    are escaped (``\\n``) instead of folded across lines.
    """

    class CompactDumper(yaml.SafeDumper):
        pass

    def represent_str(dumper: Any, data: str) -> Any:
        style = '"' if any(ch in data for ch in _YAML_LINE_BREAKS) else None
        return dumper.represent_scalar("tag:yaml.org,2002:str", data, style=style)

    CompactDumper.add_representer(str, represent_str)
    return CompactDumper


_SERIALIZERS: dict[str, type[Serializer]] = {
    FORMAT_JSON: JsonSerializer,
    FORMAT_YAML: YamlSerializer,
    "yml": YamlSerializer,
    FORMAT_TOML: TomlSerializer,
}


def get_serializer(name: str | None = None) -> Serializer:
    """
    Return a serializer for the format *name* (``json``, ``yaml``/``yml``, ``toml``).

    When *name* is None, ``MODELSTORE_FORMAT`` is consulted before falling
    back to JSON.

    Raises:
        ConfigError: if the format is unknown.
    """
    if name is None:
        name = os.environ.get(FORMAT_ENV_VAR) or DEFAULT_FORMAT
    cls = _SERIALIZERS.get(name.strip().lower())
    if cls is None:
        allowed = ", ".join(sorted(_SERIALIZERS))
        raise ConfigError(f"Unknown format {name!r}. Expected one of: {allowed}")
    return cls()
