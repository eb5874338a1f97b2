"""
Store — versioned, schema-validated load and save of a single file.

Usage::

    store = json_store(Settings, default_factory=Settings, version=2,
                       migrations=[step_v1_to_v2])

    settings = await store.load("settings.json")
    await store.save(settings, "settings.json", compact=True)

Load pipeline: read → parse → (versioned) check ``_version`` → migrate →
validate.  Any failure is classified with an :class:`ErrorCode`; when a
default is configured and ``throw_on_error`` is not set, the default is
returned instead of raising.  Save never falls back.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Iterable
from pathlib import Path
from typing import Any, Generic, TypeVar

from pydantic import ValidationError

from modelstore.core.config import StoreConfig
from modelstore.core.constants import VERSION_FIELD
from modelstore.core.exceptions import ErrorCode, StoreError
from modelstore.core.migrations import MigrationStep, run_migrations
from modelstore.core.schema import Schema, as_schema, format_validation_error
from modelstore.core.serializers import (
    JsonSerializer,
    Serializer,
    TomlSerializer,
    YamlSerializer,
    get_serializer,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

_MISSING: Any = object()


# ---------------------------------------------------------------------------
# File I/O
# ---------------------------------------------------------------------------


async def read_text(path: Path) -> str:
    return await asyncio.to_thread(path.read_text, encoding="utf-8")


async def write_bytes(path: Path, payload: bytes) -> None:
    await asyncio.to_thread(path.write_bytes, payload)


# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------


class Store(Generic[T]):
    """
    Persist values of one schema to files in one format.

    A store holds configuration only; concurrent calls share nothing
    except a caller-supplied ``default_factory``.

    Raises:
        ConfigError: at construction, if the version or migration chain
            is invalid or both ``default`` and ``default_factory`` are given.
    """

    def __init__(
        self,
        schema: Any,
        serializer: Serializer,
        *,
        default: Any = _MISSING,
        default_factory: Callable[[], T] | None = None,
        version: int | None = None,
        migrations: Iterable[MigrationStep] = (),
    ) -> None:
        self._config = StoreConfig.from_options(
            version=version,
            migrations=list(migrations),
            has_default=default is not _MISSING,
            default_factory=default_factory,
        )
        self._chain = self._config.chain()
        self._schema: Schema[T] = as_schema(schema)
        self._serializer = serializer
        self._default = default

    @property
    def version(self) -> int | None:
        return self._config.version

    @property
    def serializer(self) -> Serializer:
        return self._serializer

    @property
    def has_default(self) -> bool:
        return self._config.has_default or self._config.default_factory is not None

    # ------------------------------------------------------------------
    # load
    # ------------------------------------------------------------------

    async def load(self, path: str | Path, *, throw_on_error: bool = False) -> T:
        """
        Load, migrate, and validate the file at *path*.

        Returns the default instead of raising when one is configured,
        unless *throw_on_error* is set.

        Raises:
            StoreError: classified by stage (see :class:`ErrorCode`).
        """
        p = Path(path)
        try:
            result = await self._load(p)
        except StoreError as exc:
            if throw_on_error or not self.has_default:
                raise
            logger.warning("Using default for %s (%s): %s", p, exc.code.value, exc)
            return self._make_default()
        logger.debug("Loaded %s", p)
        return result

    async def _load(self, path: Path) -> T:
        fmt = self._serializer.format_name

        try:
            content = await read_text(path)
        except (OSError, ValueError) as exc:
            raise StoreError(ErrorCode.FILE_READ, f"Failed to read file: {path}") from exc

        try:
            parsed = self._serializer.parse(content)
        except StoreError:
            raise
        except Exception as exc:
            raise StoreError(ErrorCode.INVALID_FORMAT, f"Invalid {fmt} in file: {path}") from exc

        current = self._config.version
        data = parsed if current is None else await self._upgrade(parsed, current, path)

        try:
            return await self._schema.validate(data)
        except Exception as exc:
            message = f"Schema validation failed for file: {path}"
            if isinstance(exc, ValidationError):
                message = f"{message}\n{format_validation_error(exc)}"
            raise StoreError(ErrorCode.VALIDATION, message) from exc

    async def _upgrade(self, parsed: Any, current: int, path: Path) -> Any:
        """Check the ``_version`` tag, strip it, and migrate to *current*."""
        if not isinstance(parsed, dict) or VERSION_FIELD not in parsed:
            raise StoreError(
                ErrorCode.INVALID_VERSION, f"Missing {VERSION_FIELD} field in file: {path}"
            )

        file_version = _coerce_version(parsed[VERSION_FIELD])
        if file_version is None:
            raise StoreError(
                ErrorCode.INVALID_VERSION,
                f"Invalid {VERSION_FIELD} field in file: {path}. "
                f"Expected integer > 0, got {parsed[VERSION_FIELD]!r}",
            )

        if file_version > current:
            raise StoreError(
                ErrorCode.UNSUPPORTED_VERSION,
                f"Unsupported file version {file_version} in {path}. "
                f"Current schema version is {current}",
            )

        data = {k: v for k, v in parsed.items() if k != VERSION_FIELD}
        if file_version < current:
            logger.debug("Upgrading %s from v%d to v%d", path, file_version, current)
            data = await run_migrations(
                data, file_version, current, self._chain, source=f"file: {path}"
            )
        return data

    def _make_default(self) -> T:
        if self._config.default_factory is not None:
            return self._config.default_factory()
        return self._default

    # ------------------------------------------------------------------
    # save
    # ------------------------------------------------------------------

    async def save(self, data: T, path: str | Path, *, compact: bool = False) -> None:
        """
        Encode *data* and write it to *path*.

        Versioned stores write ``_version`` as the first key.

        Raises:
            StoreError: ``ENCODING`` if the schema or serializer rejects the
                data, ``FILE_WRITE`` if the file cannot be written.
        """
        p = Path(path)

        try:
            encoded = await self._schema.encode(data)
        except Exception as exc:
            message = f"Schema encoding failed for file: {p}"
            if isinstance(exc, ValidationError):
                message = f"{message}\n{format_validation_error(exc)}"
            raise StoreError(ErrorCode.ENCODING, message) from exc

        if self._config.versioned:
            if isinstance(encoded, dict) and VERSION_FIELD in encoded:
                raise StoreError(
                    ErrorCode.ENCODING,
                    f"Field {VERSION_FIELD!r} is reserved and cannot be saved to {p}",
                )
            document: Any = {VERSION_FIELD: self._config.version}
            if isinstance(encoded, dict):
                document.update(encoded)
        else:
            document = encoded

        try:
            text = self._serializer.stringify(document, compact)
        except StoreError:
            raise
        except Exception as exc:
            raise StoreError(
                ErrorCode.ENCODING,
                f"Cannot write data as {self._serializer.format_name} to {p}: {exc}",
            ) from exc

        # Encode before opening so a failure leaves the existing file intact
        try:
            payload = text.encode("utf-8")
        except UnicodeEncodeError as exc:
            raise StoreError(
                ErrorCode.ENCODING, f"Cannot encode data as UTF-8 for {p}: {exc}"
            ) from exc

        try:
            await write_bytes(p, payload)
        except (OSError, ValueError) as exc:
            raise StoreError(ErrorCode.FILE_WRITE, f"Failed to write file: {p}") from exc
        logger.debug("Saved %s", p)

    def __repr__(self) -> str:
        return (
            f"Store(schema={self._schema!r}, format={self._serializer.format_name}, "
            f"version={self._config.version})"
        )


def _coerce_version(value: Any) -> int | None:
    """Return *value* as a positive int, or None if it is not one."""
    if isinstance(value, bool):
        return None
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    if isinstance(value, int) and value > 0:
        return value
    return None


# ---------------------------------------------------------------------------
# Format factories
# ---------------------------------------------------------------------------


def json_store(schema: Any, **options: Any) -> Store[Any]:
    """Create a store that reads and writes JSON."""
    return Store(schema, JsonSerializer(), **options)


def yaml_store(schema: Any, **options: Any) -> Store[Any]:
    """Create a store that reads and writes YAML (requires PyYAML)."""
    return Store(schema, YamlSerializer(), **options)


def toml_store(schema: Any, **options: Any) -> Store[Any]:
    """Create a store that reads and writes TOML (writing requires tomli-w)."""
    return Store(schema, TomlSerializer(), **options)


def create_store(schema: Any, format: str | None = None, **options: Any) -> Store[Any]:
    """
    Create a store for *format* (``json``, ``yaml``, ``toml``).

    When *format* is omitted, ``MODELSTORE_FORMAT`` is consulted, then JSON.
    """
    return Store(schema, get_serializer(format), **options)
