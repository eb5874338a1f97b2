"""
Schema migrations: chain validation and the upgrade engine.

A migration step upgrades data from ``source_version`` to
``source_version + 1``.  The data is validated against the step's schema
before its ``migrate`` function runs, so every function receives typed
input for the version it was written against::

    step = MigrationStep(
        source_version=1,
        schema=SettingsV1,
        migrate=lambda v1: {"theme": v1.theme, "accent_color": "#0066cc"},
    )
"""

from __future__ import annotations

import inspect
import logging
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass, field
from typing import Any

from pydantic import ValidationError

from modelstore.core.exceptions import ConfigError, ErrorCode, StoreError
from modelstore.core.schema import Schema, as_schema, format_validation_error

logger = logging.getLogger(__name__)

MigrateFn = Callable[[Any], Awaitable[Any] | Any]


@dataclass(frozen=True)
class MigrationStep:
    """One upgrade from ``source_version`` to ``source_version + 1``."""

    source_version: int
    schema: Schema[Any] = field(repr=False)
    migrate: MigrateFn = field(repr=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "schema", as_schema(self.schema))


def build_chain(
    steps: Iterable[MigrationStep],
    current_version: int | None,
) -> tuple[MigrationStep, ...]:
    """
    Sort *steps* by source version and check they form a contiguous chain.

    A valid chain covers exactly versions ``1 .. current_version - 1``.

    Raises:
        ConfigError: on a gap, a duplicate, a chain not starting at 1,
            a chain not ending at ``current_version - 1``, or a missing
            ``current_version`` when steps are supplied.
    """
    chain = tuple(sorted(steps, key=lambda s: s.source_version))

    for position, step in enumerate(chain):
        expected = position + 1
        if step.source_version != expected:
            raise ConfigError(
                "Migration chain must be sequential starting from version 1: "
                f"expected version {expected}, found {step.source_version} "
                f"at position {position}"
            )

    if chain:
        if current_version is None:
            raise ConfigError("A version is required when migrations are supplied")
        last = chain[-1].source_version
        if last != current_version - 1:
            raise ConfigError(
                f"Migration chain must end at version {current_version - 1}, "
                f"but the last migration is for version {last}"
            )

    return chain


async def run_migrations(
    data: Any,
    from_version: int,
    to_version: int,
    chain: tuple[MigrationStep, ...],
    *,
    source: str = "<data>",
) -> Any:
    """
    Upgrade *data* step by step from *from_version* to *to_version*.

    Returns *data* unchanged when it is already at (or past) *to_version*.

    Raises:
        StoreError: with code ``MIGRATION`` when a step is missing, when the
            data fails a step's schema, or when a ``migrate`` function raises.
    """
    steps = {step.source_version: step for step in chain}
    version = from_version

    while version < to_version:
        step = steps.get(version)
        if step is None:
            raise StoreError(
                ErrorCode.MIGRATION,
                f"No migration found for version {version} in {source}",
            )

        try:
            validated = await step.schema.validate(data)
            result = step.migrate(validated)
            if inspect.isawaitable(result):
                result = await result
        except Exception as exc:
            message = f"Migration from version {version} failed in {source}"
            if isinstance(exc, ValidationError):
                message = f"{message}\n{format_validation_error(exc)}"
            raise StoreError(ErrorCode.MIGRATION, message) from exc

        logger.debug("Migrated %s: v%d -> v%d", source, version, version + 1)
        data = result
        version += 1

    return data
