"""Unit tests for modelstore.core.migrations — chain validation and the upgrade engine."""

from __future__ import annotations

import asyncio
from typing import Any

import pytest
from pydantic import BaseModel

from modelstore.core.exceptions import ConfigError, ErrorCode, StoreError
from modelstore.core.migrations import MigrationStep, build_chain, run_migrations
from modelstore.core.schema import PydanticSchema


class V1(BaseModel):
    theme: str


class V2(BaseModel):
    theme: str
    font_size: int


class V3(BaseModel):
    theme: str
    font_size: int
    accent_color: str


def _noop_step(version: int) -> MigrationStep:
    return MigrationStep(source_version=version, schema=dict[str, Any], migrate=lambda d: d)


def _settings_chain(calls: list[int] | None = None) -> tuple[MigrationStep, ...]:
    def v1_to_v2(data: V1) -> dict[str, Any]:
        if calls is not None:
            calls.append(1)
        return {"theme": data.theme, "font_size": 14}

    def v2_to_v3(data: V2) -> dict[str, Any]:
        if calls is not None:
            calls.append(2)
        return {**data.model_dump(), "accent_color": "#0066cc"}

    return build_chain(
        [
            MigrationStep(2, V2, v2_to_v3),
            MigrationStep(1, V1, v1_to_v2),
        ],
        current_version=3,
    )


# ---------------------------------------------------------------------------
# MigrationStep
# ---------------------------------------------------------------------------


class TestMigrationStep:
    def test_schema_is_wrapped(self) -> None:
        step = MigrationStep(1, V1, lambda d: d)
        assert isinstance(step.schema, PydanticSchema)

    def test_repr_shows_version_only(self) -> None:
        step = MigrationStep(4, V1, lambda d: d)
        assert repr(step) == "MigrationStep(source_version=4)"


# ---------------------------------------------------------------------------
# build_chain
# ---------------------------------------------------------------------------


class TestBuildChain:
    def test_empty_chain_without_version(self) -> None:
        assert build_chain([], None) == ()

    def test_empty_chain_with_version(self) -> None:
        assert build_chain([], 5) == ()

    def test_sorts_by_source_version(self) -> None:
        chain = build_chain([_noop_step(3), _noop_step(1), _noop_step(2)], 4)
        assert [s.source_version for s in chain] == [1, 2, 3]

    def test_gap_rejected(self) -> None:
        with pytest.raises(ConfigError, match="expected version 2, found 3"):
            build_chain([_noop_step(1), _noop_step(3)], 4)

    def test_duplicate_rejected(self) -> None:
        with pytest.raises(ConfigError, match="sequential"):
            build_chain([_noop_step(1), _noop_step(1), _noop_step(2)], 3)

    def test_must_start_at_one(self) -> None:
        with pytest.raises(ConfigError, match="expected version 1, found 2"):
            build_chain([_noop_step(2), _noop_step(3)], 4)

    def test_must_end_at_current_minus_one(self) -> None:
        with pytest.raises(ConfigError, match="must end at version 3"):
            build_chain([_noop_step(1), _noop_step(2)], 4)

    def test_step_at_current_version_rejected(self) -> None:
        with pytest.raises(ConfigError, match="must end at version 1"):
            build_chain([_noop_step(1), _noop_step(2)], 2)

    def test_version_required_with_steps(self) -> None:
        with pytest.raises(ConfigError, match="version is required"):
            build_chain([_noop_step(1)], None)

    def test_config_error_is_value_error(self) -> None:
        with pytest.raises(ValueError):
            build_chain([_noop_step(2)], 3)


# ---------------------------------------------------------------------------
# run_migrations
# ---------------------------------------------------------------------------


class TestRunMigrations:
    @pytest.mark.asyncio
    async def test_applies_steps_in_order(self) -> None:
        calls: list[int] = []
        chain = _settings_chain(calls)
        result = await run_migrations({"theme": "dark"}, 1, 3, chain)
        assert calls == [1, 2]
        assert result == {"theme": "dark", "font_size": 14, "accent_color": "#0066cc"}

    @pytest.mark.asyncio
    async def test_starts_mid_chain(self) -> None:
        calls: list[int] = []
        chain = _settings_chain(calls)
        result = await run_migrations({"theme": "light", "font_size": 12}, 2, 3, chain)
        assert calls == [2]
        assert result["font_size"] == 12

    @pytest.mark.asyncio
    async def test_no_steps_when_already_current(self) -> None:
        calls: list[int] = []
        chain = _settings_chain(calls)
        data = {"theme": "dark", "font_size": 14, "accent_color": "#fff"}
        result = await run_migrations(data, 3, 3, chain)
        assert calls == []
        assert result is data

    @pytest.mark.asyncio
    async def test_async_migrate_is_awaited(self) -> None:
        async def upgrade(data: V1) -> dict[str, Any]:
            await asyncio.sleep(0)
            return {"theme": data.theme.upper(), "font_size": 10}

        chain = build_chain([MigrationStep(1, V1, upgrade)], 2)
        result = await run_migrations({"theme": "dark"}, 1, 2, chain)
        assert result == {"theme": "DARK", "font_size": 10}

    @pytest.mark.asyncio
    async def test_migrate_receives_validated_data(self) -> None:
        seen: list[Any] = []

        def upgrade(data: V1) -> dict[str, Any]:
            seen.append(data)
            return {"theme": data.theme, "font_size": 1}

        chain = build_chain([MigrationStep(1, V1, upgrade)], 2)
        await run_migrations({"theme": "dark", "extra": True}, 1, 2, chain)
        assert seen == [V1(theme="dark")]

    @pytest.mark.asyncio
    async def test_validation_failure_is_migration_error(self) -> None:
        chain = _settings_chain()
        with pytest.raises(StoreError) as exc_info:
            await run_migrations({"theme": 123}, 1, 3, chain, source="file: s.json")
        err = exc_info.value
        assert err.code is ErrorCode.MIGRATION
        assert "Migration from version 1 failed in file: s.json" in str(err)
        assert "theme" in str(err)
        assert err.cause is not None

    @pytest.mark.asyncio
    async def test_migrate_exception_preserved_as_cause(self) -> None:
        boom = RuntimeError("boom")

        def upgrade(data: V1) -> dict[str, Any]:
            raise boom

        chain = build_chain([MigrationStep(1, V1, upgrade)], 2)
        with pytest.raises(StoreError) as exc_info:
            await run_migrations({"theme": "dark"}, 1, 2, chain)
        assert exc_info.value.code is ErrorCode.MIGRATION
        assert exc_info.value.cause is boom

    @pytest.mark.asyncio
    async def test_missing_step(self) -> None:
        with pytest.raises(StoreError, match="No migration found for version 1") as exc_info:
            await run_migrations({}, 1, 2, ())
        assert exc_info.value.code is ErrorCode.MIGRATION

    @pytest.mark.asyncio
    async def test_later_step_failure_reports_its_version(self) -> None:
        def bad(data: V2) -> dict[str, Any]:
            raise ValueError("cannot upgrade")

        chain = build_chain(
            [
                MigrationStep(1, V1, lambda d: {"theme": d.theme, "font_size": 1}),
                MigrationStep(2, V2, bad),
            ],
            3,
        )
        with pytest.raises(StoreError, match="Migration from version 2 failed"):
            await run_migrations({"theme": "dark"}, 1, 3, chain)
