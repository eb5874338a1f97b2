"""Store configuration: the pydantic model behind Store construction."""

from __future__ import annotations

from collections.abc import Callable
from typing import Annotated, Any

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    StrictInt,
    ValidationError,
    field_validator,
    model_validator,
)

from modelstore.core.exceptions import ConfigError
from modelstore.core.migrations import MigrationStep, build_chain
from modelstore.core.schema import format_validation_error


class StoreConfig(BaseModel):
    """Validated construction options shared by every store."""

    model_config = ConfigDict(frozen=True)

    version: Annotated[StrictInt, Field(gt=0)] | None = None
    migrations: list[Any] = Field(default_factory=list)
    has_default: bool = False
    default_factory: Callable[[], Any] | None = None

    @field_validator("migrations")
    @classmethod
    def steps_only(cls, v: list[Any]) -> list[Any]:
        for item in v:
            if not isinstance(item, MigrationStep):
                raise ValueError(f"Expected MigrationStep, got {type(item).__name__}")
        return v

    @model_validator(mode="after")
    def single_default_source(self) -> StoreConfig:
        if self.has_default and self.default_factory is not None:
            raise ValueError("Pass either default or default_factory, not both")
        return self

    @property
    def versioned(self) -> bool:
        return self.version is not None

    @classmethod
    def from_options(cls, **options: Any) -> StoreConfig:
        """Build a config, converting pydantic failures to :class:`ConfigError`."""
        try:
            return cls.model_validate(options)
        except ValidationError as exc:
            raise ConfigError(
                f"Invalid store configuration:\n{format_validation_error(exc)}"
            ) from exc

    def chain(self) -> tuple[MigrationStep, ...]:
        """Return the sorted migration chain, raising :class:`ConfigError` if broken."""
        return build_chain(self.migrations, self.version)
