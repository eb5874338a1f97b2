"""
Schema capability — validates untyped data and encodes typed data back.

A schema is anything that can turn parsed file content into a typed value
(``validate``) and turn a typed value into plain data a serializer can
write (``encode``).  Both methods are coroutines so that implementations
may run asynchronous transforms.

Any type pydantic understands can be used directly::

    class Settings(BaseModel):
        theme: Literal["light", "dark"]
        font_size: int

    schema = as_schema(Settings)
    settings = await schema.validate({"theme": "dark", "font_size": 14})
    plain = await schema.encode(settings)
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Generic, TypeVar

from pydantic import TypeAdapter, ValidationError

T = TypeVar("T")


class Schema(ABC, Generic[T]):
    """Interface for a validator/encoder bound to one data shape."""

    @abstractmethod
    async def validate(self, value: Any) -> T:
        """Validate untyped *value* and return the typed result.

        Raises the implementation's validation error on failure.
        """
        ...

    @abstractmethod
    async def encode(self, value: T) -> Any:
        """Encode typed *value* into plain data (dicts, lists, scalars)."""
        ...


class PydanticSchema(Schema[T]):
    """Schema backed by a pydantic :class:`~pydantic.TypeAdapter`.

    Decoding transforms belong in ``field_validator(mode="before")`` and
    encoding transforms in ``field_serializer``; both run here.
    """

    def __init__(self, type_: Any) -> None:
        self.type_ = type_
        self._adapter: TypeAdapter[T] = TypeAdapter(type_)

    async def validate(self, value: Any) -> T:
        return self._adapter.validate_python(value)

    async def encode(self, value: T) -> Any:
        # Re-validate so plain dicts are accepted and ill-typed input is rejected
        typed = self._adapter.validate_python(value)
        return self._adapter.dump_python(typed, mode="json")

    def __repr__(self) -> str:
        name = getattr(self.type_, "__name__", repr(self.type_))
        return f"PydanticSchema({name})"


def as_schema(obj: Any) -> Schema[Any]:
    """Return *obj* if it is already a :class:`Schema`, else wrap it for pydantic."""
    if isinstance(obj, Schema):
        return obj
    return PydanticSchema(obj)


def format_validation_error(exc: BaseException) -> str:
    """
    Render a validation failure as human-readable lines.

    Pydantic errors produce one line per issue (``"  loc → loc: msg"``);
    anything else falls back to ``str(exc)``.
    """
    if not isinstance(exc, ValidationError):
        return str(exc) or type(exc).__name__
    lines = []
    for err in exc.errors():
        loc = " → ".join(str(x) for x in err["loc"]) if err["loc"] else "(root)"
        lines.append(f"  {loc}: {err['msg']}")
    return "\n".join(lines)
