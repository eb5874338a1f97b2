"""modelstore exception hierarchy."""

from __future__ import annotations

from enum import Enum


class ErrorCode(str, Enum):
    """Classification attached to every :class:`StoreError`."""

    FILE_READ = "FileRead"
    FILE_WRITE = "FileWrite"
    INVALID_FORMAT = "InvalidFormat"
    INVALID_VERSION = "InvalidVersion"
    UNSUPPORTED_VERSION = "UnsupportedVersion"
    VALIDATION = "Validation"
    MIGRATION = "Migration"
    ENCODING = "Encoding"
    MISSING_DEPENDENCY = "MissingDependency"


class ModelStoreError(Exception):
    """Base exception for all modelstore errors."""


class ConfigError(ModelStoreError, ValueError):
    """Raised when a store is constructed with an invalid configuration."""


class StoreError(ModelStoreError):
    """Raised when a load or save fails.

    ``code`` says which stage failed; the underlying exception, if any,
    is chained as ``__cause__`` and exposed as :attr:`cause`.
    """

    def __init__(self, code: ErrorCode, message: str) -> None:
        super().__init__(message)
        self.code = code

    @property
    def cause(self) -> BaseException | None:
        return self.__cause__

    def __repr__(self) -> str:
        return f"StoreError({self.code.value}, {str(self)!r})"
