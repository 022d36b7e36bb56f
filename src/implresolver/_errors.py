from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Generic, TypeVar, cast


T = TypeVar("T")


class ErrorKind(Enum):
    SECTION_MISSING = "section_missing"
    KEY_NOT_FOUND = "key_not_found"
    TYPE_LOAD_FAILURE = "type_load_failure"
    CONSTRUCTION_FAILURE = "construction_failure"
    TYPE_MISMATCH = "type_mismatch"
    MODULE_LOAD_FAILURE = "module_load_failure"


class ResolutionError(RuntimeError):
    """Base error for every failure on the lookup-load-construct path."""

    kind: ErrorKind

    def __init__(self, message: str, *, key: str | None = None) -> None:
        super().__init__(message)
        self.key = key


class SectionMissingError(ResolutionError):
    kind = ErrorKind.SECTION_MISSING


class KeyNotFoundError(ResolutionError):
    kind = ErrorKind.KEY_NOT_FOUND


class TypeLoadError(ResolutionError):
    kind = ErrorKind.TYPE_LOAD_FAILURE


class ConstructionError(ResolutionError):
    kind = ErrorKind.CONSTRUCTION_FAILURE


class TypeMismatchError(ResolutionError):
    kind = ErrorKind.TYPE_MISMATCH


class PluginLoadError(ResolutionError):
    kind = ErrorKind.MODULE_LOAD_FAILURE


class MappingSourceError(RuntimeError):
    pass


class TypeReferenceError(ValueError):
    pass


@dataclass(frozen=True)
class Resolution(Generic[T]):
    """Outcome of one resolution call: either a value or the error that prevented it."""

    value: T | None = None
    error: ResolutionError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def kind(self) -> ErrorKind | None:
        return self.error.kind if self.error is not None else None

    def unwrap(self) -> T:
        """Return the value, raising the recorded error if there is one."""
        if self.error is not None:
            raise self.error
        return cast("T", self.value)

    def value_or(self, default: T | None = None) -> T | None:
        return self.value if self.error is None else default

    @classmethod
    def success(cls, value: T) -> Resolution[T]:
        return cls(value=value)

    @classmethod
    def failure(cls, error: ResolutionError) -> Resolution[T]:
        return cls(error=error)
