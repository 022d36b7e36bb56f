from __future__ import annotations

import inspect
import logging
import types
import typing
from enum import Enum
from typing import (
    TYPE_CHECKING,
    Any,
    Protocol,
    TypeVar,
    cast,
    overload,
)

from ._errors import (
    ConstructionError,
    KeyNotFoundError,
    Resolution,
    ResolutionError,
    SectionMissingError,
    TypeMismatchError,
)
from ._loader import TypeLoader
from ._mapping import DEFAULT_SECTION, DictMappingSource, MappingSource
from ._names import normalize


logger = logging.getLogger(__name__)

if TYPE_CHECKING:
    from collections.abc import Mapping

    from ._settings import ResolverSettings

T = TypeVar("T")

DEFAULT_FACTORY_METHOD = "get_instance"


class Strategy(Enum):
    DEFAULT = "default"
    ARGUMENTS = "arguments"
    SINGLETON = "singleton"


class Resolver:
    """Resolve capabilities to implementations named in a mapping.

    - key: ``normalize(T)`` for typed calls, or a caller-chosen string
    - lookup: ``source.get_section(section)[key]`` gives a type reference
    - load: the reference is loaded (registered names first, then imports)
    - construct: no-argument call, argument call, or static factory method

    Nothing is cached; every call repeats the whole path.
    The ``resolve*`` methods are fail-soft and return ``None`` on any
    failure; the ``try_resolve*`` twins return a :class:`Resolution` that
    carries the error instead.
    """

    def __init__(
        self,
        source: MappingSource | Mapping[str, str] | None = None,
        *,
        section: str = DEFAULT_SECTION,
        loader: TypeLoader | None = None,
        factory_method: str = DEFAULT_FACTORY_METHOD,
    ) -> None:
        if source is None:
            source = DictMappingSource()
        elif not isinstance(source, MappingSource):
            # a plain mapping is the content of the selected section
            source = DictMappingSource.single(source, section=section)

        self.source = source
        self.section = section
        self.loader = loader if loader is not None else TypeLoader()
        self._constructor = Constructor(factory_method)

    @classmethod
    def from_settings(cls, settings: ResolverSettings | None = None) -> Resolver:
        from ._settings import ResolverSettings, mapping_source_from_settings

        settings = settings if settings is not None else ResolverSettings()
        return cls(
            mapping_source_from_settings(settings),
            section=settings.section,
            factory_method=settings.factory_method,
        )

    @property
    def factory_method(self) -> str:
        return self._constructor.factory_method

    def with_section(self, section: str) -> Resolver:
        """Return a resolver reading another section; the type registry is shared."""
        return Resolver(
            self.source,
            section=section,
            loader=self.loader,
            factory_method=self.factory_method,
        )

    def register_type(self, name: str, target: Any, *, replace: bool = False) -> None:
        """Make ``name`` usable as a type reference without importing anything."""
        self.loader.register(name, target, replace=replace)

    @staticmethod
    def key_for(tp: Any) -> str:
        return normalize(tp)

    # fail-soft operations

    @overload
    def resolve(self, tp: type[T], *, default: T | None = ...) -> T | None: ...

    @overload
    def resolve(self, tp: Any, *, default: Any = ...) -> Any: ...

    def resolve(self, tp: Any, *, default: Any = None) -> Any:
        """Resolve ``tp`` with its no-argument constructor.

        The only fail-soft operation that reports its failure: the reason is
        logged as a warning before ``default`` is returned.
        """
        result = self.try_resolve(tp)
        if not result.ok:
            logger.warning("Could not resolve %s: %s", normalize(tp), result.error)
            return default
        return result.value

    def resolve_with(self, tp: type[T], /, *args: Any, default: T | None = None, **kwargs: Any) -> T | None:
        """Resolve ``tp`` passing the arguments to the implementation's constructor.

        ``default`` is returned on failure and is never forwarded to the constructor.
        """
        return self.try_resolve_with(tp, *args, **kwargs).value_or(default)

    @overload
    def resolve_singleton(self, tp: type[T], *, default: T | None = ...) -> T | None: ...

    @overload
    def resolve_singleton(self, tp: Any, *, default: Any = ...) -> Any: ...

    def resolve_singleton(self, tp: Any, *, default: Any = None) -> Any:
        """Return whatever the implementation's own static factory method returns."""
        return self.try_resolve_singleton(tp).value_or(default)

    @overload
    def resolve_key(
        self, key: str, /, *args: Any, as_type: type[T], default: T | None = ..., **kwargs: Any
    ) -> T | None: ...

    @overload
    def resolve_key(
        self, key: str, /, *args: Any, as_type: None = ..., default: Any = ..., **kwargs: Any
    ) -> object: ...

    def resolve_key(
        self, key: str, /, *args: Any, as_type: Any = None, default: Any = None, **kwargs: Any
    ) -> Any:
        """Resolve an arbitrary mapping key.

        Without arguments the implementation is built with its no-argument
        constructor, otherwise with the given arguments. ``as_type`` checks the
        result and ``default`` is returned on failure; neither is forwarded to
        the constructor.
        """
        return self.try_resolve_key(key, *args, as_type=as_type, **kwargs).value_or(default)

    # result-returning operations

    def try_resolve(self, tp: Any) -> Resolution[Any]:
        return self._run(normalize(tp), Strategy.DEFAULT, (), {}, expected=tp)

    def try_resolve_with(self, tp: Any, /, *args: Any, **kwargs: Any) -> Resolution[Any]:
        return self._run(normalize(tp), Strategy.ARGUMENTS, args, kwargs, expected=tp)

    def try_resolve_singleton(self, tp: Any) -> Resolution[Any]:
        return self._run(normalize(tp), Strategy.SINGLETON, (), {}, expected=tp)

    def try_resolve_key(self, key: str, /, *args: Any, as_type: Any = None, **kwargs: Any) -> Resolution[Any]:
        strategy = Strategy.ARGUMENTS if args or kwargs else Strategy.DEFAULT
        return self._run(key, strategy, args, kwargs, expected=as_type)

    def try_resolve_using(
        self,
        key: str,
        strategy: Strategy,
        args: tuple[Any, ...] = (),
        kwargs: Mapping[str, Any] | None = None,
        *,
        as_type: Any = None,
    ) -> Resolution[Any]:
        """Resolve ``key`` with an explicitly chosen construction strategy."""
        if strategy is not Strategy.ARGUMENTS and (args or kwargs):
            msg = f"Strategy {strategy.name} takes no constructor arguments"
            raise ValueError(msg)
        return self._run(key, strategy, tuple(args), dict(kwargs or {}), expected=as_type)

    def lookup(self, key: str) -> str:
        """Return the type reference mapped to ``key`` in the selected section."""
        try:
            section = self.source.get_section(self.section)
        except Exception as e:  # noqa: BLE001
            msg = f"Mapping section {self.section!r} could not be read: {e}"
            raise SectionMissingError(msg, key=key) from e

        if section is None:
            msg = f"Mapping section {self.section!r} not found"
            raise SectionMissingError(msg, key=key)

        reference = section.get(key)
        if not isinstance(reference, str) or not reference.strip():
            msg = f"No implementation mapped for key {key!r} in section {self.section!r}"
            raise KeyNotFoundError(msg, key=key)

        return reference

    def _run(
        self,
        key: str,
        strategy: Strategy,
        args: tuple[Any, ...],
        kwargs: dict[str, Any],
        *,
        expected: Any,
    ) -> Resolution[Any]:
        try:
            reference = self.lookup(key)
            target = self.loader.load(reference, key=key)
            instance = self._constructor.construct(target, strategy, args, kwargs, key=key)
            if expected is not None and not _conforms(instance, expected):
                msg = f"Resolved {type(instance).__name__} for key {key!r} is not a {normalize(expected)}"
                raise TypeMismatchError(msg, key=key)
        except ResolutionError as e:
            return Resolution.failure(e)

        logger.debug("Resolved %r via %s to %s", key, strategy.value, type(instance).__name__)
        return Resolution.success(instance)


class Constructor:
    def __init__(self, factory_method: str = DEFAULT_FACTORY_METHOD) -> None:
        if not factory_method or factory_method.startswith("_"):
            msg = f"Factory method name must be public, got {factory_method!r}"
            raise ValueError(msg)
        self.factory_method = factory_method

    def construct(
        self,
        target: Any,
        strategy: Strategy,
        args: tuple[Any, ...],
        kwargs: dict[str, Any],
        *,
        key: str,
    ) -> Any:
        if strategy is Strategy.SINGLETON:
            return self._invoke_factory(target, key=key)

        if strategy is Strategy.DEFAULT:
            args, kwargs = (), {}

        self._bind_explicit(target, args, kwargs, key=key)

        try:
            return target(*args, **kwargs)
        except Exception as e:  # noqa: BLE001
            msg = f"Constructing {_describe(target)} for key {key!r} raised {type(e).__name__}: {e}"
            raise ConstructionError(msg, key=key) from e

    def _invoke_factory(self, target: Any, *, key: str) -> Any:
        cls = typing.get_origin(target) or target
        if not inspect.isclass(cls):
            msg = f"{_describe(target)} for key {key!r} is not a class; it has no {self.factory_method}()"
            raise ConstructionError(msg, key=key)

        try:
            attr = inspect.getattr_static(cls, self.factory_method)
        except AttributeError as e:
            msg = f"{cls.__name__} for key {key!r} has no {self.factory_method}() factory method"
            raise ConstructionError(msg, key=key) from e

        if not isinstance(attr, (staticmethod, classmethod)):
            msg = f"{cls.__name__}.{self.factory_method} for key {key!r} is not a static or class method"
            raise ConstructionError(msg, key=key)

        factory = getattr(cls, self.factory_method)
        self._bind_explicit(factory, (), {}, key=key)

        try:
            return factory()
        except Exception as e:  # noqa: BLE001
            msg = f"{cls.__name__}.{self.factory_method}() for key {key!r} raised {type(e).__name__}: {e}"
            raise ConstructionError(msg, key=key) from e

    def _bind_explicit(self, target: Any, args: tuple[Any, ...], kwargs: dict[str, Any], *, key: str) -> None:
        try:
            sig = inspect.signature(typing.get_origin(target) or target)
        except (TypeError, ValueError):
            # no introspectable signature; the call itself decides
            return

        try:
            sig.bind(*args, **kwargs)
        except TypeError as e:
            msg = f"Arguments don't match {_describe(target)} signature for key {key!r}: {e}"
            raise ConstructionError(msg, key=key) from e


def _describe(target: Any) -> str:
    return getattr(target, "__qualname__", None) or repr(target)


def _conforms(instance: object, expected: Any) -> bool:  # noqa: PLR0911
    if expected is Any:
        return True

    origin = typing.get_origin(expected)
    if origin is typing.Union or origin is types.UnionType:
        return any(_conforms(instance, arg) for arg in typing.get_args(expected))
    if origin is typing.Annotated:
        return _conforms(instance, typing.get_args(expected)[0])

    check = origin if origin is not None else expected
    if not inspect.isclass(check):
        # Literal, TypeVar, NewType: nothing to check at runtime
        return True

    if _is_protocol(check) and not _is_runtime_checkable_protocol(check):
        impl = type(instance)
        return check in impl.__mro__ or all(hasattr(instance, name) for name in _protocol_members(check))

    return isinstance(instance, check)


def _is_runtime_checkable_protocol(tp: type) -> bool:
    if not _is_protocol(tp):
        return False

    try:
        isinstance(None, tp)
    except TypeError:
        return False
    else:
        return True


def _protocol_members(proto: type) -> set[str]:
    if hasattr(typing, "get_protocol_members"):
        return set(typing.get_protocol_members(proto))

    names: set[str] = set()
    for base in proto.__mro__:
        if base is object or base is Protocol or base is typing.Generic or not _is_protocol(base):
            continue
        names.update(name for name in base.__dict__ if not name.startswith("_"))
        names.update(name for name in getattr(base, "__annotations__", {}) if not name.startswith("_"))
    return names


if hasattr(typing, "is_protocol"):
    # https://docs.python.org/3/library/typing.html#typing.is_protocol
    def _is_protocol(tp: type) -> bool:
        return inspect.isclass(tp) and typing.is_protocol(tp)

else:

    def _is_protocol(tp: type) -> bool:
        """Detect whether 'tp' is a typing.Protocol subclass (safe)."""
        return inspect.isclass(tp) and getattr(tp, "_is_protocol", False) and issubclass(tp, cast("type", Protocol))
