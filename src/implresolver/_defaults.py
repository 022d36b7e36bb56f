from __future__ import annotations

import threading
from typing import TYPE_CHECKING, Any, TypeVar

from ._resolver import Resolver


if TYPE_CHECKING:
    from collections.abc import Mapping

    from ._errors import Resolution
    from ._mapping import MappingSource
    from ._settings import ResolverSettings

T = TypeVar("T")

_lock = threading.RLock()
_default: Resolver | None = None


def get_default_resolver() -> Resolver:
    """Process-wide resolver, built from ``ResolverSettings`` on first use."""
    global _default  # noqa: PLW0603
    with _lock:
        if _default is None:
            _default = Resolver.from_settings()
        return _default


def set_default_resolver(resolver: Resolver | None) -> None:
    """Replace the process-wide resolver; ``None`` rebuilds it from settings on next use."""
    global _default  # noqa: PLW0603
    with _lock:
        _default = resolver


def configure(
    *,
    source: MappingSource | Mapping[str, str] | None = None,
    section: str | None = None,
    settings: ResolverSettings | None = None,
) -> Resolver:
    """Build a new process-wide resolver and return it.

    Example:
      configure(section="TestImplementations")

    Unset arguments keep the current resolver's values; its type registry is
    carried over.
    """
    with _lock:
        previous = _default
        current = Resolver.from_settings(settings) if settings is not None else get_default_resolver()
        resolver = Resolver(
            source if source is not None else current.source,
            section=section if section is not None else current.section,
            loader=previous.loader if previous is not None else current.loader,
            factory_method=current.factory_method,
        )
        set_default_resolver(resolver)
        return resolver


def resolve(tp: type[T], *, default: T | None = None) -> T | None:
    return get_default_resolver().resolve(tp, default=default)


def resolve_with(tp: type[T], /, *args: Any, default: T | None = None, **kwargs: Any) -> T | None:
    return get_default_resolver().resolve_with(tp, *args, default=default, **kwargs)


def resolve_singleton(tp: type[T], *, default: T | None = None) -> T | None:
    return get_default_resolver().resolve_singleton(tp, default=default)


def resolve_key(key: str, /, *args: Any, as_type: Any = None, default: Any = None, **kwargs: Any) -> Any:
    return get_default_resolver().resolve_key(key, *args, as_type=as_type, default=default, **kwargs)


def try_resolve(tp: Any) -> Resolution[Any]:
    return get_default_resolver().try_resolve(tp)


def try_resolve_with(tp: Any, /, *args: Any, **kwargs: Any) -> Resolution[Any]:
    return get_default_resolver().try_resolve_with(tp, *args, **kwargs)


def try_resolve_singleton(tp: Any) -> Resolution[Any]:
    return get_default_resolver().try_resolve_singleton(tp)


def try_resolve_key(key: str, /, *args: Any, as_type: Any = None, **kwargs: Any) -> Resolution[Any]:
    return get_default_resolver().try_resolve_key(key, *args, as_type=as_type, **kwargs)
