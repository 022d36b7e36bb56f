"""Resolve capabilities to implementations named in configuration.

A consumer asks for "an implementation of X"; the concrete class is looked up
in an implementation mapping (key -> type reference), loaded by reference and
constructed, so the consumer never imports the implementing module.

Exports:
- `Resolver`: lookup-load-construct engine, fail-soft (`resolve*`) or
  result-returning (`try_resolve*`).
- `normalize`: canonical mapping key for a type, e.g. `SheetGenerator[ExecutionReport]`.
- `DictMappingSource`, `TomlMappingSource`: where mappings come from.
- `TypeLoader`, `TypeReference`: reference parsing, importing and the explicit type registry.
- `Plugin`, `PluginScanner`, `scan_plugins`: plugin discovery in a directory or entry points.
- `ResolverSettings`: `IMPLRESOLVER_*` environment configuration.
- module-level `resolve*` / `try_resolve*` functions backed by a process-wide resolver.
"""

from ._defaults import (
    configure,
    get_default_resolver,
    resolve,
    resolve_key,
    resolve_singleton,
    resolve_with,
    set_default_resolver,
    try_resolve,
    try_resolve_key,
    try_resolve_singleton,
    try_resolve_with,
)
from ._errors import (
    ConstructionError,
    ErrorKind,
    KeyNotFoundError,
    MappingSourceError,
    PluginLoadError,
    Resolution,
    ResolutionError,
    SectionMissingError,
    TypeLoadError,
    TypeMismatchError,
    TypeReferenceError,
)
from ._loader import TypeLoader, TypeReference
from ._mapping import DEFAULT_SECTION, DictMappingSource, MappingSource, TomlMappingSource
from ._names import PRIMITIVE_TOKENS, normalize
from ._plugins import Plugin, PluginScanner, is_plugin_type, scan_entry_points, scan_plugins
from ._resolver import Resolver, Strategy
from ._settings import ResolverSettings


__all__ = [
    "DEFAULT_SECTION",
    "PRIMITIVE_TOKENS",
    "ConstructionError",
    "DictMappingSource",
    "ErrorKind",
    "KeyNotFoundError",
    "MappingSource",
    "MappingSourceError",
    "Plugin",
    "PluginLoadError",
    "PluginScanner",
    "Resolution",
    "ResolutionError",
    "Resolver",
    "ResolverSettings",
    "SectionMissingError",
    "Strategy",
    "TomlMappingSource",
    "TypeLoadError",
    "TypeLoader",
    "TypeMismatchError",
    "TypeReference",
    "TypeReferenceError",
    "configure",
    "get_default_resolver",
    "is_plugin_type",
    "normalize",
    "resolve",
    "resolve_key",
    "resolve_singleton",
    "resolve_with",
    "scan_entry_points",
    "scan_plugins",
    "set_default_resolver",
    "try_resolve",
    "try_resolve_key",
    "try_resolve_singleton",
    "try_resolve_with",
]
