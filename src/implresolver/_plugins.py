from __future__ import annotations

import hashlib
import importlib.metadata
import importlib.util
import inspect
import logging
import sys
import typing
from pathlib import Path
from typing import TYPE_CHECKING, Any, TypeVar

from ._errors import ConstructionError, PluginLoadError


if TYPE_CHECKING:
    from types import ModuleType

    from ._settings import ResolverSettings


logger = logging.getLogger(__name__)

T = TypeVar("T")

ENTRY_POINT_GROUP = "implresolver.plugins"
MODULE_SUFFIX = ".py"


class Plugin:
    """Marker base for discoverable plugins.

    A class is picked up by a scan only when it derives from both the
    requested capability and this marker:

      class CsvExporter(Exporter, Plugin): ...

    """


def is_plugin_type(cls: Any, capability: Any, marker: type = Plugin) -> bool:
    """Whether ``cls`` derives from both ``capability`` and ``marker``.

    Only bases count, never the class itself, and abstract classes are never
    plugins since they cannot be built without arguments.
    """
    if not inspect.isclass(cls) or inspect.isabstract(cls):
        return False

    required = {typing.get_origin(capability) or capability, marker}
    return len(required.intersection(cls.__mro__[1:])) == 2


def program_directory() -> Path:
    """Directory of the running program, falling back to the working directory."""
    main_file = getattr(sys.modules.get("__main__"), "__file__", None)
    if main_file:
        return Path(main_file).resolve().parent

    if sys.argv and sys.argv[0]:
        script = Path(sys.argv[0])
        if script.exists():
            return script.resolve().parent

    return Path.cwd()


class PluginScanner:
    """Find and build plugin instances.

    Failures are isolated per module: a module that cannot be loaded, or a
    plugin whose constructor raises, is logged and skipped. With
    ``strict=True`` the first failure aborts the scan instead.
    """

    def __init__(self, *, marker: type = Plugin, strict: bool = False, default_dir: Path | None = None) -> None:
        self.marker = marker
        self.strict = strict
        self.default_dir = default_dir

    @classmethod
    def from_settings(cls, settings: ResolverSettings | None = None) -> PluginScanner:
        from ._settings import ResolverSettings

        settings = settings if settings is not None else ResolverSettings()
        return cls(strict=settings.strict_plugins, default_dir=settings.plugin_dir)

    def scan(self, capability: type[T], directory: str | Path | None = None) -> list[T]:
        """Load every ``*.py`` file directly inside ``directory`` and build its plugins.

        ``directory`` defaults to the scanner's configured directory, then to
        the running program's directory. Files starting with ``_`` are skipped.
        """
        if directory is None:
            directory = self.default_dir if self.default_dir is not None else program_directory()
        directory = Path(directory)

        if not directory.is_dir():
            if self.strict:
                msg = f"Plugin directory {directory} does not exist"
                raise PluginLoadError(msg)
            logger.debug("Plugin directory %s does not exist", directory)
            return []

        plugins: list[T] = []
        for path in sorted(directory.glob(f"*{MODULE_SUFFIX}")):
            if path.name.startswith("_") or not path.is_file():
                continue

            module = self._load_module(path)
            if module is None:
                continue

            plugins.extend(self._collect(module, capability, source=str(path)))

        logger.debug("Found %d %s plugin(s) in %s", len(plugins), _name_of(capability), directory)
        return plugins

    def scan_entry_points(self, capability: type[T], group: str = ENTRY_POINT_GROUP) -> list[T]:
        """Build plugins declared as entry points of installed distributions.

        An entry point may name a plugin class or a module to inspect:

          [project.entry-points."implresolver.plugins"]
          csv = "exporters.csv:CsvExporter"
          extras = "exporters.extras"

        """
        plugins: list[T] = []
        for entry_point in importlib.metadata.entry_points(group=group):
            try:
                obj = entry_point.load()
            except Exception as e:  # noqa: BLE001
                self._fail(f"Failed to load plugin entry point {entry_point.name!r} ({entry_point.value})", e)
                continue

            if inspect.ismodule(obj):
                plugins.extend(self._collect(obj, capability, source=entry_point.value))
            elif is_plugin_type(obj, capability, self.marker):
                instance = self._instantiate(obj, source=entry_point.value)
                if instance is not None:
                    plugins.append(instance)
            else:
                logger.debug("Entry point %s is not a %s plugin", entry_point.value, _name_of(capability))

        return plugins

    def _load_module(self, path: Path) -> ModuleType | None:
        digest = hashlib.sha1(str(path.resolve()).encode(), usedforsecurity=False).hexdigest()[:8]
        module_name = f"implresolver_plugin_{path.stem}_{digest}"
        try:
            spec = importlib.util.spec_from_file_location(module_name, path)
            if spec is None or spec.loader is None:
                msg = f"Could not create module spec for {path}"
                raise ImportError(msg)
            module = importlib.util.module_from_spec(spec)
            sys.modules[module_name] = module
            spec.loader.exec_module(module)
        except Exception as e:  # noqa: BLE001
            # Clean up partial module registration
            sys.modules.pop(module_name, None)
            self._fail(f"Failed to load plugin module {path}", e)
            return None

        return module

    def _collect(self, module: ModuleType, capability: type[T], *, source: str) -> list[T]:
        plugins: list[T] = []
        for attr_name, obj in inspect.getmembers(module, inspect.isclass):
            if attr_name.startswith("_") or obj.__module__ != module.__name__:
                continue  # private or imported classes
            if not is_plugin_type(obj, capability, self.marker):
                continue

            instance = self._instantiate(obj, source=source)
            if instance is not None:
                plugins.append(instance)
        return plugins

    def _instantiate(self, cls: type[T], *, source: str) -> T | None:
        try:
            instance = cls()
        except Exception as e:  # noqa: BLE001
            msg = f"Failed to instantiate plugin class {cls.__name__} from {source}"
            if self.strict:
                raise ConstructionError(f"{msg}: {e}") from e
            logger.warning(msg, exc_info=True)
            return None

        logger.debug("Loaded plugin %s from %s", cls.__name__, source)
        return instance

    def _fail(self, message: str, error: Exception) -> None:
        if self.strict:
            raise PluginLoadError(f"{message}: {error}") from error
        logger.warning(message, exc_info=error)


def scan_plugins(
    capability: type[T],
    directory: str | Path | None = None,
    *,
    marker: type = Plugin,
    strict: bool = False,
) -> list[T]:
    """Instances of every class in ``directory`` that is both a ``capability`` and a ``marker``."""
    return PluginScanner(marker=marker, strict=strict).scan(capability, directory)


def scan_entry_points(
    capability: type[T],
    group: str = ENTRY_POINT_GROUP,
    *,
    marker: type = Plugin,
    strict: bool = False,
) -> list[T]:
    return PluginScanner(marker=marker, strict=strict).scan_entry_points(capability, group)


def _name_of(tp: Any) -> str:
    return getattr(tp, "__name__", repr(tp))
