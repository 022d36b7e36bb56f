from __future__ import annotations

import logging
import tomllib
from pathlib import Path
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from ._errors import MappingSourceError


if TYPE_CHECKING:
    from collections.abc import Mapping


logger = logging.getLogger(__name__)

DEFAULT_SECTION = "Implementations"


@runtime_checkable
class MappingSource(Protocol):
    """Where implementation mappings come from.

    A source exposes named sections; each section maps a type key (or any
    caller-chosen key) to a type reference string. ``None`` means the section
    does not exist.
    """

    def get_section(self, name: str) -> Mapping[str, str] | None: ...


class DictMappingSource:
    """In-memory sections.

    Example:
      DictMappingSource({"Implementations": {"Storage": "app.storage:DiskStorage"}})

    """

    def __init__(self, sections: Mapping[str, Mapping[str, str]] | None = None) -> None:
        self._sections: dict[str, dict[str, str]] = {name: dict(entries) for name, entries in (sections or {}).items()}

    @classmethod
    def single(cls, entries: Mapping[str, str], *, section: str = DEFAULT_SECTION) -> DictMappingSource:
        return cls({section: entries})

    def set(self, key: str, reference: str, *, section: str = DEFAULT_SECTION) -> None:
        self._sections.setdefault(section, {})[key] = reference

    def get_section(self, name: str) -> Mapping[str, str] | None:
        return self._sections.get(name)


class TomlMappingSource:
    """Sections read from a TOML file, one table per section.

    The file is parsed again on every call so edits take effect on the next
    resolution.

    Example file:
      [Implementations]
      "SheetGenerator[ExecutionReport]" = "sheets.aspose:AsposeSheetGenerator[reports:ExecutionReport]"

    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def get_section(self, name: str) -> Mapping[str, str] | None:
        if not self.path.is_file():
            logger.debug("Mapping file %s does not exist", self.path)
            return None

        try:
            data = tomllib.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, tomllib.TOMLDecodeError) as e:
            msg = f"Cannot read mapping file {self.path}: {e}"
            raise MappingSourceError(msg) from e

        section = data.get(name)
        if not isinstance(section, dict):
            return None

        # Non-string values cannot be type references.
        return {key: value for key, value in section.items() if isinstance(value, str)}
