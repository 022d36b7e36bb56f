"""Environment-driven defaults.

Every field can be set through an ``IMPLRESOLVER_*`` environment variable,
e.g. ``IMPLRESOLVER_SECTION=TestImplementations`` or
``IMPLRESOLVER_MAPPING_FILE=/etc/app/implementations.toml``.
When no mapping file is configured, ``implementations.toml`` is looked up
from the working directory upwards.
"""

from __future__ import annotations

import logging
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from ._mapping import DEFAULT_SECTION, DictMappingSource, MappingSource, TomlMappingSource
from ._resolver import DEFAULT_FACTORY_METHOD


logger = logging.getLogger(__name__)

MAPPING_FILENAME = "implementations.toml"


class ResolverSettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="IMPLRESOLVER_", frozen=True)

    section: str = Field(default=DEFAULT_SECTION, min_length=1)
    mapping_file: Path | None = None
    plugin_dir: Path | None = None
    factory_method: str = Field(default=DEFAULT_FACTORY_METHOD, min_length=1)
    strict_plugins: bool = False

    @field_validator("factory_method")
    @classmethod
    def _public_name(cls, value: str) -> str:
        if value.startswith("_") or not value.isidentifier():
            msg = f"factory_method must be a public identifier, got {value!r}"
            raise ValueError(msg)
        return value


def find_mapping_file(start: Path | None = None) -> Path | None:
    """Walk up from *start* (default: cwd) looking for implementations.toml."""
    current = (start or Path.cwd()).resolve()
    while True:
        candidate = current / MAPPING_FILENAME
        if candidate.is_file():
            return candidate
        parent = current.parent
        if parent == current:
            return None
        current = parent


def mapping_source_from_settings(settings: ResolverSettings, *, cwd: Path | None = None) -> MappingSource:
    path = settings.mapping_file or find_mapping_file(cwd)
    if path is None:
        logger.debug("No %s found; starting with an empty mapping", MAPPING_FILENAME)
        return DictMappingSource()

    logger.debug("Reading implementation mappings from %s", path)
    return TomlMappingSource(path)
