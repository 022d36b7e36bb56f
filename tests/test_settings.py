from pathlib import Path

import pydantic
import pytest

import implresolver
from implresolver import (
    DictMappingSource,
    Resolver,
    ResolverSettings,
    TomlMappingSource,
    configure,
    get_default_resolver,
    set_default_resolver,
)
from implresolver._resolver import DEFAULT_FACTORY_METHOD
from implresolver._settings import find_mapping_file, mapping_source_from_settings


MODULE = """
    class Storage:
        pass

    class DiskStorage(Storage):
        pass

    class S3Storage(Storage):
        def __init__(self, bucket="default"):
            self.bucket = bucket

        @staticmethod
        def get_instance():
            return S3Storage("shared")
"""


class TestResolverSettings:
    def test_defaults(self):
        settings = ResolverSettings()

        assert settings.section == "Implementations"
        assert settings.mapping_file is None
        assert settings.plugin_dir is None
        assert settings.factory_method == "get_instance"
        assert settings.strict_plugins is False

    def test_environment_overrides(self, monkeypatch, tmp_path):
        monkeypatch.setenv("IMPLRESOLVER_SECTION", "TestImplementations")
        monkeypatch.setenv("IMPLRESOLVER_MAPPING_FILE", str(tmp_path / "map.toml"))
        monkeypatch.setenv("IMPLRESOLVER_STRICT_PLUGINS", "true")

        settings = ResolverSettings()

        assert settings.section == "TestImplementations"
        assert settings.mapping_file == tmp_path / "map.toml"
        assert settings.strict_plugins is True

    def test_factory_method_default_matches_resolver(self):
        assert ResolverSettings().factory_method == DEFAULT_FACTORY_METHOD
        assert Resolver.from_settings(ResolverSettings()).factory_method == Resolver().factory_method

    @pytest.mark.parametrize("name", ["_private", "not an identifier", ""])
    def test_factory_method_must_be_public_identifier(self, name):
        with pytest.raises(pydantic.ValidationError):
            ResolverSettings(factory_method=name)


class TestMappingFileDiscovery:
    def test_walks_up_from_start(self, tmp_path):
        (tmp_path / "implementations.toml").write_text("[Implementations]\n", encoding="utf-8")
        nested = tmp_path / "a" / "b"
        nested.mkdir(parents=True)

        assert find_mapping_file(nested) == (tmp_path / "implementations.toml").resolve()

    def test_none_when_absent(self, tmp_path):
        # tmp_path has no mapping file, but a parent directory might
        found = find_mapping_file(tmp_path)
        assert found is None or tmp_path.resolve() not in found.parents

    def test_explicit_file_wins(self, tmp_path):
        explicit = tmp_path / "custom.toml"
        source = mapping_source_from_settings(ResolverSettings(mapping_file=explicit), cwd=tmp_path)

        assert isinstance(source, TomlMappingSource)
        assert source.path == explicit

    def test_empty_source_without_file(self, tmp_path, monkeypatch):
        monkeypatch.setattr("implresolver._settings.find_mapping_file", lambda start=None: None)

        assert isinstance(mapping_source_from_settings(ResolverSettings(), cwd=tmp_path), DictMappingSource)


def test_resolver_from_settings(tmp_path, load_module):
    module = load_module(MODULE)
    path = tmp_path / "map.toml"
    path.write_text(
        f'[Staging]\nStorage = "{module.__name__}:S3Storage"\n',
        encoding="utf-8",
    )

    resolver = Resolver.from_settings(ResolverSettings(mapping_file=path, section="Staging"))

    assert resolver.section == "Staging"
    assert resolver.resolve_singleton(module.Storage).bucket == "shared"


class TestDefaultResolver:
    def test_built_lazily_from_environment(self, tmp_path, monkeypatch, load_module):
        module = load_module(MODULE)
        path = tmp_path / "map.toml"
        path.write_text(f'[Implementations]\nStorage = "{module.__name__}:DiskStorage"\n', encoding="utf-8")
        monkeypatch.setenv("IMPLRESOLVER_MAPPING_FILE", str(path))

        assert get_default_resolver() is get_default_resolver()
        assert isinstance(implresolver.resolve(module.Storage), module.DiskStorage)

    def test_set_default_resolver(self, load_module):
        module = load_module(MODULE)
        reference = f"{module.__name__}:S3Storage"
        set_default_resolver(Resolver({"Storage": reference, "archive": reference}))

        assert implresolver.resolve_with(module.Storage, "logs").bucket == "logs"
        assert implresolver.resolve_singleton(module.Storage).bucket == "shared"
        assert implresolver.resolve_key("archive", "cold").bucket == "cold"
        assert implresolver.try_resolve(module.Storage).ok
        assert implresolver.try_resolve_with(module.Storage, bucket="x").unwrap().bucket == "x"
        assert implresolver.try_resolve_singleton(module.Storage).ok
        assert implresolver.try_resolve_key("archive", as_type=module.Storage).ok

    def test_module_functions_accept_default(self, load_module):
        module = load_module(MODULE)
        set_default_resolver(Resolver({}))
        fallback = module.DiskStorage()

        assert implresolver.resolve_with(module.Storage, "logs", default=fallback) is fallback
        assert implresolver.resolve_key("archive", "cold", default=fallback) is fallback

    def test_configure_switches_section_and_keeps_registry(self, load_module):
        module = load_module(MODULE)
        source = DictMappingSource(
            {
                "Implementations": {"Storage": "disk"},
                "Staging": {"Storage": f"{module.__name__}:S3Storage"},
            }
        )
        set_default_resolver(Resolver(source))
        get_default_resolver().register_type("disk", module.DiskStorage)

        assert isinstance(implresolver.resolve(module.Storage), module.DiskStorage)

        resolver = configure(section="Staging")

        assert get_default_resolver() is resolver
        assert resolver.source is source
        assert isinstance(implresolver.resolve(module.Storage), module.S3Storage)
        assert configure(section="Implementations").loader.registered_names() == ["disk"]

    def test_configure_with_new_source(self, load_module):
        module = load_module(MODULE)
        set_default_resolver(Resolver())

        configure(source={"Storage": f"{module.__name__}:DiskStorage"})

        assert isinstance(implresolver.resolve(module.Storage), module.DiskStorage)

    def test_configure_from_settings(self, tmp_path):
        resolver = configure(settings=ResolverSettings(section="Other", mapping_file=Path(tmp_path / "x.toml")))

        assert resolver.section == "Other"
        assert isinstance(resolver.source, TomlMappingSource)
