import unittest

from implresolver import ErrorKind, Resolver, Strategy


class Settings:
    _instance = None

    @staticmethod
    def get_instance():
        if Settings._instance is None:
            Settings._instance = AppSettings()
        return Settings._instance


class AppSettings(Settings):
    pass


class Registry:
    @classmethod
    def get_instance(cls):
        return cls.__new__(cls)


class NoFactory:
    pass


class InstanceFactory:
    def get_instance(self):
        return self


class FailingFactory:
    @staticmethod
    def get_instance():
        raise LookupError("not initialised")


class FactoryWithArguments:
    @staticmethod
    def get_instance(name):
        return name


class LegacyFactory:
    @staticmethod
    def GetInstance():  # noqa: N802
        return "legacy"


class TestSingletonResolution(unittest.TestCase):
    resolver: Resolver

    def setUp(self):
        self.resolver = Resolver(
            {
                "Settings": "settings",
                "Registry": "registry",
                "NoFactory": "no-factory",
                "InstanceFactory": "instance-factory",
                "FailingFactory": "failing-factory",
                "FactoryWithArguments": "factory-with-arguments",
            }
        )
        self.resolver.register_type("settings", AppSettings)
        self.resolver.register_type("registry", Registry)
        self.resolver.register_type("no-factory", NoFactory)
        self.resolver.register_type("instance-factory", InstanceFactory)
        self.resolver.register_type("failing-factory", FailingFactory)
        self.resolver.register_type("factory-with-arguments", FactoryWithArguments)

    def test_returns_exactly_what_the_factory_method_returns(self):
        first = self.resolver.resolve_singleton(Settings)
        second = self.resolver.resolve_singleton(Settings)

        assert first is Settings.get_instance()
        assert second is first

    def test_class_method_factory(self):
        assert isinstance(self.resolver.resolve_singleton(Registry), Registry)

    def test_missing_factory_method_returns_none(self):
        assert self.resolver.resolve_singleton(NoFactory) is None

        result = self.resolver.try_resolve_singleton(NoFactory)
        assert result.kind is ErrorKind.CONSTRUCTION_FAILURE
        assert "has no get_instance() factory method" in str(result.error)

    def test_instance_method_is_not_a_factory(self):
        result = self.resolver.try_resolve_singleton(InstanceFactory)
        assert result.kind is ErrorKind.CONSTRUCTION_FAILURE
        assert "not a static or class method" in str(result.error)

    def test_factory_failure_returns_default(self):
        fallback = object()
        assert self.resolver.resolve_singleton(FailingFactory, default=fallback) is fallback

    def test_factory_requiring_arguments_fails(self):
        result = self.resolver.try_resolve_singleton(FactoryWithArguments)
        assert result.kind is ErrorKind.CONSTRUCTION_FAILURE

    def test_unmapped_singleton_returns_none(self):
        assert self.resolver.resolve_singleton(LegacyFactory) is None


def test_factory_method_name_is_configurable():
    resolver = Resolver({"LegacyFactory": "legacy"}, factory_method="GetInstance")
    resolver.register_type("legacy", LegacyFactory)

    result = resolver.try_resolve_singleton(LegacyFactory)

    # "legacy" is a str, not a LegacyFactory
    assert result.kind is ErrorKind.TYPE_MISMATCH
    assert resolver.try_resolve_using("LegacyFactory", Strategy.SINGLETON).unwrap() == "legacy"
