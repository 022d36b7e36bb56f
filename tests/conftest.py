import importlib
import sys
import textwrap
import uuid

import pytest

from implresolver import set_default_resolver


@pytest.fixture
def make_module(tmp_path, monkeypatch):
    """Write an importable module to a temporary sys.path entry and return its name."""
    root = tmp_path / "modules"
    root.mkdir()
    monkeypatch.syspath_prepend(str(root))
    created: list[str] = []

    def make(source: str, prefix: str = "impl") -> str:
        name = f"{prefix}_{uuid.uuid4().hex[:8]}"
        (root / f"{name}.py").write_text(textwrap.dedent(source), encoding="utf-8")
        importlib.invalidate_caches()
        created.append(name)
        return name

    yield make

    for name in created:
        sys.modules.pop(name, None)


@pytest.fixture
def load_module(make_module):
    """Like make_module, but import the module and return it."""

    def load(source: str, prefix: str = "impl"):
        return importlib.import_module(make_module(source, prefix))

    return load


@pytest.fixture(autouse=True)
def _reset_default_resolver(monkeypatch):
    for var in ("SECTION", "MAPPING_FILE", "PLUGIN_DIR", "FACTORY_METHOD", "STRICT_PLUGINS"):
        monkeypatch.delenv(f"IMPLRESOLVER_{var}", raising=False)
    set_default_resolver(None)
    yield
    set_default_resolver(None)
