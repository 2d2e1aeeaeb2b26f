"""Pytest configuration for prefix-autoload tests."""

import importlib
import sys
from pathlib import Path

import pytest

from prefix_autoload import registry as registry_module

# Top-level names the tests load through the autoloader
TEST_NAMESPACE_ROOTS = ("Core", "Src", "Acme", "Vendor", "Plugins", "A")


def _is_test_module(name: str) -> bool:
    return any(name == root or name.startswith(root + ".") for root in TEST_NAMESPACE_ROOTS)


@pytest.fixture(autouse=True)
def isolated_import_state(monkeypatch):
    """Restore sys.meta_path, the global registry and autoloaded modules after each test."""
    saved_meta_path = list(sys.meta_path)
    monkeypatch.setattr(registry_module, "_registry", None)
    importlib.invalidate_caches()

    yield

    sys.meta_path[:] = saved_meta_path
    for name in [n for n in sys.modules if _is_test_module(n)]:
        del sys.modules[name]


@pytest.fixture
def project(tmp_path, monkeypatch):
    """Working directory for relative base directories such as ``app/core``."""
    monkeypatch.chdir(tmp_path)
    return tmp_path


@pytest.fixture
def write_source(project):
    """Create a source file (and its parent directories) under the project root."""

    def _write(relative: str, content: str = "") -> Path:
        path = project / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content)
        return path

    return _write


class FakeRegistry:
    """Registry that records resolvers without touching the import system."""

    def __init__(self):
        self.resolvers = []

    def add_resolver(self, resolver):
        self.resolvers.append(resolver)


@pytest.fixture
def fake_registry():
    return FakeRegistry()
