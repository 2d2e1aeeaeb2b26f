"""Tests for the resolver registry and its sys.meta_path integration."""

import importlib
import sys
from pathlib import Path
from unittest.mock import Mock

import pytest

from prefix_autoload.autoloader import Autoloader
from prefix_autoload.registry import ImportHookRegistry
from prefix_autoload.registry import NameResolver
from prefix_autoload.registry import get_import_registry


def _resolver(result=None):
    resolver = Mock()
    resolver.resolve.return_value = result
    resolver.locate.return_value = result
    resolver.locate_directory.return_value = None
    resolver.prefixes = {}
    return resolver


class TestImportHookRegistry:
    def test_first_resolver_installs_finder_once(self):
        meta_path = []
        registry = ImportHookRegistry(meta_path=meta_path)

        registry.add_resolver(_resolver())
        registry.add_resolver(_resolver())

        assert meta_path == [registry]
        assert registry.installed

    def test_same_resolver_is_not_added_twice(self):
        registry = ImportHookRegistry(meta_path=[])
        resolver = _resolver()

        registry.add_resolver(resolver)
        registry.add_resolver(resolver)

        assert registry.resolvers == [resolver]

    def test_appends_after_existing_finders(self):
        existing = object()
        meta_path = [existing]
        registry = ImportHookRegistry(meta_path=meta_path)

        registry.add_resolver(_resolver())

        assert meta_path == [existing, registry]

    def test_resolve_consults_resolvers_in_order(self):
        registry = ImportHookRegistry(meta_path=[])
        first, second, third = _resolver(None), _resolver("d2/Thing.py"), _resolver("d3/Thing.py")
        for resolver in (first, second, third):
            registry.add_resolver(resolver)

        assert registry.resolve("Acme.Thing") == "d2/Thing.py"
        first.resolve.assert_called_once_with("Acme.Thing")
        third.resolve.assert_not_called()

    def test_resolve_returns_none_when_all_fail(self):
        registry = ImportHookRegistry(meta_path=[])
        registry.add_resolver(_resolver(None))
        assert registry.resolve("Acme.Thing") is None

    def test_remove_resolver(self):
        registry = ImportHookRegistry(meta_path=[])
        resolver = _resolver()
        registry.add_resolver(resolver)

        assert registry.remove_resolver(resolver) is True
        assert registry.remove_resolver(resolver) is False
        assert registry.resolvers == []

    def test_uninstall(self):
        meta_path = []
        registry = ImportHookRegistry(meta_path=meta_path)
        registry.add_resolver(_resolver())

        registry.uninstall()

        assert meta_path == []
        assert not registry.installed

    def test_autoloader_satisfies_protocol(self):
        assert isinstance(Autoloader(), NameResolver)

    def test_global_registry_is_shared(self):
        assert get_import_registry() is get_import_registry()


class TestFindSpec:
    def test_registered_prefix_is_namespace_package_without_locations(self, project):
        (project / "app/core").mkdir(parents=True)
        registry = ImportHookRegistry(meta_path=[])
        Autoloader().add_namespace("Core", "app/core").add_namespace("Core", "missing").register(registry)

        spec = registry.find_spec("Core")

        assert spec is not None
        assert spec.loader is None
        assert list(spec.submodule_search_locations) == []

    def test_parent_of_prefix_is_empty_namespace_package(self, project):
        registry = ImportHookRegistry(meta_path=[])
        Autoloader().add_namespace("Vendor.Lib", "vendor/lib").register(registry)

        spec = registry.find_spec("Vendor")

        assert spec is not None
        assert list(spec.submodule_search_locations) == []

    def test_mapped_file_gets_source_spec(self, write_source):
        write_source("app/core/Greeter.py")
        registry = ImportHookRegistry(meta_path=[])
        Autoloader().add_namespace("Core", "app/core").register(registry)

        spec = registry.find_spec("Core.Greeter")

        assert spec is not None
        assert Path(spec.origin).resolve() == Path("app/core/Greeter.py").resolve()
        assert "Core.Greeter" not in sys.modules

    def test_mapped_directory_is_namespace_package(self, project):
        (project / "app/src/Http").mkdir(parents=True)
        registry = ImportHookRegistry(meta_path=[])
        Autoloader().add_namespace("Src", "app/src").register(registry)

        spec = registry.find_spec("Src.Http")

        assert spec is not None
        assert list(spec.submodule_search_locations) == []

    def test_unknown_name_returns_none(self, project):
        registry = ImportHookRegistry(meta_path=[])
        Autoloader().add_namespace("Core", "app/core").register(registry)

        assert registry.find_spec("Core.Missing") is None
        assert registry.find_spec("json_but_not_really") is None


class TestImportIntegration:
    def test_import_loads_mapped_file(self, write_source):
        write_source("app/core/Greeter.py", "GREETING = 'hello'\n")
        Autoloader().add_namespace("Core", "app/core").register(ImportHookRegistry())

        module = importlib.import_module("Core.Greeter")

        assert module.GREETING == "hello"
        assert Path(module.__file__).resolve() == Path("app/core/Greeter.py").resolve()

    def test_import_nested_module(self, write_source):
        write_source("app/src/Http/Request.py", "METHOD = 'GET'\n")
        Autoloader().add_namespace("Src", "app/src").register(ImportHookRegistry())

        module = importlib.import_module("Src.Http.Request")

        assert module.METHOD == "GET"

    def test_mapped_files_can_import_each_other(self, write_source):
        write_source("app/core/Base.py", "class Base:\n    pass\n")
        write_source("app/src/Service.py", "from Core.Base import Base\n\nclass Service(Base):\n    pass\n")
        Autoloader().add_namespace("Core", "app/core").add_namespace("Src", "app/src").register(ImportHookRegistry())

        module = importlib.import_module("Src.Service")

        assert module.Service.__mro__[1].__name__ == "Base"

    def test_first_registered_resolver_wins(self, write_source):
        write_source("d1/Thing.py", "ORIGIN = 'd1'\n")
        write_source("d2/Thing.py", "ORIGIN = 'd2'\n")
        registry = ImportHookRegistry()
        Autoloader().add_namespace("Acme", "d1").register(registry)
        Autoloader().add_namespace("Acme", "d2").register(registry)

        assert importlib.import_module("Acme.Thing").ORIGIN == "d1"

    def test_missing_module_raises_module_not_found(self, project):
        Autoloader().add_namespace("Core", "app/core").register(ImportHookRegistry())

        with pytest.raises(ModuleNotFoundError):
            importlib.import_module("Core.Missing")

    def test_resolved_module_is_reused_by_import(self, write_source):
        write_source("app/core/Once.py", "TOKEN = object()\n")
        loader = Autoloader().add_namespace("Core", "app/core").register(ImportHookRegistry())

        loader.resolve("Core.Once")
        token = sys.modules["Core.Once"].TOKEN

        assert importlib.import_module("Core.Once").TOKEN is token

    def test_import_prefers_longest_prefix(self, write_source):
        write_source("a/B/C.py", "ORIGIN = 'a'\n")
        write_source("ab/C.py", "ORIGIN = 'ab'\n")
        Autoloader().add_namespace("A", "a").add_namespace("A.B", "ab").register(ImportHookRegistry())

        assert importlib.import_module("A.B.C").ORIGIN == "ab"

    def test_import_falls_back_to_shorter_prefix(self, write_source):
        write_source("a/B/C.py", "ORIGIN = 'a'\n")
        write_source("ab/Other.py")
        Autoloader().add_namespace("A", "a").add_namespace("A.B", "ab").register(ImportHookRegistry())

        assert importlib.import_module("A.B.C").ORIGIN == "a"

    def test_import_prefers_file_over_package_directory(self, write_source):
        write_source("app/core/Thing.py", "ORIGIN = 'file'\n")
        write_source("app/core/Thing/__init__.py", "ORIGIN = 'pkg'\n")
        Autoloader().add_namespace("Core", "app/core").register(ImportHookRegistry())

        assert importlib.import_module("Core.Thing").ORIGIN == "file"

    def test_import_honors_custom_extension_and_directory_order(self, write_source):
        write_source("d1/Thing.pyt", "ORIGIN = 'd1'\n")
        write_source("d2/Thing.py", "ORIGIN = 'd2'\n")
        loader = Autoloader(extension=".pyt").add_namespace("Acme", "d1").add_namespace("Acme", "d2")
        loader.register(ImportHookRegistry())

        module = importlib.import_module("Acme.Thing")

        assert module.ORIGIN == "d1"
        assert module.__file__.endswith("Thing.pyt")

    def test_import_follows_prepended_directory(self, write_source):
        write_source("d1/Thing.py", "ORIGIN = 'd1'\n")
        write_source("d2/Thing.py", "ORIGIN = 'd2'\n")
        Autoloader().add_namespace("Acme", "d1").add_namespace("Acme", "d2", prepend=True).register(ImportHookRegistry())

        assert importlib.import_module("Acme.Thing").ORIGIN == "d2"
