"""Resolver registry - the host side of autoloading.

Resolvers join a registry instead of touching global state directly. The
import hook registry is a ``sys.meta_path`` finder that asks its resolvers,
in registration order, where a module lives; the import system then loads
the file.
"""

from __future__ import annotations

import importlib.util
import logging
import sys
from importlib.abc import MetaPathFinder
from importlib.machinery import ModuleSpec
from importlib.machinery import SourceFileLoader
from typing import Protocol
from typing import runtime_checkable

logger = logging.getLogger(__name__)


@runtime_checkable
class NameResolver(Protocol):
    """What a registry needs from a resolver."""

    @property
    def prefixes(self) -> dict[str, list[str]]: ...

    def resolve(self, name: str) -> str | None: ...

    def locate(self, name: str) -> str | None: ...

    def locate_directory(self, name: str) -> str | None: ...


class ResolverRegistry(Protocol):
    """Ordered collection of resolvers consulted for unresolved names."""

    def add_resolver(self, resolver: NameResolver) -> None: ...


class ImportHookRegistry(MetaPathFinder):
    """Registry that serves its resolvers to the Python import system.

    The finder is appended to ``sys.meta_path`` when the first resolver is
    added, so the standard path-based finders still take precedence for
    top-level names. Names below a registered prefix are always answered here.
    """

    def __init__(self, meta_path: list | None = None) -> None:
        self._resolvers: list[NameResolver] = []
        self._meta_path = sys.meta_path if meta_path is None else meta_path

    @property
    def resolvers(self) -> list[NameResolver]:
        return list(self._resolvers)

    @property
    def installed(self) -> bool:
        return self in self._meta_path

    def add_resolver(self, resolver: NameResolver) -> None:
        """Append a resolver and install the finder if needed."""
        if resolver not in self._resolvers:
            self._resolvers.append(resolver)
        self.install()

    def remove_resolver(self, resolver: NameResolver) -> bool:
        """Remove a resolver.

        Returns:
            True if the resolver was registered
        """
        if resolver in self._resolvers:
            self._resolvers.remove(resolver)
            return True
        return False

    def install(self) -> None:
        if not self.installed:
            self._meta_path.append(self)
            logger.debug("[autoload:registry] installed on sys.meta_path")

    def uninstall(self) -> None:
        while self in self._meta_path:
            self._meta_path.remove(self)

    def resolve(self, name: str) -> str | None:
        """Ask each resolver in turn to load ``name``; first success wins."""
        for resolver in self._resolvers:
            if path := resolver.resolve(name):
                return path
        return None

    # ----- MetaPathFinder -----

    def find_spec(self, fullname: str, path=None, target=None) -> ModuleSpec | None:
        """Build a module spec for ``fullname`` from the registered resolvers.

        Lookup order: registered prefixes (and their parent segments) become
        namespace packages, then mapped files, then mapped directories. The
        namespace packages get no search locations of their own, so the
        standard path finders never answer for names below a prefix and the
        resolvers' search order always applies.
        """
        if self._is_prefix_package(fullname):
            return self._namespace_spec(fullname)

        for resolver in self._resolvers:
            if located := resolver.locate(fullname):
                logger.debug(f"[autoload:finder] {fullname} -> {located}")
                loader = SourceFileLoader(fullname, located)
                return importlib.util.spec_from_file_location(fullname, located, loader=loader)

        for resolver in self._resolvers:
            if directory := resolver.locate_directory(fullname):
                logger.debug(f"[autoload:finder] {fullname} -> directory {directory}")
                return self._namespace_spec(fullname)

        return None

    def _is_prefix_package(self, fullname: str) -> bool:
        """True if ``fullname`` is a registered prefix or a parent segment of one."""
        package_prefix = fullname + "."
        return any(prefix.startswith(package_prefix) for resolver in self._resolvers for prefix in resolver.prefixes)

    def _namespace_spec(self, fullname: str) -> ModuleSpec:
        spec = ModuleSpec(fullname, None, is_package=True)
        spec.submodule_search_locations = []
        logger.debug(f"[autoload:finder] {fullname} -> namespace package")
        return spec

    def __repr__(self) -> str:
        return f"ImportHookRegistry({len(self._resolvers)} resolvers)"


_registry: ImportHookRegistry | None = None


def get_import_registry() -> ImportHookRegistry:
    """Get the process-wide import hook registry."""
    global _registry
    if _registry is None:
        _registry = ImportHookRegistry()
    return _registry
