"""Namespace-prefix autoloader.

Maps a fully-qualified name such as ``Core.Http.Request`` onto a source file
through a table of namespace prefixes and base directories:

    prefix "Core." -> ["app/core/"]
    Core.Http.Request -> app/core/Http/Request.py

Resolution tries the longest registered prefix first and walks towards the
outermost segment. Within one prefix, base directories are searched in
registration order and the first existing file wins. Every "not found"
outcome is soft: ``resolve`` returns ``None`` so the next hook in the
registry can try.
"""

from __future__ import annotations

import importlib.util
import logging
import os
import sys
from importlib.machinery import SourceFileLoader
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .registry import ResolverRegistry

logger = logging.getLogger(__name__)

NAMESPACE_SEPARATOR = "."
LEGACY_SEPARATOR = "\\"
SOURCE_EXTENSION = ".py"


def normalize_prefix(prefix: str) -> str:
    """Normalize a namespace prefix to ``Segment.Segment.`` form.

    Leading and trailing separators are stripped and exactly one trailing
    separator is appended. Backslash separators are accepted and converted.
    """
    prefix = prefix.replace(LEGACY_SEPARATOR, NAMESPACE_SEPARATOR)
    return prefix.strip(NAMESPACE_SEPARATOR) + NAMESPACE_SEPARATOR


def normalize_extension(extension: str) -> str:
    """Normalize a source extension to a single leading dot.

    Raises:
        ValueError: The extension is empty or only dots
    """
    stem = extension.strip().lstrip(".")
    if not stem:
        raise ValueError(f"Source extension must not be empty: {extension!r}")
    return f".{stem}"


def normalize_directory(base_directory: str | os.PathLike[str]) -> str:
    """Normalize a base directory to end with exactly one forward slash."""
    base_directory = os.fspath(base_directory)
    return base_directory.rstrip("/" + os.sep) + "/"


class Autoloader:
    """Resolve namespaced names to files and load them on first reference.

    Usage:
        loader = Autoloader()
        loader.register().add_namespace("Core", "app/core").add_namespace("Src", "app/src")
        loader.resolve("Core.Autoloader")  # -> "app/core/Autoloader.py"
    """

    def __init__(self, extension: str = SOURCE_EXTENSION) -> None:
        self.extension = normalize_extension(extension)
        self._prefixes: dict[str, list[str]] = {}

    @property
    def prefixes(self) -> dict[str, list[str]]:
        """Copy of the prefix table, prefixes mapped to directories in search order."""
        return {prefix: list(directories) for prefix, directories in self._prefixes.items()}

    def register(self, registry: ResolverRegistry | None = None) -> Autoloader:
        """Add this autoloader to a resolver registry.

        Args:
            registry: Registry to join. Defaults to the process-wide import
                hook registry, which consults resolvers from ``sys.meta_path``.

        Returns:
            self, for chained configuration
        """
        if registry is None:
            from .registry import get_import_registry

            registry = get_import_registry()

        registry.add_resolver(self)
        logger.debug(f"[autoload:register] {self!r} -> {registry!r}")
        return self

    def add_namespace(
        self,
        prefix: str,
        base_directory: str | os.PathLike[str],
        prepend: bool = False,
    ) -> Autoloader:
        """Add a base directory for a namespace prefix.

        Re-adding a known prefix grows its directory list. Duplicate
        directories are kept.

        Args:
            prefix: Namespace prefix, e.g. ``"Core"`` or ``"Vendor.Lib"``
            base_directory: Directory holding the files for that namespace
            prepend: Search this directory before the ones already registered

        Returns:
            self, for chained configuration
        """
        prefix = normalize_prefix(prefix)
        base_directory = normalize_directory(base_directory)

        directories = self._prefixes.setdefault(prefix, [])
        if prepend:
            directories.insert(0, base_directory)
        else:
            directories.append(base_directory)

        logger.debug(f"[autoload:namespace] {prefix} -> {base_directory} (prepend={prepend})")
        return self

    def resolve(self, name: str) -> str | None:
        """Find and load the file backing a fully-qualified name.

        Args:
            name: Dotted name such as ``"Core.Http.Request"``

        Returns:
            Path of the loaded file, or None when no mapped file exists
        """
        return self._search(name, load=True)

    def locate(self, name: str) -> str | None:
        """Find the file backing a name without loading it."""
        return self._search(name, load=False)

    def locate_directory(self, name: str) -> str | None:
        """Find the directory a name maps to, for intermediate namespace levels.

        ``Src.Http`` maps to ``app/src/Http/`` when that directory exists, so
        ``Src.Http.Request`` can be imported below it. Same search order as
        ``locate``.
        """
        name = name.replace(LEGACY_SEPARATOR, NAMESPACE_SEPARATOR)
        prefix = name

        while (pos := prefix.rfind(NAMESPACE_SEPARATOR)) != -1:
            prefix = name[: pos + 1]
            relative_path = name[pos + 1 :].replace(NAMESPACE_SEPARATOR, "/")

            for base_directory in self._prefixes.get(prefix, ()):
                if os.path.isdir(base_directory + relative_path):
                    return base_directory + relative_path + "/"

            prefix = prefix.rstrip(NAMESPACE_SEPARATOR)

        return None

    def _search(self, name: str, load: bool) -> str | None:
        name = name.replace(LEGACY_SEPARATOR, NAMESPACE_SEPARATOR)
        prefix = name

        while (pos := prefix.rfind(NAMESPACE_SEPARATOR)) != -1:
            # Keep the trailing separator in the prefix
            prefix = name[: pos + 1]
            relative_name = name[pos + 1 :]

            mapped_file = self._load_mapped_file(prefix, relative_name, name, load)
            if mapped_file:
                logger.debug(f"[autoload:resolve] {name} -> {mapped_file}")
                return mapped_file

            prefix = prefix.rstrip(NAMESPACE_SEPARATOR)

        logger.debug(f"[autoload:resolve] {name} -> unresolved")
        return None

    def _load_mapped_file(self, prefix: str, relative_name: str, name: str, load: bool) -> str | None:
        """Search the base directories of one prefix for the relative name.

        The first existing file wins; later directories are not consulted.
        """
        directories = self._prefixes.get(prefix)
        if not directories:
            return None

        relative_path = relative_name.replace(NAMESPACE_SEPARATOR, "/") + self.extension
        for base_directory in directories:
            path = base_directory + relative_path
            if not os.path.isfile(path):
                continue
            if load:
                self._require_file(path, name)
            return path

        return None

    def _require_file(self, path: str, name: str) -> None:
        """Execute a source file as module ``name`` unless it is already loaded from ``path``.

        Exceptions raised by the file propagate; the half-initialized module
        is removed from ``sys.modules`` first.
        """
        existing_file = getattr(sys.modules.get(name), "__file__", None)
        if existing_file and os.path.abspath(existing_file) == os.path.abspath(path):
            return

        loader = SourceFileLoader(name, path)
        spec = importlib.util.spec_from_file_location(name, path, loader=loader)
        assert spec is not None
        module = importlib.util.module_from_spec(spec)

        sys.modules[name] = module
        try:
            loader.exec_module(module)
        except BaseException:
            sys.modules.pop(name, None)
            raise

        parent, _, child = name.rpartition(".")
        if parent in sys.modules:
            setattr(sys.modules[parent], child, module)

        logger.debug(f"[autoload:load] {name} from {path}")

    def __repr__(self) -> str:
        return f"Autoloader({len(self._prefixes)} prefixes, extension={self.extension!r})"
