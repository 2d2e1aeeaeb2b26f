"""Namespace-prefix autoloading.

Maps dotted names onto files under registered base directories and loads
them on first reference.
"""

from .autoloader import Autoloader
from .bootstrap import DEFAULT_NAMESPACES
from .bootstrap import bootstrap
from .registry import ImportHookRegistry
from .registry import NameResolver
from .registry import ResolverRegistry
from .registry import get_import_registry
from .settings import AutoloadConfig
from .settings import AutoloadSettings
from .settings import NamespaceConfig
from .settings import SettingsError

__all__ = [
    "Autoloader",
    "AutoloadConfig",
    "AutoloadSettings",
    "DEFAULT_NAMESPACES",
    "ImportHookRegistry",
    "NameResolver",
    "NamespaceConfig",
    "ResolverRegistry",
    "SettingsError",
    "bootstrap",
    "get_import_registry",
]
