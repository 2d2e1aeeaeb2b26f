"""Startup wiring: one autoloader with the application's namespaces."""

from __future__ import annotations

import logging

from .autoloader import Autoloader
from .registry import ResolverRegistry
from .settings import AutoloadConfig
from .settings import AutoloadSettings

logger = logging.getLogger(__name__)

DEFAULT_NAMESPACES: tuple[tuple[str, str], ...] = (
    ("Core", "app/core"),
    ("Src", "app/src"),
)


def bootstrap(
    registry: ResolverRegistry | None = None,
    settings: AutoloadSettings | AutoloadConfig | None = None,
) -> Autoloader:
    """Create, register and configure the application autoloader.

    The built-in namespaces are added first, then any namespaces from
    settings in the order they appear.

    Args:
        registry: Registry to join (default: the import hook registry)
        settings: Settings to read, or an already built config. Defaults to
            an empty config so startup does not depend on the filesystem.

    Returns:
        The registered Autoloader
    """
    if isinstance(settings, AutoloadSettings):
        config = settings.get_autoload_config()
    else:
        config = settings or AutoloadConfig()

    loader = Autoloader(extension=config.extension).register(registry)

    if config.include_defaults:
        for prefix, directory in DEFAULT_NAMESPACES:
            loader.add_namespace(prefix, directory)

    for prefix, namespace in config.namespaces.items():
        # Prepended lists keep their own order ahead of existing directories
        for directory in reversed(namespace.prepend):
            loader.add_namespace(prefix, directory, prepend=True)
        for directory in namespace.directories:
            loader.add_namespace(prefix, directory)

    logger.debug(f"[autoload:bootstrap] {loader!r} with prefixes {list(loader.prefixes)}")
    return loader
