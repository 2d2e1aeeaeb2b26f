"""Settings management for prefix-autoload.

Scope-aware YAML settings. Namespace mappings configured here are added
after the built-in defaults when the autoloader is bootstrapped.

Scope priority (most specific wins):
1. local (.prefix-autoload/settings.local.yaml) - machine-specific
2. project (.prefix-autoload/settings.yaml) - committed with the project
3. global (~/.prefix-autoload/settings.yaml) - user defaults
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any
from typing import Literal

import yaml
from pydantic import BaseModel
from pydantic import Field
from pydantic import ValidationError
from pydantic import field_validator
from pydantic import model_validator

from .autoloader import SOURCE_EXTENSION
from .autoloader import normalize_extension
from .autoloader import normalize_prefix

logger = logging.getLogger(__name__)

Scope = Literal["local", "project", "global"]

SCOPES: tuple[Scope, ...] = ("local", "project", "global")
SETTINGS_DIR = ".prefix-autoload"


class SettingsError(Exception):
    """Raised when settings cannot be read or changed as requested."""


class NamespaceConfig(BaseModel):
    """Directories registered for one namespace prefix.

    ``directories`` are searched after any already registered for the
    prefix, ``prepend`` before them. Each list keeps its own order.
    """

    directories: list[str] = Field(default_factory=list, description="Appended base directories")
    prepend: list[str] = Field(default_factory=list, description="Base directories searched before existing ones")

    @field_validator("directories", "prepend")
    @classmethod
    def _no_blank_directories(cls, value: list[str]) -> list[str]:
        if any(not d.strip() for d in value):
            raise ValueError("directories must not be blank")
        return value

    @model_validator(mode="after")
    def _not_empty(self) -> NamespaceConfig:
        if not self.directories and not self.prepend:
            raise ValueError("at least one directory is required")
        return self

    @classmethod
    def parse(cls, value: Any) -> NamespaceConfig:
        """Accept a single directory, a list of directories or the full mapping form."""
        if isinstance(value, str):
            return cls(directories=[value])
        if isinstance(value, list):
            return cls(directories=value)
        return cls.model_validate(value)

    def to_settings(self) -> list[str] | dict[str, list[str]]:
        """Shortest settings form: a plain list unless something is prepended."""
        if not self.prepend:
            return list(self.directories)
        return self.model_dump(exclude_defaults=True)


class AutoloadConfig(BaseModel):
    """The ``autoload`` section of the merged settings."""

    extension: str = Field(SOURCE_EXTENSION, description="Source file extension")
    include_defaults: bool = Field(True, description="Register the built-in Core/Src namespaces")
    namespaces: dict[str, NamespaceConfig] = Field(default_factory=dict)

    @field_validator("extension")
    @classmethod
    def _valid_extension(cls, value: str) -> str:
        return normalize_extension(value)

    @classmethod
    def from_settings(cls, settings: dict[str, Any]) -> AutoloadConfig:
        """Build config from a merged settings dictionary.

        Invalid namespace entries and extensions are skipped with a warning.
        """
        section = settings.get("autoload") or {}

        namespaces: dict[str, NamespaceConfig] = {}
        for prefix, value in (section.get("namespaces") or {}).items():
            try:
                namespaces[str(prefix)] = NamespaceConfig.parse(value)
            except ValidationError as e:
                logger.warning(f"Invalid namespace configuration for '{prefix}': {e}")

        extension = section.get("extension", SOURCE_EXTENSION)
        try:
            extension = normalize_extension(str(extension))
        except ValueError as e:
            logger.warning(f"Invalid extension setting, using {SOURCE_EXTENSION}: {e}")
            extension = SOURCE_EXTENSION

        return cls(
            extension=extension,
            include_defaults=section.get("include_defaults", True),
            namespaces=namespaces,
        )


@dataclass
class SettingsPaths:
    """Standard paths for settings files."""

    global_settings: Path
    project_settings: Path
    local_settings: Path

    @classmethod
    def default(cls) -> SettingsPaths:
        """Create default paths relative to the home and working directories."""
        return cls(
            global_settings=Path.home() / SETTINGS_DIR / "settings.yaml",
            project_settings=Path.cwd() / SETTINGS_DIR / "settings.yaml",
            local_settings=Path.cwd() / SETTINGS_DIR / "settings.local.yaml",
        )


class AutoloadSettings:
    """Read and write namespace mappings across settings scopes.

    Usage:
        settings = AutoloadSettings()
        config = settings.get_autoload_config()
        settings.add_namespace("Vendor", "vendor/lib", scope="project")
    """

    def __init__(self, paths: SettingsPaths | None = None) -> None:
        self.paths = paths or SettingsPaths.default()

    def get_merged_settings(self) -> dict[str, Any]:
        """Load and merge settings from all scopes."""
        result: dict[str, Any] = {}
        for path in [self.paths.global_settings, self.paths.project_settings, self.paths.local_settings]:
            if not path.exists():
                continue
            try:
                with open(path) as f:
                    content = yaml.safe_load(f) or {}
            except (OSError, yaml.YAMLError) as e:
                logger.warning(f"Skipping unreadable settings file {path}: {e}")
                continue
            if not isinstance(content, dict):
                logger.warning(f"Skipping settings file {path}: top level is not a mapping")
                continue
            result = self._deep_merge(result, content)
        return result

    def get_autoload_config(self) -> AutoloadConfig:
        return AutoloadConfig.from_settings(self.get_merged_settings())

    # ----- Namespace settings -----

    def add_namespace(self, prefix: str, directory: str, scope: Scope = "project", prepend: bool = False) -> None:
        """Add a directory for a prefix at the given scope.

        Raises:
            SettingsError: Blank prefix or directory, or unknown scope
        """
        key = normalize_prefix(prefix).rstrip(".")
        if not key:
            raise SettingsError("Namespace prefix must not be empty")
        if not directory.strip():
            raise SettingsError("Directory must not be empty")

        settings = self._read_scope(scope)
        autoload = settings.get("autoload") or {}
        namespaces = autoload.get("namespaces") or {}
        autoload["namespaces"] = namespaces
        settings["autoload"] = autoload

        existing = namespaces.get(key)
        if existing is None:
            entry = NamespaceConfig(prepend=[directory]) if prepend else NamespaceConfig(directories=[directory])
        else:
            try:
                entry = NamespaceConfig.parse(existing)
            except ValidationError as e:
                raise SettingsError(f"Existing entry for '{key}' in {scope} settings is invalid: {e}") from e
            # The newest prepended directory is searched first
            if prepend:
                entry.prepend.insert(0, directory)
            else:
                entry.directories.append(directory)

        namespaces[key] = entry.to_settings()
        self._write_scope(scope, settings)

    def remove_namespace(self, prefix: str, scope: Scope = "project") -> bool:
        """Remove a prefix from the given scope.

        Returns:
            True if the prefix was present
        """
        key = normalize_prefix(prefix).rstrip(".")
        settings = self._read_scope(scope)
        namespaces = (settings.get("autoload") or {}).get("namespaces") or {}
        if key not in namespaces:
            return False
        del namespaces[key]
        self._write_scope(scope, settings)
        return True

    # ----- Scope utilities -----

    def _get_scope_path(self, scope: Scope) -> Path:
        """Get settings file path for scope."""
        try:
            return {
                "local": self.paths.local_settings,
                "project": self.paths.project_settings,
                "global": self.paths.global_settings,
            }[scope]
        except KeyError:
            raise SettingsError(f"Unknown scope '{scope}' (expected one of: {', '.join(SCOPES)})") from None

    def _read_scope(self, scope: Scope) -> dict[str, Any]:
        """Read settings from a specific scope."""
        path = self._get_scope_path(scope)
        if not path.exists():
            return {}
        try:
            with open(path) as f:
                content = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise SettingsError(f"Cannot parse {path}: {e}") from e
        if not isinstance(content, dict):
            raise SettingsError(f"Top level of {path} is not a mapping")
        return content

    def _write_scope(self, scope: Scope, settings: dict[str, Any]) -> None:
        """Write settings to a specific scope."""
        path = self._get_scope_path(scope)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            yaml.safe_dump(settings, f, default_flow_style=False, sort_keys=False)

    def _deep_merge(self, base: dict[str, Any], overlay: dict[str, Any]) -> dict[str, Any]:
        """Deep merge two dicts, overlay wins."""
        result = base.copy()
        for key, value in overlay.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._deep_merge(result[key], value)
            else:
                result[key] = value
        return result


def get_settings() -> AutoloadSettings:
    """Get a settings instance with default paths."""
    return AutoloadSettings()
