"""
Extension discovery for the site root.

An extension (module or theme) is any directory ``<name>/`` that contains a
``<name>.info.yml`` marker. Components are only ever provided by extensions,
so this list is the source of truth for provider names and paths.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from atomic_builder.core.config import APP_CONFIG

logger = logging.getLogger("quart.app")

INFO_SUFFIX = ".info.yml"
SKIPPED_DIRS = {"node_modules", "vendor", ".git"}


@dataclass
class Extension:
    """A discovered module or theme."""

    name: str
    """Machine name, equal to the directory name."""

    extension_type: str
    """'module' or 'theme'."""

    path: str
    """Path relative to the site root, POSIX separators."""

    info: Dict[str, Any] = field(default_factory=dict)
    """Parsed <name>.info.yml content."""

    @property
    def label(self) -> str:
        return self.info.get("name") or self.name


class ExtensionList:
    """Lazily scanned registry of the extensions found below a site root."""

    def __init__(self, site_root: Optional[Path] = None):
        self.site_root = Path(site_root if site_root is not None else APP_CONFIG.SITE_ROOT).resolve()
        self._extensions: Optional[Dict[str, Extension]] = None

    # ------------------------------------------------------------------
    # Discovery
    # ------------------------------------------------------------------

    def _discover(self) -> Dict[str, Extension]:
        extensions: Dict[str, Extension] = {}
        if not self.site_root.is_dir():
            logger.warning(f"Site root {self.site_root} does not exist, no extensions found")
            return extensions

        for info_file in sorted(self.site_root.rglob(f"*{INFO_SUFFIX}")):
            if SKIPPED_DIRS.intersection(info_file.parts):
                continue
            directory = info_file.parent
            name = info_file.name[: -len(INFO_SUFFIX)]
            if name != directory.name:
                continue

            try:
                info = yaml.safe_load(info_file.read_text(encoding="utf-8")) or {}
            except (yaml.YAMLError, OSError) as e:
                logger.error(f"Failed to parse {info_file}: {e}")
                continue
            if not isinstance(info, dict):
                info = {}

            relative = directory.relative_to(self.site_root).as_posix()
            extension_type = info.get("type")
            if extension_type not in ("module", "theme"):
                extension_type = "theme" if "themes" in Path(relative).parts else "module"

            if name in extensions:
                logger.warning(
                    f"Extension '{name}' found twice ({extensions[name].path}, {relative}); keeping the first"
                )
                continue
            extensions[name] = Extension(name=name, extension_type=extension_type, path=relative, info=info)

        logger.info(f"ExtensionList: found {len(extensions)} extension(s) below {self.site_root}")
        return extensions

    @property
    def extensions(self) -> Dict[str, Extension]:
        if self._extensions is None:
            self._extensions = self._discover()
        return self._extensions

    def reload(self) -> None:
        self._extensions = None

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def get_list(self) -> List[Extension]:
        return list(self.extensions.values())

    def exists(self, name: Optional[str]) -> bool:
        return bool(name) and name in self.extensions

    def get(self, name: str) -> Optional[Extension]:
        return self.extensions.get(name)

    def get_path(self, name: str) -> str:
        """Relative path of an extension. Raises KeyError for unknown names."""
        return self.extensions[name].path

    def get_absolute_path(self, name: str) -> Path:
        return self.site_root / self.get_path(name)

    def get_custom_options(self) -> Dict[str, Dict[str, str]]:
        """
        Providers that may receive new components, grouped for a select list.

        Only custom modules and themes are offered; core and contrib
        extensions are read-only.
        """
        options: Dict[str, Dict[str, str]] = {}
        for extension in self.extensions.values():
            if extension.extension_type == "module" and extension.path.startswith(APP_CONFIG.CUSTOM_MODULES_PREFIX):
                options.setdefault("Modules", {})[extension.name] = extension.label
            elif extension.extension_type == "theme" and extension.path.startswith(APP_CONFIG.CUSTOM_THEMES_PREFIX):
                options.setdefault("Themes", {})[extension.name] = extension.label
        return options
