"""
Component Manager: Discovers and manages Single Directory Components.

Mirrors a plugin manager:
- Singleton via get_component_manager()
- Discovery from every extension's components/ directory
- Hot-reload via reload() after the builder touches component files

Each component lives in its own directory:
  <extension>/components/[<group>/]<machine_name>/
    <machine_name>.component.yml  manifest (name, status, group, props, slots)
    <machine_name>.twig           template
    <machine_name>.css / .js      optional assets (auto-attached)
    README.md                     optional documentation
"""

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from atomic_builder.components.base import InMemoryComponentRegistry
from atomic_builder.components.extensions import Extension, ExtensionList
from atomic_builder.components.models import ComponentDefinition
from atomic_builder.core.config import APP_CONFIG
from atomic_builder.core.exceptions import InvalidComponentException

logger = logging.getLogger("quart.app")

MANIFEST_SUFFIX = ".component.yml"

# ---------------------------------------------------------------------------
# Singleton
# ---------------------------------------------------------------------------

_extension_list_instance: Optional[ExtensionList] = None
_manager_instance: Optional["ComponentManager"] = None


def get_extension_list() -> ExtensionList:
    """Get or create the singleton ExtensionList for APP_CONFIG.SITE_ROOT."""
    global _extension_list_instance
    if _extension_list_instance is None:
        _extension_list_instance = ExtensionList(Path(APP_CONFIG.SITE_ROOT))
    return _extension_list_instance


def get_component_manager() -> "ComponentManager":
    """
    Get or create the singleton ComponentManager.

    On first call, discovers all components.
    Subsequent calls return the cached instance.
    """
    global _manager_instance
    if _manager_instance is None:
        _manager_instance = ComponentManager(get_extension_list())
    return _manager_instance


def reset_component_manager() -> None:
    """Reset the singletons (for testing or after the site root changes)."""
    global _manager_instance, _extension_list_instance
    _manager_instance = None
    _extension_list_instance = None


# ---------------------------------------------------------------------------
# Manager
# ---------------------------------------------------------------------------

class ComponentManager(InMemoryComponentRegistry):
    """Registry populated from the component manifests found on disk."""

    def __init__(self, extension_list: ExtensionList):
        super().__init__()
        self.extension_list = extension_list
        self.site_root = extension_list.site_root
        self._discover_and_load()

    # ------------------------------------------------------------------
    # Discovery and loading
    # ------------------------------------------------------------------

    def _discover_and_load(self) -> None:
        """Discover and load components from all extensions."""
        self.clear()

        for extension in self.extension_list.get_list():
            components_dir = self.site_root / extension.path / "components"
            if not components_dir.is_dir():
                continue

            for manifest_file in sorted(components_dir.rglob(f"*{MANIFEST_SUFFIX}")):
                try:
                    self.register(self._load_component(manifest_file, extension))
                except InvalidComponentException as e:
                    logger.error(str(e))

        logger.info(
            f"ComponentManager: loaded {len(self.components)} component(s): "
            f"{', '.join(self.components.keys())}"
        )

    def _load_component(self, manifest_file: Path, extension: Extension) -> ComponentDefinition:
        """Load a single component from its manifest file."""
        machine_name = manifest_file.name[: -len(MANIFEST_SUFFIX)]
        comp_dir = manifest_file.parent

        try:
            manifest = yaml.safe_load(manifest_file.read_text(encoding="utf-8")) or {}
        except (yaml.YAMLError, OSError) as e:
            raise InvalidComponentException(f"Failed to load manifest {manifest_file}: {e}") from e

        if not isinstance(manifest, dict):
            raise InvalidComponentException(f"Manifest {manifest_file} is not a mapping, skipping")

        template_file = comp_dir / f"{machine_name}.twig"
        readme_file = comp_dir / "README.md"
        documentation = ""
        if readme_file.exists():
            try:
                documentation = readme_file.read_text(encoding="utf-8")
            except OSError as e:
                logger.warning(f"Component '{extension.name}:{machine_name}': unreadable README: {e}")

        props = manifest.get("props")
        slots = manifest.get("slots")

        comp_def = ComponentDefinition(
            machine_name=machine_name,
            provider=extension.name,
            name=str(manifest.get("name") or ""),
            description=str(manifest.get("description") or ""),
            group=manifest.get("group") or None,
            status=str(manifest.get("status") or "experimental"),
            extension_type=extension.extension_type,
            path=comp_dir,
            manifest_path=manifest_file,
            template_path=template_file if template_file.exists() else None,
            manifest=manifest,
            props=props if isinstance(props, dict) else {},
            slots=slots if isinstance(slots, dict) else {},
            library=self._build_library(comp_dir, machine_name, manifest),
            documentation=documentation,
        )

        logger.debug(
            f"  Loaded component: {comp_def.plugin_id} "
            f"(group={comp_def.get_group()}, slots={len(comp_def.slots)})"
        )
        return comp_def

    def _relative(self, path: Path) -> str:
        try:
            return path.relative_to(self.site_root).as_posix()
        except ValueError:
            return path.as_posix()

    def _build_library(self, comp_dir: Path, machine_name: str, manifest: Dict[str, Any]) -> Dict[str, Any]:
        """Library with the component's own css/js plus manifest overrides."""
        library: Dict[str, Any] = {}

        css_file = comp_dir / f"{machine_name}.css"
        if css_file.exists():
            library.setdefault("css", {}).setdefault("component", {})[self._relative(css_file)] = {}

        js_file = comp_dir / f"{machine_name}.js"
        if js_file.exists():
            library.setdefault("js", {})[self._relative(js_file)] = {}

        overrides = manifest.get("libraryOverrides")
        if isinstance(overrides, dict):
            css_overrides = overrides.get("css")
            for category, files in (css_overrides.items() if isinstance(css_overrides, dict) else []):
                if isinstance(files, dict):
                    for file_name, attrs in files.items():
                        library.setdefault("css", {}).setdefault(category, {})[
                            self._relative(comp_dir / file_name)
                        ] = attrs or {}
            js_overrides = overrides.get("js")
            if isinstance(js_overrides, dict):
                for file_name, attrs in js_overrides.items():
                    library.setdefault("js", {})[self._relative(comp_dir / file_name)] = attrs or {}
            if overrides.get("dependencies"):
                library["dependencies"] = list(overrides["dependencies"])

        return library

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def get_all_components(self) -> List[ComponentDefinition]:
        return list(self.components.values())

    def get_component_data(
        self,
        machine_name: str,
        provider: Optional[str] = None,
    ) -> tuple:
        """
        Resolve the components sharing a machine name and pick one.

        Returns (components_by_provider, selected). The selected component is
        the requested provider's when it exists, else the first discovered.
        Selected is None when no component has that machine name.
        """
        components = self.get_components_by_machine_name(machine_name)
        if provider is not None and provider in components:
            return components, components[provider]
        return components, next(iter(components.values()), None)

    # ------------------------------------------------------------------
    # Hot-reload
    # ------------------------------------------------------------------

    def reload(self) -> int:
        """
        Hot-reload all extensions and components from disk.

        Returns:
            Number of components loaded after reload.
        """
        logger.info("ComponentManager: reloading components...")
        self.extension_list.reload()
        self._discover_and_load()
        return len(self.components)
