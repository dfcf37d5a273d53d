"""
ComponentFileManager: creates, edits, moves and duplicates component files.

Every operation returns a boolean (or the loaded data) and reports what it
did through the injected Messenger. Filesystem errors are logged and turned
into user-facing messages; they are never raised to the caller.
"""

import logging
import shutil
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from atomic_builder.components import scaffolds
from atomic_builder.components.extensions import ExtensionList
from atomic_builder.components.models import ComponentDefinition
from atomic_builder.core.messenger import Messenger

logger = logging.getLogger("quart.app")

ASSET_TYPES = ("css", "js")
RENAMED_SUFFIXES = ("twig", "js", "css", "component.yml")


def flatten_library_files(libraries: Any, base_path: str) -> Dict[str, List[str]]:
    """
    Collect the css/js files declared in a ``<provider>.libraries.yml`` map.

    A key ending in ``.css`` or ``.js`` is a file reference, whatever its
    value. Any other key holding a mapping is walked recursively. Scalars
    and lists (``version``, ``dependencies``) are not file references.
    """
    flattened: Dict[str, List[str]] = {"css": [], "js": []}

    def walk(node: Any) -> None:
        if not isinstance(node, dict):
            return
        for key, value in node.items():
            key = str(key)
            suffix = key.rsplit(".", 1)[-1].lower() if "." in key else ""
            if suffix in ASSET_TYPES:
                flattened[suffix].append(f"{base_path}/{key.lstrip('/')}" if base_path else key)
            elif isinstance(value, dict):
                walk(value)

    walk(libraries)
    return flattened


class ComponentFileManager:
    """File operations on the component directories of a site root."""

    def __init__(self, extension_list: ExtensionList, messenger: Optional[Messenger] = None):
        self.extension_list = extension_list
        self.site_root = extension_list.site_root
        self.messenger = messenger if messenger is not None else Messenger()

    # ------------------------------------------------------------------
    # Paths
    # ------------------------------------------------------------------

    def _extension_path(self, provider: str) -> Path:
        """Absolute directory of a provider; unknown names are taken as a path below the site root."""
        if self.extension_list.exists(provider):
            return self.extension_list.get_absolute_path(provider)
        return self.site_root / provider

    def build_component_folder_path(
        self,
        machine_name: str,
        provider: str,
        group: Optional[str] = None,
    ) -> Path:
        """``<extension>/components/[<group>/]<machine_name>``"""
        components_dir = self._extension_path(provider) / "components"
        if group:
            components_dir = components_dir / group
        return components_dir / machine_name

    def is_in_components_dir(self, path: Path, provider: str) -> bool:
        """True when ``path`` resolves strictly below the provider's components/ directory."""
        components_dir = (self._extension_path(provider) / "components").resolve()
        resolved = path.resolve()
        return resolved != components_dir and components_dir in resolved.parents

    def _display(self, path: Path) -> str:
        try:
            return path.relative_to(self.site_root).as_posix()
        except ValueError:
            return str(path)

    # ------------------------------------------------------------------
    # Scaffolding
    # ------------------------------------------------------------------

    def create_component_folder(self, machine_name: str, provider: str, group: Optional[str] = None) -> bool:
        path = self.build_component_folder_path(machine_name, provider, group)
        try:
            path.mkdir(parents=True, exist_ok=True)
            return True
        except OSError as e:
            logger.error(f"Failed to create component folder {path}: {e}", exc_info=True)
            self.messenger.add_error(f"Folder {self._display(path)} could not be created")
            return False

    def _create_file(self, path: Path, content: str) -> bool:
        """Write a new file; an existing file is left untouched."""
        try:
            with open(path, "x", encoding="utf-8") as fh:
                fh.write(content)
        except FileExistsError:
            self.messenger.add_error(f"File {self._display(path)} already exists")
            return False
        except OSError as e:
            logger.error(f"Failed to create {path}: {e}", exc_info=True)
            self.messenger.add_error(f"File {self._display(path)} could not be created")
            return False
        logger.info(f"Created {path}")
        return True

    def create_component_file(
        self,
        machine_name: str,
        provider: str,
        name: str,
        group: Optional[str] = None,
        description: Optional[str] = None,
    ) -> bool:
        manifest = scaffolds.build_manifest(name, group, description)
        path = self.build_component_folder_path(machine_name, provider, group) / f"{machine_name}.component.yml"
        return self._create_file(path, scaffolds.dump_manifest(manifest, with_header=True))

    def create_twig_file(self, machine_name: str, provider: str, group: Optional[str] = None) -> bool:
        path = self.build_component_folder_path(machine_name, provider, group) / f"{machine_name}.twig"
        return self._create_file(path, scaffolds.TWIG_TEMPLATE.format(machine_name=machine_name))

    def create_readme_file(
        self,
        machine_name: str,
        provider: str,
        name: str,
        description: Optional[str] = None,
        group: Optional[str] = None,
    ) -> bool:
        path = self.build_component_folder_path(machine_name, provider, group) / "README.md"
        return self._create_file(path, scaffolds.README_TEMPLATE.format(name=name, description=description or ""))

    def create_js_file(self, machine_name: str, provider: str, group: Optional[str] = None) -> bool:
        path = self.build_component_folder_path(machine_name, provider, group) / f"{machine_name}.js"
        return self._create_file(path, scaffolds.JS_TEMPLATE.format(machine_name=machine_name))

    def create_css_file(self, machine_name: str, provider: str, group: Optional[str] = None) -> bool:
        path = self.build_component_folder_path(machine_name, provider, group) / f"{machine_name}.css"
        return self._create_file(path, scaffolds.CSS_TEMPLATE.format(machine_name=machine_name))

    def create_asset_file(self, asset_type: str, machine_name: str, provider: str, group: Optional[str] = None) -> bool:
        if asset_type == "js":
            return self.create_js_file(machine_name, provider, group)
        if asset_type == "css":
            return self.create_css_file(machine_name, provider, group)
        raise ValueError(f"Unknown asset type: {asset_type}. Valid: css, js")

    # ------------------------------------------------------------------
    # Manifest
    # ------------------------------------------------------------------

    def load_component_file(self, component: ComponentDefinition) -> Dict[str, Any]:
        """Parsed manifest of a component, {} when missing or unreadable."""
        path = component.manifest_path
        if path is None or not path.exists():
            return {}
        try:
            data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
        except (yaml.YAMLError, OSError) as e:
            logger.error(f"Failed to load manifest {path}: {e}")
            return {}
        return data if isinstance(data, dict) else {}

    def save_component_file(self, component: ComponentDefinition, manifest: Dict[str, Any]) -> bool:
        path = component.manifest_path
        if path is None:
            self.messenger.add_error(f"Component {component.plugin_id} has no manifest file")
            return False
        try:
            path.write_text(scaffolds.dump_manifest(manifest, with_header=True), encoding="utf-8")
        except (OSError, yaml.YAMLError) as e:
            logger.error(f"Failed to save manifest {path}: {e}", exc_info=True)
            self.messenger.add_error(f"File {self._display(path)} could not be saved")
            return False

        self.messenger.add_status(f"File {self._display(path)} has been saved successfully")
        return True

    # ------------------------------------------------------------------
    # Removal
    # ------------------------------------------------------------------

    def delete_component_file(self, component: ComponentDefinition, file_type: str) -> bool:
        """Remove ``<machine_name>.<file_type>`` from the component directory."""
        if component.path is None:
            return False
        path = component.path / f"{component.machine_name}.{file_type}"
        if not path.is_file():
            return False
        try:
            path.unlink()
        except OSError as e:
            logger.error(f"Failed to remove {path}: {e}", exc_info=True)
            self.messenger.add_error(f"File {self._display(path)} could not be removed")
            return False

        self.messenger.add_status(f"File {self._display(path)} has been removed successfully")
        return True

    def delete_component(self, component: ComponentDefinition) -> bool:
        path = component.path
        if path is None or not path.is_dir():
            self.messenger.add_error(f"Folder of component {component.plugin_id} does not exist")
            return False
        try:
            shutil.rmtree(path)
        except OSError as e:
            logger.error(f"Failed to delete component folder {path}: {e}", exc_info=True)
            self.messenger.add_error(f"Folder {self._display(path)} could not be deleted")
            return False
        logger.info(f"Deleted component directory: {path}")
        return True

    # ------------------------------------------------------------------
    # Duplicate / move
    # ------------------------------------------------------------------

    def duplicate_component(self, component: ComponentDefinition, new_provider: str) -> bool:
        """Copy the whole component directory to the same group of another provider."""
        path = component.path
        new_path = self.build_component_folder_path(component.machine_name, new_provider, component.group)

        if path is None or new_path.resolve() == path.resolve():
            return False

        if new_path.exists():
            self.messenger.add_error(f"Folder {self._display(new_path)} already exists")
            return False

        try:
            new_path.parent.mkdir(parents=True, exist_ok=True)
            shutil.copytree(path, new_path)
        except OSError as e:
            logger.error(f"Failed to duplicate {path} to {new_path}: {e}", exc_info=True)
            self.messenger.add_error(f"Folder {self._display(path)} could not be duplicated")
            return False

        self.messenger.add_status(
            f"Folder {self._display(path)} has been duplicated successfully to {self._display(new_path)}"
        )
        return True

    def move_component_folder(
        self,
        component: ComponentDefinition,
        new_machine_name: str,
        new_provider: str,
        new_group: Optional[str] = None,
    ) -> bool:
        """
        Rename the component files to the new machine name, then relocate
        the directory to its new provider/group.
        """
        path = component.path
        machine_name = component.machine_name
        new_path = self.build_component_folder_path(new_machine_name, new_provider, new_group)

        if path is None or new_path.resolve() == path.resolve():
            return False

        if new_path.exists():
            self.messenger.add_error(f"Folder {self._display(new_path)} already exists")
            return False

        try:
            if machine_name != new_machine_name:
                for suffix in RENAMED_SUFFIXES:
                    old_file = path / f"{machine_name}.{suffix}"
                    if old_file.exists():
                        old_file.rename(path / f"{new_machine_name}.{suffix}")

            new_path.parent.mkdir(parents=True, exist_ok=True)
            shutil.move(str(path), str(new_path))
        except OSError as e:
            logger.error(f"Failed to move {path} to {new_path}: {e}", exc_info=True)
            self.messenger.add_error(f"Folder {self._display(path)} could not be moved")
            return False

        self.messenger.add_status(
            f"Folder {self._display(path)} has been moved successfully to {self._display(new_path)}"
        )
        return True

    # ------------------------------------------------------------------
    # Libraries
    # ------------------------------------------------------------------

    def get_libraries_files_from_extension(self, provider: Optional[str]) -> Dict[str, List[str]]:
        """
        Site-relative css/js files declared by ``<provider>.libraries.yml``.

        Returns {"css": [...], "js": [...]}, both empty when the provider or
        its libraries file is missing.
        """
        if not provider or not self.extension_list.exists(provider):
            return {"css": [], "js": []}

        relative_path = self.extension_list.get_path(provider)
        library_file = self.site_root / relative_path / f"{provider}.libraries.yml"
        if not library_file.is_file():
            return {"css": [], "js": []}

        try:
            libraries = yaml.safe_load(library_file.read_text(encoding="utf-8")) or {}
        except (yaml.YAMLError, OSError) as e:
            logger.error(f"Failed to parse {library_file}: {e}")
            return {"css": [], "js": []}

        return flatten_library_files(libraries, relative_path)
