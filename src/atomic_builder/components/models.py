"""
Data models for the Component system.

ComponentDefinition wraps a discovered component's manifest and resolved paths.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from atomic_builder.components.base import Component

logger = logging.getLogger("quart.app")

ATTRIBUTES_TYPE_NAMES = ("Drupal\\Core\\Template\\Attribute", "Attribute")


@dataclass
class ComponentDefinition(Component):
    """
    A discovered component ready for use.

    Created by ComponentManager during discovery. Holds the parsed manifest
    and the resolved file paths of the component directory.
    """

    machine_name: str
    """Manifest file name up to '.component.yml' (e.g., 'button')."""

    provider: str
    """Machine name of the owning module or theme."""

    name: str = ""
    """Human-readable name for UI display."""

    description: str = ""
    """Short description of what the component does."""

    group: Optional[str] = None
    """Atomic design group ('atoms', 'molecules', ...). None when undeclared."""

    status: str = "experimental"
    """Manifest status ('experimental', 'stable', 'deprecated', ...)."""

    extension_type: str = "module"
    """'module' or 'theme', from the provider."""

    # --- File paths ---
    path: Optional[Path] = None
    """Absolute path to the component directory."""

    manifest_path: Optional[Path] = None
    """Absolute path to <machine_name>.component.yml."""

    template_path: Optional[Path] = None
    """Absolute path to <machine_name>.twig (None when missing)."""

    # --- Parsed manifest data ---
    manifest: Dict[str, Any] = field(default_factory=dict)
    """Full parsed manifest content."""

    props: Dict[str, Any] = field(default_factory=dict)
    """Props schema (object schema with 'properties', 'required')."""

    slots: Dict[str, Any] = field(default_factory=dict)
    """Declared slots, keyed by slot name."""

    library: Dict[str, Any] = field(default_factory=dict)
    """Asset library: {'css': {'component': {path: {}}}, 'js': {path: {}}}."""

    documentation: str = ""
    """README.md content, empty when the component has none."""

    def __post_init__(self):
        if not self.name:
            self.name = self.machine_name.replace("_", " ").capitalize()

    # ------------------------------------------------------------------
    # Component interface
    # ------------------------------------------------------------------

    @property
    def plugin_id(self) -> str:
        return f"{self.provider}:{self.machine_name}"

    def get_definition(self) -> Dict[str, Any]:
        definition = {
            "id": self.plugin_id,
            "machineName": self.machine_name,
            "provider": self.provider,
            "name": self.name,
            "description": self.description,
            "status": self.status,
            "props": self.props,
            "slots": self.slots,
            "library": self.library,
            "path": str(self.path) if self.path else None,
            "_discovered_file_path": str(self.manifest_path) if self.manifest_path else None,
            "documentation": self.documentation,
            "extension_type": self.extension_type,
        }
        if self.group:
            definition["group"] = self.group
        return definition

    def get_template_path(self) -> Optional[Path]:
        return self.template_path

    def get_schema(self) -> Dict[str, Any]:
        return self.props or {}

    def get_slot_names(self) -> List[str]:
        return list(self.slots.keys())

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def get_group(self, default: str = "other") -> str:
        return self.group or default

    def get_property_types(self, prop_name: str) -> List[str]:
        """Declared JSON-schema type(s) of a prop, always as a list."""
        prop = (self.get_schema().get("properties") or {}).get(prop_name) or {}
        prop_type = prop.get("type")
        if prop_type is None:
            return []
        if isinstance(prop_type, list):
            return [str(t) for t in prop_type]
        return [str(prop_type)]

    def has_attributes_prop(self) -> bool:
        """True when the schema declares 'attributes' as the attributes object type."""
        types = self.get_property_types("attributes")
        return bool(types) and types[0] in ATTRIBUTES_TYPE_NAMES

    def get_versions(self) -> Dict[str, Dict[str, Any]]:
        """
        Named prop snapshots built from every prop's examples.

        versions[example_key][prop_name] = example. Mapping examples keep their
        keys; list examples are keyed by their index as a string.
        """
        versions: Dict[str, Dict[str, Any]] = {}
        properties = self.get_schema().get("properties")
        if not isinstance(properties, dict):
            return versions

        for prop_key, prop_values in properties.items():
            if not isinstance(prop_values, dict) or "examples" not in prop_values:
                continue
            examples = prop_values["examples"]
            if isinstance(examples, dict):
                items = examples.items()
            elif isinstance(examples, list):
                items = ((str(i), example) for i, example in enumerate(examples))
            else:
                continue
            for key, example in items:
                versions.setdefault(str(key), {})[prop_key] = example

        return versions

    def get_library_files(self, asset_type: str) -> List[str]:
        """Own css/js asset paths declared in the library."""
        if asset_type == "css":
            return list(((self.library.get("css") or {}).get("component") or {}).keys())
        if asset_type == "js":
            return list((self.library.get("js") or {}).keys())
        return []

    def to_api_dict(self) -> Dict[str, Any]:
        """Serialize for REST API responses."""
        return {
            "plugin_id": self.plugin_id,
            "machine_name": self.machine_name,
            "provider": self.provider,
            "name": self.name,
            "description": self.description,
            "group": self.get_group(),
            "status": self.status,
            "extension_type": self.extension_type,
            "path": str(self.path) if self.path else None,
            "props": self.props,
            "slots": self.get_slot_names(),
            "library": self.library,
            "has_template": self.template_path is not None,
            "has_documentation": bool(self.documentation),
            "versions": list(self.get_versions().keys()),
        }
