"""
Base classes for the component registry.

Two capability interfaces:
  - Component:             one discovered component (definition, template, schema)
  - BaseComponentRegistry: lookup of components by plugin id "<provider>:<machine_name>"

InMemoryComponentRegistry is the plain dict-backed implementation; the
filesystem-backed ComponentManager (manager.py) builds on it.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from atomic_builder.core.exceptions import ComponentNotFoundException

logger = logging.getLogger("quart.app")


# ---------------------------------------------------------------------------
# Component
# ---------------------------------------------------------------------------

class Component(ABC):
    """A single component as seen by the story endpoint and the builder UI."""

    @property
    @abstractmethod
    def plugin_id(self) -> str:
        """Unique id, ``"<provider>:<machine_name>"``."""

    @abstractmethod
    def get_definition(self) -> Dict[str, Any]:
        """Plugin definition: metadata, props schema, slots, library, paths."""

    @abstractmethod
    def get_template_path(self) -> Optional[Path]:
        """Absolute path of the component template, None if it has none."""

    @abstractmethod
    def get_schema(self) -> Dict[str, Any]:
        """JSON-schema-like props definition (may be empty)."""

    def get_slot_names(self) -> List[str]:
        slots = self.get_definition().get("slots") or {}
        return list(slots.keys()) if isinstance(slots, dict) else list(slots)


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------

class BaseComponentRegistry(ABC):
    """Read access to the set of known components."""

    @abstractmethod
    def get_all_components(self) -> List[Component]:
        """All known components."""

    def find(self, plugin_id: str) -> Component:
        """Get a component by plugin id. Raises ComponentNotFoundException."""
        for component in self.get_all_components():
            if component.plugin_id == plugin_id:
                return component
        raise ComponentNotFoundException(f"Unable to find component \"{plugin_id}\" in the component repository.")

    def create_instance(self, plugin_id: str) -> Component:
        return self.find(plugin_id)

    def has_component(self, plugin_id: str) -> bool:
        try:
            self.find(plugin_id)
            return True
        except ComponentNotFoundException:
            return False

    def get_components_by_machine_name(self, machine_name: str) -> Dict[str, Component]:
        """Components sharing a machine name, keyed by provider (discovery order)."""
        matches: Dict[str, Component] = {}
        for component in self.get_all_components():
            definition = component.get_definition()
            if definition.get("machineName") == machine_name:
                matches[definition["provider"]] = component
        return matches


class InMemoryComponentRegistry(BaseComponentRegistry):
    """Dict-backed registry; components are registered explicitly."""

    def __init__(self, components: Optional[Iterable[Component]] = None):
        self.components: Dict[str, Component] = {}
        for component in components or []:
            self.register(component)

    def register(self, component: Component) -> None:
        if component.plugin_id in self.components:
            logger.warning(f"Component '{component.plugin_id}' registered twice; replacing it")
        self.components[component.plugin_id] = component

    def unregister(self, plugin_id: str) -> None:
        self.components.pop(plugin_id, None)

    def clear(self) -> None:
        self.components.clear()

    def get_all_components(self) -> List[Component]:
        return list(self.components.values())

    def find(self, plugin_id: str) -> Component:
        component = self.components.get(plugin_id)
        if component is None:
            raise ComponentNotFoundException(
                f"Unable to find component \"{plugin_id}\" in the component repository."
            )
        return component
