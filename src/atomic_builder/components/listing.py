"""
Component listing and admin menu derivation.

Both enumerate the registry and group components by their declared group
("other" when undeclared). URLs are produced from the route table below so
the listing, the menu and the form redirects always agree with the HTTP
routes registered in atomic_builder.api.
"""

import logging
from typing import Any, Dict, List, Optional
from urllib.parse import quote, urlencode

from atomic_builder.components.base import BaseComponentRegistry, Component
from atomic_builder.core.config import APP_CONFIG

logger = logging.getLogger("quart.app")

# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------

ROUTES: Dict[str, str] = {
    "dab.component_type_list": "/admin/dab/components/{component_type}",
    "dab.component": "/admin/dab/components/{component_type}/{machine_name}/{provider}",
    "dab.component_embed": "/admin/dab/components/{component_type}/{machine_name}/{provider}/embed",
    "dab.add_component": "/admin/dab/components/{component_type}/add",
    "dab.edit_component": "/admin/dab/components/{component_type}/{machine_name}/{provider}/edit",
    "dab.delete_component": "/admin/dab/components/{component_type}/{machine_name}/{provider}/delete",
    "dab.duplicate_component": "/admin/dab/components/{component_type}/{machine_name}/{provider}/duplicate",
    "dab.documentation": "/admin/dab/documentation/{component_type}/{machine_name}",
    "dab.component_types_config": "/admin/dab/config/component-types",
    "dab.cache_clear": "/admin/dab/cache-clear",
    "dab.menu": "/admin/dab/menu",
    "dab.explorer": "/admin/dab/explorer",
}

# Route parameters that may be left out, with the path they fall back to.
OPTIONAL_PARAMETER_ROUTES = {
    ("dab.component_type_list", "component_type"): APP_CONFIG.BASE_PATH,
}


def build_url(
    route_name: str,
    route_parameters: Optional[Dict[str, Any]] = None,
    query: Optional[Dict[str, Any]] = None,
) -> str:
    """
    Resolve a route name and its parameters to a path.

    Parameters that are not placeholders of the route are appended to the
    query string, as are the entries of ``query``. Raises KeyError for an
    unknown route and ValueError when a required parameter is missing.
    """
    pattern = ROUTES[route_name]
    params = {k: v for k, v in (route_parameters or {}).items() if v not in (None, "")}
    extra_query: Dict[str, Any] = {}

    placeholders = [part[1:-1] for part in pattern.split("/") if part.startswith("{")]
    for name in placeholders:
        if name not in params:
            fallback = OPTIONAL_PARAMETER_ROUTES.get((route_name, name))
            if fallback is None:
                raise ValueError(f"Route '{route_name}' requires parameter '{name}'")
            pattern = fallback
            break

    values = {}
    for key, value in params.items():
        if key in placeholders:
            values[key] = quote(str(value), safe="")
        else:
            extra_query[key] = value

    path = pattern.format(**values) if "{" in pattern else pattern
    extra_query.update({k: v for k, v in (query or {}).items() if v not in (None, "")})
    if extra_query:
        path = f"{path}?{urlencode(extra_query)}"
    return path


def get_component_group(component: Component) -> str:
    return component.get_definition().get("group") or APP_CONFIG.DEFAULT_GROUP


# ---------------------------------------------------------------------------
# Listing
# ---------------------------------------------------------------------------

class ComponentListing:
    """Grouped overview of every discovered component."""

    def __init__(self, registry: BaseComponentRegistry):
        self.registry = registry

    @staticmethod
    def get_title(component_type: Optional[str] = None) -> str:
        return "Drupal Atomic Builder" if not component_type else component_type.capitalize()

    def build(self, component_type: Optional[str] = None, filter: str = "") -> Dict[str, Any]:
        """
        Returns:
            {"title", "component_types": {group: {title, url, class, components}},
             "components": {plugin_id: entry}}

        A group is listed even when the filter hides all its components.
        """
        component_list: Dict[str, Dict[str, Any]] = {}
        all_components: Dict[str, Dict[str, Any]] = {}

        for component in self.registry.get_all_components():
            definition = component.get_definition()
            machine_name = definition["machineName"]
            group = get_component_group(component)

            if group not in component_list:
                component_list[group] = {
                    "title": group.capitalize(),
                    "url": build_url("dab.component_type_list", {"component_type": group}),
                    "class": ["active"] if component_type == group else [],
                    "components": {},
                }

            if filter and filter not in machine_name:
                continue

            entry = {
                "title": definition.get("name") or machine_name.capitalize(),
                "machine_name": component.plugin_id,
                "description": definition.get("description") or "",
                "url": build_url("dab.component", {
                    "component_type": group,
                    "machine_name": machine_name,
                    "provider": definition["provider"],
                }),
            }
            component_list[group]["components"][component.plugin_id] = entry
            all_components[component.plugin_id] = entry

        component_types = dict(sorted(component_list.items()))
        if component_type:
            components = (component_types.get(component_type) or {}).get("components", {})
        else:
            components = all_components

        return {
            "title": self.get_title(component_type),
            "component_types": component_types,
            "components": components,
            "filter": filter,
        }


# ---------------------------------------------------------------------------
# Menu
# ---------------------------------------------------------------------------

class MenuDeriver:
    """Admin menu links derived from the registry."""

    ROOT_MENU_ID = "dab.menu"

    def __init__(self, registry: BaseComponentRegistry):
        self.registry = registry

    @staticmethod
    def _link(base_definition: Dict[str, Any], **values: Any) -> Dict[str, Any]:
        link = dict(base_definition)
        link.update(values)
        link["url"] = build_url(link["route_name"], link.get("route_parameters"))
        return link

    def get_derivative_definitions(self, base_definition: Optional[Dict[str, Any]] = None) -> Dict[str, Dict[str, Any]]:
        base_definition = base_definition or {}
        links: Dict[str, Dict[str, Any]] = {}

        for component in self.registry.get_all_components():
            group = get_component_group(component)

            group_id = f"dab.components:{group}"
            links[group_id] = self._link(
                base_definition,
                id=group_id,
                title=group.capitalize(),
                parent=self.ROOT_MENU_ID,
                route_name="dab.component_type_list",
                route_parameters={"component_type": group},
            )

            add_id = f"dab.components:add_{group}"
            links[add_id] = self._link(
                base_definition,
                id=add_id,
                title=f"Add {group.rstrip('s')}",
                parent=group_id,
                route_name="dab.add_component",
                route_parameters={"component_type": group},
                weight=-50,
            )

            self._build_component_menu_items(base_definition, links, component, group, group_id)

        return links

    def _build_component_menu_items(
        self,
        base_definition: Dict[str, Any],
        links: Dict[str, Dict[str, Any]],
        component: Component,
        group: str,
        parent: str,
    ) -> None:
        definition = component.get_definition()
        provider = definition["provider"]
        machine_name = definition["machineName"]
        route_parameters = {
            "component_type": group,
            "machine_name": machine_name,
            "provider": provider,
        }

        component_id = f"dab.components:{provider}_{machine_name}"
        links[component_id] = self._link(
            base_definition,
            id=component_id,
            title=f"{definition.get('name') or machine_name} ({component.plugin_id})",
            parent=parent,
            route_name="dab.component",
            route_parameters=dict(route_parameters),
        )

        for action, title, weight in (("delete", "Delete", 50), ("edit", "Edit", 1), ("duplicate", "Duplicate", 2)):
            link_id = f"dab.{action}_component:{provider}_{machine_name}"
            links[link_id] = self._link(
                base_definition,
                id=link_id,
                title=title,
                parent=component_id,
                route_name=f"dab.{action}_component",
                route_parameters=dict(route_parameters),
                weight=weight,
            )

    def get_menu_tree(self) -> List[Dict[str, Any]]:
        """Derived links nested under their parents, children sorted by weight then title."""
        links = {k: dict(v, children=[]) for k, v in self.get_derivative_definitions().items()}
        roots: List[Dict[str, Any]] = []
        for link in links.values():
            parent = links.get(link.get("parent"))
            (parent["children"] if parent is not None else roots).append(link)

        def sort(items: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
            items.sort(key=lambda item: (item.get("weight", 0), item["title"]))
            for item in items:
                sort(item["children"])
            return items

        return sort(roots)
