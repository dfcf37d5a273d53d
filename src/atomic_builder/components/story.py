"""
Story endpoint: renders one component for an external preview tool.

The preview tool sends the path of the story file it is displaying plus the
story arguments. The component is the one whose machine name matches the
story file name and whose provider is the closest ancestor directory holding
a ``<dir>.info.yml`` marker.
"""

from __future__ import annotations

import base64
import binascii
import json
import logging
import sqlite3
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Union

from atomic_builder.components import settings
from atomic_builder.components.attributes import Attributes
from atomic_builder.components.base import BaseComponentRegistry, Component
from atomic_builder.components.extensions import INFO_SUFFIX
from atomic_builder.components.renderer import ComponentRenderer
from atomic_builder.components.utils import asset_query_string, generate_error_html, wrap_markup
from atomic_builder.core.config import APP_CONFIG
from atomic_builder.core.exceptions import ComponentNotFoundException, TemplateNotFoundException

logger = logging.getLogger("quart.app")

ASSET_QUERY_STRING_KEYS = ("system.css_js_query_string", "asset.css_js_query_string")


@dataclass
class RenderContext:
    """Story arguments split into component props and slot templates."""

    props: Dict[str, Any] = field(default_factory=dict)
    slots: Dict[str, str] = field(default_factory=dict)


def decode_arguments(
    method: str,
    params: Optional[str] = None,
    body: Union[bytes, str, None] = None,
) -> Dict[str, Any]:
    """
    Decode story arguments.

    GET carries base64-encoded JSON in ``_params``; POST carries raw JSON in
    the body. Anything missing, undecodable or not a JSON object yields {}.
    """
    raw: Union[bytes, str, None] = None
    method = method.upper()
    if method == "GET" and params:
        try:
            raw = base64.b64decode(params, validate=True)
        except (binascii.Error, ValueError):
            logger.debug("Story arguments are not valid base64, using empty arguments")
            return {}
    elif method == "POST":
        raw = body

    if not raw:
        return {}

    try:
        args = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError, TypeError):
        logger.debug("Story arguments are not valid JSON, using empty arguments")
        return {}
    return args if isinstance(args, dict) else {}


def attributes_prop_needs_upcasting(context: Dict[str, Any], component: Component) -> bool:
    """
    True when the caller sent a plain mapping for ``attributes`` and the
    component schema declares that prop as the attributes object.
    """
    if not isinstance(context.get("attributes"), dict):
        return False
    has_attributes_prop = getattr(component, "has_attributes_prop", None)
    if callable(has_attributes_prop):
        return has_attributes_prop()
    prop_type = ((component.get_schema().get("properties") or {}).get("attributes") or {}).get("type")
    if isinstance(prop_type, list):
        prop_type = prop_type[0] if prop_type else None
    return prop_type in ("Drupal\\Core\\Template\\Attribute", "Attribute")


def build_render_context(component: Component, context: Dict[str, Any]) -> RenderContext:
    """Partition the story arguments on the component's declared slot names."""
    context = dict(context)
    if attributes_prop_needs_upcasting(context, component):
        context["attributes"] = Attributes(context["attributes"])

    slot_names = set(component.get_slot_names())
    slots = {k: v if isinstance(v, str) else json.dumps(v) for k, v in context.items() if k in slot_names}
    props = {k: v for k, v in context.items() if k not in slot_names}
    return RenderContext(props=props, slots=slots)


class StoryEndpoint:
    """Resolves a story request to a component and renders it."""

    def __init__(
        self,
        registry: BaseComponentRegistry,
        renderer: ComponentRenderer,
        site_root: Optional[Path] = None,
        max_depth: Optional[int] = None,
    ):
        self.registry = registry
        self.renderer = renderer
        self.site_root = Path(site_root if site_root is not None else APP_CONFIG.SITE_ROOT).resolve()
        self.max_depth = max_depth if max_depth is not None else APP_CONFIG.EXTENSION_ASCENT_MAX_DEPTH

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------

    def find_story_file(self, filename: str) -> Optional[Path]:
        """
        Locate a story file whose path is relative to an unknown directory.

        Leading path segments are dropped one at a time until the remainder
        exists, either as given or below the site root.
        """
        if not filename:
            return None

        parts = [p for p in Path(filename).parts if p not in ("", ".")]
        if Path(filename).is_absolute() and Path(filename).is_file():
            return Path(filename)

        for start in range(len(parts)):
            candidate = Path(*parts[start:])
            if candidate.is_absolute():
                continue
            for base in (self.site_root, Path.cwd()):
                path = base / candidate
                if path.is_file():
                    return path.resolve()
        return None

    def find_extension_name(self, path: Path) -> str:
        """Walk up from the story file to the nearest extension directory."""
        directory = Path(path).resolve().parent
        for _ in range(self.max_depth):
            if (directory / f"{directory.name}{INFO_SUFFIX}").is_file():
                return directory.name
            if directory.parent == directory:
                break
            directory = directory.parent
        raise ComponentNotFoundException(f"Unable to find the extension owning the story file \"{path}\".")

    def get_component(self, story_filename: Optional[str]) -> Component:
        if not story_filename:
            raise ComponentNotFoundException("Impossible to find a story with an empty story file name.")

        machine_name = Path(story_filename).name.split(".")[0]
        story_file = self.find_story_file(story_filename)
        if story_file is None:
            raise ComponentNotFoundException(f"Unable to find the story file \"{story_filename}\".")

        provider = self.find_extension_name(story_file)
        return self.registry.create_instance(f"{provider}:{machine_name}")

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    def generate_markup(self, component: Component, context: Dict[str, Any]) -> str:
        render_context = build_render_context(component, context)
        slot_context = {**render_context.props, **render_context.slots}
        slots = {
            name: self.renderer.render_inline(template, slot_context)
            for name, template in render_context.slots.items()
        }
        return self.renderer.render_component(component, render_context.props, slots)

    def render(self, story_filename: Optional[str], arguments: Dict[str, Any]) -> str:
        """
        Full response body for a story request.

        Resolution and template failures become an inline error fragment
        inside the wrapper; they never propagate.
        """
        try:
            component = self.get_component(story_filename)
            markup = self.generate_markup(component, arguments)
        except ComponentNotFoundException as e:
            logger.warning(f"Story endpoint: {e}")
            markup = generate_error_html(str(e))
        except TemplateNotFoundException as e:
            logger.warning(f"Story endpoint: {e}")
            markup = generate_error_html(str(e), title="Unable to render component")
        return wrap_markup(markup)

    def refresh_asset_query_string(self, request_time: Optional[float] = None) -> Optional[str]:
        """
        Point asset URLs at a fresh query string so the preview reloads
        edited CSS/JS. Returns the new value, None when it could not be stored.
        """
        query_string = asset_query_string(request_time)
        try:
            settings.set_state_multiple({key: query_string for key in ASSET_QUERY_STRING_KEYS})
        except sqlite3.Error as e:
            logger.error(f"Failed to refresh the asset query string: {e}", exc_info=True)
            return None
        return query_string
