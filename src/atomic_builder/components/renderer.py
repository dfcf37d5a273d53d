"""
Jinja2 rendering of component templates.

Templates are addressed by plugin id ("<provider>:<machine_name>"), so a
component template can include another component:
``{% include "my_theme:button" %}``.
"""

import logging
import re
from typing import Any, Dict, Optional

from jinja2 import (
    BaseLoader,
    ChainableUndefined,
    Environment,
    TemplateError,
    TemplateNotFound,
    TemplateSyntaxError,
    select_autoescape,
)
from markupsafe import Markup

from atomic_builder.components.attributes import Attributes, render_attributes
from atomic_builder.components.base import BaseComponentRegistry, Component
from atomic_builder.core.exceptions import ComponentNotFoundException, TemplateNotFoundException

logger = logging.getLogger("quart.app")


class ComponentTemplateLoader(BaseLoader):
    """Resolve plugin ids to the component's template file."""

    def __init__(self, registry: BaseComponentRegistry):
        self.registry = registry

    def get_source(self, environment, template):
        try:
            component = self.registry.find(template)
        except ComponentNotFoundException:
            raise TemplateNotFound(template)

        path = component.get_template_path()
        if path is None or not path.exists():
            raise TemplateNotFound(template)

        source = path.read_text(encoding="utf-8")
        mtime = path.stat().st_mtime

        def uptodate():
            try:
                return path.stat().st_mtime == mtime
            except OSError:
                return False

        return source, str(path), uptodate


def _clean_class(value: Any) -> str:
    """Lowercase, dash-separated identifier usable as a CSS class."""
    value = re.sub(r"[\s_]+", "-", str(value).strip().lower())
    return re.sub(r"[^a-z0-9-]", "", value)


def _without(value: Any, *keys: str) -> Any:
    if isinstance(value, Attributes):
        copy = Attributes(value.to_dict())
        return copy.remove_attribute(*keys)
    if isinstance(value, dict):
        return {k: v for k, v in value.items() if k not in keys}
    return value


class ComponentRenderer:
    """Renders components and inline slot templates."""

    def __init__(self, registry: BaseComponentRegistry):
        self.registry = registry
        self.environment = Environment(
            loader=ComponentTemplateLoader(registry),
            autoescape=select_autoescape(default=True, default_for_string=True),
            undefined=ChainableUndefined,
        )
        self.environment.filters["t"] = lambda value, *args, **kwargs: value
        self.environment.filters["clean_class"] = _clean_class
        self.environment.filters["without"] = _without
        self.environment.filters["attributes"] = render_attributes

    def render_inline(self, source: str, context: Optional[Dict[str, Any]] = None) -> Markup:
        """Render a template string (slot content) with the given context."""
        try:
            template = self.environment.from_string(source)
            return Markup(template.render(context or {}))
        except TemplateError as e:
            raise TemplateNotFoundException(f"Invalid inline template: {e}") from e

    def render_component(
        self,
        component: Component,
        props: Optional[Dict[str, Any]] = None,
        slots: Optional[Dict[str, Any]] = None,
    ) -> Markup:
        """
        Render a component template.

        Props become template variables; slots are markup already rendered
        by the caller and are marked safe. An empty Attributes object is
        provided when the caller passes no attributes.
        """
        context: Dict[str, Any] = dict(props or {})
        if not isinstance(context.get("attributes"), Attributes):
            context["attributes"] = Attributes(
                context["attributes"] if isinstance(context.get("attributes"), dict) else None
            )
        for slot_name, slot_value in (slots or {}).items():
            context[slot_name] = Markup(slot_value) if isinstance(slot_value, str) else slot_value

        try:
            template = self.environment.get_template(component.plugin_id)
            return Markup(template.render(context))
        except TemplateNotFound as e:
            raise TemplateNotFoundException(
                f"Unable to find the template \"{e.name}\" for component \"{component.plugin_id}\"."
            ) from e
        except TemplateSyntaxError as e:
            raise TemplateNotFoundException(
                f"Template for component \"{component.plugin_id}\" is invalid: {e}"
            ) from e
        except TemplateError as e:
            raise TemplateNotFoundException(
                f"Unable to render component \"{component.plugin_id}\": {e}"
            ) from e

    def clear_cache(self) -> None:
        """Drop compiled templates."""
        if self.environment.cache is not None:
            self.environment.cache.clear()
        logger.info("Component template cache cleared")


# ---------------------------------------------------------------------------
# Singleton
# ---------------------------------------------------------------------------

_renderer_instance: Optional[ComponentRenderer] = None


def get_component_renderer() -> ComponentRenderer:
    """Get or create the singleton renderer bound to the component manager."""
    global _renderer_instance
    if _renderer_instance is None:
        from atomic_builder.components.manager import get_component_manager
        _renderer_instance = ComponentRenderer(get_component_manager())
    return _renderer_instance


def reset_component_renderer() -> None:
    global _renderer_instance
    _renderer_instance = None
