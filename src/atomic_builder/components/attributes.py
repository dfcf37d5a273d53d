"""
HTML attributes object handed to component templates.

Templates print it directly (``<div{{ attributes }}>``) or chain the
camelCase helpers they are used to (``attributes.addClass('card')``).
"""

from __future__ import annotations

from collections.abc import MutableMapping
from typing import Any, Dict, Iterable, Iterator, List, Optional

from markupsafe import Markup, escape


def _as_class_list(value: Any) -> List[str]:
    if value is None or value is False:
        return []
    if isinstance(value, str):
        return [c for c in value.split() if c]
    if isinstance(value, Iterable):
        classes: List[str] = []
        for item in value:
            classes.extend(_as_class_list(item))
        return classes
    return [str(value)]


class Attributes(MutableMapping):
    """Ordered mapping of HTML attribute name to value."""

    def __init__(self, attributes: Optional[Dict[str, Any]] = None):
        self._storage: Dict[str, Any] = {}
        for name, value in (attributes or {}).items():
            self.set_attribute(name, value)

    # --- Mapping protocol ---

    def __getitem__(self, name: str) -> Any:
        return self._storage[name]

    def __setitem__(self, name: str, value: Any) -> None:
        self.set_attribute(name, value)

    def __delitem__(self, name: str) -> None:
        del self._storage[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._storage)

    def __len__(self) -> int:
        return len(self._storage)

    # --- Mutators ---

    def set_attribute(self, name: str, value: Any) -> "Attributes":
        if name == "class":
            self._storage["class"] = []
            self.add_class(value)
        else:
            self._storage[name] = value
        return self

    def remove_attribute(self, *names: str) -> "Attributes":
        for name in names:
            self._storage.pop(name, None)
        return self

    def add_class(self, *classes: Any) -> "Attributes":
        current = self._storage.setdefault("class", [])
        for css_class in _as_class_list(classes):
            if css_class not in current:
                current.append(css_class)
        return self

    def remove_class(self, *classes: Any) -> "Attributes":
        to_remove = set(_as_class_list(classes))
        if "class" in self._storage:
            self._storage["class"] = [c for c in self._storage["class"] if c not in to_remove]
        return self

    def has_class(self, css_class: str) -> bool:
        return css_class in self._storage.get("class", [])

    def get_class(self) -> List[str]:
        return list(self._storage.get("class", []))

    # Template-facing aliases
    addClass = add_class
    removeClass = remove_class
    hasClass = has_class
    setAttribute = set_attribute
    removeAttribute = remove_attribute

    # --- Rendering ---

    def to_dict(self) -> Dict[str, Any]:
        return {k: (list(v) if isinstance(v, list) else v) for k, v in self._storage.items()}

    def __str__(self) -> str:
        parts = []
        for name, value in self._storage.items():
            if value is None or value is False:
                continue
            if name == "class" and not value:
                continue
            if value is True:
                parts.append(f" {escape(name)}")
                continue
            if isinstance(value, (list, tuple)):
                value = " ".join(str(v) for v in value)
            parts.append(f' {escape(name)}="{escape(value)}"')
        return "".join(parts)

    def __html__(self) -> str:
        return str(self)

    def __repr__(self) -> str:
        return f"Attributes({self.to_dict()!r})"

    def __eq__(self, other: Any) -> bool:
        if isinstance(other, Attributes):
            return self.to_dict() == other.to_dict()
        return NotImplemented


def render_attributes(value: Any) -> Markup:
    """Render a mapping (or Attributes) as an HTML attribute string."""
    if not isinstance(value, Attributes):
        value = Attributes(value or {})
    return Markup(str(value))
