"""
Component scaffolding templates.

Generates the stub files of a new Single Directory Component.
Used by ComponentFileManager when the "Add component" form is submitted.
"""

from __future__ import annotations

import copy
from typing import Any, Dict, Optional

import yaml

from atomic_builder.core.config import APP_CONFIG

# ---------------------------------------------------------------------------
# Manifest (<machine_name>.component.yml)
# ---------------------------------------------------------------------------

MANIFEST_HEADER = "# Documentation: {url}\n"

DEFAULT_PROPS = {
    "type": "object",
    "properties": {
        "name": {
            "type": "string",
            "examples": {
                "Example 1": "Hello world",
            },
        },
    },
}

# ---------------------------------------------------------------------------
# Template (<machine_name>.twig)
# ---------------------------------------------------------------------------

TWIG_TEMPLATE = """\
{{# @file
  @component: {machine_name}
  @props:
    - name:
      type: string
#}}
{{{{ name }}}}"""

# ---------------------------------------------------------------------------
# Documentation (README.md)
# ---------------------------------------------------------------------------

README_TEMPLATE = """\
# {name}

{description}

# Usage

Describe the usage of your component here.

# Additional Info

Add additional info if needed here.
"""

# ---------------------------------------------------------------------------
# Assets (<machine_name>.js / <machine_name>.css)
# ---------------------------------------------------------------------------

JS_TEMPLATE = """\
(function (Drupal) {{
  Drupal.behaviors.{machine_name} = {{
    attach: function attach(context) {{
      console.log('{machine_name} JS');
    }}
  }};
}})(Drupal);
"""

CSS_TEMPLATE = """\
/*
 * {machine_name} CSS
 */
"""


def build_manifest(
    name: str,
    group: Optional[str] = None,
    description: Optional[str] = None,
) -> Dict[str, Any]:
    """Manifest mapping for a new component, in the order it is written."""
    manifest: Dict[str, Any] = {
        "name": name,
        "status": "experimental",
    }
    if group:
        manifest["group"] = group
    if description:
        manifest["description"] = description
    manifest["props"] = copy.deepcopy(DEFAULT_PROPS)
    return manifest


def dump_manifest(manifest: Dict[str, Any], with_header: bool = False) -> str:
    """Serialize a manifest to YAML, keeping the key order."""
    body = yaml.safe_dump(manifest, sort_keys=False, allow_unicode=True, default_flow_style=False)
    if with_header:
        return MANIFEST_HEADER.format(url=APP_CONFIG.COMPONENT_DOCUMENTATION_URL) + body
    return body

