"""
Pytest configuration and fixtures

Every test gets its own site root below tmp_path:

  web/
    modules/custom/demo/                 module "demo"
      components/atoms/button/           button (css, README, two versions)
      components/broken/                 manifest without template, no group
    modules/contrib/contrib_only/        non-custom module, never offered as provider
    themes/custom/sdc_custom/            theme "sdc_custom" (+ libraries.yml)
      components/atoms/button/           second provider of "button", required props
      components/molecules/card/         slots + attributes prop
"""
import textwrap
from pathlib import Path

import pytest

from atomic_builder.components import settings
from atomic_builder.components.manager import (
    get_component_manager,
    get_extension_list,
    reset_component_manager,
)
from atomic_builder.components.renderer import get_component_renderer, reset_component_renderer
from atomic_builder.core.config import APP_CONFIG
from atomic_builder.core.messenger import Messenger


def write(path: Path, content: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(textwrap.dedent(content).lstrip("\n"), encoding="utf-8")
    return path


def build_site(root: Path) -> Path:
    demo = root / "modules" / "custom" / "demo"
    write(demo / "demo.info.yml", """
        name: Demo
        type: module
        core_version_requirement: ^10
    """)
    write(demo / "components" / "atoms" / "button" / "button.component.yml", """
        name: Button
        status: stable
        group: atoms
        description: A clickable button
        props:
          type: object
          properties:
            label:
              type: string
              examples:
                Primary: Click me
                Secondary: Cancel
            variant:
              type: string
              examples:
                Primary: primary
                Secondary: secondary
    """)
    write(demo / "components" / "atoms" / "button" / "button.twig",
          "<button{{ attributes.addClass('button', 'button--' ~ variant) }}>{{ label }}</button>\n")
    write(demo / "components" / "atoms" / "button" / "button.css", ".button { color: red; }\n")
    write(demo / "components" / "atoms" / "button" / "README.md", """
        # Button

        Use **buttons** for actions.

        - primary
        - secondary
    """)
    write(demo / "components" / "atoms" / "button" / "button.stories.yml", "title: Button\n")
    write(demo / "components" / "broken" / "broken.component.yml", "name: Broken\n")
    write(demo / "components" / "broken" / "broken.stories.yml", "title: Broken\n")

    write(root / "modules" / "contrib" / "contrib_only" / "contrib_only.info.yml", """
        name: Contrib only
        type: module
    """)

    theme = root / "themes" / "custom" / "sdc_custom"
    write(theme / "sdc_custom.info.yml", """
        name: SDC Custom
        type: theme
    """)
    write(theme / "sdc_custom.libraries.yml", """
        global:
          version: 1.x
          css:
            theme:
              css/style.css: {}
              css/print.css: { media: print }
          js:
            js/global.js: {}
          dependencies:
            - core/drupal
    """)
    write(theme / "css" / "style.css", "body { margin: 0; }\n")
    write(theme / "components" / "atoms" / "button" / "button.component.yml", """
        name: Theme button
        group: atoms
        props:
          type: object
          required: [label, count, outlined]
          properties:
            label:
              type: string
              title: Label
            count:
              type: number
              title: Count
            outlined:
              type: boolean
    """)
    write(theme / "components" / "atoms" / "button" / "button.twig", "<a class=\"theme-button\">{{ label }}</a>\n")
    write(theme / "components" / "atoms" / "button" / "button.stories.yml", "title: Theme button\n")
    write(theme / "components" / "molecules" / "card" / "card.component.yml", """
        name: Card
        group: molecules
        props:
          type: object
          properties:
            attributes:
              type: ['Drupal\\Core\\Template\\Attribute']
            title:
              type: string
              examples:
                - Hello card
        slots:
          body:
            title: Body
    """)
    write(theme / "components" / "molecules" / "card" / "card.twig",
          "<div{{ attributes.addClass('card') }}><h2>{{ title }}</h2>{{ body }}</div>\n")
    write(theme / "components" / "molecules" / "card" / "card.stories.yml", "title: Card\n")
    return root


@pytest.fixture(autouse=True)
def reset_services():
    """Drop the service singletons before and after each test."""
    reset_component_manager()
    reset_component_renderer()
    yield
    reset_component_manager()
    reset_component_renderer()


@pytest.fixture(scope="function")
def site_root(tmp_path, monkeypatch) -> Path:
    """Fresh site tree plus a fresh settings database, wired into APP_CONFIG."""
    root = build_site(tmp_path / "web")
    monkeypatch.setattr(APP_CONFIG, "SITE_ROOT", str(root))
    monkeypatch.setattr(APP_CONFIG, "DB_PATH", str(tmp_path / "settings.db"))
    monkeypatch.setattr(APP_CONFIG, "DEVELOPMENT_MODE", False)
    settings.init_database()
    return root.resolve()


@pytest.fixture
def registry(site_root):
    return get_component_manager()


@pytest.fixture
def renderer(registry):
    return get_component_renderer()


@pytest.fixture
def messenger():
    return Messenger()


@pytest.fixture
def file_manager(registry, messenger):
    from atomic_builder.components.file_manager import ComponentFileManager
    return ComponentFileManager(get_extension_list(), messenger)
