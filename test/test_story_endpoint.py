"""
Tests for the story endpoint: argument decoding, story file and provider
resolution, context partitioning and the wrapped HTML output.
"""
import base64
import json

import pytest

from atomic_builder.components import settings
from atomic_builder.components.attributes import Attributes
from atomic_builder.components.story import (
    ASSET_QUERY_STRING_KEYS,
    StoryEndpoint,
    build_render_context,
    decode_arguments,
)
from atomic_builder.core.exceptions import ComponentNotFoundException


def encode(args) -> str:
    return base64.b64encode(json.dumps(args).encode("utf-8")).decode("ascii")


@pytest.fixture
def endpoint(registry, renderer, site_root):
    return StoryEndpoint(registry, renderer, site_root=site_root)


CARD_STORY = "themes/custom/sdc_custom/components/molecules/card/card.stories.yml"


# ---------------------------------------------------------------------------
# Arguments
# ---------------------------------------------------------------------------

def test_decode_get_arguments():
    assert decode_arguments("GET", encode({"label": "Go"})) == {"label": "Go"}


def test_decode_post_arguments():
    assert decode_arguments("POST", body=b'{"label": "Go"}') == {"label": "Go"}


@pytest.mark.parametrize("params", [None, "", "%%%not-base64%%%", encode([1, 2]), encode("text"),
                                    base64.b64encode(b"{broken").decode()])
def test_invalid_get_arguments_default_to_empty(params):
    assert decode_arguments("GET", params) == {}


def test_invalid_post_body_defaults_to_empty():
    assert decode_arguments("POST", body=b"not json") == {}
    assert decode_arguments("POST", body=b"") == {}
    assert decode_arguments("POST", body=b"[]") == {}


# ---------------------------------------------------------------------------
# Resolution
# ---------------------------------------------------------------------------

def test_find_story_file_strips_unknown_leading_segments(endpoint, site_root):
    found = endpoint.find_story_file(f"storybook/build/{CARD_STORY}")
    assert found == site_root / CARD_STORY


def test_find_story_file_accepts_absolute_path(endpoint, site_root):
    path = site_root / CARD_STORY
    assert endpoint.find_story_file(str(path)) == path


def test_find_story_file_missing(endpoint):
    assert endpoint.find_story_file("nowhere/ghost.stories.yml") is None
    assert endpoint.find_story_file("") is None


def test_find_extension_name_uses_nearest_info_file(endpoint, site_root):
    assert endpoint.find_extension_name(site_root / CARD_STORY) == "sdc_custom"


def test_find_extension_name_without_marker_terminates(endpoint, site_root):
    orphan = site_root / "orphans" / "deep" / "er" / "thing.stories.yml"
    orphan.parent.mkdir(parents=True)
    orphan.write_text("title: Orphan\n")
    with pytest.raises(ComponentNotFoundException):
        endpoint.find_extension_name(orphan)


def test_find_extension_name_respects_max_depth(registry, renderer, site_root):
    shallow = StoryEndpoint(registry, renderer, site_root=site_root, max_depth=2)
    with pytest.raises(ComponentNotFoundException):
        shallow.find_extension_name(site_root / CARD_STORY)


def test_get_component_picks_provider_of_story_location(endpoint):
    theme_story = "themes/custom/sdc_custom/components/atoms/button/button.stories.yml"
    module_story = "modules/custom/demo/components/atoms/button/button.stories.yml"
    assert endpoint.get_component(theme_story).plugin_id == "sdc_custom:button"
    assert endpoint.get_component(module_story).plugin_id == "demo:button"


def test_get_component_empty_filename(endpoint):
    with pytest.raises(ComponentNotFoundException, match="empty story file name"):
        endpoint.get_component("")


# ---------------------------------------------------------------------------
# Context
# ---------------------------------------------------------------------------

def test_partition_routes_slots_and_props(registry):
    card = registry.find("sdc_custom:card")
    context = build_render_context(card, {"title": "T", "body": "<p>x</p>", "extra": 1})
    assert context.slots == {"body": "<p>x</p>"}
    assert set(context.props) == {"title", "extra"}
    assert not set(context.slots) & set(context.props)


def test_attributes_mapping_is_upcast_when_declared(registry):
    card = registry.find("sdc_custom:card")
    context = build_render_context(card, {"attributes": {"class": ["extra"], "id": "c1"}})
    assert isinstance(context.props["attributes"], Attributes)
    assert context.props["attributes"]["id"] == "c1"


def test_attributes_mapping_left_alone_when_not_declared(registry):
    button = registry.find("demo:button")
    context = build_render_context(button, {"attributes": {"id": "b1"}})
    assert context.props["attributes"] == {"id": "b1"}


# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------

def test_render_card_with_slot_and_attributes(endpoint):
    html = endpoint.render(CARD_STORY, {
        "title": "Hello",
        "body": "<p>{{ title }}</p>",
        "attributes": {"class": ["extra"]},
    })
    assert html.startswith('<div id="___cl-wrapper">')
    assert 'class="extra card"' in html
    assert "<h2>Hello</h2>" in html
    assert "<p>Hello</p>" in html


def test_render_escapes_props(endpoint):
    html = endpoint.render(CARD_STORY, {"title": "<script>x</script>"})
    assert "<script>" not in html
    assert "&lt;script&gt;" in html


def test_render_unknown_story_returns_error_fragment(endpoint):
    html = endpoint.render("somewhere/unknown.stories.yml", {})
    assert html.startswith('<div id="___cl-wrapper">')
    assert "messages--error" in html
    assert "Unable to find component" in html


def test_render_missing_template_returns_error_fragment(endpoint):
    html = endpoint.render("modules/custom/demo/components/broken/broken.stories.yml", {})
    assert "messages--error" in html
    assert "Unable to render component" in html


def test_refresh_asset_query_string_sets_both_keys(endpoint):
    value = endpoint.refresh_asset_query_string(request_time=36 ** 2)
    assert value == "100"
    for key in ASSET_QUERY_STRING_KEYS:
        assert settings.get_state(key) == "100"


def test_render_missing_nested_prop_renders_empty(endpoint, site_root):
    (site_root / CARD_STORY).with_name("card.twig").write_text("<div>{{ item.title }}{{ item['x'].y }}</div>", encoding="utf-8")
    assert endpoint.render(CARD_STORY, {}) == '<div id="___cl-wrapper"><div></div></div>'


def test_render_runtime_template_error_returns_error_fragment(endpoint, site_root):
    (site_root / CARD_STORY).with_name("card.twig").write_text("<div>{{ missing() }}</div>", encoding="utf-8")
    html = endpoint.render(CARD_STORY, {})
    assert html.startswith('<div id="___cl-wrapper">')
    assert "Unable to render component" in html


def test_render_runtime_error_in_slot_returns_error_fragment(endpoint):
    html = endpoint.render(CARD_STORY, {"body": "{{ undefined_call() }}"})
    assert "messages--error" in html
