"""
Tests for the admin forms: add/edit, delete/duplicate confirmation, filter,
component types configuration and cache clear.
"""
import pytest

from atomic_builder.components import settings
from atomic_builder.components.forms import (
    AddComponentForm,
    CacheClearForm,
    ComponentFilterForm,
    ConfigureComponentsTypesForm,
    ConfirmationComponentForm,
    SDCExplorerForm,
)
from atomic_builder.components.story import ASSET_QUERY_STRING_KEYS
from atomic_builder.core.exceptions import ComponentNotFoundException, FormValidationException


def add_values(machine_name="hero_banner", provider="sdc_custom", group="organisms", **extra):
    values = {
        "yaml": {
            "name": extra.pop("name", "Hero banner"),
            "machine_name": machine_name,
            "group": group,
            "description": extra.pop("description", "Top of the page"),
        },
        "provider": provider,
    }
    values.update(extra)
    return values


# ---------------------------------------------------------------------------
# Add component
# ---------------------------------------------------------------------------

def test_add_form_build(registry, file_manager):
    form = AddComponentForm(registry, file_manager, component_type="atoms")
    built = form.build_form()
    assert built["is_edit"] is False
    assert built["default_values"]["group"] == "atoms"
    assert set(built["options"]["provider"]) == {"Modules", "Themes"}
    assert "demo" in built["options"]["provider"]["Modules"]
    assert "contrib_only" not in built["options"]["provider"]["Modules"]
    assert "organisms" in built["options"]["group"]
    assert set(built["assets"]) == {"add_css", "add_js"}


def test_add_component(registry, file_manager, site_root):
    form = AddComponentForm(registry, file_manager)
    result = form.submit_form(add_values(add_css=True))

    assert result.success
    assert result.redirect == "/admin/dab/components/organisms/hero_banner/sdc_custom"
    assert result.messages[-1]["message"] == "The component hero_banner has been created successfully."

    folder = site_root / "themes" / "custom" / "sdc_custom" / "components" / "organisms" / "hero_banner"
    assert sorted(p.name for p in folder.iterdir()) == [
        "README.md", "hero_banner.component.yml", "hero_banner.css", "hero_banner.twig",
    ]
    component = registry.find("sdc_custom:hero_banner")
    assert component.name == "Hero banner"
    assert component.group == "organisms"
    assert component.get_library_files("css")


@pytest.mark.parametrize("machine_name", ["Hero", "hero-banner", "hero__banner", "hero2"])
def test_add_invalid_machine_name(registry, file_manager, machine_name):
    errors = AddComponentForm(registry, file_manager).validate_form(add_values(machine_name))
    assert "machine_name" in errors


def test_add_unknown_provider(registry, file_manager):
    form = AddComponentForm(registry, file_manager)
    errors = form.validate_form(add_values(provider="ghost"))
    assert errors == {"provider": "The provider ghost does not exist."}
    with pytest.raises(FormValidationException):
        form.submit_form(add_values(provider="ghost"))


def test_add_existing_machine_name(registry, file_manager):
    errors = AddComponentForm(registry, file_manager).validate_form(
        add_values("button", provider="demo", group="atoms")
    )
    assert errors["machine_name"] == "The machine name button is already in use."


def test_add_existing_folder(registry, file_manager, site_root):
    (site_root / "modules" / "custom" / "demo" / "components" / "hero").mkdir(parents=True)
    errors = AddComponentForm(registry, file_manager).validate_form(add_values("hero", provider="demo"))
    assert errors["machine_name"] == "The machine name hero already exists for this provider demo."


def test_add_missing_name(registry, file_manager):
    errors = AddComponentForm(registry, file_manager).validate_form(add_values(name=""))
    assert "name" in errors


@pytest.mark.parametrize("group", ["../../../../../outside", "..", "atoms/../../..", "unknown"])
def test_add_rejects_group_outside_component_types(registry, file_manager, site_root, group):
    form = AddComponentForm(registry, file_manager)
    values = add_values("evil", provider="demo", group=group, name="Evil")

    assert "group" in form.validate_form(values)
    with pytest.raises(FormValidationException):
        form.submit_form(values)
    assert not list(site_root.parent.rglob("evil.component.yml"))


def test_add_group_from_configured_types(registry, file_manager, site_root):
    settings.save_component_types("blocks|Blocks")
    form = AddComponentForm(registry, file_manager)
    assert "group" in form.validate_form(add_values(group="organisms"))
    assert form.validate_form(add_values(group="blocks")) == {}


def test_edit_rejects_group_outside_component_types(registry, file_manager, site_root):
    form = AddComponentForm(registry, file_manager, "atoms", "button", "demo")
    errors = form.validate_form(add_values("button", provider="demo", group="../../escape"))
    assert "group" in errors
    assert (site_root / "modules" / "custom" / "demo" / "components" / "atoms" / "button").is_dir()


def test_components_dir_containment(file_manager):
    inside = file_manager.build_component_folder_path("hero", "demo", "atoms")
    outside = file_manager.build_component_folder_path("hero", "demo", "../../..")
    assert file_manager.is_in_components_dir(inside, "demo")
    assert not file_manager.is_in_components_dir(outside, "demo")


# ---------------------------------------------------------------------------
# Edit component
# ---------------------------------------------------------------------------

def test_edit_unknown_component(registry, file_manager):
    with pytest.raises(ComponentNotFoundException):
        AddComponentForm(registry, file_manager, "atoms", "ghost")


def test_edit_form_defaults(registry, file_manager):
    form = AddComponentForm(registry, file_manager, "atoms", "button", "demo")
    built = form.build_form()
    assert built["is_edit"] is True
    assert built["default_values"]["name"] == "Button"
    assert built["default_values"]["provider"] == "demo"
    assert set(built["assets"]) == {"delete_css", "add_js"}


def test_edit_updates_manifest_and_removes_css(registry, file_manager, site_root):
    form = AddComponentForm(registry, file_manager, "atoms", "button", "demo")
    result = form.submit_form(add_values(
        "button", provider="demo", group="atoms", name="Big button", description="", delete_css=True,
    ))

    assert result.success
    assert result.redirect == "/admin/dab/components/atoms/button/demo"
    folder = site_root / "modules" / "custom" / "demo" / "components" / "atoms" / "button"
    assert not (folder / "button.css").exists()

    component = registry.find("demo:button")
    assert component.name == "Big button"
    # Empty values keep what the manifest already had.
    assert component.description == "A clickable button"
    assert "examples" in component.props["properties"]["label"]


def test_edit_renames_component(registry, file_manager, site_root):
    form = AddComponentForm(registry, file_manager, "atoms", "button", "demo")
    result = form.submit_form(add_values("knob", provider="demo", group="atoms", add_js=True))

    assert result.success
    assert result.redirect == "/admin/dab/components/atoms/knob/demo"
    assert registry.has_component("demo:knob")
    assert not registry.has_component("demo:button")
    folder = site_root / "modules" / "custom" / "demo" / "components" / "atoms" / "knob"
    assert (folder / "knob.twig").is_file()
    assert (folder / "knob.js").is_file()


def test_edit_rename_onto_existing(registry, file_manager):
    form = AddComponentForm(registry, file_manager, "atoms", "button", "demo")
    errors = form.validate_form(add_values("broken", provider="demo", group="atoms"))
    assert errors["machine_name"] == "The machine name broken is already in use."


# ---------------------------------------------------------------------------
# Confirmation (delete / duplicate)
# ---------------------------------------------------------------------------

@pytest.mark.parametrize("component_type, machine_name, action", [
    ("atoms", "button", "publish"),
    ("atoms", "", "delete"),
    ("", "button", "delete"),
    ("atoms", "ghost", "delete"),
])
def test_confirmation_rejects(registry, file_manager, component_type, machine_name, action):
    with pytest.raises(ComponentNotFoundException):
        ConfirmationComponentForm(registry, file_manager, component_type, machine_name, action)


def test_confirmation_build_with_several_providers(registry, file_manager):
    form = ConfirmationComponentForm(registry, file_manager, "atoms", "button", "delete", "demo")
    built = form.build_form()
    assert built["origin"]["type"] == "checkboxes"
    assert set(built["origin"]["options"]) == {"demo", "sdc_custom"}
    assert built["cancel_url"] == "/admin/dab/components/atoms/button/demo"
    assert "provider" not in built

    duplicate = ConfirmationComponentForm(registry, file_manager, "atoms", "button", "duplicate", "demo").build_form()
    assert duplicate["origin"]["type"] == "select"
    assert "Themes" in duplicate["provider"]["options"]


def test_confirmation_delete(registry, file_manager):
    form = ConfirmationComponentForm(registry, file_manager, "atoms", "button", "delete", "demo")
    result = form.submit_form({"origin": "demo"})

    assert result.success
    assert result.redirect == "/admin/dab/components"
    assert not registry.has_component("demo:button")
    assert registry.has_component("sdc_custom:button")


def test_confirmation_delete_defaults_to_current_component(registry, file_manager):
    form = ConfirmationComponentForm(registry, file_manager, "molecules", "card", "delete", "sdc_custom")
    assert form.submit_form({}).success
    assert not registry.has_component("sdc_custom:card")


def test_confirmation_unknown_origin(registry, file_manager):
    form = ConfirmationComponentForm(registry, file_manager, "atoms", "button", "delete", "demo")
    errors = form.validate_form({"origin": ["demo", "ghost"]})
    assert errors == {"origin": "Unknown provider(s): ghost"}


def test_confirmation_duplicate_requires_provider(registry, file_manager):
    form = ConfirmationComponentForm(registry, file_manager, "molecules", "card", "duplicate", "sdc_custom")
    with pytest.raises(FormValidationException) as exc_info:
        form.submit_form({})
    assert "provider" in exc_info.value.errors


def test_confirmation_duplicate(registry, file_manager, site_root):
    form = ConfirmationComponentForm(registry, file_manager, "molecules", "card", "duplicate", "sdc_custom")
    result = form.submit_form({"provider": "demo"})

    assert result.success
    assert registry.has_component("demo:card")
    assert (site_root / "modules" / "custom" / "demo" / "components" / "molecules" / "card" / "card.twig").is_file()


def test_confirmation_duplicate_onto_existing(registry, file_manager):
    form = ConfirmationComponentForm(registry, file_manager, "atoms", "button", "duplicate", "demo")
    result = form.submit_form({"origin": "demo", "provider": "sdc_custom"})

    assert not result.success
    assert result.redirect is None
    errors = [m["message"] for m in result.messages if m["type"] == "error"]
    assert "Folder themes/custom/sdc_custom/components/atoms/button already exists" in errors


# ---------------------------------------------------------------------------
# Filter
# ---------------------------------------------------------------------------

def test_filter_redirect():
    result = ComponentFilterForm("atoms").submit_form({"filter": " but "})
    assert result.redirect == "/admin/dab/components/atoms?filter=but"


def test_filter_without_type():
    assert ComponentFilterForm().submit_form({"filter": ""}).redirect == "/admin/dab/components"


def test_filter_too_long():
    with pytest.raises(FormValidationException):
        ComponentFilterForm().submit_form({"filter": "x" * 65})


# ---------------------------------------------------------------------------
# Component types configuration
# ---------------------------------------------------------------------------

def test_component_types_saved(site_root, messenger):
    form = ConfigureComponentsTypesForm(messenger)
    result = form.submit_form({"component_types": "atoms|Atoms\r\nblocks|Building blocks\r\n"})

    assert result.success
    assert result.redirect == "/admin/dab/config/component-types"
    assert settings.get_component_types_options() == {"atoms": "Atoms", "blocks": "Building blocks"}
    assert form.build_form()["default_values"]["component_types"].startswith("atoms|Atoms")


def test_component_types_invalid_line(site_root):
    errors = ConfigureComponentsTypesForm().validate_form({"component_types": "atoms|Atoms\nBad Name|X"})
    assert errors == {"component_types": 'Line 2: invalid machine name "Bad Name".'}


# ---------------------------------------------------------------------------
# Cache clear
# ---------------------------------------------------------------------------

def test_cache_clear(registry, renderer, messenger):
    result = CacheClearForm(registry, renderer, messenger).submit_form()

    assert result.success
    assert result.messages[-1]["message"] == "Caches cleared, 4 component(s) discovered."
    values = {settings.get_state(key) for key in ASSET_QUERY_STRING_KEYS}
    assert len(values) == 1 and None not in values


# ---------------------------------------------------------------------------
# SDC explorer
# ---------------------------------------------------------------------------

def test_explorer_options_grouped_by_extension(registry, renderer):
    options = SDCExplorerForm(registry, renderer).build_form()["component"]["options"]
    assert options == {
        "module: demo": {"demo:broken": "Broken", "demo:button": "Button"},
        "theme: sdc_custom": {"sdc_custom:button": "Theme button", "sdc_custom:card": "Card"},
    }


def test_explorer_fields_from_required_props(registry, renderer):
    form = SDCExplorerForm(registry, renderer).build_form("sdc_custom:button")
    assert form["component"]["default_value"] == "sdc_custom:button"
    assert form["component_fields"] == {
        "label": {"type": "textfield", "title": "Label", "required": True},
        "count": {"type": "number", "title": "Count", "required": True},
        "outlined": {"type": "checkbox", "title": "Outlined", "required": True},
    }


def test_explorer_without_required_list(registry, renderer):
    form = SDCExplorerForm(registry, renderer)
    assert form.build_form("demo:button")["component_fields"] == {}
    assert form.build_form("ghost:button")["component_fields"] == {}
    assert form.build_form()["component_fields"] == {}


def test_explorer_renders_component(registry, renderer):
    result = SDCExplorerForm(registry, renderer).submit_form({
        "component": "sdc_custom:button",
        "selected_component": {"label": "Go", "count": "3", "outlined": "on"},
    })
    assert result.success
    assert result.markup == '<a class="theme-button">Go</a>'
    assert result.to_dict()["markup"] == result.markup


def test_explorer_validation(registry, renderer):
    form = SDCExplorerForm(registry, renderer)
    errors = form.validate_form({
        "component": "sdc_custom:button",
        "selected_component": {"label": "", "count": "many"},
    })
    assert errors == {"label": "Label field is required.", "count": "Count must be a number."}
    assert form.validate_form({}) == {"component": "Select a component."}
    assert form.validate_form({"component": "ghost:x"}) == {"component": "The component ghost:x does not exist."}
    with pytest.raises(FormValidationException):
        form.submit_form({"component": "sdc_custom:button"})


def test_explorer_render_failure_is_reported(registry, renderer, messenger):
    result = SDCExplorerForm(registry, renderer, messenger).submit_form({"component": "demo:broken"})
    assert not result.success
    assert "Unable to render component" in result.markup
    assert messenger.has_errors()
