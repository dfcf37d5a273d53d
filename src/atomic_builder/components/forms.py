"""
Admin forms of the component builder.

Each form follows the same three steps:
  build_form()            -> default values and select options for the UI
  validate_form(values)   -> {field: message}, empty when the input is valid
  submit_form(values)     -> FormResult (raises FormValidationException on invalid input)

Raw payloads are parsed with pydantic models first; the domain checks
(machine name pattern, provider existence, path collisions) follow.
"""

import logging
import re
import sqlite3
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, Field, ValidationError, field_validator

from atomic_builder.components import settings
from atomic_builder.components.file_manager import ASSET_TYPES, ComponentFileManager
from atomic_builder.components.listing import build_url
from atomic_builder.components.manager import ComponentManager
from atomic_builder.components.models import ComponentDefinition
from atomic_builder.components.renderer import ComponentRenderer
from atomic_builder.components.story import ASSET_QUERY_STRING_KEYS
from atomic_builder.components.utils import asset_query_string, generate_error_html
from atomic_builder.core.config import APP_CONFIG
from atomic_builder.core.exceptions import (
    ComponentNotFoundException,
    FormValidationException,
    TemplateNotFoundException,
)
from atomic_builder.core.messenger import Messenger

logger = logging.getLogger("quart.app")

CONFIRMATION_ACTIONS = ("delete", "duplicate")


@dataclass
class FormResult:
    """Outcome of a submitted form."""

    success: bool
    messages: List[Dict[str, str]] = field(default_factory=list)
    redirect: Optional[str] = None
    markup: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {"success": self.success, "messages": self.messages, "redirect": self.redirect}
        if self.markup is not None:
            data["markup"] = self.markup
        return data


# ---------------------------------------------------------------------------
# Input models
# ---------------------------------------------------------------------------

class ComponentYamlValues(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    machine_name: str = Field(..., min_length=1, max_length=64)
    group: Optional[str] = None
    description: str = ""

    @field_validator("name", "machine_name", "description", mode="before")
    @classmethod
    def _strip(cls, value):
        return value.strip() if isinstance(value, str) else value

    @field_validator("group", mode="before")
    @classmethod
    def _empty_group(cls, value):
        return value or None


class AddComponentValues(BaseModel):
    yaml: ComponentYamlValues
    provider: str = ""
    add_js: bool = False
    add_css: bool = False
    delete_js: bool = False
    delete_css: bool = False


class ConfirmationValues(BaseModel):
    origin: Union[List[str], str, None] = None
    provider: Optional[str] = None

    @property
    def origins(self) -> List[str]:
        if isinstance(self.origin, list):
            return [o for o in self.origin if o]
        return [self.origin] if self.origin else []


class FilterValues(BaseModel):
    filter: str = Field(default="", max_length=64)


class ComponentTypesValues(BaseModel):
    component_types: str = ""


class ExplorerValues(BaseModel):
    component: Optional[str] = None
    selected_component: Dict[str, Any] = Field(default_factory=dict)


def _validation_errors(error: ValidationError) -> Dict[str, str]:
    """Flatten pydantic errors to {field: message} keyed by the innermost field name."""
    errors: Dict[str, str] = {}
    for item in error.errors():
        loc = [str(part) for part in item.get("loc", ()) if not isinstance(part, int)]
        errors.setdefault(loc[-1] if loc else "form", item.get("msg", "Invalid value"))
    return errors


# ---------------------------------------------------------------------------
# Add / edit
# ---------------------------------------------------------------------------

class AddComponentForm:
    """Creates a component, or edits one when a machine name is given."""

    FORM_ID = "dab_add_component"

    def __init__(
        self,
        registry: ComponentManager,
        file_manager: ComponentFileManager,
        component_type: Optional[str] = None,
        machine_name: Optional[str] = None,
        provider: Optional[str] = None,
        messenger: Optional[Messenger] = None,
    ):
        self.registry = registry
        self.file_manager = file_manager
        self.extension_list = file_manager.extension_list
        self.messenger = messenger if messenger is not None else file_manager.messenger
        self.component_type = component_type
        self.machine_name = machine_name
        self.provider = provider
        self.is_edit = component_type is not None and machine_name is not None
        self.component: Optional[ComponentDefinition] = None

        if self.is_edit:
            _, self.component = registry.get_component_data(machine_name, provider)
            if self.component is None:
                raise ComponentNotFoundException(f"Component {machine_name} not found")

    def build_form(self) -> Dict[str, Any]:
        default_values = {
            "name": "",
            "machine_name": self.machine_name or "",
            "group": self.component_type or "",
            "description": "",
            "provider": "",
        }
        if self.component is not None:
            default_values.update({
                "name": self.component.name,
                "group": self.component.group or "",
                "description": self.component.description,
                "provider": self.component.provider,
            })

        assets = {}
        for asset_type in ASSET_TYPES:
            has_asset = self.component is not None and bool(self.component.get_library_files(asset_type))
            if has_asset:
                assets[f"delete_{asset_type}"] = f"Remove {asset_type} from your component"
            else:
                assets[f"add_{asset_type}"] = f"Add {asset_type} to your component"

        return {
            "form_id": self.FORM_ID,
            "is_edit": self.is_edit,
            "default_values": default_values,
            "options": {
                "group": settings.get_component_types_options(),
                "provider": self.extension_list.get_custom_options(),
            },
            "assets": assets,
            "machine_name_pattern": APP_CONFIG.MACHINE_NAME_PATTERN,
        }

    def exists(self, machine_name: str, provider: Optional[str]) -> bool:
        """True when the provider already has a component with this machine name."""
        return self.registry.has_component(f"{provider}:{machine_name}")

    def _parse(self, values: Dict[str, Any]) -> AddComponentValues:
        try:
            return AddComponentValues(**values)
        except ValidationError as e:
            raise FormValidationException(_validation_errors(e)) from e

    def validate_form(self, values: Dict[str, Any]) -> Dict[str, str]:
        try:
            data = self._parse(values)
        except FormValidationException as e:
            return e.errors

        errors: Dict[str, str] = {}
        machine_name = data.yaml.machine_name
        provider = data.provider

        if not re.match(APP_CONFIG.MACHINE_NAME_PATTERN, machine_name):
            errors["machine_name"] = "Must only be lowercase letters with underscore. Example: machine_name"

        if not self.extension_list.exists(provider):
            errors["provider"] = f"The provider {provider} does not exist."
            return errors

        group = data.yaml.group
        current_group = self.component.group if self.component is not None else None
        if group and group != current_group and group not in settings.get_component_types_options():
            errors["group"] = f"The group {group} is not an allowed component type."
            return errors

        folder = self.file_manager.build_component_folder_path(machine_name, provider, group)
        if not self.file_manager.is_in_components_dir(folder, provider):
            errors["group"] = f"The group {group} resolves outside the components directory of {provider}."
            return errors

        renamed = self.is_edit and machine_name != self.machine_name
        if (not self.is_edit or renamed) and "machine_name" not in errors and self.exists(machine_name, provider):
            errors["machine_name"] = f"The machine name {machine_name} is already in use."

        if not self.is_edit and "machine_name" not in errors:
            candidates = {
                self.file_manager.build_component_folder_path(machine_name, provider, data.yaml.group),
                self.file_manager.build_component_folder_path(machine_name, provider),
            }
            if any(path.exists() for path in candidates):
                errors["machine_name"] = (
                    f"The machine name {machine_name} already exists for this provider {provider}."
                )

        return errors

    def submit_form(self, values: Dict[str, Any]) -> FormResult:
        errors = self.validate_form(values)
        if errors:
            raise FormValidationException(errors)

        data = self._parse(values)
        machine_name = data.yaml.machine_name
        action = "updated" if self.is_edit else "created"

        if self.is_edit:
            result = self._update_component(data)
        else:
            result = self._create_component(data)

        self.registry.reload()

        if not result:
            self.messenger.add_error(
                f"There was an error during the {'update' if self.is_edit else 'creation'} of {machine_name}"
            )
            return FormResult(success=False, messages=self.messenger.all())

        self.messenger.add_status(f"The component {machine_name} has been {action} successfully.")
        return FormResult(
            success=True,
            messages=self.messenger.all(),
            redirect=build_url("dab.component", {
                "component_type": data.yaml.group or APP_CONFIG.DEFAULT_GROUP,
                "machine_name": machine_name,
                "provider": data.provider,
            }),
        )

    def _create_component(self, data: AddComponentValues) -> bool:
        yaml_values = data.yaml
        args = (yaml_values.machine_name, data.provider)
        group = yaml_values.group

        if not self.file_manager.create_component_folder(*args, group):
            return False

        created = all([
            self.file_manager.create_component_file(*args, yaml_values.name, group, yaml_values.description),
            self.file_manager.create_readme_file(*args, yaml_values.name, yaml_values.description, group),
            self.file_manager.create_twig_file(*args, group),
        ])

        if data.add_js:
            self.file_manager.create_js_file(*args, group)
        if data.add_css:
            self.file_manager.create_css_file(*args, group)

        logger.info(f"Component {data.provider}:{yaml_values.machine_name} created (success={created})")
        return created

    def _update_component(self, data: AddComponentValues) -> bool:
        component = self.component
        manifest = self.file_manager.load_component_file(component)

        for key, value in data.yaml.model_dump().items():
            if not value or key == "machine_name":
                continue
            manifest[key] = value

        if not self.file_manager.save_component_file(component, manifest):
            return False

        for asset_type in ASSET_TYPES:
            if getattr(data, f"delete_{asset_type}"):
                self.file_manager.delete_component_file(component, asset_type)

        # No-op (False) when provider, machine name and group are unchanged.
        self.file_manager.move_component_folder(
            component,
            data.yaml.machine_name,
            data.provider,
            data.yaml.group,
        )

        for asset_type in ASSET_TYPES:
            if getattr(data, f"add_{asset_type}"):
                self.file_manager.create_asset_file(
                    asset_type, data.yaml.machine_name, data.provider, data.yaml.group
                )

        return not self.messenger.has_errors()


# ---------------------------------------------------------------------------
# Delete / duplicate confirmation
# ---------------------------------------------------------------------------

class ConfirmationComponentForm:
    """Confirms the deletion or duplication of a component."""

    FORM_ID = "dab_confirmation_component_form"

    def __init__(
        self,
        registry: ComponentManager,
        file_manager: ComponentFileManager,
        component_type: Optional[str],
        machine_name: Optional[str],
        action: Optional[str],
        provider: Optional[str] = None,
        messenger: Optional[Messenger] = None,
    ):
        if not machine_name or not component_type or action not in CONFIRMATION_ACTIONS:
            raise ComponentNotFoundException(f"Unknown component action: {action}")

        self.registry = registry
        self.file_manager = file_manager
        self.extension_list = file_manager.extension_list
        self.messenger = messenger if messenger is not None else file_manager.messenger
        self.component_type = component_type
        self.machine_name = machine_name
        self.action = action
        self.provider = provider

        self.components, self.component = registry.get_component_data(machine_name, provider)
        if self.component is None:
            raise ComponentNotFoundException(f"Component {machine_name} not found")

    def build_form(self) -> Dict[str, Any]:
        form: Dict[str, Any] = {
            "form_id": self.FORM_ID,
            "form_action": self.action,
            "message": f"Do you really want to {self.action} the {self.machine_name} component ?",
            "cancel_url": build_url("dab.component", {
                "component_type": self.component_type,
                "machine_name": self.machine_name,
                "provider": self.provider or self.component.provider,
            }),
        }

        if len(self.components) > 1:
            form["origin"] = {
                "type": "checkboxes" if self.action == "delete" else "select",
                "options": {p: p for p in self.components},
                "default_value": self.provider,
            }

        if self.action == "duplicate":
            form["provider"] = {
                "type": "select",
                "options": self.extension_list.get_custom_options(),
                "default_value": self.provider,
            }

        return form

    def _parse(self, values: Dict[str, Any]) -> ConfirmationValues:
        try:
            return ConfirmationValues(**values)
        except ValidationError as e:
            raise FormValidationException(_validation_errors(e)) from e

    def validate_form(self, values: Dict[str, Any]) -> Dict[str, str]:
        try:
            data = self._parse(values)
        except FormValidationException as e:
            return e.errors

        errors: Dict[str, str] = {}
        unknown = [o for o in data.origins if o not in self.components]
        if unknown:
            errors["origin"] = f"Unknown provider(s): {', '.join(unknown)}"
        if self.action == "duplicate" and not self.extension_list.exists(data.provider):
            errors["provider"] = f"The provider {data.provider} does not exist."
        return errors

    def submit_form(self, values: Dict[str, Any]) -> FormResult:
        errors = self.validate_form(values)
        if errors:
            raise FormValidationException(errors)

        data = self._parse(values)
        # Without an explicit origin the component shown on the page is the target.
        origins = data.origins or [self.component.provider]
        succeeded = False

        for origin in origins:
            component = self.components[origin]
            if self.action == "delete":
                done = self.file_manager.delete_component(component)
                message = f"The component {self.machine_name} has been deleted."
            else:
                done = self.file_manager.duplicate_component(component, data.provider)
                message = f"The component {self.machine_name} has been duplicated in {data.provider}."

            if done:
                succeeded = True
                self.messenger.add_status(message)
            else:
                self.messenger.add_error(f"An error occurred on component action : {self.action}.")

        self.registry.reload()

        return FormResult(
            success=succeeded,
            messages=self.messenger.all(),
            redirect=build_url("dab.component_type_list") if succeeded else None,
        )


# ---------------------------------------------------------------------------
# Listing filter
# ---------------------------------------------------------------------------

class ComponentFilterForm:
    """Search box of the component listing."""

    FORM_ID = "component_filter_form"

    def __init__(self, component_type: Optional[str] = None):
        self.component_type = component_type

    def build_form(self, current_filter: str = "") -> Dict[str, Any]:
        return {
            "form_id": self.FORM_ID,
            "default_values": {"filter": current_filter or ""},
            "max_length": 64,
        }

    def validate_form(self, values: Dict[str, Any]) -> Dict[str, str]:
        try:
            FilterValues(**values)
        except ValidationError as e:
            return _validation_errors(e)
        return {}

    def submit_form(self, values: Dict[str, Any]) -> FormResult:
        errors = self.validate_form(values)
        if errors:
            raise FormValidationException(errors)
        data = FilterValues(**values)
        return FormResult(
            success=True,
            redirect=build_url(
                "dab.component_type_list",
                {"component_type": self.component_type, "filter": data.filter.strip()},
            ),
        )


# ---------------------------------------------------------------------------
# Component types configuration
# ---------------------------------------------------------------------------

class ConfigureComponentsTypesForm:
    """Edits the ``machine_name|Label`` list of selectable component groups."""

    FORM_ID = "dab_component_type_config_form"

    def __init__(self, messenger: Optional[Messenger] = None):
        self.messenger = messenger if messenger is not None else Messenger()

    def build_form(self) -> Dict[str, Any]:
        return {
            "form_id": self.FORM_ID,
            "default_values": {"component_types": settings.get_component_types_text()},
            "description": "Enter one component type per line in the format: machine_name|Label",
            "options": settings.get_component_types_options(),
        }

    def validate_form(self, values: Dict[str, Any]) -> Dict[str, str]:
        try:
            data = ComponentTypesValues(**values)
        except ValidationError as e:
            return _validation_errors(e)

        for number, line in enumerate(data.component_types.splitlines(), start=1):
            machine_name = line.partition("|")[0].strip()
            if line.strip() and not re.match(r"^[a-z0-9_]+$", machine_name):
                return {"component_types": f"Line {number}: invalid machine name \"{machine_name}\"."}
        return {}

    def submit_form(self, values: Dict[str, Any]) -> FormResult:
        errors = self.validate_form(values)
        if errors:
            raise FormValidationException(errors)

        data = ComponentTypesValues(**values)
        settings.save_component_types(data.component_types)
        self.messenger.add_status("The configuration options have been saved.")
        return FormResult(
            success=True,
            messages=self.messenger.all(),
            redirect=build_url("dab.component_types_config"),
        )


# ---------------------------------------------------------------------------
# SDC explorer
# ---------------------------------------------------------------------------

class SDCExplorerForm:
    """
    Renders any discovered component with hand-entered values.

    The component select is grouped by "<extension_type>: <provider>". Once a
    component is selected, one field is offered per required prop, typed from
    the prop schema; submitting renders the component with those values.
    """

    FORM_ID = "sdc_styleguide_sdc_explorer"

    FIELD_TYPES = {
        "string": "textfield",
        "number": "number",
        "integer": "number",
        "boolean": "checkbox",
    }

    def __init__(
        self,
        registry: ComponentManager,
        renderer: ComponentRenderer,
        messenger: Optional[Messenger] = None,
    ):
        self.registry = registry
        self.renderer = renderer
        self.messenger = messenger if messenger is not None else Messenger()

    def get_component_options(self) -> Dict[str, Dict[str, str]]:
        options: Dict[str, Dict[str, str]] = {}
        for component in self.registry.get_all_components():
            group_name = f"{component.extension_type}: {component.provider}"
            options.setdefault(group_name, {})[component.plugin_id] = component.name
        return options

    def get_component_fields(self, component: ComponentDefinition) -> Dict[str, Dict[str, Any]]:
        """One field per entry of ``props.required``; none when the schema has no required list."""
        schema = component.get_schema()
        required = schema.get("required")
        properties = schema.get("properties") or {}
        if not isinstance(required, list):
            return {}

        fields: Dict[str, Dict[str, Any]] = {}
        for prop_name in required:
            prop = properties.get(prop_name)
            prop = prop if isinstance(prop, dict) else {}
            prop_types = component.get_property_types(prop_name)
            fields[prop_name] = {
                "type": self.FIELD_TYPES.get(prop_types[0] if prop_types else "string", "textfield"),
                "title": prop.get("title") or prop_name.replace("_", " ").capitalize(),
                "required": True,
            }
        return fields

    def _find(self, plugin_id: Optional[str]) -> Optional[ComponentDefinition]:
        if not plugin_id or not self.registry.has_component(plugin_id):
            return None
        return self.registry.find(plugin_id)

    def build_form(self, component: Optional[str] = None) -> Dict[str, Any]:
        form: Dict[str, Any] = {
            "form_id": self.FORM_ID,
            "component": {
                "type": "select",
                "title": "Component",
                "empty_option": "- Select a component -",
                "options": self.get_component_options(),
                "default_value": component,
            },
            "component_fields": {},
        }
        selected = self._find(component)
        if selected is not None:
            form["component_fields"] = self.get_component_fields(selected)
        return form

    def _parse(self, values: Dict[str, Any]) -> ExplorerValues:
        try:
            return ExplorerValues(**values)
        except ValidationError as e:
            raise FormValidationException(_validation_errors(e)) from e

    @staticmethod
    def _coerce(field_type: str, value: Any) -> Any:
        if field_type == "checkbox":
            if isinstance(value, str):
                return value.strip().lower() in ("1", "true", "on", "yes")
            return bool(value)
        if field_type == "number":
            if isinstance(value, bool):
                raise ValueError(value)
            number = float(value)
            return int(number) if number.is_integer() else number
        return "" if value is None else str(value)

    def _collect_props(self, component: ComponentDefinition, submitted: Dict[str, Any]):
        """(props, errors) for the required fields of ``component``."""
        props: Dict[str, Any] = {}
        errors: Dict[str, str] = {}
        for name, field_def in self.get_component_fields(component).items():
            value = submitted.get(name)
            if field_def["type"] != "checkbox" and (value is None or value == ""):
                errors[name] = f"{field_def['title']} field is required."
                continue
            try:
                props[name] = self._coerce(field_def["type"], value)
            except (TypeError, ValueError):
                errors[name] = f"{field_def['title']} must be a number."
        return props, errors

    def validate_form(self, values: Dict[str, Any]) -> Dict[str, str]:
        try:
            data = self._parse(values)
        except FormValidationException as e:
            return e.errors

        component = self._find(data.component)
        if component is None:
            if not data.component:
                return {"component": "Select a component."}
            return {"component": f"The component {data.component} does not exist."}
        _, errors = self._collect_props(component, data.selected_component)
        return errors

    def submit_form(self, values: Dict[str, Any]) -> FormResult:
        errors = self.validate_form(values)
        if errors:
            raise FormValidationException(errors)

        data = self._parse(values)
        component = self._find(data.component)
        props, _ = self._collect_props(component, data.selected_component)

        try:
            markup = str(self.renderer.render_component(component, props))
        except TemplateNotFoundException as e:
            logger.warning(f"Explorer rendering of {component.plugin_id} failed: {e}")
            self.messenger.add_error(str(e))
            return FormResult(
                success=False,
                messages=self.messenger.all(),
                markup=str(generate_error_html(str(e), title="Unable to render component")),
            )

        return FormResult(success=True, messages=self.messenger.all(), markup=markup)


# ---------------------------------------------------------------------------
# Cache clear
# ---------------------------------------------------------------------------

class CacheClearForm:
    """Rediscovers components, drops compiled templates and busts asset URLs."""

    FORM_ID = "cache_clear_form"

    def __init__(
        self,
        registry: ComponentManager,
        renderer: ComponentRenderer,
        messenger: Optional[Messenger] = None,
    ):
        self.registry = registry
        self.renderer = renderer
        self.messenger = messenger if messenger is not None else Messenger()

    def build_form(self) -> Dict[str, Any]:
        return {
            "form_id": self.FORM_ID,
            "id": "cache-reload-button",
            "value": "↻",
            "title": "Reload the page and clear all cache on click or keyboard shortcut",
        }

    def validate_form(self, values: Optional[Dict[str, Any]] = None) -> Dict[str, str]:
        return {}

    def submit_form(self, values: Optional[Dict[str, Any]] = None) -> FormResult:
        count = self.registry.reload()
        self.renderer.clear_cache()

        query_string = asset_query_string()
        try:
            settings.set_state_multiple({key: query_string for key in ASSET_QUERY_STRING_KEYS})
        except sqlite3.Error as e:
            logger.error(f"Failed to refresh the asset query string: {e}", exc_info=True)
            self.messenger.add_warning("Asset caches could not be refreshed.")

        self.messenger.add_status(f"Caches cleared, {count} component(s) discovered.")
        return FormResult(success=True, messages=self.messenger.all())
