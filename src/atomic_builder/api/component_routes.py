"""
Admin API routes of the component builder.

Endpoints:
- GET  /admin/dab/components[/<component_type>]?filter=      Grouped component listing
- POST /admin/dab/components[/<component_type>]              Submit the listing filter
- GET  /admin/dab/components/<type>/<machine>/<provider>     Component page (preview settings)
- GET  /admin/dab/components/<type>/<machine>/<provider>/embed HTML preview page
- GET|POST /admin/dab/components/<type>/add                  Add component form
- GET|POST /admin/dab/components/<type>/<machine>/<provider>/edit      Edit component form
- GET|POST /admin/dab/components/<type>/<machine>/<provider>/delete    Delete confirmation
- GET|POST /admin/dab/components/<type>/<machine>/<provider>/duplicate Duplicate confirmation
- GET  /admin/dab/documentation/<type>/<machine>             README rendered as HTML
- GET|POST /admin/dab/config/component-types                 Component types configuration
- POST /admin/dab/cache-clear                                Reload components, clear caches
- GET  /admin/dab/menu                                       Derived admin menu links
- GET|POST /admin/dab/explorer                           Render a component with entered prop values
- GET  /assets/<path>                                        CSS/JS files of the site root
- GET  /healthz                                              Liveness check
"""

import logging
from pathlib import Path
from typing import Any, Dict, Optional

from quart import Blueprint, abort, jsonify, render_template, request, send_file

from atomic_builder.components import settings
from atomic_builder.components.file_manager import ComponentFileManager
from atomic_builder.components.forms import (
    AddComponentForm,
    CacheClearForm,
    ComponentFilterForm,
    ConfigureComponentsTypesForm,
    ConfirmationComponentForm,
    SDCExplorerForm,
)
from atomic_builder.components.listing import ComponentListing, MenuDeriver, build_url
from atomic_builder.components.manager import get_component_manager, get_extension_list
from atomic_builder.components.markdown import convert_to_html
from atomic_builder.components.renderer import get_component_renderer
from atomic_builder.components.story import ASSET_QUERY_STRING_KEYS
from atomic_builder.core.config import APP_CONFIG
from atomic_builder.core.exceptions import (
    ComponentNotFoundException,
    FormValidationException,
    TemplateNotFoundException,
)
from atomic_builder.core.messenger import Messenger

components_bp = Blueprint("components", __name__)
app_logger = logging.getLogger("quart.app")

ASSET_SUFFIXES = {".css", ".js"}


def _file_manager(messenger: Messenger) -> ComponentFileManager:
    return ComponentFileManager(get_extension_list(), messenger)


async def _get_payload() -> Dict[str, Any]:
    data = await request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def _not_found(message: str):
    return jsonify({"error": message}), 404


def _resolve_component(machine_name: str, provider: Optional[str]):
    """(components_by_provider, component) or raise ComponentNotFoundException."""
    components, component = get_component_manager().get_component_data(machine_name, provider)
    if component is None or (provider is not None and provider not in components):
        raise ComponentNotFoundException(f"Component {machine_name} not found")
    return components, component


def _asset_url(path: str) -> str:
    query_string = settings.get_state(ASSET_QUERY_STRING_KEYS[0])
    return f"/assets/{path}" + (f"?{query_string}" if query_string else "")


# ---------------------------------------------------------------------------
# Listing
# ---------------------------------------------------------------------------

@components_bp.route("/admin/dab/components", methods=["GET", "POST"])
@components_bp.route("/admin/dab/components/<component_type>", methods=["GET", "POST"])
async def list_components(component_type: Optional[str] = None):
    """
    Grouped component listing.

    GET returns the listing for the optional ``filter`` query parameter;
    POST submits the filter form and returns the redirect URL.
    """
    try:
        filter_form = ComponentFilterForm(component_type)

        if request.method == "POST":
            result = filter_form.submit_form(await _get_payload())
            return jsonify(result.to_dict())

        current_filter = request.args.get("filter", "")
        listing = ComponentListing(get_component_manager()).build(component_type, current_filter)
        listing["form"] = filter_form.build_form(current_filter)
        return jsonify(listing)

    except FormValidationException as e:
        return jsonify({"errors": e.errors}), 400
    except Exception as e:
        app_logger.error(f"Failed to list components: {e}", exc_info=True)
        return jsonify({"error": str(e)}), 500


# ---------------------------------------------------------------------------
# Component page & preview
# ---------------------------------------------------------------------------

@components_bp.route("/admin/dab/components/<component_type>/<machine_name>/<provider>", methods=["GET"])
async def get_component_page(component_type: str, machine_name: str, provider: str):
    """Everything the component page needs to drive the preview iframe."""
    try:
        components, component = _resolve_component(machine_name, provider)
        versions = component.get_versions()
        route_parameters = {
            "component_type": component_type,
            "machine_name": machine_name,
            "provider": provider,
        }
        responsive = request.args.get("iframe-width") or "reset"
        version = request.args.get("version")

        page: Dict[str, Any] = {
            "title": machine_name.capitalize(),
            "component": component.to_api_dict(),
            "component_path": str(component.path) if component.path else None,
            "iframe_src": build_url("dab.component_embed", route_parameters, query=dict(request.args)),
            "reset_url": build_url("dab.component", route_parameters),
            "documentation_url": build_url("dab.documentation", {
                "component_type": component_type,
                "machine_name": machine_name,
            }),
            "reload_button": CacheClearForm(get_component_manager(), get_component_renderer()).build_form(),
            "responsive_select": {
                "id": "iframe-resize-select",
                "options": APP_CONFIG.RESPONSIVE_OPTIONS,
                "value": responsive,
            },
            "template_select": None,
            "version_select": None,
            "settings": {
                "base_path": APP_CONFIG.BASE_PATH,
                "route_parameters": route_parameters,
            },
        }

        if len(components) > 1:
            page["template_select"] = {
                "id": "template-select",
                "options": {p: p for p in components},
                "value": provider,
            }

        if len(versions) > 1:
            page["version_select"] = {
                "id": "version-select",
                "options": {v: v for v in versions},
                "value": version if version in versions else next(iter(versions)),
            }

        return jsonify(page)

    except ComponentNotFoundException as e:
        return _not_found(str(e))
    except Exception as e:
        app_logger.error(f"Failed to build component page for {provider}:{machine_name}: {e}", exc_info=True)
        return jsonify({"error": str(e)}), 500


@components_bp.route("/admin/dab/components/<component_type>/<machine_name>/<provider>/embed", methods=["GET"])
async def embed_component(component_type: str, machine_name: str, provider: str):
    """Standalone HTML page rendering one version of the component."""
    try:
        _, component = _resolve_component(machine_name, provider)
    except ComponentNotFoundException as e:
        return _not_found(str(e))

    try:
        versions = component.get_versions()
        version = request.args.get("version")
        data = versions.get(version) if version in versions else next(iter(versions.values()), {})

        libraries = _file_manager(Messenger()).get_libraries_files_from_extension(provider)
        stylesheets = component.get_library_files("css") + libraries["css"]
        scripts = component.get_library_files("js") + libraries["js"]

        renderer = get_component_renderer()
        try:
            markup = renderer.render_component(component, dict(data))
        except TemplateNotFoundException as e:
            app_logger.warning(f"Embed of {component.plugin_id} failed: {e}")
            markup = None
            error = str(e)
        else:
            error = None

        body = await render_template(
            "embed.html",
            page_title=f"{component_type} / {machine_name.capitalize()}",
            stylesheets=[_asset_url(path) for path in stylesheets],
            scripts=[_asset_url(path) for path in scripts],
            markup=markup,
            error=error,
            data=data,
            template_path=component.plugin_id,
        )
        return body, 200, {"Content-Type": "text/html; charset=utf-8", "Cache-Control": "no-store, max-age=0"}

    except Exception as e:
        app_logger.error(f"Failed to embed {provider}:{machine_name}: {e}", exc_info=True)
        return jsonify({"error": str(e)}), 500


@components_bp.route("/admin/dab/documentation/<component_type>/<machine_name>", methods=["GET"])
async def get_documentation(component_type: str, machine_name: str):
    try:
        _, component = _resolve_component(machine_name, request.args.get("provider"))
        return jsonify({
            "title": "Documentation",
            "plugin_id": component.plugin_id,
            "markup": convert_to_html(component.documentation),
        })
    except ComponentNotFoundException as e:
        return _not_found(str(e))
    except Exception as e:
        app_logger.error(f"Failed to render documentation of {machine_name}: {e}", exc_info=True)
        return jsonify({"error": str(e)}), 500


# ---------------------------------------------------------------------------
# Add / edit
# ---------------------------------------------------------------------------

async def _handle_add_form(form: AddComponentForm):
    if request.method == "GET":
        return jsonify({"form": form.build_form()})

    result = form.submit_form(await _get_payload())
    return jsonify(result.to_dict()), 200 if result.success else 500


@components_bp.route("/admin/dab/components/<component_type>/add", methods=["GET", "POST"])
async def add_component(component_type: str):
    try:
        messenger = Messenger()
        form = AddComponentForm(
            get_component_manager(),
            _file_manager(messenger),
            component_type=component_type,
            messenger=messenger,
        )
        return await _handle_add_form(form)
    except FormValidationException as e:
        return jsonify({"errors": e.errors}), 400
    except Exception as e:
        app_logger.error(f"Failed to add component: {e}", exc_info=True)
        return jsonify({"error": str(e)}), 500


@components_bp.route("/admin/dab/components/<component_type>/<machine_name>/<provider>/edit", methods=["GET", "POST"])
async def edit_component(component_type: str, machine_name: str, provider: str):
    try:
        messenger = Messenger()
        form = AddComponentForm(
            get_component_manager(),
            _file_manager(messenger),
            component_type=component_type,
            machine_name=machine_name,
            provider=provider,
            messenger=messenger,
        )
        return await _handle_add_form(form)
    except ComponentNotFoundException as e:
        return _not_found(str(e))
    except FormValidationException as e:
        return jsonify({"errors": e.errors}), 400
    except Exception as e:
        app_logger.error(f"Failed to edit component {provider}:{machine_name}: {e}", exc_info=True)
        return jsonify({"error": str(e)}), 500


# ---------------------------------------------------------------------------
# Delete / duplicate
# ---------------------------------------------------------------------------

@components_bp.route(
    "/admin/dab/components/<component_type>/<machine_name>/<provider>/<action>",
    methods=["GET", "POST"],
)
async def confirm_component_action(component_type: str, machine_name: str, provider: str, action: str):
    """Delete or duplicate confirmation; any other action is not found."""
    try:
        messenger = Messenger()
        form = ConfirmationComponentForm(
            get_component_manager(),
            _file_manager(messenger),
            component_type,
            machine_name,
            action,
            provider=provider,
            messenger=messenger,
        )
        if request.method == "GET":
            return jsonify({"form": form.build_form()})

        result = form.submit_form(await _get_payload())
        return jsonify(result.to_dict()), 200 if result.success else 500

    except ComponentNotFoundException as e:
        return _not_found(str(e))
    except FormValidationException as e:
        return jsonify({"errors": e.errors}), 400
    except Exception as e:
        app_logger.error(f"Component action '{action}' failed for {provider}:{machine_name}: {e}", exc_info=True)
        return jsonify({"error": str(e)}), 500


# ---------------------------------------------------------------------------
# Configuration & maintenance
# ---------------------------------------------------------------------------

@components_bp.route("/admin/dab/config/component-types", methods=["GET", "POST"])
async def configure_component_types():
    try:
        form = ConfigureComponentsTypesForm(Messenger())
        if request.method == "GET":
            return jsonify({"form": form.build_form()})

        result = form.submit_form(await _get_payload())
        return jsonify(result.to_dict())

    except FormValidationException as e:
        return jsonify({"errors": e.errors}), 400
    except Exception as e:
        app_logger.error(f"Failed to configure component types: {e}", exc_info=True)
        return jsonify({"error": str(e)}), 500


@components_bp.route("/admin/dab/cache-clear", methods=["POST"])
async def clear_cache():
    try:
        form = CacheClearForm(get_component_manager(), get_component_renderer(), Messenger())
        return jsonify(form.submit_form().to_dict())
    except Exception as e:
        app_logger.error(f"Cache clear failed: {e}", exc_info=True)
        return jsonify({"error": str(e)}), 500


@components_bp.route("/admin/dab/menu", methods=["GET"])
async def get_menu():
    try:
        deriver = MenuDeriver(get_component_manager())
        return jsonify({
            "links": deriver.get_derivative_definitions(),
            "tree": deriver.get_menu_tree(),
        })
    except Exception as e:
        app_logger.error(f"Failed to derive menu links: {e}", exc_info=True)
        return jsonify({"error": str(e)}), 500


@components_bp.route("/admin/dab/explorer", methods=["GET", "POST"])
async def explore_component():
    """
    GET returns the explorer form for the optional ``component`` query parameter;
    POST renders the selected component with the submitted prop values.
    """
    try:
        form = SDCExplorerForm(get_component_manager(), get_component_renderer(), Messenger())
        if request.method == "GET":
            return jsonify({"form": form.build_form(request.args.get("component"))})

        result = form.submit_form(await _get_payload())
        return jsonify(result.to_dict())

    except FormValidationException as e:
        return jsonify({"errors": e.errors}), 400
    except Exception as e:
        app_logger.error(f"Component explorer failed: {e}", exc_info=True)
        return jsonify({"error": str(e)}), 500


@components_bp.route("/assets/<path:asset_path>", methods=["GET"])
async def get_asset(asset_path: str):
    """Serve a CSS or JS file from below the site root."""
    site_root = get_extension_list().site_root
    path = (site_root / asset_path).resolve()
    try:
        path.relative_to(site_root)
    except ValueError:
        abort(404)
    if path.suffix not in ASSET_SUFFIXES or not path.is_file():
        abort(404)
    return await send_file(Path(path))


@components_bp.route("/healthz", methods=["GET"])
async def healthz():
    return jsonify({"status": "ok", "components": len(get_component_manager().get_all_components())})
