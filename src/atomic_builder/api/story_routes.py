"""
Story rendering endpoint used by the external preview tool.

Endpoints:
- GET  /_cl_server?_storyFileName=...&_params=<base64 JSON>  Render a story
- POST /_cl_server?_storyFileName=...  (JSON body)            Render a story

The response is always HTML wrapped in ``<div id="___cl-wrapper">``, including
when the component cannot be found.
"""

import logging

from quart import Blueprint, Response, request

from atomic_builder.components.manager import get_component_manager
from atomic_builder.components.renderer import get_component_renderer
from atomic_builder.components.story import StoryEndpoint, decode_arguments
from atomic_builder.components.utils import generate_error_html, wrap_markup
from atomic_builder.core.config import APP_CONFIG

story_bp = Blueprint("story", __name__)
app_logger = logging.getLogger("quart.app")

NO_STORE = "no-store, max-age=0"


def _html_response(body: str, status: int = 200) -> Response:
    response = Response(body, status=status, mimetype="text/html")
    response.headers["Cache-Control"] = NO_STORE
    return response


@story_bp.route("/_cl_server", methods=["GET", "POST"])
async def render_story():
    """Render the component matching ``_storyFileName`` with the story arguments."""
    try:
        body = await request.get_data() if request.method == "POST" else None
        arguments = decode_arguments(request.method, request.args.get("_params"), body)
        story_filename = request.args.get("_storyFileName", "")

        endpoint = StoryEndpoint(get_component_manager(), get_component_renderer())
        if APP_CONFIG.DEVELOPMENT_MODE:
            endpoint.refresh_asset_query_string()

        return _html_response(endpoint.render(story_filename, arguments))
    except Exception as e:
        app_logger.error(f"Story rendering failed: {e}", exc_info=True)
        return _html_response(
            wrap_markup(generate_error_html(str(e), title="Unable to render component")),
            status=500,
        )
