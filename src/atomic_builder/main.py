# src/atomic_builder/main.py
from dotenv import load_dotenv
load_dotenv()
import asyncio
import logging
import argparse
import os

from quart import Quart, jsonify
from quart_cors import cors
import hypercorn.asyncio
from hypercorn.config import Config
from werkzeug.exceptions import HTTPException

from atomic_builder.core.config import APP_CONFIG

# --- Logging Setup ---
handler = logging.StreamHandler()
handler.setFormatter(logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s'))

root_logger = logging.getLogger()
root_logger.handlers.clear()
root_logger.addHandler(handler)
root_logger.setLevel(logging.INFO)

app_logger = logging.getLogger("quart.app")
app_logger.setLevel(logging.INFO)  # Ensures quart.app messages are shown
app_logger.handlers.clear()
app_logger.addHandler(handler)
app_logger.propagate = False

logging.getLogger("hypercorn.access").propagate = False
logging.getLogger("hypercorn.error").propagate = False


def create_app():
    template_folder = os.path.join(os.path.dirname(os.path.abspath(__file__)), 'templates')

    app = Quart(__name__, template_folder=template_folder)
    app = cors(app, allow_origin=APP_CONFIG.CORS_ORIGIN)

    from atomic_builder.api.story_routes import story_bp
    from atomic_builder.api.component_routes import components_bp

    app.register_blueprint(story_bp)  # /_cl_server, consumed by the preview tool
    app.register_blueprint(components_bp)  # /admin/dab/* builder API

    @app.errorhandler(HTTPException)
    async def handle_http_exception(error):
        return jsonify({"error": error.description or error.name}), error.code

    @app.before_serving
    async def startup():
        """
        Runs once before the server starts serving requests.
        Creates the settings database and runs the first component discovery.
        """
        try:
            from atomic_builder.components.settings import init_database
            init_database()
        except Exception as e:
            app_logger.error(f"Failed to initialize settings database: {e}", exc_info=True)
            raise  # Fatal error - forms and state cannot work without it

        from atomic_builder.components.manager import get_component_manager
        manager = get_component_manager()
        app_logger.info(
            f"Serving {len(manager.get_all_components())} component(s) from {manager.site_root}"
            f" (development mode: {APP_CONFIG.DEVELOPMENT_MODE})"
        )

    return app

app = create_app()

async def main(args):
    print("\n--- Starting Hypercorn Server for Quart App ---")
    config = Config()
    config.bind = [f"{args.host}:{args.port}"]
    config.accesslog = None
    config.errorlog = None
    print(f"Server starting on http://{args.host}:{args.port}")
    await hypercorn.asyncio.serve(app, config)


def run():
    parser = argparse.ArgumentParser(description="Run the Atomic Builder component server.")
    parser.add_argument(
        "--host",
        type=str,
        default="127.0.0.1",
        help="Host address to bind the server to. Use '0.0.0.0' for Docker."
    )
    parser.add_argument(
        "--port",
        type=int,
        default=5050,
        help="Port to bind the server to."
    )
    parser.add_argument("--site-root", type=str, default=None, help="Directory holding the modules/ and themes/ trees.")
    parser.add_argument("--dev", action="store_true", help="Refresh the asset query string on every story render.")
    args = parser.parse_args()

    if args.site_root:
        from atomic_builder.components.manager import reset_component_manager
        from atomic_builder.components.renderer import reset_component_renderer
        APP_CONFIG.SITE_ROOT = args.site_root
        reset_component_manager()
        reset_component_renderer()
        print(f"\n--- SITE ROOT: {args.site_root} ---\n")

    if args.dev:
        APP_CONFIG.DEVELOPMENT_MODE = True
        print("\n--- DEVELOPMENT MODE: asset query string refreshed on every story render. ---\n")

    try:
        asyncio.run(main(args))
    except KeyboardInterrupt:
        print("\nServer shut down.")


if __name__ == "__main__":
    run()
