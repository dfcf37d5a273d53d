# src/atomic_builder/core/config.py
import os
from dotenv import load_dotenv

load_dotenv()


def _env_flag(name: str, default: str = "false") -> bool:
    return os.environ.get(name, default).lower() in ("1", "true", "yes")


class AppConfig:
    """
    Holds static configuration settings for the application.
    These values are read from the environment at startup; tests and the CLI
    may override them before the services are first created.
    """
    # --- Site layout ---
    SITE_ROOT = os.environ.get("DAB_SITE_ROOT", "web") # Directory holding the modules/ and themes/ trees.
    CUSTOM_MODULES_PREFIX = "modules/custom" # Extensions below this path are offered as component providers.
    CUSTOM_THEMES_PREFIX = "themes/custom"

    # --- Persistence ---
    DB_PATH = os.environ.get("DAB_DB_PATH", "atomic_builder.db") # sqlite file for settings and state.

    # --- Story endpoint ---
    DEVELOPMENT_MODE = _env_flag("DAB_DEVELOPMENT_MODE") # If True, the story endpoint refreshes the asset query string on every render.
    EXTENSION_ASCENT_MAX_DEPTH = int(os.environ.get("DAB_EXTENSION_ASCENT_MAX_DEPTH", "32")) # Max parent directories visited while looking for a <dir>.info.yml marker.

    # --- Component scaffolding ---
    COMPONENT_DOCUMENTATION_URL = "https://www.drupal.org/docs/develop/theming-drupal/using-single-directory-components/annotated-example-componentyml"
    DEFAULT_COMPONENT_TYPES = {
        "atoms": "Atoms",
        "molecules": "Molecules",
        "organisms": "Organisms",
        "templates": "Templates",
        "pages": "Pages",
        "other": "Other",
    }
    DEFAULT_GROUP = "other"
    MACHINE_NAME_PATTERN = r"^[a-z]+_?[a-z]*$"

    # --- HTTP ---
    BASE_PATH = "/admin/dab/components"
    CORS_ORIGIN = os.environ.get("DAB_CORS_ORIGIN", "*")
    RESPONSIVE_OPTIONS = {
        "reset": "Base",
        "desktop": "Desktop",
        "mobile": "Mobile",
        "tablet": "Tablet",
    }

APP_CONFIG = AppConfig()
