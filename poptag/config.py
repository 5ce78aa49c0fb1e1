import os
from pathlib import Path
from typing import Dict, Any

# Base paths
BASE_DIR = Path(__file__).parent.parent

# Backend endpoints - the product/template service that feeds the designer
API_BASE_URL = "http://localhost:5050"
API_ENDPOINTS = {
    "login": "/api/login",                    # Exchange username/password for a bearer token
    "product": "/api/products/{sku}",         # Single product by SKU
    "search": "/api/products",                # ?search= suggestions by SKU or name
    "templates": "/api/templates",            # Template metadata list
    "template": "/api/templates/{template_id}",
    "brand_segments": "/api/brand-segments",  # Brand labels offered to ad hoc entry
}

# Default configuration values (can be overridden by environment variables)
DEFAULT_CONFIG = {
    # Backend Configuration
    "API_BASE_URL": API_BASE_URL,
    "API_TIMEOUT_SECONDS": 30.0,
    "API_USERNAME": "",  # Can be stored, but passwords must not be

    # Page Configuration - physical page, converted to points
    "PAGE_WIDTH": "210mm",
    "PAGE_HEIGHT": "297mm",
    "PRINT_SCALE": 3,  # Export resolution multiplier (3x = 216 DPI)

    # Presentation defaults
    "LAYOUT_DENSITY": "1",
    "SHOW_STRIKE_PRICE": "true",  # String to match env var format

    # Fonts - measured and drawn with the same files
    "FONT_REGULAR": "DejaVuSans.ttf",
    "FONT_BOLD": "DejaVuSans-Bold.ttf",
    "FONT_BLACK": "DejaVuSans-Bold.ttf",

    # Output Configuration
    "OUTPUT_DIR": "output",
    "PRINTER_NAME": "",  # Empty means the system default printer
}

ENV_MAPPINGS = {
    "API_BASE_URL": "POPTAG_API_BASE_URL",
    "API_TIMEOUT_SECONDS": "POPTAG_API_TIMEOUT",
    "API_USERNAME": "POPTAG_API_USERNAME",
    "PAGE_WIDTH": "POPTAG_PAGE_WIDTH",
    "PAGE_HEIGHT": "POPTAG_PAGE_HEIGHT",
    "PRINT_SCALE": "POPTAG_PRINT_SCALE",
    "LAYOUT_DENSITY": "POPTAG_LAYOUT_DENSITY",
    "SHOW_STRIKE_PRICE": "POPTAG_SHOW_STRIKE_PRICE",
    "FONT_REGULAR": "POPTAG_FONT_REGULAR",
    "FONT_BOLD": "POPTAG_FONT_BOLD",
    "FONT_BLACK": "POPTAG_FONT_BLACK",
    "OUTPUT_DIR": "POPTAG_OUTPUT_DIR",
    "PRINTER_NAME": "POPTAG_PRINTER_NAME",
}


# Configuration with environment variable override
class Config:
    """Configuration manager with environment variable precedence."""

    def __init__(self):
        self._config = DEFAULT_CONFIG.copy()
        self._sources = {}  # Track where each config value came from
        self._load_env_overrides()

    def _load_env_overrides(self):
        """Load environment variable overrides."""
        for config_key, env_var in ENV_MAPPINGS.items():
            env_value = os.getenv(env_var)
            if env_value is not None:
                # Convert numeric values
                if config_key == "API_TIMEOUT_SECONDS":
                    try:
                        self._config[config_key] = float(env_value)
                        self._sources[config_key] = f"environment variable {env_var}"
                    except ValueError:
                        # Keep default if conversion fails
                        self._sources[config_key] = "default (env var conversion failed)"
                elif config_key == "PRINT_SCALE":
                    try:
                        self._config[config_key] = int(env_value)
                        self._sources[config_key] = f"environment variable {env_var}"
                    except ValueError:
                        self._sources[config_key] = "default (env var conversion failed)"
                else:
                    self._config[config_key] = env_value
                    self._sources[config_key] = f"environment variable {env_var}"
            else:
                self._sources[config_key] = "config.py default"

    def get(self, key: str, default: Any = None) -> Any:
        """Get configuration value."""
        return self._config.get(key, default)

    def get_bool(self, key: str, default: bool = False) -> bool:
        value = self._config.get(key)
        if value is None:
            return default
        return str(value).strip().lower() in ("1", "true", "yes", "on")

    def get_source(self, key: str) -> str:
        """Get the source of a configuration value."""
        return self._sources.get(key, "unknown")

    def get_all_with_sources(self) -> Dict[str, tuple]:
        """Get all configuration values with their sources."""
        return {key: (value, self._sources.get(key, "unknown"))
                for key, value in self._config.items()}

    def print_config_sources(self, verbose: bool = False):
        """Print configuration values and their sources."""
        if not verbose:
            return

        print("\n=== Configuration Settings ===")
        print("(Environment variables take precedence over config.py defaults)")
        print("")

        # Group by category
        categories = {
            "Backend": ["API_BASE_URL", "API_TIMEOUT_SECONDS", "API_USERNAME"],
            "Page": ["PAGE_WIDTH", "PAGE_HEIGHT", "PRINT_SCALE"],
            "Presentation": ["LAYOUT_DENSITY", "SHOW_STRIKE_PRICE"],
            "Fonts": ["FONT_REGULAR", "FONT_BOLD", "FONT_BLACK"],
            "Output": ["OUTPUT_DIR", "PRINTER_NAME"],
        }

        for category, keys in categories.items():
            print(f"{category}:")
            for key in keys:
                value = self._config.get(key, "Not set")
                source = self._sources.get(key, "unknown")

                # Mask username if needed
                display_value = value
                if key == "API_USERNAME" and value:
                    username = str(value)
                    display_value = username[:3] + '*' * max(0, len(username) - 3)

                print(f"  {key}: {display_value} (from {source})")
            print()


# Create global config instance
config = Config()

OUTPUT_DIR = BASE_DIR / config.get("OUTPUT_DIR")

# Export configuration values for module-level use
PRINT_SCALE = config.get("PRINT_SCALE")
FONT_FILES = {
    "regular": config.get("FONT_REGULAR"),
    "bold": config.get("FONT_BOLD"),
    "black": config.get("FONT_BLACK"),
}
