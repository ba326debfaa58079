"""envkeep settings: environment variable names and default file locations."""
from pathlib import Path

# Environment overrides
ENV_VARIABLES_FILE = "ENVKEEP_FILE"
ENV_CONFIG_FILE = "ENVKEEP_CONFIG"
ENV_PASSWORD = "ENVKEEP_PASSWORD"

DEFAULT_DIR = Path("~/.envkeep")
DEFAULT_VARIABLES_FILE = DEFAULT_DIR / "variables.json"
DEFAULT_CONFIG_FILE = DEFAULT_DIR / "config.json"

# Password prompts allowed when opening the vault for a session or restore
SESSION_UNLOCK_ATTEMPTS = 2

# Visible rows in the interactive list
DEFAULT_WINDOW_HEIGHT = 20

IMPORTED_LABEL = "imported from environment"
