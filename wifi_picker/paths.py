"""
wifi-picker Path Configuration.

Centralized path management for runtime data storage.

Directory structure with WIFI_PICKER_ROOT=/var/lib/wifi-picker:
    /var/lib/wifi-picker/config/  - Configuration files
    /var/lib/wifi-picker/logs/    - Log files

Environment variables:
    WIFI_PICKER_ROOT   - Base directory for all data (default: ~/.local/share/wifi-picker)
    WIFI_PICKER_CONFIG - Explicit path of the configuration file
"""

import os
from pathlib import Path

APP_NAME = "wifi-picker"

# Get root directory from environment or use default
_root_override = os.environ.get("WIFI_PICKER_ROOT")
if _root_override:
    ROOT_DIR = Path(_root_override)
else:
    _xdg_data_home = Path(os.environ.get("XDG_DATA_HOME", Path.home() / ".local" / "share"))
    ROOT_DIR = _xdg_data_home / APP_NAME

CONFIG_DIR = ROOT_DIR / "config"
LOGS_DIR = ROOT_DIR / "logs"

_config_override = os.environ.get("WIFI_PICKER_CONFIG")
CONFIG_FILE = Path(_config_override) if _config_override else CONFIG_DIR / "picker_config.json"
LOG_FILE = LOGS_DIR / "wifi-picker.log"
