"""
wifi-picker: WiFi connection orchestration for NetworkManager.

Scans for access points, tracks the active connection and drives connect and
forget operations over the D-Bus system bus, exposing a pull-model view for a
picker UI.
"""

from .core.orchestrator import ViewAction
from .engine import WifiPicker

__version__ = "0.1.0"

__all__ = ["ViewAction", "WifiPicker", "__version__"]
