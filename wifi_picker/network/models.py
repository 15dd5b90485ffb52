"""
Data models for network management.
"""

from dataclasses import dataclass
from enum import IntEnum
from typing import Optional


class ManagerState(IntEnum):
    """NetworkManager global states (NMState) the listener reacts to."""

    DISCONNECTED = 20
    CONNECTING = 40
    CONNECTED_GLOBAL = 70


@dataclass
class AccessPoint:
    """Represents a WiFi access point from scan results."""

    ssid: str
    bssid: str
    signal_strength: int  # 0-100 percentage
    frequency: int  # MHz
    is_protected: bool
    saved_config_ref: Optional[str] = None  # settings object path of a saved profile

    @property
    def is_saved(self) -> bool:
        return self.saved_config_ref is not None

    @classmethod
    def hidden(cls, ssid: str) -> "AccessPoint":
        """Minimal descriptor for a network typed in by hand."""
        return cls(ssid=ssid, bssid=ssid, signal_strength=0, frequency=0, is_protected=True)


@dataclass
class ActiveAccessPoint:
    """The access point the device is currently associated with."""

    bssid: str
    settings_path: str
