"""
Network module: NetworkManager D-Bus client and access point catalog.
"""

from .catalog import AccessPointCatalog
from .link import NetworkLink, NetworkLinkError
from .models import AccessPoint, ActiveAccessPoint, ManagerState

__all__ = [
    "AccessPoint",
    "AccessPointCatalog",
    "ActiveAccessPoint",
    "ManagerState",
    "NetworkLink",
    "NetworkLinkError",
]
