"""
Ordered list of visible access points with their saved-profile links.
"""

import logging
from typing import Dict, Iterator, List, Optional

from .models import AccessPoint

logger = logging.getLogger(__name__)


class AccessPointCatalog:
    """Access points sorted by signal strength, with the effectively active entry first.

    The effectively active entry is the connect target while a connect is in
    progress, otherwise the access point the device is associated with. Every
    mutation re-applies the ordering.
    """

    def __init__(self):
        self._entries: List[AccessPoint] = []
        self.active_bssid: Optional[str] = None
        self.connecting_bssid: Optional[str] = None

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[AccessPoint]:
        return iter(self._entries)

    @property
    def effective_bssid(self) -> Optional[str]:
        if self.connecting_bssid is not None:
            return self.connecting_bssid
        return self.active_bssid

    def _sort(self) -> None:
        self._entries.sort(key=lambda ap: ap.signal_strength, reverse=True)

        pinned = self.effective_bssid
        if pinned is None:
            return
        for index, access_point in enumerate(self._entries):
            if access_point.bssid == pinned:
                self._entries.insert(0, self._entries.pop(index))
                break

    def replace(self, access_points: List[AccessPoint], saved_links: Dict[str, str]) -> None:
        """Swap in a fresh scan result and re-link saved profiles by BSSID."""
        self._entries = list(access_points)
        for access_point in self._entries:
            access_point.saved_config_ref = saved_links.get(access_point.bssid)
        self._sort()
        logger.debug(f"Catalog replaced: {len(self._entries)} entries, {len(saved_links)} saved links")

    def mark_active(self, bssid: str, saved_ref: Optional[str] = None) -> None:
        self.active_bssid = bssid
        access_point = self.find(bssid)
        if access_point is not None and saved_ref is not None:
            access_point.saved_config_ref = saved_ref
        self._sort()

    def clear_active(self) -> None:
        self.active_bssid = None
        self._sort()

    def set_connecting(self, bssid: Optional[str]) -> None:
        self.connecting_bssid = bssid
        self._sort()

    def forget(self, bssid: str) -> None:
        """Drop the saved-profile link; the entry itself stays visible."""
        access_point = self.find(bssid)
        if access_point is not None:
            access_point.saved_config_ref = None

    def get(self, index: int) -> Optional[AccessPoint]:
        if 0 <= index < len(self._entries):
            return self._entries[index]
        return None

    def find(self, bssid: str) -> Optional[AccessPoint]:
        for access_point in self._entries:
            if access_point.bssid == bssid:
                return access_point
        return None
