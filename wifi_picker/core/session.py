"""
Session state shared by the orchestrator, the flows, the listener and the view.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from ..const import DEVICE_REASON_NONE
from ..network.catalog import AccessPointCatalog
from ..network.link import NetworkLink
from .config import PickerConfig
from .task_signal import TaskSignals

logger = logging.getLogger(__name__)


class AppStateKind(Enum):
    IDLE = "idle"
    SCANNING = "scanning"
    CONNECTING = "connecting"
    PASSWORD_INPUT = "password_input"


@dataclass(frozen=True)
class AppState:
    """Exactly one of Idle, Scanning, Connecting(bssid) or PasswordInput(bssid, reason)."""

    kind: AppStateKind
    bssid: Optional[str] = None
    reason: int = DEVICE_REASON_NONE

    @classmethod
    def idle(cls) -> "AppState":
        return cls(AppStateKind.IDLE)

    @classmethod
    def scanning(cls) -> "AppState":
        return cls(AppStateKind.SCANNING)

    @classmethod
    def connecting(cls, bssid: str) -> "AppState":
        return cls(AppStateKind.CONNECTING, bssid=bssid)

    @classmethod
    def password_input(cls, bssid: str, reason: int = DEVICE_REASON_NONE) -> "AppState":
        return cls(AppStateKind.PASSWORD_INPUT, bssid=bssid, reason=reason)

    def __str__(self) -> str:
        if self.kind == AppStateKind.CONNECTING:
            return f"Connecting({self.bssid})"
        if self.kind == AppStateKind.PASSWORD_INPUT:
            return f"PasswordInput({self.bssid}, reason={self.reason})"
        return self.kind.name.title()


class Session:
    """Everything one picker instance owns.

    Only the orchestrator assigns `state` (through `set_state`); flows and the
    listener mutate the catalog.
    """

    def __init__(self, link: NetworkLink, config: PickerConfig):
        self.link = link
        self.config = config
        self.catalog = AccessPointCatalog()
        self.signals = TaskSignals(config.scan_fps, config.connecting_fps)
        self.hidden_ssid_pending: Optional[str] = None
        self.scan_cursor = 0
        self.connect_cursor = 0
        self._state = AppState.idle()

    @property
    def state(self) -> AppState:
        return self._state

    @property
    def active_connection_bssid(self) -> Optional[str]:
        return self.catalog.active_bssid

    def set_state(self, state: AppState) -> None:
        if state != self._state:
            logger.debug(f"State {self._state} -> {state}")
        self._state = state
        self.catalog.set_connecting(state.bssid if state.kind == AppStateKind.CONNECTING else None)

    def user_owns_state(self) -> bool:
        """True while a connect or password prompt is in progress."""
        return self._state.kind in (AppStateKind.CONNECTING, AppStateKind.PASSWORD_INPUT)
