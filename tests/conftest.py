"""
Shared pytest fixtures for the wifi-picker test suite.

Provides a scripted in-memory stand-in for NetworkLink, fast animation settings
and sample scan results.
"""

import asyncio
import sys
from contextlib import asynccontextmanager
from dataclasses import replace
from pathlib import Path
from typing import Dict, List, Optional
from unittest.mock import MagicMock

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from wifi_picker.core.config import PickerConfig
from wifi_picker.core.orchestrator import Orchestrator
from wifi_picker.core.session import AppStateKind, Session
from wifi_picker.network.link import NetworkLink
from wifi_picker.network.models import AccessPoint, ActiveAccessPoint

SETTINGS_PREFIX = "/org/freedesktop/NetworkManager/Settings"

HOME_BSSID = "AA:BB:CC:00:00:01"
CAFE_BSSID = "AA:BB:CC:00:00:02"
OFFICE_BSSID = "AA:BB:CC:00:00:03"
HOME_PROFILE = f"{SETTINGS_PREFIX}/1"


# =============================================================================
# Fake NetworkManager link
# =============================================================================


class FakeSubscription:
    """Signal queue the test feeds directly."""

    def __init__(self):
        self.queue: asyncio.Queue = asyncio.Queue()

    async def get(self) -> tuple:
        return await self.queue.get()


class FakeNetworkLink:
    """Scripted NetworkLink: canned scan results, gated waits and a call log.

    Set `scan_gate` / `connect_gate` to an asyncio.Event to hold the matching
    remote wait until the test releases it. `outcomes` lists the device-state
    reasons for successive connect attempts (0 = success).
    """

    def __init__(
        self,
        access_points: Optional[List[AccessPoint]] = None,
        saved: Optional[Dict[str, str]] = None,
        active: Optional[ActiveAccessPoint] = None,
    ):
        self.access_points = list(access_points or [])
        self.saved = dict(saved or {})
        self.active = active
        self.outcomes: List[int] = []
        self.scan_gate: Optional[asyncio.Event] = None
        self.connect_gate: Optional[asyncio.Event] = None
        self.scan_error: Optional[Exception] = None
        self.activate_error: Optional[Exception] = None
        self.forget_error: Optional[Exception] = None
        self.scan_count = 0
        self.fetch_count = 0
        self.activated: List[str] = []
        self.created: List[tuple] = []
        self.deleted: List[str] = []
        self.forgotten: List[str] = []
        self.manager_states = FakeSubscription()
        self.closed = False
        self._profile_counter = 100

    async def request_scan(self, timeout: Optional[float] = None) -> None:
        self.scan_count += 1
        if self.scan_gate is not None:
            await self.scan_gate.wait()
        if self.scan_error is not None:
            raise self.scan_error

    async def get_access_points(self) -> List[AccessPoint]:
        self.fetch_count += 1
        return [replace(ap) for ap in self.access_points]

    async def get_saved_connections(self) -> Dict[str, str]:
        return dict(self.saved)

    async def get_active_access_point(self) -> Optional[ActiveAccessPoint]:
        return self.active

    async def activate_connection(self, settings_path: str) -> str:
        self.activated.append(settings_path)
        if self.activate_error is not None:
            raise self.activate_error
        return settings_path

    async def add_and_activate(self, access_point: AccessPoint, password: Optional[str], hidden: bool = False) -> str:
        self._profile_counter += 1
        settings_path = f"{SETTINGS_PREFIX}/{self._profile_counter}"
        self.created.append((access_point.bssid, password, hidden, settings_path))
        return settings_path

    @asynccontextmanager
    async def watch_device_state(self):
        yield FakeSubscription()

    async def wait_for_activation(self, states, timeout: Optional[float] = None) -> int:
        if self.connect_gate is not None:
            await self.connect_gate.wait()
        return self.outcomes.pop(0) if self.outcomes else 0

    @asynccontextmanager
    async def watch_manager_state(self):
        yield self.manager_states

    async def delete_connection(self, settings_path: str) -> None:
        self.deleted.append(settings_path)
        self.saved = {bssid: path for bssid, path in self.saved.items() if path != settings_path}

    async def forget_ssid(self, ssid: str) -> int:
        if self.forget_error is not None:
            raise self.forget_error
        self.forgotten.append(ssid)
        return 1

    async def close(self) -> None:
        self.closed = True


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def fast_config() -> PickerConfig:
    """Config with fast animations and no periodic rescans during a test."""
    return PickerConfig(scan_fps=60, connecting_fps=60, rescan_interval=3600.0)


@pytest.fixture
def sample_access_points() -> List[AccessPoint]:
    return [
        AccessPoint(ssid="Cafe", bssid=CAFE_BSSID, signal_strength=40, frequency=2437, is_protected=False),
        AccessPoint(ssid="Home", bssid=HOME_BSSID, signal_strength=90, frequency=5180, is_protected=True),
        AccessPoint(ssid="Office", bssid=OFFICE_BSSID, signal_strength=60, frequency=2412, is_protected=True),
    ]


@pytest.fixture
def fake_link(sample_access_points) -> FakeNetworkLink:
    return FakeNetworkLink(access_points=sample_access_points, saved={HOME_BSSID: HOME_PROFILE})


@pytest.fixture
def session(fake_link, fast_config) -> Session:
    return Session(fake_link, fast_config)


@pytest.fixture
def orchestrator(session) -> Orchestrator:
    return Orchestrator(session)


def is_settled(state) -> bool:
    return state.kind in (AppStateKind.IDLE, AppStateKind.PASSWORD_INPUT)


async def settle(orchestrator: Orchestrator, timeout: float = 2.0):
    """Wait until no scan or connect flow owns the state."""
    return await orchestrator.wait_until(is_settled, timeout)



def factory_for(link):
    """Link factory for WifiPicker that hands out `link`."""

    async def _open(interface: str):
        link.interface = interface
        return link

    return _open


def malformed_active_lookup():
    """get_active_access_point of a real NetworkLink whose active connection reply lacks `Connection`."""
    link = NetworkLink(router=MagicMock(), interface="wlan0")
    link.device_path = "/org/freedesktop/NetworkManager/Devices/3"

    async def _call(path, interface, method, signature=None, body=()):
        if method == "GetAll":
            return ({"SpecificObject": ("o", "/org/freedesktop/NetworkManager/AccessPoint/1")},)
        if body[-1] == "ActiveConnection":
            return (("o", "/org/freedesktop/NetworkManager/ActiveConnection/1"),)
        return (("s", "12:34:56:78:9A:BC"),)

    link._call = _call
    return link.get_active_access_point
