"""
NetworkManager D-Bus client for one wireless device.

All remote calls go through the system bus using jeepney's asyncio router, so
they share the event loop with the orchestration flows. Every D-Bus error reply
or transport failure surfaces as NetworkLinkError.
"""

import asyncio
import logging
import uuid
from contextlib import AsyncExitStack, asynccontextmanager
from typing import Any, AsyncIterator, Awaitable, Dict, List, Optional

from jeepney import DBusAddress, new_method_call
from jeepney.bus_messages import MatchRule, message_bus
from jeepney.io.asyncio import DBusRouter, Proxy, open_dbus_router
from jeepney.wrappers import DBusErrorResponse, unwrap_msg

from ..const import (
    AP_FLAG_PRIVACY,
    AP_SEC_KEY_MGMT_802_1X,
    DBUS_PROPERTIES_INTERFACE,
    DEVICE_REASON_NONE,
    DEVICE_REASON_UNKNOWN,
    DEVICE_STATE_ACTIVATED,
    DEVICE_STATE_FAILED,
    DEVICE_TYPE_WIFI,
    NM_ACCESS_POINT_INTERFACE,
    NM_ACTIVE_CONNECTION_INTERFACE,
    NM_BUS_NAME,
    NM_DEVICE_INTERFACE,
    NM_INTERFACE,
    NM_OBJECT_PATH,
    NM_SETTINGS_CONNECTION_INTERFACE,
    NM_SETTINGS_INTERFACE,
    NM_SETTINGS_PATH,
    NM_WIRELESS_INTERFACE,
    NO_OBJECT_PATH,
    SIGNAL_QUEUE_SIZE,
    UUID_PREFIX,
    WIRELESS_CONNECTION_TYPE,
    WIRELESS_SECURITY_SECTION,
)
from .models import AccessPoint, ActiveAccessPoint

logger = logging.getLogger(__name__)

Settings = Dict[str, Dict[str, Any]]


class NetworkLinkError(Exception):
    """Base exception for NetworkManager communication errors."""


class Subscription:
    """Queue of signal bodies matching one D-Bus match rule."""

    def __init__(self, queue: asyncio.Queue):
        self._queue = queue

    async def get(self) -> tuple:
        message = await self._queue.get()
        return message.body


def generate_uuid() -> str:
    """Random v4 UUID whose first group is the engine's fixed prefix."""
    return f"{UUID_PREFIX}{str(uuid.uuid4())[8:]}"


def format_bssid(raw: bytes) -> str:
    return ":".join(f"{byte:02X}" for byte in raw)


def bssid_to_bytes(bssid: str) -> bytes:
    return bytes(int(part, 16) for part in bssid.split(":") if part)


def parse_access_point(props: Dict[str, Any]) -> Optional[AccessPoint]:
    """Build an AccessPoint from its D-Bus properties.

    Returns None for 802.1X (enterprise) networks. Raises KeyError, TypeError
    or ValueError when a property is missing or has an unexpected shape.
    """
    wpa_flags = int(props["WpaFlags"])
    rsn_flags = int(props["RsnFlags"])
    if wpa_flags & AP_SEC_KEY_MGMT_802_1X or rsn_flags & AP_SEC_KEY_MGMT_802_1X:
        return None

    bssid = props["HwAddress"]
    if not isinstance(bssid, str):
        raise TypeError(f"HwAddress is {type(bssid).__name__}, expected str")

    return AccessPoint(
        ssid=bytes(props["Ssid"]).decode("utf-8", errors="replace"),
        bssid=bssid,
        signal_strength=int(props["Strength"]),
        frequency=int(props["Frequency"]),
        is_protected=bool(int(props["Flags"]) & AP_FLAG_PRIVACY),
    )


def saved_profile_bssid(settings: Settings) -> Optional[str]:
    """BSSID a saved profile is pinned to, if the profile is one of ours."""
    connection = settings["connection"]
    if not str(connection["uuid"]).startswith(UUID_PREFIX):
        return None
    if connection["type"] != WIRELESS_CONNECTION_TYPE:
        return None

    raw_bssid = settings.get(WIRELESS_CONNECTION_TYPE, {}).get("bssid")
    if raw_bssid is None:
        return None
    return format_bssid(bytes(raw_bssid))


def build_connection_settings(access_point: AccessPoint, password: Optional[str], hidden: bool) -> Dict[str, Dict]:
    """Connection profile for AddAndActivateConnection, values as (signature, value) variants."""
    wireless = {
        "ssid": ("ay", access_point.ssid.encode("utf-8")),
        "hidden": ("b", hidden),
        "mode": ("s", "infrastructure"),
    }
    if not hidden:
        wireless["bssid"] = ("ay", bssid_to_bytes(access_point.bssid))

    settings = {
        "connection": {
            "type": ("s", WIRELESS_CONNECTION_TYPE),
            "uuid": ("s", generate_uuid()),
            "id": ("s", access_point.ssid),
        },
        WIRELESS_CONNECTION_TYPE: wireless,
    }

    if access_point.is_protected:
        if password is None:
            raise NetworkLinkError(f"{access_point.ssid} is protected, a password is required")
        settings[WIRELESS_SECURITY_SECTION] = {
            "key-mgmt": ("s", "wpa-psk"),
            "psk": ("s", password),
        }

    return settings


class NetworkLink:
    """Remote-call client for NetworkManager, bound to one wireless device."""

    def __init__(self, router: DBusRouter, interface: str, exit_stack: Optional[AsyncExitStack] = None):
        self._router = router
        self._exit_stack = exit_stack
        self.interface = interface
        self.device_path = NO_OBJECT_PATH

    @classmethod
    async def open(cls, interface: str) -> "NetworkLink":
        """Connect to the system bus and locate the wireless device named `interface`.

        Raises:
            NetworkLinkError: If the bus is unreachable or no such device exists.
        """
        stack = AsyncExitStack()
        try:
            router = await stack.enter_async_context(open_dbus_router(bus="SYSTEM"))
            link = cls(router, interface, stack)
            link.device_path = await link._find_device(interface)
            return link
        except NetworkLinkError:
            await stack.aclose()
            raise
        except Exception as e:
            await stack.aclose()
            raise NetworkLinkError(f"Failed to connect to NetworkManager: {e}") from e

    async def close(self) -> None:
        if self._exit_stack is not None:
            await self._exit_stack.aclose()
            self._exit_stack = None
            logger.debug("D-Bus connection closed")

    # ------------------------------------------------------------------
    # Low-level helpers
    # ------------------------------------------------------------------

    async def _call(self, path: str, interface: str, method: str, signature: Optional[str] = None, body=()) -> tuple:
        """Call a NetworkManager method and return the reply body."""
        address = DBusAddress(path, bus_name=NM_BUS_NAME, interface=interface)
        try:
            logger.debug(f"D-Bus call {interface}.{method} on {path}")
            reply = await self._router.send_and_get_reply(new_method_call(address, method, signature, body))
            return unwrap_msg(reply)
        except DBusErrorResponse as e:
            raise NetworkLinkError(f"{method} on {path} failed: {e}") from e
        except OSError as e:
            raise NetworkLinkError(f"D-Bus transport failure during {method}: {e}") from e

    async def _get_property(self, path: str, interface: str, name: str) -> Any:
        (variant,) = await self._call(path, DBUS_PROPERTIES_INTERFACE, "Get", "ss", (interface, name))
        return variant[1]

    async def _get_properties(self, path: str, interface: str) -> Dict[str, Any]:
        (variants,) = await self._call(path, DBUS_PROPERTIES_INTERFACE, "GetAll", "s", (interface,))
        return {name: value for name, (_signature, value) in variants.items()}

    async def _get_settings(self, settings_path: str) -> Settings:
        (sections,) = await self._call(settings_path, NM_SETTINGS_CONNECTION_INTERFACE, "GetSettings")
        return {
            section: {key: value for key, (_signature, value) in entries.items()}
            for section, entries in sections.items()
        }

    async def _list_connections(self) -> List[str]:
        (paths,) = await self._call(NM_SETTINGS_PATH, NM_SETTINGS_INTERFACE, "ListConnections")
        return list(paths)

    @asynccontextmanager
    async def _subscribe(self, rule: MatchRule, name: str) -> AsyncIterator[Subscription]:
        bus = Proxy(message_bus, self._router)
        try:
            await bus.AddMatch(rule)
        except (DBusErrorResponse, OSError) as e:
            raise NetworkLinkError(f"Failed to subscribe to {name}: {e}") from e

        try:
            with self._router.filter(rule, bufsize=SIGNAL_QUEUE_SIZE) as queue:
                yield Subscription(queue)
        finally:
            try:
                await bus.RemoveMatch(rule)
            except Exception as e:
                logger.debug(f"Failed to remove {name} match rule: {e}")

    @staticmethod
    async def _wait(awaitable: Awaitable, timeout: Optional[float], what: str):
        try:
            return await asyncio.wait_for(awaitable, timeout)
        except asyncio.TimeoutError as e:
            raise NetworkLinkError(f"Timed out after {timeout}s waiting for {what}") from e

    async def _find_device(self, interface: str) -> str:
        (devices,) = await self._call(NM_OBJECT_PATH, NM_INTERFACE, "GetDevices")
        for device_path in devices:
            try:
                props = await self._get_properties(device_path, NM_DEVICE_INTERFACE)
            except NetworkLinkError as e:
                logger.debug(f"Skipping device {device_path}: {e}")
                continue

            if props.get("Interface") == interface and props.get("DeviceType") == DEVICE_TYPE_WIFI:
                logger.info(f"Using wireless device {interface} ({device_path})")
                return device_path

        raise NetworkLinkError(f"No wireless device named {interface}")

    # ------------------------------------------------------------------
    # Access points and saved profiles
    # ------------------------------------------------------------------

    async def get_access_points(self) -> List[AccessPoint]:
        """Read every visible access point; malformed or enterprise ones are skipped."""
        (paths,) = await self._call(self.device_path, NM_WIRELESS_INTERFACE, "GetAllAccessPoints")

        access_points = []
        for ap_path in paths:
            try:
                props = await self._get_properties(ap_path, NM_ACCESS_POINT_INTERFACE)
                access_point = parse_access_point(props)
            except (NetworkLinkError, KeyError, TypeError, ValueError) as e:
                logger.debug(f"Skipping access point {ap_path}: {e}")
                continue

            if access_point is not None:
                access_points.append(access_point)

        logger.debug(f"Found {len(access_points)} access points")
        return access_points

    async def get_saved_connections(self) -> Dict[str, str]:
        """Map of BSSID to settings path for the profiles this engine created."""
        saved = {}
        for settings_path in await self._list_connections():
            try:
                bssid = saved_profile_bssid(await self._get_settings(settings_path))
            except (NetworkLinkError, KeyError, TypeError, ValueError) as e:
                logger.debug(f"Skipping saved connection {settings_path}: {e}")
                continue

            if bssid is not None:
                saved[bssid] = settings_path
        return saved

    async def get_active_access_point(self) -> Optional[ActiveAccessPoint]:
        """Resolve the device's active connection down to the access point's BSSID.

        Raises:
            NetworkLinkError: If a call fails or a reply has an unexpected shape.
        """
        try:
            active_path = await self._get_property(self.device_path, NM_DEVICE_INTERFACE, "ActiveConnection")
            if active_path == NO_OBJECT_PATH:
                return None

            active = await self._get_properties(active_path, NM_ACTIVE_CONNECTION_INTERFACE)
            ap_path = active.get("SpecificObject", NO_OBJECT_PATH)
            if ap_path == NO_OBJECT_PATH:
                return None

            bssid = await self._get_property(ap_path, NM_ACCESS_POINT_INTERFACE, "HwAddress")
            if not isinstance(bssid, str):
                raise TypeError(f"HwAddress is {type(bssid).__name__}, expected str")
            return ActiveAccessPoint(bssid=bssid, settings_path=active["Connection"])
        except (KeyError, TypeError, ValueError) as e:
            raise NetworkLinkError(f"Malformed active connection data: {e!r}") from e

    async def request_scan(self, timeout: Optional[float] = None) -> None:
        """Ask the device to rescan and wait until LastScan changes."""
        rule = MatchRule(
            type="signal",
            interface=DBUS_PROPERTIES_INTERFACE,
            member="PropertiesChanged",
            path=self.device_path,
        )
        async with self._subscribe(rule, "PropertiesChanged") as changes:
            await self._call(self.device_path, NM_WIRELESS_INTERFACE, "RequestScan", "a{sv}", ({},))
            await self._wait(self._until_last_scan(changes), timeout, "scan results")

    @staticmethod
    async def _until_last_scan(changes: Subscription) -> None:
        while True:
            _interface, changed, _invalidated = await changes.get()
            if "LastScan" in changed:
                return

    # ------------------------------------------------------------------
    # Connecting
    # ------------------------------------------------------------------

    async def activate_connection(self, settings_path: str) -> str:
        """Activate a saved profile on the device; returns the profile's settings path."""
        (active_path,) = await self._call(
            NM_OBJECT_PATH,
            NM_INTERFACE,
            "ActivateConnection",
            "ooo",
            (settings_path, self.device_path, NO_OBJECT_PATH),
        )
        return await self._get_property(active_path, NM_ACTIVE_CONNECTION_INTERFACE, "Connection")

    async def add_and_activate(self, access_point: AccessPoint, password: Optional[str], hidden: bool = False) -> str:
        """Create a profile for `access_point` and activate it; returns the new settings path."""
        settings = build_connection_settings(access_point, password, hidden)
        settings_path, _active_path = await self._call(
            NM_OBJECT_PATH,
            NM_INTERFACE,
            "AddAndActivateConnection",
            "a{sa{sv}}oo",
            (settings, self.device_path, NO_OBJECT_PATH),
        )
        logger.info(f"Created connection profile for {access_point.ssid} at {settings_path}")
        return settings_path

    @asynccontextmanager
    async def watch_device_state(self) -> AsyncIterator[Subscription]:
        """Subscribe to Device.StateChanged (new, old, reason) for this device."""
        rule = MatchRule(type="signal", interface=NM_DEVICE_INTERFACE, member="StateChanged", path=self.device_path)
        async with self._subscribe(rule, "Device.StateChanged") as states:
            yield states

    async def wait_for_activation(self, states: Subscription, timeout: Optional[float] = None) -> int:
        """Wait for the device to reach ACTIVATED or FAILED.

        Returns:
            0 on success, otherwise the NMDeviceStateReason of the failure.
        """

        async def _outcome() -> int:
            while True:
                new_state, _old_state, reason = await states.get()
                if new_state == DEVICE_STATE_ACTIVATED:
                    return DEVICE_REASON_NONE
                if new_state == DEVICE_STATE_FAILED:
                    return reason or DEVICE_REASON_UNKNOWN

        return await self._wait(_outcome(), timeout, "connection outcome")

    @asynccontextmanager
    async def watch_manager_state(self) -> AsyncIterator[Subscription]:
        """Subscribe to NetworkManager's global StateChanged (state,) signal."""
        rule = MatchRule(type="signal", interface=NM_INTERFACE, member="StateChanged", path=NM_OBJECT_PATH)
        async with self._subscribe(rule, "StateChanged") as states:
            yield states

    # ------------------------------------------------------------------
    # Deleting profiles
    # ------------------------------------------------------------------

    async def delete_connection(self, settings_path: str) -> None:
        await self._call(settings_path, NM_SETTINGS_CONNECTION_INTERFACE, "Delete")
        logger.info(f"Deleted connection profile {settings_path}")

    async def forget_ssid(self, ssid: str) -> int:
        """Delete every wireless profile whose id is `ssid`; returns how many were deleted."""
        deleted = 0
        for settings_path in await self._list_connections():
            try:
                connection = (await self._get_settings(settings_path)).get("connection", {})
            except NetworkLinkError as e:
                logger.debug(f"Skipping saved connection {settings_path}: {e}")
                continue

            if connection.get("type") == WIRELESS_CONNECTION_TYPE and connection.get("id") == ssid:
                await self.delete_connection(settings_path)
                deleted += 1

        return deleted
