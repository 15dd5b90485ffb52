"""
WiFi picker engine: the surface a picker UI talks to.

A host UI calls `initialize` once, polls `prompt`, `entry_count` and `row` every
frame, forwards user actions to `select`, `delete` and `cancel`, and finally calls
`teardown`. All methods run on the event loop that owns the engine.
"""

import logging
from typing import Awaitable, Callable, List, Optional

from .core.config import PickerConfig, load_config
from .core.listener import ExternalEventListener
from .core.orchestrator import Orchestrator, ViewAction
from .core.session import AppState, Session
from .core.view import DisplayRow, PickerView
from .network.link import NetworkLink, NetworkLinkError

logger = logging.getLogger(__name__)


class WifiPicker:
    """One picker session bound to one wireless interface."""

    def __init__(
        self,
        config: Optional[PickerConfig] = None,
        link_factory: Callable[[str], Awaitable[NetworkLink]] = NetworkLink.open,
    ):
        self.config = config or load_config()
        self._link_factory = link_factory
        self.session: Optional[Session] = None
        self.orchestrator: Optional[Orchestrator] = None
        self.listener: Optional[ExternalEventListener] = None
        self.view: Optional[PickerView] = None

    @property
    def initialized(self) -> bool:
        return self.session is not None

    @property
    def state(self) -> Optional[AppState]:
        return self.session.state if self.session else None

    async def initialize(self, interface: str) -> bool:
        """Connect to NetworkManager, start the listener and the first scan.

        Returns False (and logs) when the bus or the device is unavailable.
        """
        try:
            link = await self._link_factory(interface)
        except NetworkLinkError as e:
            logger.error(f"Failed to initialize WiFi picker on {interface}: {e}")
            return False

        self.session = Session(link, self.config)
        self.orchestrator = Orchestrator(self.session)
        self.listener = ExternalEventListener(self.session)
        self.view = PickerView(self.session)

        try:
            active = await link.get_active_access_point()
        except NetworkLinkError as e:
            logger.warning(f"Could not read the active connection: {e}")
        else:
            if active is not None:
                self.session.catalog.mark_active(active.bssid, active.settings_path)

        self.listener.start()
        await self.orchestrator.start()
        logger.info(f"WiFi picker initialized on {interface}")
        return True

    # Queries

    def entry_count(self) -> int:
        return self.view.entry_count() if self.view else 0

    def row(self, index: int) -> Optional[DisplayRow]:
        return self.view.row(index) if self.view else None

    def prompt(self) -> str:
        return self.view.prompt() if self.view else self.config.display_name

    def token_match(self, index: int, tokens: List[str]) -> bool:
        return self.view.token_match(index, tokens) if self.view else False

    def index_of(self, bssid: str) -> Optional[int]:
        if self.session is None:
            return None
        for index, access_point in enumerate(self.session.catalog):
            if access_point.bssid.upper() == bssid.upper():
                return index
        return None

    # Actions

    async def select(self, index: int, text: str = "", is_custom: bool = False) -> ViewAction:
        if self.orchestrator is None:
            return ViewAction.EXIT
        return await self.orchestrator.select(index, text, is_custom)

    async def delete(self, index: int) -> ViewAction:
        if self.orchestrator is None:
            return ViewAction.EXIT
        return await self.orchestrator.forget(index)

    def cancel(self) -> ViewAction:
        if self.orchestrator is None:
            return ViewAction.EXIT
        return self.orchestrator.cancel()

    async def teardown(self) -> None:
        """Stop every task and close the D-Bus connection. Safe to call twice."""
        if self.session is None:
            return

        try:
            await self.listener.stop()
            await self.orchestrator.teardown()
        finally:
            try:
                await self.session.link.close()
            except Exception as e:
                logger.warning(f"Error closing D-Bus connection: {e}")

        self.session = None
        self.orchestrator = None
        self.listener = None
        self.view = None
        logger.info("WiFi picker torn down")
