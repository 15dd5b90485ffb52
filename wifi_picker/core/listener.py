"""
Keeps the active-connection marker in sync with NetworkManager's global state.
"""

import asyncio
import logging
from typing import Optional

from ..network.link import NetworkLinkError
from ..network.models import ManagerState
from .session import AppStateKind, Session

logger = logging.getLogger(__name__)


class ExternalEventListener:
    """Subscribes once to NetworkManager's StateChanged signal for the session's lifetime."""

    def __init__(self, session: Session):
        self.session = session
        self._task: Optional[asyncio.Task] = None

    def start(self) -> None:
        if self._task is None:
            self._task = asyncio.create_task(self._listen(), name="nm-state-listener")

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        except Exception as e:
            logger.error(f"NetworkManager state listener had failed: {e!r}")
        self._task = None

    async def _listen(self) -> None:
        try:
            async with self.session.link.watch_manager_state() as states:
                logger.debug("Listening for NetworkManager state changes")
                while True:
                    (code,) = await states.get()
                    try:
                        await self.handle(code)
                    except Exception as e:
                        logger.error(f"Error handling NetworkManager state {code}: {e!r}")
        except NetworkLinkError as e:
            logger.error(f"NetworkManager state listener stopped: {e}")

    async def handle(self, code: int) -> None:
        """React to one NMState code; remote failures are logged and swallowed."""
        catalog = self.session.catalog
        kind = self.session.state.kind

        if code == ManagerState.DISCONNECTED:
            logger.info("NetworkManager reports disconnected")
            catalog.clear_active()
        elif code == ManagerState.CONNECTING:
            if kind not in (AppStateKind.CONNECTING, AppStateKind.PASSWORD_INPUT):
                catalog.clear_active()
        elif code == ManagerState.CONNECTED_GLOBAL:
            if kind == AppStateKind.CONNECTING:
                return
            try:
                active = await self.session.link.get_active_access_point()
            except NetworkLinkError as e:
                logger.warning(f"Failed to resolve active access point: {e}")
                return
            if active is not None and self.session.state.kind != AppStateKind.CONNECTING:
                logger.info(f"Active access point is now {active.bssid}")
                catalog.mark_active(active.bssid, active.settings_path)
