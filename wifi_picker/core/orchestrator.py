"""
State machine driving scans, connects and password prompts.

The orchestrator is the only writer of the session state. User actions and the
periodic timer enter through its coroutines; before an action mutates state or
re-arms a slot, the flows it supersedes are stopped with the TaskSignal
handshake. Flows re-check that they still own the state right before applying
results, because their remote calls are suspension points.
"""

import asyncio
import logging
from enum import Enum
from typing import Callable, Coroutine, Optional, Set

from ..const import DEVICE_REASON_NONE, DEVICE_REASON_UNKNOWN
from ..network.link import NetworkLinkError
from ..network.models import AccessPoint
from .session import AppState, AppStateKind, Session
from .task_signal import TaskSlot

logger = logging.getLogger(__name__)

TEARDOWN_GRACE = 1.0  # seconds to wait for tickers to acknowledge at teardown


class ViewAction(Enum):
    """What the host UI should do after an action."""

    RELOAD = "reload"  # re-query rows and prompt
    RESET = "reset"  # clear the input line, then reload
    EXIT = "exit"  # close the picker


class Orchestrator:
    """Owns state transitions and the scan/connect flows of one session."""

    def __init__(self, session: Session):
        self.session = session
        self._tasks: Set[asyncio.Task] = set()
        self._timer_task: Optional[asyncio.Task] = None
        self._closed = False

    @property
    def catalog(self):
        return self.session.catalog

    @property
    def signals(self):
        return self.session.signals

    @property
    def link(self):
        return self.session.link

    @property
    def config(self):
        return self.session.config

    # ------------------------------------------------------------------
    # Task bookkeeping
    # ------------------------------------------------------------------

    def _spawn(self, coro: Coroutine, name: str) -> asyncio.Task:
        task = asyncio.create_task(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._on_task_done)
        return task

    def _on_task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error(f"Task {task.get_name()} failed: {exc}", exc_info=exc)

    async def _preempt(self, *slots: TaskSlot) -> None:
        """Stop the flows running in `slots`; loops in case a slot is re-armed meanwhile."""
        for slot in slots:
            while self.signals.is_live(slot):
                await self.signals.await_shutdown(slot)

    async def _animate(self, slot: TaskSlot, generation: int, advance: Callable[[], None]) -> None:
        signal = self.signals[slot]
        while signal.generation == generation and not signal.poll_shutdown():
            await asyncio.sleep(1 / signal.fps)
            advance()

    async def _stop_ticker(self, slot: TaskSlot, generation: int) -> None:
        signal = self.signals[slot]
        if signal.generation == generation:
            await signal.await_shutdown()

    def _advance_scan(self) -> None:
        self.session.scan_cursor += 1

    def _advance_connect(self) -> None:
        self.session.connect_cursor += 1

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Kick off the initial scan and the periodic rescan timer."""
        self._timer_task = self._spawn(self._periodic_rescan(), "periodic-rescan")
        await self.trigger_scan()

    async def _periodic_rescan(self) -> None:
        while True:
            await asyncio.sleep(self.config.rescan_interval)
            if self.session.user_owns_state():
                logger.debug(f"Skipping periodic scan in state {self.session.state}")
                continue
            await self.trigger_scan()

    async def wait_until(self, predicate: Callable[[AppState], bool], timeout: Optional[float] = None) -> AppState:
        """Poll the session state once per scan frame until `predicate` holds."""

        async def _poll() -> AppState:
            while not predicate(self.session.state):
                await asyncio.sleep(1 / self.config.scan_fps)
            return self.session.state

        return await asyncio.wait_for(_poll(), timeout)

    async def teardown(self) -> None:
        """Stop the timer and every flow; the session is unusable afterwards."""
        if self._closed:
            return
        self._closed = True

        if self._timer_task is not None:
            self._timer_task.cancel()

        for slot in TaskSlot:
            try:
                await asyncio.wait_for(self.signals.await_shutdown(slot), TEARDOWN_GRACE)
            except asyncio.TimeoutError:
                logger.warning(f"{slot.value} flow did not acknowledge shutdown")
        self.signals.force_acknowledge_all()

        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        logger.debug(f"Orchestrator torn down, cancelled {len(tasks)} tasks")

    # ------------------------------------------------------------------
    # Scanning
    # ------------------------------------------------------------------

    async def trigger_scan(self) -> bool:
        """Start a scan flow, preempting a running one.

        Returns False without scanning while a connect or password prompt owns
        the state, or after teardown.
        """
        if self._closed or self.session.user_owns_state():
            return False
        await self._preempt(TaskSlot.SCAN)
        if self._closed or self.session.user_owns_state():
            return False

        self.session.scan_cursor = 0
        self.session.set_state(AppState.scanning())
        generation = self.signals.arm(TaskSlot.SCAN)
        self._spawn(self._scan_flow(generation), f"scan-{generation}")
        return True

    def _owns_scan(self, generation: int) -> bool:
        return (
            self.session.state.kind == AppStateKind.SCANNING
            and self.signals[TaskSlot.SCAN].generation == generation
        )

    async def _scan_flow(self, generation: int) -> None:
        self._spawn(self._animate(TaskSlot.SCAN, generation, self._advance_scan), f"scan-ticker-{generation}")
        try:
            await self.link.request_scan(self.config.scan_timeout)
            if not self._owns_scan(generation):
                logger.debug("Scan superseded, discarding results")
                return
            await self._stop_ticker(TaskSlot.SCAN, generation)

            access_points = await self.link.get_access_points()
            saved_links = await self.link.get_saved_connections()
            if not self._owns_scan(generation):
                logger.debug("Scan superseded while reading results, discarding")
                return

            self.catalog.replace(access_points, saved_links)
            self.session.set_state(AppState.idle())
            logger.info(f"Scan complete: {len(access_points)} networks, {len(saved_links)} saved")
        except NetworkLinkError as e:
            logger.warning(f"Scan failed: {e}")
            if self._owns_scan(generation):
                self.session.set_state(AppState.idle())
        finally:
            await self._stop_ticker(TaskSlot.SCAN, generation)

    # ------------------------------------------------------------------
    # User actions
    # ------------------------------------------------------------------

    async def select(self, index: int, text: str = "", is_custom: bool = False) -> ViewAction:
        """Handle the user accepting a row or typed text."""
        state = self.session.state
        if state.kind == AppStateKind.PASSWORD_INPUT:
            await self._submit_password(state.bssid, text)
            return ViewAction.RESET

        if is_custom or self.catalog.get(index) is None:
            ssid = text.strip()
            if not ssid:
                return ViewAction.RELOAD
            await self._preempt(TaskSlot.SCAN, TaskSlot.CONNECT)
            logger.info(f"Prompting for hidden network {ssid}")
            self.session.hidden_ssid_pending = ssid
            self.session.set_state(AppState.password_input(ssid))
            return ViewAction.RESET

        access_point = self.catalog.get(index)
        await self._preempt(TaskSlot.SCAN, TaskSlot.CONNECT)
        self.session.hidden_ssid_pending = None
        if access_point.is_saved:
            self._start_connect(access_point, password=None)
        else:
            self.session.set_state(AppState.password_input(access_point.bssid))
        return ViewAction.RESET

    async def _submit_password(self, bssid: str, password: str) -> None:
        await self._preempt(TaskSlot.SCAN, TaskSlot.CONNECT)

        ssid = self.session.hidden_ssid_pending
        if ssid is not None:
            target = AccessPoint.hidden(ssid)
        else:
            target = self.catalog.find(bssid)
            if target is None:
                logger.warning(f"Access point {bssid} is no longer listed")
                self.session.set_state(AppState.idle())
                return

        self._start_connect(target, password=password)

    def _start_connect(self, target: AccessPoint, password: Optional[str]) -> None:
        snapshot = AccessPoint(
            ssid=target.ssid,
            bssid=target.bssid,
            signal_strength=target.signal_strength,
            frequency=target.frequency,
            is_protected=target.is_protected,
            saved_config_ref=target.saved_config_ref,
        )
        hidden = self.session.hidden_ssid_pending is not None

        self.session.connect_cursor = 0
        self.catalog.clear_active()
        self.session.set_state(AppState.connecting(snapshot.bssid))
        generation = self.signals.arm(TaskSlot.CONNECT)
        self._spawn(self._connect_flow(generation, snapshot, password, hidden), f"connect-{generation}")

    async def _connect_flow(
        self, generation: int, target: AccessPoint, password: Optional[str], hidden: bool
    ) -> None:
        signal = self.signals[TaskSlot.CONNECT]
        self._spawn(
            self._animate(TaskSlot.CONNECT, generation, self._advance_connect), f"connect-ticker-{generation}"
        )

        use_saved = target.is_saved and password is None
        settings_path = target.saved_config_ref if use_saved else None
        created = False
        try:
            async with self.link.watch_device_state() as states:
                if use_saved:
                    logger.info(f"Activating saved connection for {target.ssid}")
                    settings_path = await self.link.activate_connection(target.saved_config_ref)
                else:
                    logger.info(f"Creating connection for {target.ssid}")
                    settings_path = await self.link.add_and_activate(target, password, hidden)
                    created = True
                reason = await self.link.wait_for_activation(states, self.config.connect_timeout)
        except NetworkLinkError as e:
            logger.warning(f"Connecting to {target.ssid} failed: {e}")
            reason = DEVICE_REASON_UNKNOWN

        try:
            owns = signal.is_current(generation)
            if reason != DEVICE_REASON_NONE and settings_path is not None and (owns or created):
                await self._delete_failed_profile(settings_path)

            if not owns:
                logger.info(f"Connect to {target.ssid} superseded")
                return

            bssid = target.bssid
            if reason == DEVICE_REASON_NONE and hidden:
                bssid = await self._resolve_hidden_bssid(target.bssid)
                if not signal.is_current(generation):
                    return

            await self._stop_ticker(TaskSlot.CONNECT, generation)
            if reason == DEVICE_REASON_NONE:
                logger.info(f"Connected to {target.ssid}")
                self.session.hidden_ssid_pending = None
                self.catalog.mark_active(bssid, settings_path)
                self.session.set_state(AppState.idle())
            else:
                logger.info(f"Connecting to {target.ssid} failed with reason {reason}")
                self.catalog.forget(target.bssid)
                self.session.set_state(AppState.password_input(target.bssid, reason))
        finally:
            await self._stop_ticker(TaskSlot.CONNECT, generation)

    async def _delete_failed_profile(self, settings_path: str) -> None:
        try:
            await self.link.delete_connection(settings_path)
        except NetworkLinkError as e:
            logger.warning(f"Failed to delete connection profile {settings_path}: {e}")

    async def _resolve_hidden_bssid(self, fallback: str) -> str:
        try:
            active = await self.link.get_active_access_point()
        except NetworkLinkError as e:
            logger.debug(f"Could not resolve hidden network BSSID: {e}")
            return fallback
        return active.bssid if active is not None else fallback

    async def forget(self, index: int) -> ViewAction:
        """Delete the saved profile behind a row; the row itself stays."""
        access_point = self.catalog.get(index)
        if access_point is None or not access_point.is_saved:
            return ViewAction.RELOAD

        try:
            deleted = await self.link.forget_ssid(access_point.ssid)
            logger.info(f"Forgot {access_point.ssid} ({deleted} profiles deleted)")
        except NetworkLinkError as e:
            logger.warning(f"Failed to forget {access_point.ssid}: {e}")
        self.catalog.forget(access_point.bssid)
        return ViewAction.RELOAD

    def cancel(self) -> ViewAction:
        """Leave the password prompt, or tell the UI to close."""
        if self.session.state.kind == AppStateKind.PASSWORD_INPUT:
            self.session.hidden_ssid_pending = None
            self.session.set_state(AppState.idle())
            return ViewAction.RELOAD
        return ViewAction.EXIT
