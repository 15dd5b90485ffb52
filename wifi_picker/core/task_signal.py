"""
Cooperative cancellation handshake for the scan and connect task slots.

A flow's animation ticker polls its slot once per frame. Whoever wants the flow
gone requests shutdown and then waits, one frame at a time, until the ticker has
acknowledged. Flows never get cancelled mid-await; instead they re-check whether
they are still current before applying results.

State diagram per slot:

    UNARMED --arm--> CAN_RUN --request--> SHUTDOWN_REQUESTED --poll--> SHUTDOWN_ACKNOWLEDGED
                        ^                                                      |
                        +-------------------------arm--------------------------+
"""

import asyncio
import logging
from enum import Enum
from typing import Dict

logger = logging.getLogger(__name__)


class TaskSlot(Enum):
    SCAN = "scan"
    CONNECT = "connect"


class SignalState(Enum):
    UNARMED = "unarmed"
    CAN_RUN = "can_run"
    SHUTDOWN_REQUESTED = "shutdown_requested"
    SHUTDOWN_ACKNOWLEDGED = "shutdown_acknowledged"


class TaskSignalError(Exception):
    """Raised when a slot is armed while its previous flow is still live."""


class TaskSignal:
    """Shutdown handshake for one task slot."""

    def __init__(self, slot: TaskSlot, fps: int):
        self.slot = slot
        self.fps = fps
        self.state = SignalState.UNARMED
        self.generation = 0

    def arm(self) -> int:
        """Mark the slot runnable for a new flow and return that flow's generation."""
        if self.state in (SignalState.CAN_RUN, SignalState.SHUTDOWN_REQUESTED):
            raise TaskSignalError(f"{self.slot.value} slot armed while {self.state.value}")
        self.state = SignalState.CAN_RUN
        self.generation += 1
        logger.debug(f"{self.slot.value} slot armed (generation {self.generation})")
        return self.generation

    def poll_shutdown(self) -> bool:
        """Called by the running flow; acknowledges a pending request."""
        if self.state == SignalState.CAN_RUN:
            return False
        if self.state == SignalState.SHUTDOWN_REQUESTED:
            self.state = SignalState.SHUTDOWN_ACKNOWLEDGED
            logger.debug(f"{self.slot.value} slot acknowledged shutdown")
        return True

    def request_shutdown(self) -> None:
        if self.state == SignalState.CAN_RUN:
            self.state = SignalState.SHUTDOWN_REQUESTED

    async def await_shutdown(self) -> None:
        """Request shutdown and wait until the flow acknowledges it.

        Returns at once for a slot that is unarmed or already acknowledged. Must not
        be awaited from the ticker that polls this slot.
        """
        self.request_shutdown()
        while self.state == SignalState.SHUTDOWN_REQUESTED:
            await asyncio.sleep(1 / self.fps)

    def is_live(self) -> bool:
        return self.state in (SignalState.CAN_RUN, SignalState.SHUTDOWN_REQUESTED)

    def is_current(self, generation: int) -> bool:
        """True while the flow that armed `generation` has not been asked to stop."""
        return self.generation == generation and self.state == SignalState.CAN_RUN

    def force_acknowledge(self) -> None:
        """Mark the slot stopped without a handshake (teardown, after cancelling the ticker)."""
        if self.state != SignalState.UNARMED:
            self.state = SignalState.SHUTDOWN_ACKNOWLEDGED


class TaskSignals:
    """The two task slots of a session."""

    def __init__(self, scan_fps: int, connect_fps: int):
        self._signals: Dict[TaskSlot, TaskSignal] = {
            TaskSlot.SCAN: TaskSignal(TaskSlot.SCAN, scan_fps),
            TaskSlot.CONNECT: TaskSignal(TaskSlot.CONNECT, connect_fps),
        }

    def __getitem__(self, slot: TaskSlot) -> TaskSignal:
        return self._signals[slot]

    def arm(self, slot: TaskSlot) -> int:
        return self._signals[slot].arm()

    def poll_shutdown(self, slot: TaskSlot) -> bool:
        return self._signals[slot].poll_shutdown()

    def request_shutdown(self, slot: TaskSlot) -> None:
        self._signals[slot].request_shutdown()

    async def await_shutdown(self, slot: TaskSlot) -> None:
        await self._signals[slot].await_shutdown()

    def is_live(self, slot: TaskSlot) -> bool:
        return self._signals[slot].is_live()

    def force_acknowledge_all(self) -> None:
        for signal in self._signals.values():
            signal.force_acknowledge()
