"""
Core orchestration: session state, task signals, flows and the view projection.
"""

from .config import PickerConfig, load_config
from .listener import ExternalEventListener
from .orchestrator import Orchestrator, ViewAction
from .session import AppState, AppStateKind, Session
from .task_signal import SignalState, TaskSignal, TaskSignalError, TaskSignals, TaskSlot
from .view import DisplayRow, PickerView, signal_bucket

__all__ = [
    "AppState",
    "AppStateKind",
    "DisplayRow",
    "ExternalEventListener",
    "Orchestrator",
    "PickerConfig",
    "PickerView",
    "Session",
    "SignalState",
    "TaskSignal",
    "TaskSignalError",
    "TaskSignals",
    "TaskSlot",
    "ViewAction",
    "load_config",
    "signal_bucket",
]
