"""
Read-only projection of the session for a picker UI.

The host polls these methods every frame; nothing here mutates the session.
"""

import html
from dataclasses import dataclass
from typing import List, Optional

from ..const import (
    DEVICE_REASON_NO_SECRETS,
    DEVICE_REASON_NONE,
    PROMPT_BAD_AUTH,
    PROMPT_FAIL,
    PROMPT_PASSWORD,
    SIGNAL_BUCKETS,
)
from .session import AppStateKind, Session


@dataclass
class DisplayRow:
    text: str
    active: bool = False
    markup: bool = False  # text is Pango markup


def signal_bucket(strength: int) -> int:
    """Icon index for a signal strength: 0 for >=70 down to 4 for below 10."""
    for index, threshold in enumerate(SIGNAL_BUCKETS):
        if strength >= threshold:
            return index
    return len(SIGNAL_BUCKETS)


def _frame(frames: List[str], cursor: int) -> str:
    return frames[cursor % len(frames)]


class PickerView:
    def __init__(self, session: Session):
        self.session = session

    def entry_count(self) -> int:
        if self.session.state.kind == AppStateKind.PASSWORD_INPUT:
            return 0
        return len(self.session.catalog)

    def row(self, index: int) -> Optional[DisplayRow]:
        session = self.session
        config = session.config
        access_point = session.catalog.get(index)
        if access_point is None:
            return None

        icons = config.icons_psk if access_point.is_protected else config.icons_open
        icon = icons[signal_bucket(access_point.signal_strength)]

        state = session.state
        if state.kind == AppStateKind.CONNECTING and state.bssid == access_point.bssid:
            suffix = _frame(config.connecting_frames, session.connect_cursor)
        elif session.active_connection_bssid == access_point.bssid:
            suffix = config.connected_label
        else:
            return DisplayRow(f"{icon}  {access_point.ssid}")

        status = config.status_markup.replace("{text}", suffix)
        return DisplayRow(f"{icon}  {html.escape(access_point.ssid)} {status}", active=True, markup=True)

    def prompt(self) -> str:
        session = self.session
        config = session.config
        state = session.state

        if state.kind == AppStateKind.SCANNING:
            return f"{_frame(config.scan_frames, session.scan_cursor)} {config.display_name}"
        if state.kind == AppStateKind.CONNECTING:
            return _frame(config.connecting_frames, session.connect_cursor)
        if state.kind == AppStateKind.PASSWORD_INPUT:
            if state.reason == DEVICE_REASON_NONE:
                return PROMPT_PASSWORD
            if state.reason == DEVICE_REASON_NO_SECRETS:
                return PROMPT_BAD_AUTH
            return PROMPT_FAIL
        return config.display_name

    def token_match(self, index: int, tokens: List[str]) -> bool:
        """Case-insensitive match of every token against the row's SSID."""
        if self.session.state.kind == AppStateKind.PASSWORD_INPUT:
            return False
        access_point = self.session.catalog.get(index)
        if access_point is None:
            return False
        ssid = access_point.ssid.casefold()
        return all(token.casefold() in ssid for token in tokens)
