"""
Tests for the picker view projection.
"""

import pytest
from conftest import CAFE_BSSID, HOME_BSSID, OFFICE_BSSID

from wifi_picker.const import ICONS_OPEN, ICONS_PSK
from wifi_picker.core.session import AppState
from wifi_picker.core.view import PickerView, signal_bucket
from wifi_picker.network.models import AccessPoint


@pytest.fixture
def view(session, sample_access_points) -> PickerView:
    session.catalog.replace(sample_access_points, {})
    return PickerView(session)


class TestSignalBucket:
    @pytest.mark.parametrize(
        "strength,bucket",
        [(100, 0), (70, 0), (69, 1), (50, 1), (49, 2), (30, 2), (29, 3), (10, 3), (9, 4), (0, 4)],
    )
    def test_boundaries(self, strength, bucket):
        assert signal_bucket(strength) == bucket


class TestRows:
    """Test row rendering."""

    def test_plain_row(self, view):
        row = view.row(2)  # Cafe, 40%, open

        assert row.text == f"{ICONS_OPEN[2]}  Cafe"
        assert not row.active
        assert not row.markup

    def test_protected_icon(self, view):
        row = view.row(0)  # Home, 90%, protected
        assert row.text == f"{ICONS_PSK[0]}  Home"

    def test_active_row_has_connected_label(self, view, session):
        session.catalog.mark_active(OFFICE_BSSID)

        row = view.row(0)

        assert row.active and row.markup
        assert row.text.startswith(f"{ICONS_PSK[1]}  Office ")
        assert "(connected)" in row.text
        assert "<span" in row.text

    def test_connecting_row_shows_frame(self, view, session):
        session.set_state(AppState.connecting(CAFE_BSSID))
        session.connect_cursor = 4

        row = view.row(0)

        assert row.active and row.markup
        assert "connecting .." in row.text  # frame 4 % 3 == 1

    def test_markup_row_escapes_ssid(self, session):
        session.catalog.replace(
            [
                AccessPoint(
                    ssid="Tom & Jerry", bssid="00:11:22:33:44:55", signal_strength=80, frequency=0, is_protected=False
                )
            ],
            {},
        )
        session.catalog.mark_active("00:11:22:33:44:55")

        assert "Tom &amp; Jerry" in PickerView(session).row(0).text

    def test_custom_markup_template(self, view, session):
        session.config.status_markup = "<i>{text}</i>"
        session.catalog.mark_active(HOME_BSSID)

        assert view.row(0).text.endswith("<i>(connected)</i>")

    def test_out_of_range_row(self, view):
        assert view.row(3) is None
        assert view.row(-1) is None


class TestPrompt:
    """Test the prompt for each state."""

    def test_idle(self, view):
        assert view.prompt() == "wifi"

    def test_scanning(self, view, session):
        session.set_state(AppState.scanning())
        session.scan_cursor = 7
        frames = session.config.scan_frames
        assert view.prompt() == f"{frames[7 % len(frames)]} wifi"

    def test_connecting(self, view, session):
        session.set_state(AppState.connecting(CAFE_BSSID))
        assert view.prompt() == "connecting ."

    @pytest.mark.parametrize("reason,text", [(0, "password"), (7, "bad auth"), (1, "fail"), (53, "fail")])
    def test_password_input(self, view, session, reason, text):
        session.set_state(AppState.password_input(CAFE_BSSID, reason))
        assert view.prompt() == text

    def test_custom_display_name(self, view, session):
        session.config.display_name = "networks"
        assert view.prompt() == "networks"


class TestEntriesAndMatching:
    def test_entry_count(self, view, session):
        assert view.entry_count() == 3
        session.set_state(AppState.password_input(CAFE_BSSID))
        assert view.entry_count() == 0

    def test_token_match_all_tokens_case_insensitive(self, view):
        # Row 0 is Home
        assert view.token_match(0, ["ho", "ME"])
        assert not view.token_match(0, ["home", "cafe"])
        assert view.token_match(0, [])

    def test_token_match_disabled_in_password_input(self, view, session):
        session.set_state(AppState.password_input(CAFE_BSSID))
        assert not view.token_match(0, ["home"])

    def test_token_match_out_of_range(self, view):
        assert not view.token_match(10, ["home"])
