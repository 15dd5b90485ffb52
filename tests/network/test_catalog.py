"""
Unit tests for AccessPointCatalog ordering and saved-profile links.
"""

import random

import pytest

from wifi_picker.network.catalog import AccessPointCatalog
from wifi_picker.network.models import AccessPoint


def make_ap(bssid: str, strength: int, ssid: str = None) -> AccessPoint:
    return AccessPoint(
        ssid=ssid or f"net-{bssid[-2:]}",
        bssid=bssid,
        signal_strength=strength,
        frequency=2437,
        is_protected=True,
    )


@pytest.fixture
def catalog() -> AccessPointCatalog:
    catalog = AccessPointCatalog()
    catalog.replace(
        [make_ap("00:00:00:00:00:01", 40), make_ap("00:00:00:00:00:02", 90), make_ap("00:00:00:00:00:03", 60)],
        {"00:00:00:00:00:03": "/settings/3"},
    )
    return catalog


def strengths(catalog: AccessPointCatalog):
    return [ap.signal_strength for ap in catalog]


def is_descending(values) -> bool:
    return all(a >= b for a, b in zip(values, values[1:]))


class TestOrdering:
    """Test sorting and pinning of the active entry."""

    def test_sorted_by_strength_without_active(self, catalog):
        assert strengths(catalog) == [90, 60, 40]

    def test_active_entry_moved_to_front(self, catalog):
        catalog.mark_active("00:00:00:00:00:01")

        assert catalog.get(0).bssid == "00:00:00:00:00:01"
        assert strengths(catalog) == [40, 90, 60]

    def test_weakest_pinned_entry_keeps_rest_descending(self):
        catalog = AccessPointCatalog()
        catalog.replace([make_ap("0A", 90), make_ap("0B", 60), make_ap("0C", 10)], {})

        catalog.mark_active("0C")

        assert strengths(catalog) == [10, 90, 60]

    def test_clear_active_restores_plain_order(self, catalog):
        catalog.mark_active("00:00:00:00:00:01")
        catalog.clear_active()

        assert catalog.active_bssid is None
        assert strengths(catalog) == [90, 60, 40]

    def test_connecting_target_beats_active(self, catalog):
        catalog.mark_active("00:00:00:00:00:01")
        catalog.set_connecting("00:00:00:00:00:03")

        assert catalog.effective_bssid == "00:00:00:00:00:03"
        assert catalog.get(0).bssid == "00:00:00:00:00:03"

        catalog.set_connecting(None)
        assert catalog.get(0).bssid == "00:00:00:00:00:01"

    def test_active_survives_replace(self, catalog):
        catalog.mark_active("00:00:00:00:00:01")
        catalog.replace([make_ap("00:00:00:00:00:01", 20), make_ap("00:00:00:00:00:04", 80)], {})

        assert catalog.get(0).bssid == "00:00:00:00:00:01"

    def test_unknown_active_bssid_leaves_order(self, catalog):
        catalog.mark_active("FF:FF:FF:FF:FF:FF")
        assert strengths(catalog) == [90, 60, 40]

    def test_invariant_holds_for_random_sequences(self):
        rng = random.Random(1234)
        catalog = AccessPointCatalog()
        bssids = [f"00:00:00:00:00:{i:02X}" for i in range(8)]

        for _ in range(200):
            if rng.random() < 0.5:
                chosen = rng.sample(bssids, rng.randint(0, len(bssids)))
                catalog.replace([make_ap(b, rng.randint(0, 100)) for b in chosen], {})
            else:
                catalog.mark_active(rng.choice(bssids))

            entries = list(catalog)
            pinned = catalog.effective_bssid
            if any(ap.bssid == pinned for ap in entries):
                assert entries[0].bssid == pinned
                assert is_descending([ap.signal_strength for ap in entries[1:]])
            else:
                assert is_descending([ap.signal_strength for ap in entries])


class TestLinks:
    """Test saved-profile linking."""

    def test_replace_links_saved_profiles(self, catalog):
        assert catalog.find("00:00:00:00:00:03").saved_config_ref == "/settings/3"
        assert catalog.find("00:00:00:00:00:03").is_saved
        assert catalog.find("00:00:00:00:00:02").saved_config_ref is None

    def test_mark_active_attaches_ref(self, catalog):
        catalog.mark_active("00:00:00:00:00:02", "/settings/9")
        assert catalog.find("00:00:00:00:00:02").saved_config_ref == "/settings/9"

    def test_forget_keeps_entry(self, catalog):
        catalog.forget("00:00:00:00:00:03")

        access_point = catalog.find("00:00:00:00:00:03")
        assert access_point is not None
        assert access_point.saved_config_ref is None
        assert len(catalog) == 3

    def test_forget_then_replace_without_profile_stays_unlinked(self, catalog):
        catalog.forget("00:00:00:00:00:03")
        catalog.replace([make_ap("00:00:00:00:00:03", 60)], {})
        assert catalog.find("00:00:00:00:00:03").saved_config_ref is None

    def test_replace_relinks_when_profile_still_exists(self, catalog):
        catalog.forget("00:00:00:00:00:03")
        catalog.replace([make_ap("00:00:00:00:00:03", 60)], {"00:00:00:00:00:03": "/settings/3"})
        assert catalog.find("00:00:00:00:00:03").saved_config_ref == "/settings/3"


class TestLookup:
    """Test index and bssid lookups."""

    def test_get_in_range(self, catalog):
        assert catalog.get(0).signal_strength == 90

    @pytest.mark.parametrize("index", [-1, 3, 100])
    def test_get_out_of_range(self, catalog, index):
        assert catalog.get(index) is None

    def test_find_missing(self, catalog):
        assert catalog.find("FF:FF:FF:FF:FF:FF") is None
