"""
Tests for Tracker: updated/unchanged classification.
"""

import pytest

from dotkit.core.models.version import Version
from dotkit.core.services.tracker import Tracker


class TestClassification:
    @pytest.mark.parametrize(
        "old, new, changed",
        [
            ("1.0", "1.1", True),
            ("1.0", "1.0", False),
            ("Unknown", "Not Installed", False),
            ("Not Installed", "2.0", True),
        ],
    )
    def test_table(self, old, new, changed):
        tracker = Tracker()
        assert tracker.record("tool", Version.parse(old), Version.parse(new)) is changed

    def test_unknown_new_is_never_an_update(self):
        tracker = Tracker()
        assert not tracker.record("tool", Version.of("1.0"), Version.unknown())
        assert tracker.unchanged() == [("tool", "Unknown")]

    def test_removal_is_not_an_update(self):
        tracker = Tracker()
        assert not tracker.record("tool", Version.of("1.0"), Version.absent())


class TestLists:
    def test_sorted_by_name(self):
        tracker = Tracker()
        tracker.record("zoxide", Version.of("0.9"), Version.of("0.9"))
        tracker.record("bat", Version.of("0.23"), Version.of("0.24"))
        tracker.record("jq", Version.of("1.6"), Version.of("1.7"))
        tracker.record("fzf", Version.of("0.44"), Version.of("0.44"))

        assert tracker.updated() == [("bat", "0.23", "0.24"), ("jq", "1.6", "1.7")]
        assert tracker.unchanged() == [("fzf", "0.44"), ("zoxide", "0.9")]
        assert len(tracker) == 4

    def test_dedupe_by_name(self):
        tracker = Tracker()
        tracker.record("jq", Version.of("1.7"), Version.of("1.7"))
        tracker.record("jq", Version.of("1.7"), Version.of("1.7"))
        assert tracker.unchanged() == [("jq", "1.7")]

    def test_changed_not_demoted(self):
        tracker = Tracker()
        tracker.record("jq", Version.of("1.6"), Version.of("1.7"))
        tracker.record("jq", Version.of("1.7"), Version.of("1.7"))
        assert tracker.updated() == [("jq", "1.6", "1.7")]
        assert tracker.unchanged() == []

    def test_second_change_keeps_first_previous(self):
        tracker = Tracker()
        tracker.record("jq", Version.of("1.5"), Version.of("1.6"))
        tracker.record("jq", Version.of("1.6"), Version.of("1.7"))
        assert tracker.updated() == [("jq", "1.5", "1.7")]

    def test_unchanged_then_changed(self):
        tracker = Tracker()
        tracker.record("jq", Version.of("1.6"), Version.of("1.6"))
        tracker.record("jq", Version.of("1.6"), Version.of("1.7"))
        assert tracker.updated() == [("jq", "1.6", "1.7")]
        assert tracker.unchanged() == []
