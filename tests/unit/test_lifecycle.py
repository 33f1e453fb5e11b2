"""
Unit tests for the lifecycle state machine.
"""

from datetime import datetime, timezone

import pytest

from catalog.lifecycle import (
    LifecycleSnapshot,
    LifecycleStatus,
    StorefrontStatus,
    Visibility,
    needs_baseline_capture,
    normalize_lifecycle_status,
    normalize_storefront_status,
    normalize_visibility,
    transition,
)

NOW = datetime(2026, 2, 1, 12, 0, tzinfo=timezone.utc)


@pytest.mark.unit
class TestNormalization:
    @pytest.mark.parametrize("raw,expected", [
        ("RAW", LifecycleStatus.RAW),
        ("draft", LifecycleStatus.DRAFT),
        (" Ready ", LifecycleStatus.READY),
        ("pushed", LifecycleStatus.PUSHED),
        ("published", LifecycleStatus.PUSHED),
        ("new", LifecycleStatus.RAW),
        ("editing", LifecycleStatus.DRAFT),
    ])
    def test_lifecycle_synonyms(self, raw, expected):
        assert normalize_lifecycle_status(raw) is expected

    @pytest.mark.parametrize("raw", ["ARCHIVED", "", None, 3])
    def test_lifecycle_unknown(self, raw):
        assert normalize_lifecycle_status(raw) is None

    @pytest.mark.parametrize("raw,expected", [
        ("Active", StorefrontStatus.ACTIVE),
        ("active", StorefrontStatus.ACTIVE),
        ("LIVE", StorefrontStatus.ACTIVE),
        ("in-review", StorefrontStatus.PENDING),
        ("draft", StorefrontStatus.DRAFT),
    ])
    def test_storefront_synonyms(self, raw, expected):
        assert normalize_storefront_status(raw) is expected

    def test_storefront_unknown(self):
        assert normalize_storefront_status("deleted") is None

    @pytest.mark.parametrize("raw,expected", [("public", Visibility.PUBLIC), (" HIDDEN ", Visibility.HIDDEN)])
    def test_visibility(self, raw, expected):
        assert normalize_visibility(raw) is expected

    @pytest.mark.parametrize("raw", ["secret", "", None, 1])
    def test_visibility_unknown(self, raw):
        assert normalize_visibility(raw) is None


@pytest.mark.unit
class TestBaselineCapture:
    def test_entering_pushed_captures(self):
        assert needs_baseline_capture("READY", None, LifecycleStatus.PUSHED)
        assert needs_baseline_capture("RAW", 10000, LifecycleStatus.PUSHED)

    def test_pushed_without_baseline_captures(self):
        assert needs_baseline_capture("PUSHED", None, LifecycleStatus.PUSHED)
        assert needs_baseline_capture("PUSHED", 0, LifecycleStatus.PUSHED)

    def test_pushed_with_baseline_is_noop(self):
        assert not needs_baseline_capture("PUSHED", 30000, LifecycleStatus.PUSHED)

    def test_non_pushed_target_never_captures(self):
        for target in (LifecycleStatus.RAW, LifecycleStatus.DRAFT, LifecycleStatus.READY):
            assert not needs_baseline_capture("PUSHED", None, target)


@pytest.mark.unit
class TestTransition:
    def test_ready_to_pushed_sets_monitoring_fields(self):
        """상태 전이 시 기준가 채움"""
        snapshot = LifecycleSnapshot(lifecycle_status="READY", price_krw=30000, source_baseline_price_krw=None)
        changes = transition(snapshot, LifecycleStatus.PUSHED, NOW)

        assert changes == {
            "lifecycle_status": "PUSHED",
            "source_baseline_price_krw": 30000,
            "source_last_checked_price_krw": 30000,
            "source_last_checked_in_stock": True,
            "source_last_checked_at": NOW,
            "source_price_changed": False,
            "source_out_of_stock": False,
        }

    def test_pushed_to_pushed_with_baseline_changes_nothing_else(self):
        snapshot = LifecycleSnapshot(lifecycle_status="PUSHED", price_krw=35000, source_baseline_price_krw=30000)
        assert transition(snapshot, LifecycleStatus.PUSHED, NOW) == {"lifecycle_status": "PUSHED"}

    def test_unknown_price_captures_zero(self):
        snapshot = LifecycleSnapshot(lifecycle_status="DRAFT", price_krw=None, source_baseline_price_krw=None)
        changes = transition(snapshot, LifecycleStatus.PUSHED, NOW)
        assert changes["source_baseline_price_krw"] == 0

    def test_leaving_pushed_keeps_baseline(self):
        snapshot = LifecycleSnapshot(lifecycle_status="PUSHED", price_krw=30000, source_baseline_price_krw=30000)
        assert transition(snapshot, LifecycleStatus.DRAFT, NOW) == {"lifecycle_status": "DRAFT"}

    def test_any_transition_is_allowed(self):
        for current in LifecycleStatus:
            for target in LifecycleStatus:
                snapshot = LifecycleSnapshot(current.value, 100, 100)
                assert transition(snapshot, target, NOW)["lifecycle_status"] == target.value
