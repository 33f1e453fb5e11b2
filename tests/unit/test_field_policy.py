"""
Unit tests for the field access policy.

스토어프론트 소유 필드는 어떤 패치로도 통과하지 못해야 합니다.
"""

from datetime import datetime, timezone

import pytest

from catalog import field_policy
from catalog.field_policy import (
    FIELD_OWNERSHIP,
    OWNED,
    PROTECTED,
    STOREFRONT_FIELDS,
    FieldOwner,
    canonical_field,
    owner_of,
)

NOW = datetime(2026, 1, 1, tzinfo=timezone.utc)


@pytest.mark.unit
class TestOwnershipTable:
    def test_owned_and_protected_are_disjoint(self):
        assert OWNED.isdisjoint(PROTECTED)
        assert OWNED | PROTECTED == set(FIELD_OWNERSHIP)

    def test_storefront_fields(self):
        assert STOREFRONT_FIELDS == {
            "status", "shop_id", "sale_price", "regular_price", "stock",
            "ratings", "total_sales", "discount_codes", "created_at",
        }

    def test_identity_and_bookkeeping_are_protected(self):
        for name in ("id", "_id", "slug", "updated_at", "created_at"):
            assert name in PROTECTED

    def test_core_owned_fields(self):
        for name in ("title", "name_mn", "price_krw", "lifecycle_status", "visibility",
                     "source_baseline_price_krw", "is_deleted", "images_final"):
            assert owner_of(name) is FieldOwner.IMPORT_TOOL


@pytest.mark.unit
class TestCanonicalField:
    @pytest.mark.parametrize("key,expected", [
        ("nameMn", "name_mn"),
        ("lifecycleStatus", "lifecycle_status"),
        ("shopId", "shop_id"),
        ("sourceBaselinePriceKrw", "source_baseline_price_krw"),
        ("title", "title"),
        ("_id", "_id"),
        ("someUnknownKey", "some_unknown_key"),
    ])
    def test_wire_names(self, key, expected):
        assert canonical_field(key) == expected


@pytest.mark.unit
class TestApply:
    def test_mixed_patch_is_split(self):
        """허용 필드만 통과하고 스토어프론트 필드는 보고된다."""
        result = field_policy.apply({"title": "X", "status": "Active", "stock": 5}, NOW)

        assert result.accepted == {"title": "X", "updated_at": NOW}
        assert result.rejected == ["status", "stock"]

    def test_unknown_keys_are_denied(self):
        result = field_policy.apply({"nameMn": "Нэр", "hackerField": 1}, NOW)
        assert result.accepted == {"name_mn": "Нэр", "updated_at": NOW}
        assert result.rejected == ["hackerField"]

    def test_identity_fields_are_stripped(self):
        result = field_policy.apply({"id": "x", "_id": "y", "slug": "new-slug", "title": "T"}, NOW)
        assert "slug" not in result.accepted
        assert "id" not in result.accepted
        assert result.rejected == ["_id", "slug"]

    def test_updated_at_is_always_set_by_service(self):
        result = field_policy.apply({"updatedAt": "1999-01-01"}, NOW)
        assert result.accepted == {"updated_at": NOW}
        assert result.rejected == ["updatedAt"]

    def test_empty_patch(self):
        result = field_policy.apply({}, NOW)
        assert result.accepted == {"updated_at": NOW}
        assert result.rejected == []

    def test_accepted_never_contains_protected(self):
        patch = {name: 1 for name in FIELD_OWNERSHIP}
        result = field_policy.apply(patch, NOW)
        assert set(result.accepted) - {"updated_at"} <= OWNED


@pytest.mark.unit
class TestSplitForInsert:
    def test_storefront_seed_values_are_allowed_on_insert(self):
        result = field_policy.split_for_insert({"title": "T", "status": "Draft", "stock": 3, "shopId": None})
        assert result.accepted == {"title": "T", "status": "Draft", "stock": 3, "shop_id": None}
        assert result.rejected == []

    def test_system_fields_are_dropped(self):
        result = field_policy.split_for_insert({"title": "T", "createdAt": "x", "updated_at": "y", "id": "z", "foo": 1})
        assert result.accepted == {"title": "T"}
        assert result.rejected == ["createdAt", "updated_at", "foo"]
