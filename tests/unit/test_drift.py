"""
Unit tests for the drift simulator.

시드/PRNG 는 고정 값보다 성질(결정성, 범위) 위주로 검증합니다.
"""

from datetime import datetime, timedelta, timezone

import pytest

from catalog.drift import (
    MAX_CHANGE,
    Mulberry32,
    check_seed,
    day_key,
    hash_string,
    simulate_source_check,
)

NOW = datetime(2026, 5, 20, 8, 0, tzinfo=timezone.utc)


@pytest.mark.unit
class TestHashString:
    def test_known_values(self):
        assert hash_string("") == 0
        assert hash_string("a") == 97
        assert hash_string("ab") == 97 * 31 + 98
        assert hash_string("abc") == (97 * 31 + 98) * 31 + 99

    def test_hashes_utf16_code_units(self):
        # U+1F600 은 서로게이트 쌍 D83D DE00 두 유닛으로 해시된다
        assert hash_string("\U0001F600") == 0xD83D * 31 + 0xDE00

    def test_wraps_to_32_bits(self):
        value = hash_string("https://item.gmarket.co.kr/Item?goodscode=1234567890" * 10)
        assert 0 <= value <= 2 ** 31


@pytest.mark.unit
class TestMulberry32:
    def test_same_seed_same_sequence(self):
        a, b = Mulberry32(12345), Mulberry32(12345)
        assert [a.next_float() for _ in range(20)] == [b.next_float() for _ in range(20)]

    def test_different_seeds_differ(self):
        a, b = Mulberry32(1), Mulberry32(2)
        assert [a.next_float() for _ in range(5)] != [b.next_float() for _ in range(5)]

    def test_range(self):
        rng = Mulberry32(987654321)
        values = [rng.next_float() for _ in range(2000)]
        assert all(0 <= v < 1 for v in values)
        # 대략 균등 분포
        assert 0.4 < sum(values) / len(values) < 0.6


@pytest.mark.unit
class TestSimulateSourceCheck:
    def test_day_key(self):
        assert day_key(datetime(1970, 1, 2, tzinfo=timezone.utc)) == 1
        assert day_key(datetime(1970, 1, 1, 23, 59, tzinfo=timezone.utc)) == 0

    def test_same_day_is_deterministic(self):
        first = simulate_source_check("p1", "gmarket", "https://a", 30000, now=NOW)
        later = simulate_source_check("p1", "gmarket", "https://a", 30000, now=NOW + timedelta(hours=3))
        assert first == later

    def test_seed_depends_on_day(self):
        assert check_seed("p1", "gmarket", "https://a", 100) != check_seed("p1", "gmarket", "https://a", 101)

    def test_price_stays_within_change_band(self):
        baseline = 30000
        for i in range(300):
            result = simulate_source_check(f"product-{i}", "gmarket", f"https://item/{i}", baseline, now=NOW)
            assert result.new_price_krw >= 1
            assert abs(result.new_price_krw - baseline) <= baseline * MAX_CHANGE + 1
            if result.out_of_stock:
                assert result.new_price_krw == baseline
            if result.new_price_krw != baseline:
                assert result.price_changed

    def test_outcome_frequencies(self):
        results = [
            simulate_source_check(f"id-{i}", "gmarket", "https://item", 10000, now=NOW)
            for i in range(2000)
        ]
        out_of_stock = sum(r.out_of_stock for r in results) / len(results)
        changed = sum(r.price_changed for r in results) / len(results)
        assert 0.08 < out_of_stock < 0.22
        # 0.85 * 0.25 ≈ 0.21
        assert 0.12 < changed < 0.30

    def test_zero_baseline_floors_to_one_when_changed(self):
        for i in range(200):
            result = simulate_source_check(f"z-{i}", None, None, 0, now=NOW)
            if result.price_changed:
                assert result.new_price_krw == 1
            else:
                assert result.new_price_krw == 0
