"""
결정적 소스 변동(drift) 시뮬레이터

실제 네트워크 호출 없이 게시된 상품의 소스 가격/재고 변동을 흉내냅니다.
같은 상품 + 같은 날짜 → 같은 결과, 날짜가 바뀌면 결과가 바뀔 수 있습니다.

- 15% 확률: 품절
- 25% 확률(재고 있을 때): 가격 ±3% ~ ±12% 변동
- 시드: "{identity}-{store}-{source_url}-{day_key}" 의 32비트 해시
"""

import math
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

MS_PER_DAY = 86_400_000

OUT_OF_STOCK_PROBABILITY = 0.15
PRICE_CHANGE_PROBABILITY = 0.25
MIN_CHANGE = 0.03
MAX_CHANGE = 0.12

_MASK32 = 0xFFFFFFFF


def _to_int32(value: int) -> int:
    value &= _MASK32
    return value - 0x100000000 if value & 0x80000000 else value


def _imul(a: int, b: int) -> int:
    return (a * b) & _MASK32


def hash_string(text: str) -> int:
    """31 배수 롤링 해시 (UTF-16 코드 유닛 기준, signed 32bit 후 절댓값)"""
    data = text.encode("utf-16-le")
    h = 0
    for i in range(0, len(data), 2):
        unit = data[i] | (data[i + 1] << 8)
        h = _to_int32((h << 5) - h + unit)
    return abs(h)


class Mulberry32:
    """32비트 단일 상태 mulberry PRNG"""

    def __init__(self, seed: int):
        self.state = seed

    def next_float(self) -> float:
        self.state = (self.state + 0x6D2B79F5) & _MASK32
        t = self.state
        t = _imul(t ^ (t >> 15), t | 1)
        t ^= (t + _imul(t ^ (t >> 7), t | 61)) & _MASK32
        return ((t ^ (t >> 14)) & _MASK32) / 4294967296


def day_key(now: Optional[datetime] = None) -> int:
    now = now or datetime.now(timezone.utc)
    return math.floor(now.timestamp() * 1000) // MS_PER_DAY


def check_seed(identity: str, store: str, source_url: str, day: int) -> int:
    return hash_string(f"{identity}-{store}-{source_url}-{day}")


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


@dataclass(frozen=True)
class DriftResult:
    new_price_krw: int
    out_of_stock: bool
    price_changed: bool


def simulate_source_check(
    identity: str,
    store_key: Optional[str],
    source_url: Optional[str],
    baseline_price_krw: int,
    now: Optional[datetime] = None,
) -> DriftResult:
    seed = check_seed(identity, store_key or "", source_url or "", day_key(now))
    rng = Mulberry32(seed)

    out_of_stock = rng.next_float() < OUT_OF_STOCK_PROBABILITY

    new_price = baseline_price_krw
    triggered = False
    if not out_of_stock and rng.next_float() < PRICE_CHANGE_PROBABILITY:
        magnitude = MIN_CHANGE + rng.next_float() * (MAX_CHANGE - MIN_CHANGE)
        direction = -1 if rng.next_float() < 0.5 else 1
        new_price = max(1, _round_half_up(baseline_price_krw * (1 + magnitude * direction)))
        triggered = True

    return DriftResult(
        new_price_krw=new_price,
        out_of_stock=out_of_stock,
        price_changed=triggered or new_price != baseline_price_krw,
    )
