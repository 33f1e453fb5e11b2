"""
상품 라이프사이클 상태 머신

RAW → DRAFT → READY → PUSHED 4단계. 어떤 상태 간 전환도 허용됩니다
(READY/PUSHED 진입 전 콘텐츠 검증은 편집 화면의 책임).

유일한 상태 규칙:
    PUSHED 로 진입하거나(PUSHED 가 아닌 상태에서), PUSHED 인데 기준가가 없으면
    전환 직전의 price_krw 를 기준가(source_baseline_price_krw)로 캡처하고
    모니터링 필드를 초기화합니다. 기준가가 있는 PUSHED → PUSHED 는 아무것도 바꾸지 않습니다.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Optional


class LifecycleStatus(str, Enum):
    RAW = "RAW"
    DRAFT = "DRAFT"
    READY = "READY"
    PUSHED = "PUSHED"


class StorefrontStatus(str, Enum):
    """스토어프론트 게시 상태. 이 시스템은 임포트 시 정규화만 합니다."""
    ACTIVE = "Active"
    PENDING = "Pending"
    DRAFT = "Draft"


class Visibility(str, Enum):
    PUBLIC = "public"
    HIDDEN = "hidden"


LIFECYCLE_SYNONYMS = {
    "NEW": LifecycleStatus.RAW,
    "IMPORTED": LifecycleStatus.RAW,
    "EDITING": LifecycleStatus.DRAFT,
    "PUBLISHED": LifecycleStatus.PUSHED,
}

STOREFRONT_SYNONYMS = {
    "active": StorefrontStatus.ACTIVE,
    "live": StorefrontStatus.ACTIVE,
    "published": StorefrontStatus.ACTIVE,
    "pending": StorefrontStatus.PENDING,
    "in_review": StorefrontStatus.PENDING,
    "review": StorefrontStatus.PENDING,
    "draft": StorefrontStatus.DRAFT,
}


def normalize_lifecycle_status(value: Any) -> Optional[LifecycleStatus]:
    if isinstance(value, LifecycleStatus):
        return value
    if not isinstance(value, str):
        return None
    key = value.strip().upper().replace("-", "_").replace(" ", "_")
    if key in LifecycleStatus.__members__:
        return LifecycleStatus[key]
    return LIFECYCLE_SYNONYMS.get(key)


def normalize_storefront_status(value: Any) -> Optional[StorefrontStatus]:
    if isinstance(value, StorefrontStatus):
        return value
    if not isinstance(value, str):
        return None
    key = value.strip().lower().replace("-", "_").replace(" ", "_")
    return STOREFRONT_SYNONYMS.get(key)


def normalize_visibility(value: Any) -> Optional[Visibility]:
    if isinstance(value, Visibility):
        return value
    if not isinstance(value, str):
        return None
    key = value.strip().lower()
    return Visibility(key) if key in {v.value for v in Visibility} else None


@dataclass(frozen=True)
class LifecycleSnapshot:
    """쓰기 이전에 읽은 상품 상태. 같은 요청의 가격 변경보다 먼저 캡처되어야 합니다."""
    lifecycle_status: Optional[str]
    price_krw: Optional[int]
    source_baseline_price_krw: Optional[int]

    @classmethod
    def of(cls, product) -> "LifecycleSnapshot":
        return cls(
            lifecycle_status=product.lifecycle_status,
            price_krw=product.price_krw,
            source_baseline_price_krw=product.source_baseline_price_krw,
        )


def needs_baseline_capture(
    current_status: Optional[str],
    current_baseline: Optional[int],
    target: LifecycleStatus,
) -> bool:
    if target is not LifecycleStatus.PUSHED:
        return False
    return current_status != LifecycleStatus.PUSHED.value or not current_baseline


def baseline_fields(price_krw: int, now: datetime) -> dict[str, Any]:
    return {
        "source_baseline_price_krw": price_krw,
        "source_last_checked_price_krw": price_krw,
        "source_last_checked_in_stock": True,
        "source_last_checked_at": now,
        "source_price_changed": False,
        "source_out_of_stock": False,
    }


def transition(current: LifecycleSnapshot, target: LifecycleStatus, now: datetime) -> dict[str, Any]:
    """
    상태 전환에 필요한 필드 변경을 계산합니다.

    Args:
        current: 쓰기 이전 스냅샷
        target: 목표 상태
        now: 캡처 시각

    Returns:
        lifecycle_status 및 (필요 시) 기준가/모니터링 필드 변경분
    """
    changes: dict[str, Any] = {"lifecycle_status": target.value}
    if needs_baseline_capture(current.lifecycle_status, current.source_baseline_price_krw, target):
        changes.update(baseline_fields(current.price_krw or 0, now))
    return changes
