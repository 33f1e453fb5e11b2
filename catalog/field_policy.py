"""
필드 접근 정책 (Field Access Policy)

상품 레코드는 임포트 툴과 스토어프론트 앱이 함께 쓰는 공유 엔티티입니다.
두 시스템은 서로 다른 필드만 쓰며, 이 모듈의 소유권 테이블이 유일한 상호배제 장치입니다.

- 기본 거부(default-deny): OWNED 에 없는 키는 PROTECTED 목록에 없더라도 거부됩니다.
- 거부된 키는 쓰기를 막지 않고 결과에 보고만 됩니다.
- 새 스토어프론트 필드는 FIELD_OWNERSHIP 에 한 줄 추가로 등록합니다.
"""

import re
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


class FieldOwner(str, Enum):
    IMPORT_TOOL = "import_tool"
    STOREFRONT = "storefront"
    SYSTEM = "system"


_I = FieldOwner.IMPORT_TOOL
_S = FieldOwner.STOREFRONT
_X = FieldOwner.SYSTEM

FIELD_OWNERSHIP: dict[str, FieldOwner] = {
    # content
    "title": _I,
    "name_mn": _I,
    "name_original": _I,
    "description_mn": _I,
    "description_original": _I,
    "short_description": _I,
    "detailed_description": _I,
    "brand": _I,
    "category": _I,
    "sub_category": _I,
    "category_id": _I,
    "tags": _I,
    "colors": _I,
    "sizes": _I,
    "video_url": _I,
    "custom_specifications": _I,
    "custom_properties": _I,
    "import_meta": _I,
    # images
    "images": _I,
    "images_original": _I,
    "images_final": _I,
    # source tracking
    "source_store": _I,
    "source_url": _I,
    "source_product_id": _I,
    "price_krw": _I,
    "price_mnt": _I,
    "source_baseline_price_krw": _I,
    "source_last_checked_price_krw": _I,
    "source_last_checked_in_stock": _I,
    "source_last_checked_at": _I,
    "source_price_changed": _I,
    "source_out_of_stock": _I,
    # lifecycle / visibility / soft delete
    "lifecycle_status": _I,
    "visibility": _I,
    "is_deleted": _I,
    "deleted_at": _I,
    # storefront
    "status": _S,
    "shop_id": _S,
    "sale_price": _S,
    "regular_price": _S,
    "stock": _S,
    "ratings": _S,
    "total_sales": _S,
    "discount_codes": _S,
    "created_at": _S,
    # identity / bookkeeping
    "id": _X,
    "_id": _X,
    "slug": _X,
    "updated_at": _X,
}

OWNED: frozenset[str] = frozenset(k for k, v in FIELD_OWNERSHIP.items() if v is FieldOwner.IMPORT_TOOL)
PROTECTED: frozenset[str] = frozenset(k for k, v in FIELD_OWNERSHIP.items() if v is not FieldOwner.IMPORT_TOOL)
STOREFRONT_FIELDS: frozenset[str] = frozenset(k for k, v in FIELD_OWNERSHIP.items() if v is FieldOwner.STOREFRONT)

# Always stripped from a write, whatever the table says
ALWAYS_STRIPPED = frozenset({"id", "_id", "slug"})

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])([A-Z])")


def _to_camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.capitalize() for part in rest)


FIELD_ALIASES: dict[str, str] = {
    _to_camel(name): name for name in FIELD_OWNERSHIP if not name.startswith("_") and "_" in name
}


def canonical_field(key: str) -> str:
    """camelCase 와이어 이름을 snake_case 컬럼 이름으로 변환"""
    if key in FIELD_OWNERSHIP:
        return key
    if key in FIELD_ALIASES:
        return FIELD_ALIASES[key]
    return _CAMEL_BOUNDARY.sub(r"_\1", key).lower()


def owner_of(key: str) -> FieldOwner | None:
    return FIELD_OWNERSHIP.get(canonical_field(key))


@dataclass
class PolicyResult:
    accepted: dict[str, Any] = field(default_factory=dict)
    rejected: list[str] = field(default_factory=list)


def apply(patch: dict[str, Any], now: datetime) -> PolicyResult:
    """
    업데이트 패치를 허용/거부 필드로 분리합니다.

    Returns:
        PolicyResult(accepted=정규화된 허용 필드 + updated_at, rejected=거부된 원본 키)
    """
    result = PolicyResult()
    for key, value in patch.items():
        name = canonical_field(key)
        if name in OWNED and name not in ALWAYS_STRIPPED:
            result.accepted[name] = value
        elif key == "id":
            # 클라이언트가 레코드 전체를 되돌려 보내는 경우가 많아 조용히 제거
            continue
        else:
            result.rejected.append(key)

    result.accepted["updated_at"] = now
    return result


def split_for_insert(record: dict[str, Any]) -> PolicyResult:
    """
    신규 레코드 생성용 분리.

    아직 존재하지 않는 레코드는 스토어프론트 초기값(status, 가격, 재고 등)으로 시드할 수 있습니다.
    식별자/타임스탬프와 알 수 없는 키는 거부됩니다.
    """
    result = PolicyResult()
    for key, value in record.items():
        name = canonical_field(key)
        owner = FIELD_OWNERSHIP.get(name)
        if owner is FieldOwner.IMPORT_TOOL or (owner is FieldOwner.STOREFRONT and name != "created_at"):
            result.accepted[name] = value
        elif key == "id":
            continue
        else:
            result.rejected.append(key)
    return result
