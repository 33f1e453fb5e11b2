"""
임포트 피드 검증/정규화

레코드 하나가 잘못되어도 나머지 배치는 계속 처리합니다. 잘못된 레코드는 건너뛰고 집계만 합니다.
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Optional
from urllib.parse import urlparse

from catalog.drift import hash_string
from catalog.field_policy import canonical_field
from catalog.identity import is_product_id, new_product_id
from catalog.lifecycle import normalize_lifecycle_status, normalize_storefront_status, normalize_visibility

logger = logging.getLogger(__name__)

PRICE_FIELDS = ("regular_price", "sale_price")
INT_PRICE_FIELDS = ("price_krw", "price_mnt")
STRING_LIST_FIELDS = ("tags", "colors", "sizes", "discount_codes")
REFERENCE_FIELDS = ("shop_id", "category_id")

DEFAULT_IMAGE_PROVIDER = "gmarket"


@dataclass
class RecordError:
    index: int
    field: str
    message: str


@dataclass
class EnumNormalization:
    field: str
    old: str
    new: str


@dataclass
class ProductCheck:
    valid: Optional[dict] = None
    error: Optional[RecordError] = None
    is_duplicate: bool = False
    slug: Optional[str] = None
    enum_normalizations: list[EnumNormalization] = field(default_factory=list)
    nulled_references: int = 0


@dataclass
class ProductValidation:
    valid: list[dict] = field(default_factory=list)
    skipped: list[Any] = field(default_factory=list)
    errors: list[RecordError] = field(default_factory=list)
    slug_duplicates: list[str] = field(default_factory=list)
    enum_normalizations: list[EnumNormalization] = field(default_factory=list)
    nulled_references: int = 0


@dataclass
class ImageValidation:
    valid: list[dict] = field(default_factory=list)
    skipped: list[Any] = field(default_factory=list)
    errors: list[RecordError] = field(default_factory=list)


def _non_empty_str(value: Any) -> bool:
    return isinstance(value, str) and value.strip() != ""


def generate_file_id(url: str) -> str:
    """URL 해시로 안정적인 file_id 생성 (같은 파일은 재임포트해도 같은 ID)"""
    return f"ext_{hash_string(url):012x}"


def coerce_price(value: Any) -> Optional[float]:
    """숫자 또는 숫자 문자열("30,000" 포함)을 float 으로. 유한수가 아니면 None."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip().replace(",", ""))
        except ValueError:
            return None
    else:
        return None
    return number if math.isfinite(number) else None


def coerce_stock(value: Any) -> int:
    """재고는 0 이상의 정수. 변환 실패 시 레코드를 버리지 않고 0."""
    if isinstance(value, bool):
        return 0
    try:
        number = float(value.strip()) if isinstance(value, str) else float(value)
    except (TypeError, ValueError):
        return 0
    if not math.isfinite(number) or number < 0:
        return 0
    return int(number)


def _string_list(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, str)]


def validate_product(raw: Any, index: int, seen_slugs: set[str]) -> ProductCheck:
    if not isinstance(raw, dict):
        return ProductCheck(error=RecordError(index, "record", "product record must be an object"))

    record = {canonical_field(k): v for k, v in raw.items() if k != "id"}
    errors: list[str] = []
    normalizations: list[EnumNormalization] = []

    # title: non-empty string
    if not _non_empty_str(record.get("title")):
        errors.append("title must be a non-empty string")

    # slug: non-empty, not id-shaped, unique within the batch
    slug = record.get("slug")
    if not _non_empty_str(slug):
        return ProductCheck(error=RecordError(index, "slug", "slug is required"))
    slug = slug.strip()
    if is_product_id(slug):
        return ProductCheck(error=RecordError(index, "slug", f"slug must not look like a product id: {slug}"))
    if slug in seen_slugs:
        return ProductCheck(error=RecordError(index, "slug", f"duplicate slug: {slug}"), is_duplicate=True, slug=slug)
    # 첫 등장이 slug 를 차지한다 (이후 검증에 실패해도 마찬가지)
    seen_slugs.add(slug)
    record["slug"] = slug

    # status / lifecycle_status / visibility: enum normalization (defaults are applied on insert only)
    for name, normalize in (
        ("status", normalize_storefront_status),
        ("lifecycle_status", normalize_lifecycle_status),
        ("visibility", normalize_visibility),
    ):
        value = record.get(name)
        if value is None:
            record.pop(name, None)
            continue
        normalized = normalize(value)
        if normalized is None:
            errors.append(f"{name} has an unsupported value: {value}")
            continue
        if value != normalized.value:
            normalizations.append(EnumNormalization(name, str(value), normalized.value))
        record[name] = normalized.value

    # prices
    for name in PRICE_FIELDS + INT_PRICE_FIELDS:
        if record.get(name) is None:
            continue
        price = coerce_price(record[name])
        if price is None:
            errors.append(f"{name} must be a number (got: {record[name]})")
            continue
        record[name] = math.floor(price + 0.5) if name in INT_PRICE_FIELDS else price

    # stock
    record["stock"] = coerce_stock(record["stock"]) if "stock" in record else 0

    # string lists
    for name in STRING_LIST_FIELDS:
        record[name] = _string_list(record.get(name))

    # references: identifier-shaped or null
    nulled = 0
    for name in REFERENCE_FIELDS:
        if name not in record:
            continue
        value = record[name]
        if _non_empty_str(value) and is_product_id(value.strip()):
            record[name] = value.strip().lower()
            continue
        if _non_empty_str(value):
            logger.warning(f"[Product {index}] Invalid {name}: {value}, setting to null")
            nulled += 1
        record[name] = None

    if errors:
        return ProductCheck(error=RecordError(index, "multiple" if len(errors) > 1 else "record", "; ".join(errors)))

    # id: keep when identifier-shaped, otherwise assign a new one; old_id keeps the feed-local key
    raw_id = raw.get("id")
    record["id"] = raw_id.lower() if is_product_id(raw_id) else new_product_id()
    record["old_id"] = str(raw_id).strip() if raw_id not in (None, "") else record["id"]

    return ProductCheck(valid=record, enum_normalizations=normalizations, nulled_references=nulled)


def validate_products(products: list[Any]) -> ProductValidation:
    result = ProductValidation()
    seen_slugs: set[str] = set()

    for i, raw in enumerate(products):
        check = validate_product(raw, i, seen_slugs)
        if check.valid is not None:
            result.valid.append(check.valid)
            result.enum_normalizations.extend(check.enum_normalizations)
            result.nulled_references += check.nulled_references
            continue

        result.skipped.append(raw)
        if check.is_duplicate:
            result.slug_duplicates.append(check.slug)
        elif check.error:
            result.errors.append(check.error)

    return result


def _is_http_url(url: str) -> bool:
    parsed = urlparse(url)
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def _product_key(value: Any) -> Optional[str]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return str(value)
    if _non_empty_str(value):
        return value.strip()
    return None


def validate_image(raw: Any, index: int) -> tuple[Optional[dict], Optional[RecordError]]:
    if not isinstance(raw, dict):
        return None, RecordError(index, "record", "image record must be an object")

    url = raw.get("url")
    if not _non_empty_str(url):
        return None, RecordError(index, "url", "url must be a non-empty string")
    url = url.strip()
    if not _is_http_url(url):
        return None, RecordError(index, "url", f"url must be an http(s) URL (got: {url})")

    product_key = _product_key(raw.get("productId", raw.get("product_id")))
    if product_key is None:
        return None, RecordError(index, "productId", f"productId is required (got: {raw.get('productId')})")

    file_id = raw.get("file_id", raw.get("fileId"))
    file_id = file_id.strip() if _non_empty_str(file_id) else generate_file_id(url)

    sort = raw.get("sort")
    return {
        "url": url,
        "file_id": file_id,
        "product_id": product_key,
        "provider": raw.get("provider") if _non_empty_str(raw.get("provider")) else DEFAULT_IMAGE_PROVIDER,
        "sort": sort if isinstance(sort, int) and not isinstance(sort, bool) else 0,
    }, None


def validate_images(images: list[Any]) -> ImageValidation:
    result = ImageValidation()
    for i, raw in enumerate(images):
        valid, error = validate_image(raw, i)
        if valid is not None:
            result.valid.append(valid)
        else:
            result.skipped.append(raw)
            if error:
                result.errors.append(error)
    return result
