"""
상품 식별자 해석 (Identity Resolver)

외부에서 전달된 locator 문자열을 저장소 selector로 변환합니다.
- 24자리 16진수 문자열 → 생성된 식별자(ById)
- 그 외 문자열 → slug(BySlug)

알려진 모호성: 24자리 16진수 형태의 slug는 식별자로 해석됩니다.
`slug:` 접두사를 붙이면 항상 slug로 조회합니다.
"""

import re
import uuid
from dataclasses import dataclass
from typing import Any, Union

PRODUCT_ID_LENGTH = 24
SLUG_PREFIX = "slug:"

_PRODUCT_ID_PATTERN = re.compile(r"[0-9a-fA-F]{24}")


def is_product_id(value: Any) -> bool:
    """24자리 16진수 문자열 여부"""
    return isinstance(value, str) and bool(_PRODUCT_ID_PATTERN.fullmatch(value))


def new_product_id() -> str:
    return uuid.uuid4().hex[:PRODUCT_ID_LENGTH]


@dataclass(frozen=True)
class ById:
    product_id: str

    def where(self, model):
        return model.id == self.product_id


@dataclass(frozen=True)
class BySlug:
    slug: str

    def where(self, model):
        return model.slug == self.slug


Selector = Union[ById, BySlug]


def resolve(locator: str) -> Selector:
    if locator.startswith(SLUG_PREFIX):
        return BySlug(locator[len(SLUG_PREFIX):])
    if is_product_id(locator):
        return ById(locator.lower())
    return BySlug(locator)
