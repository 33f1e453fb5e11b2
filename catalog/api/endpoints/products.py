from typing import Any, Dict, List

from fastapi import APIRouter, Body, Depends, Query
from sqlalchemy.orm import Session
import logging

from catalog.db import get_session
from catalog.schemas.product import (
    BulkStatusIn,
    BulkStatusOut,
    DriftCheckOut,
    ImportProductsOut,
    ProductImageResponse,
    ProductResponse,
    ProductUpdateResponse,
    UpdateWarnings,
)
from catalog.services.product_service import ProductService

router = APIRouter()

logger = logging.getLogger(__name__)


@router.get("", response_model=List[ProductResponse])
def list_products(
    session: Session = Depends(get_session),
    lifecycle_status: str | None = Query(default=None, alias="lifecycleStatus"),
    store: str | None = Query(default=None),
    visibility: str | None = Query(default=None),
    include_deleted: bool = Query(default=False, alias="includeDeleted"),
):
    """상품 목록 (라이프사이클/스토어/노출 상태 필터)"""
    return ProductService(session).list_products(
        lifecycle_status=lifecycle_status,
        store=store,
        visibility=visibility,
        include_deleted=include_deleted,
    )


@router.post("/import", response_model=ImportProductsOut, status_code=201)
def import_products(
    items: List[Dict[str, Any]] = Body(..., min_length=1),
    session: Session = Depends(get_session),
):
    """slug 또는 sourceUrl 이 이미 있는 항목은 건너뛰고 나머지를 생성합니다."""
    result = ProductService(session).create_many(items)
    return ImportProductsOut(
        created=len(result.created),
        skipped=result.skipped,
        products=[ProductResponse.model_validate(p) for p in result.created],
    )


@router.patch("/bulk-status", response_model=BulkStatusOut)
def bulk_update_status(payload: BulkStatusIn, session: Session = Depends(get_session)):
    result = ProductService(session).bulk_set_status(payload.ids, payload.lifecycleStatus)
    return BulkStatusOut(
        updated=len(result.products),
        notFound=result.not_found,
        products=[ProductResponse.model_validate(p) for p in result.products],
    )


@router.post("/drift-check", response_model=DriftCheckOut)
def run_drift_check(session: Session = Depends(get_session)):
    """PUSHED 상품의 소스 가격/재고 변동 점검 (시뮬레이션)"""
    summary = ProductService(session).run_drift_check_for_published()
    return DriftCheckOut(
        checked=summary.checked,
        priceChanged=summary.price_changed,
        outOfStock=summary.out_of_stock,
    )


@router.get("/{locator}", response_model=ProductResponse)
def get_product(locator: str, session: Session = Depends(get_session)):
    return ProductService(session).get(locator)


@router.get("/{locator}/images", response_model=List[ProductImageResponse])
def list_product_images(locator: str, session: Session = Depends(get_session)):
    return ProductService(session).list_images(locator)


@router.patch("/{locator}", response_model=ProductUpdateResponse, response_model_by_alias=True)
def update_product(
    locator: str,
    patch: Dict[str, Any] = Body(...),
    session: Session = Depends(get_session),
):
    """
    상품 부분 수정.

    스토어프론트 소유 필드는 쓰지 않고 `_warnings.blockedFields` 로 알려줍니다.
    요청 자체는 실패하지 않습니다.
    """
    result = ProductService(session).update(locator, patch)
    response = ProductUpdateResponse.model_validate(result.product)
    if result.rejected_fields:
        response.warnings = UpdateWarnings(
            blockedFields=result.rejected_fields,
            message="These fields are managed by the storefront app and were not updated.",
        )
    return response


@router.post("/{locator}/visibility", response_model=ProductResponse)
def toggle_visibility(locator: str, session: Session = Depends(get_session)):
    return ProductService(session).toggle_visibility(locator)
