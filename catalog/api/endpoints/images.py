from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session
import logging

from catalog.db import get_session
from catalog.enrichment.image_query import build_english_image_query
from catalog.enrichment.image_search import MAX_SUGGEST_COUNT, ImageSearchClient
from catalog.schemas.product import ImageSuggestOut
from catalog.services.product_service import ProductService
from catalog.settings import Settings, settings

router = APIRouter()

logger = logging.getLogger(__name__)


def get_settings() -> Settings:
    return settings


def get_image_search_client(config: Settings = Depends(get_settings)) -> ImageSearchClient:
    return ImageSearchClient(config)


@router.get("/suggest", response_model=ImageSuggestOut)
def suggest_images(
    product_id: str | None = Query(default=None, alias="productId"),
    q: str | None = Query(default=None),
    count: int = Query(default=10, ge=1, le=MAX_SUGGEST_COUNT),
    start: int = Query(default=1, ge=1),
    session: Session = Depends(get_session),
    config: Settings = Depends(get_settings),
    search_client: ImageSearchClient = Depends(get_image_search_client),
):
    """상품 정보(또는 직접 입력한 q)로 영어 쿼리를 만들고 제품 사진 URL 을 추천합니다."""
    if not config.image_search_enabled:
        raise HTTPException(status_code=400, detail="Image search is not enabled. Set IMAGE_SEARCH_ENABLED=true.")
    if not config.image_search_configured():
        raise HTTPException(
            status_code=500,
            detail="Google Custom Search API credentials not configured. Set GOOGLE_CLOUD_API_KEY and CUSTOM_SEARCH_ENGINE_ID.",
        )

    if q and q.strip():
        query = build_english_image_query(title=q.strip(), config=config)
    elif product_id:
        product = ProductService(session).get(product_id)
        query = build_english_image_query(
            title=product.name_original or product.title or product.name_mn or "",
            brand=product.brand or "",
            store=product.source_store or "",
            category=product.category or "",
            config=config,
        )
    else:
        raise HTTPException(status_code=400, detail="Either productId or q (query) parameter is required")

    urls = search_client.suggest_images(query.query_final, count=count, start=start)
    logger.info(f"[ImageSuggest] query='{query.query_base}' method={query.method} urls={len(urls)}")
    return ImageSuggestOut(
        query=query.query_base,
        queryFinal=query.query_final,
        method=query.method,
        images=urls,
    )
