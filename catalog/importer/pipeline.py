"""
배치 임포트 파이프라인

    validate (항상) → [apply 일 때만]
        1. slug 기준 상품 upsert (Semaphore 로 동시성 제한, 태스크마다 세션 1개)
        2. old_id → 실제 id 매핑 (slug 로 다시 조회)
        3. 이미지의 productId 재작성 (매핑 실패 이미지는 failed 집계)
        4. 상품별 이미지 교체 (삭제 후 삽입, 상품 단위 트랜잭션)

실행 전체는 원자적이지 않습니다. 중간에 실패하면 같은 피드로 다시 실행해서 복구합니다
(slug upsert + 이미지 전체 교체라 재실행이 안전합니다).
"""

import asyncio
import logging
import time
from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy.orm import Session

from catalog.errors import CatalogError
from catalog.importer.report import ApplyReport, DryRunReport, ImportReport
from catalog.importer.validation import (
    ImageValidation,
    ProductValidation,
    validate_images,
    validate_products,
)
from catalog.services.product_service import ProductService

logger = logging.getLogger(__name__)


@dataclass
class ValidatedFeed:
    products: ProductValidation
    images: ImageValidation


class ImportPipeline:
    def __init__(
        self,
        session_factory: Callable[[], Session],
        concurrency: int = 10,
        error_limit: int = 10,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        if concurrency < 1:
            raise ValueError(f"concurrency must be >= 1 (got: {concurrency})")
        self.session_factory = session_factory
        self.concurrency = concurrency
        self.error_limit = error_limit
        self.clock = clock

    def _service(self, db: Session) -> ProductService:
        return ProductService(db, clock=self.clock)

    # ==================== 검증 ====================

    def validate(self, products: List[Any], images: List[Any]) -> ValidatedFeed:
        feed = ValidatedFeed(products=validate_products(products), images=validate_images(images))
        logger.info(
            f"[ImportPipeline] validated products={len(feed.products.valid)}/{len(products)} "
            f"images={len(feed.images.valid)}/{len(images)}"
        )
        return feed

    def dry_run_report(self, feed: ValidatedFeed) -> DryRunReport:
        return DryRunReport.build(feed.products, feed.images, error_limit=self.error_limit)

    # ==================== 적용 ====================

    async def apply(self, feed: ValidatedFeed) -> ApplyReport:
        started = time.monotonic()
        report = ApplyReport()

        # 1. upsert
        await self._upsert_products(feed.products.valid, report)

        # 2. old_id → 실제 id
        id_map = await asyncio.to_thread(self._build_id_map, feed.products.valid)
        report.mapped_products = len(id_map)

        # 3. 이미지 productId 재작성
        by_product: Dict[str, List[Dict[str, Any]]] = defaultdict(list)
        for image in feed.images.valid:
            real_id = id_map.get(image["product_id"])
            if real_id is None:
                logger.warning(f"[ImportPipeline] No product mapping for image productId={image['product_id']}")
                report.images.failed += 1
                continue
            by_product[real_id].append({**image, "product_id": real_id})

        # 4. 상품별 이미지 교체
        await self._replace_images(by_product, report)

        report.elapsed_ms = int((time.monotonic() - started) * 1000)
        logger.info(
            f"[ImportPipeline] apply done: created={report.products.created} updated={report.products.updated} "
            f"failed={report.products.failed} images_created={report.images.created} "
            f"images_failed={report.images.failed} ({report.elapsed_ms}ms)"
        )
        return report

    async def run(self, products: List[Any], images: List[Any], apply: bool = False) -> ImportReport:
        feed = self.validate(products, images)
        report = ImportReport(dry_run=self.dry_run_report(feed))
        if apply:
            report.applied = await self.apply(feed)
        return report

    # ==================== 내부 단계 ====================

    async def _upsert_products(self, records: List[Dict[str, Any]], report: ApplyReport) -> None:
        sem = asyncio.Semaphore(self.concurrency)

        def _upsert(record: Dict[str, Any]) -> bool:
            with self.session_factory() as db:
                return self._service(db).upsert_by_slug(record).created

        async def upsert_single(record: Dict[str, Any]) -> None:
            async with sem:
                try:
                    created = await asyncio.to_thread(_upsert, record)
                except CatalogError as e:
                    logger.error(f"[ImportPipeline] Upsert failed for slug={record['slug']}: {e.message}")
                    report.products.failed += 1
                    return
                if created:
                    report.products.created += 1
                else:
                    report.products.updated += 1

        await asyncio.gather(*(upsert_single(r) for r in records))

    def _build_id_map(self, records: List[Dict[str, Any]]) -> Dict[str, str]:
        with self.session_factory() as db:
            slug_to_id = self._service(db).find_ids_by_slugs(r["slug"] for r in records)

        id_map: Dict[str, str] = {}
        for record in records:
            real_id = slug_to_id.get(record["slug"])
            if real_id is not None:
                id_map[record["old_id"]] = real_id
        return id_map

    async def _replace_images(self, by_product: Dict[str, List[Dict[str, Any]]], report: ApplyReport) -> None:
        sem = asyncio.Semaphore(self.concurrency)

        def _replace(product_id: str, images: List[Dict[str, Any]]) -> tuple[int, int]:
            with self.session_factory() as db:
                return self._service(db).replace_images(product_id, images)

        async def replace_single(product_id: str, images: List[Dict[str, Any]]) -> None:
            async with sem:
                try:
                    deleted, created = await asyncio.to_thread(_replace, product_id, images)
                except CatalogError as e:
                    logger.error(f"[ImportPipeline] Image replace failed for product {product_id}: {e.message}")
                    report.images.failed += len(images)
                    return
                report.images.deleted += deleted
                report.images.created += created

        await asyncio.gather(*(replace_single(pid, imgs) for pid, imgs in by_product.items()))
