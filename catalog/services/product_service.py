"""
상품 변경 서비스 (Mutation Service)

상품 저장소에 쓰는 유일한 경로입니다. 단건 편집, 일괄 상태 변경, 임포트 upsert,
노출 토글, 소스 변동 점검이 모두 이 서비스를 거칩니다.

쓰기 순서:
    1. 필드 접근 정책으로 패치 분리 (거부 필드는 경고 후 제외)
    2. 쓰기 이전 스냅샷 읽기 (기준가 캡처용)
    3. 라이프사이클 전환 계산
    4. 쓰기 + updated_at 갱신 + commit
"""

import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterable, List, Optional

from sqlalchemy import delete, or_, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from catalog import field_policy
from catalog.drift import simulate_source_check
from catalog.errors import InvalidValueError, ProductNotFoundError, StorageError
from catalog.identity import BySlug, is_product_id, new_product_id, resolve
from catalog.lifecycle import (
    LifecycleSnapshot,
    LifecycleStatus,
    StorefrontStatus,
    Visibility,
    normalize_lifecycle_status,
    transition,
)
from catalog.models import Product, ProductImage

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class UpdateResult:
    product: Product
    rejected_fields: List[str] = field(default_factory=list)


@dataclass
class BulkStatusResult:
    products: List[Product] = field(default_factory=list)
    not_found: List[str] = field(default_factory=list)


@dataclass
class CreateManyResult:
    created: List[Product] = field(default_factory=list)
    skipped: int = 0


@dataclass
class UpsertResult:
    product: Product
    created: bool
    ignored_fields: List[str] = field(default_factory=list)


@dataclass
class DriftCheckSummary:
    checked: int = 0
    price_changed: int = 0
    out_of_stock: int = 0


class ProductService:
    """
    상품 변경의 단일 진입점

    스토어프론트 소유 필드는 어떤 경로로도 갱신하지 않습니다.
    (신규 레코드 생성 시의 초기값 시드만 예외)
    """

    def __init__(self, db: Session, clock: Optional[Callable[[], datetime]] = None):
        self.db = db
        self.clock = clock or _utcnow

    @contextmanager
    def _storage(self, operation: str):
        try:
            yield
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"[ProductService] {operation} failed: {e}")
            raise StorageError(
                f"Product {operation} failed: {e}",
                table_name=Product.__tablename__,
                operation=operation,
            ) from e

    # ==================== 조회 ====================

    def find(self, locator: str) -> Optional[Product]:
        selector = resolve(locator)
        with self._storage("select"):
            return self.db.scalars(select(Product).where(selector.where(Product))).one_or_none()

    def get(self, locator: str) -> Product:
        product = self.find(locator)
        if product is None:
            raise ProductNotFoundError(locator)
        return product

    def list_products(
        self,
        lifecycle_status: Optional[str] = None,
        store: Optional[str] = None,
        visibility: Optional[str] = None,
        include_deleted: bool = False,
    ) -> List[Product]:
        stmt = select(Product)
        if lifecycle_status:
            stmt = stmt.where(Product.lifecycle_status == lifecycle_status)
        if store:
            stmt = stmt.where(Product.source_store == store)
        if visibility:
            stmt = stmt.where(Product.visibility == visibility)
        if not include_deleted:
            stmt = stmt.where(Product.is_deleted.is_(False))
        stmt = stmt.order_by(Product.created_at, Product.id)
        with self._storage("select"):
            return list(self.db.scalars(stmt).all())

    def find_ids_by_slugs(self, slugs: Iterable[str]) -> Dict[str, str]:
        slug_list = list(dict.fromkeys(slugs))
        if not slug_list:
            return {}
        with self._storage("select"):
            rows = self.db.execute(select(Product.slug, Product.id).where(Product.slug.in_(slug_list))).all()
        return {slug: product_id for slug, product_id in rows}

    def list_images(self, locator: str) -> List[ProductImage]:
        product = self.get(locator)
        with self._storage("select"):
            return list(
                self.db.scalars(
                    select(ProductImage)
                    .where(ProductImage.product_id == product.id)
                    .order_by(ProductImage.sort, ProductImage.url)
                ).all()
            )

    # ==================== 단건 변경 ====================

    def update(self, locator: str, patch: Dict[str, Any]) -> UpdateResult:
        now = self.clock()
        policy = field_policy.apply(patch, now)
        if policy.rejected:
            logger.warning(
                f"[ProductService] Ignored storefront-owned fields for {locator}: {', '.join(policy.rejected)}. "
                f"These fields are managed by the storefront app."
            )

        changes = dict(policy.accepted)
        target = self._validate_enums(changes)

        product = self.get(locator)
        with self._storage("update"):
            # 가격과 상태가 같은 요청에 와도 기준가는 변경 전 가격으로 잡습니다
            snapshot = LifecycleSnapshot.of(product)
            if target is not None:
                changes.update(transition(snapshot, target, now))
            self._assign(product, changes)
            self.db.commit()

        return UpdateResult(product=product, rejected_fields=policy.rejected)

    def toggle_visibility(self, locator: str) -> Product:
        product = self.get(locator)
        new_visibility = Visibility.HIDDEN if product.visibility == Visibility.PUBLIC.value else Visibility.PUBLIC
        return self.update(product.id, {"visibility": new_visibility.value}).product

    def soft_delete(self, locator: str) -> Product:
        return self.update(locator, {"is_deleted": True, "deleted_at": self.clock()}).product

    def restore(self, locator: str) -> Product:
        return self.update(locator, {"is_deleted": False, "deleted_at": None}).product

    # ==================== 일괄 변경 ====================

    def bulk_set_status(self, locators: Iterable[str], status: Any) -> BulkStatusResult:
        """
        여러 상품에 같은 라이프사이클 상태를 적용합니다.
        기준가 캡처는 상품별로 독립 평가합니다.
        """
        target = normalize_lifecycle_status(status)
        if target is None:
            raise InvalidValueError(
                f"lifecycleStatus must be one of: {', '.join(s.value for s in LifecycleStatus)}",
                field="lifecycle_status",
                actual_value=status,
                allowed=[s.value for s in LifecycleStatus],
            )

        now = self.clock()
        result = BulkStatusResult()
        seen_ids: set[str] = set()

        with self._storage("bulk_update"):
            for locator in dict.fromkeys(locators):
                product = self.find(locator)
                if product is None:
                    result.not_found.append(locator)
                    continue
                if product.id in seen_ids:
                    continue
                seen_ids.add(product.id)

                changes = transition(LifecycleSnapshot.of(product), target, now)
                changes["updated_at"] = now
                self._assign(product, changes)
                result.products.append(product)

            self.db.commit()

        if result.not_found:
            logger.warning(f"[ProductService] bulk status: {len(result.not_found)} locators not found")
        return result

    # ==================== 생성 ====================

    def create(self, data: Dict[str, Any]) -> Product:
        product = self._build_product(data, self.clock())
        with self._storage("insert"):
            self.db.add(product)
            self.db.commit()
        return product

    def create_many(self, items: List[Dict[str, Any]]) -> CreateManyResult:
        """slug 또는 source_url 이 이미 존재하는 항목은 건너뜁니다."""
        now = self.clock()
        result = CreateManyResult()

        slugs = [i.get("slug") for i in items if i.get("slug")]
        urls = [u for u in (self._source_url_of(i) for i in items) if u]

        existing_slugs: set[str] = set()
        existing_urls: set[str] = set()
        if slugs or urls:
            with self._storage("select"):
                rows = self.db.execute(
                    select(Product.slug, Product.source_url).where(
                        or_(Product.slug.in_(slugs), Product.source_url.in_(urls))
                    )
                ).all()
            existing_slugs = {slug for slug, _ in rows if slug}
            existing_urls = {url for _, url in rows if url}

        to_create: List[Product] = []
        for item in items:
            slug = item.get("slug")
            url = self._source_url_of(item)
            if (slug and slug in existing_slugs) or (url and url in existing_urls):
                result.skipped += 1
                continue
            if slug:
                existing_slugs.add(slug)
            if url:
                existing_urls.add(url)
            to_create.append(self._build_product(item, now))

        if to_create:
            with self._storage("insert"):
                self.db.add_all(to_create)
                self.db.commit()
        result.created = to_create
        return result

    # ==================== 임포트 저장 프리미티브 ====================

    def upsert_by_slug(self, record: Dict[str, Any]) -> UpsertResult:
        """
        slug 기준 upsert.

        - 없으면 생성 (created_at 은 생성 시에만, 스토어프론트 초기값 시드 허용)
        - 있으면 정책을 거친 임포트 툴 소유 필드만 갱신
        """
        slug = record["slug"]
        payload = {k: v for k, v in record.items() if k not in ("slug", "id", "old_id")}
        now = self.clock()

        existing = self.find(f"slug:{slug}")
        if existing is None:
            product = self._build_product({**payload, "id": record.get("id"), "slug": slug}, now)
            try:
                self.db.add(product)
                self.db.commit()
                return UpsertResult(product=product, created=True)
            except IntegrityError:
                # 동시 실행된 다른 태스크가 같은 slug 를 먼저 만든 경우
                self.db.rollback()
                existing = self.find(f"slug:{slug}")
                if existing is None:
                    raise StorageError(
                        f"Product insert failed for slug {slug}",
                        table_name=Product.__tablename__,
                        operation="upsert",
                        slug=slug,
                    )
            except SQLAlchemyError as e:
                self.db.rollback()
                raise StorageError(
                    f"Product upsert failed for slug {slug}: {e}",
                    table_name=Product.__tablename__,
                    operation="upsert",
                    slug=slug,
                ) from e

        policy = field_policy.apply(payload, now)
        if policy.rejected:
            logger.debug(f"[ProductService] upsert {slug}: kept storefront values for {', '.join(policy.rejected)}")
        changes = dict(policy.accepted)
        target = self._validate_enums(changes)
        with self._storage("upsert"):
            if target is not None:
                changes.update(transition(LifecycleSnapshot.of(existing), target, now))
            self._assign(existing, changes)
            self.db.commit()
        return UpsertResult(product=existing, created=False, ignored_fields=policy.rejected)

    def replace_images(self, product_id: str, images: List[Dict[str, Any]]) -> tuple[int, int]:
        """상품의 이미지 레코드를 전부 삭제 후 새 집합으로 교체합니다 (merge 아님)."""
        with self._storage("replace_images"):
            deleted = self.db.execute(
                delete(ProductImage).where(ProductImage.product_id == product_id)
            ).rowcount or 0
            self.db.add_all(
                [
                    ProductImage(
                        product_id=product_id,
                        url=img["url"],
                        file_id=img["file_id"],
                        provider=img.get("provider") or "gmarket",
                        sort=img.get("sort", 0),
                    )
                    for img in images
                ]
            )
            self.db.commit()
        return deleted, len(images)

    # ==================== 소스 변동 점검 ====================

    def run_drift_check_for_published(self) -> DriftCheckSummary:
        """PUSHED 상품의 소스 가격/재고 변동을 시뮬레이션하고 모니터링 필드를 갱신합니다."""
        now = self.clock()
        summary = DriftCheckSummary()

        with self._storage("drift_check"):
            products = self.db.scalars(
                select(Product).where(
                    Product.lifecycle_status == LifecycleStatus.PUSHED.value,
                    Product.is_deleted.is_(False),
                )
            ).all()

            for product in products:
                baseline = product.source_baseline_price_krw
                if baseline is None:
                    baseline = product.price_krw if product.price_krw is not None else 0
                check = simulate_source_check(
                    product.id, product.source_store, product.source_url, baseline, now=now
                )
                policy = field_policy.apply(
                    {
                        "source_last_checked_price_krw": check.new_price_krw,
                        "source_last_checked_in_stock": not check.out_of_stock,
                        "source_last_checked_at": now,
                        "source_price_changed": check.price_changed,
                        "source_out_of_stock": check.out_of_stock,
                    },
                    now,
                )
                self._assign(product, policy.accepted)

                summary.checked += 1
                if check.price_changed:
                    summary.price_changed += 1
                if check.out_of_stock:
                    summary.out_of_stock += 1

            self.db.commit()

        logger.info(
            f"[ProductService] drift check: checked={summary.checked} "
            f"price_changed={summary.price_changed} out_of_stock={summary.out_of_stock}"
        )
        return summary

    # ==================== 내부 헬퍼 ====================

    def _build_product(self, data: Dict[str, Any], now: datetime) -> Product:
        data = dict(data)
        raw_id = data.pop("id", None)
        data.pop("_id", None)
        data.pop("old_id", None)
        slug = data.pop("slug", None) or None
        if slug is not None and is_product_id(slug):
            raise InvalidValueError(
                f"slug must not look like a product id: {slug}",
                field="slug",
                actual_value=slug,
            )

        split = field_policy.split_for_insert(data)
        if split.rejected:
            logger.warning(f"[ProductService] create: dropped unknown or system fields: {', '.join(split.rejected)}")
        values = split.accepted

        target = self._validate_enums(values)
        if target is None:
            target = LifecycleStatus.RAW
        values.update(
            transition(
                LifecycleSnapshot(lifecycle_status=None, price_krw=values.get("price_krw"), source_baseline_price_krw=None),
                target,
                now,
            )
        )
        values.setdefault("visibility", Visibility.PUBLIC.value)
        values.setdefault("is_deleted", False)
        if "status" in values and values["status"] is None:
            values.pop("status")
        values.setdefault("status", StorefrontStatus.DRAFT.value)

        return Product(
            id=raw_id.lower() if is_product_id(raw_id) else new_product_id(),
            slug=slug,
            created_at=now,
            updated_at=now,
            **values,
        )

    @staticmethod
    def _validate_enums(changes: Dict[str, Any]) -> Optional[LifecycleStatus]:
        if "visibility" in changes:
            value = changes["visibility"]
            if value not in {v.value for v in Visibility}:
                raise InvalidValueError(
                    f"visibility must be one of: public, hidden (got: {value})",
                    field="visibility",
                    actual_value=value,
                    allowed=[v.value for v in Visibility],
                )
        if "lifecycle_status" not in changes:
            return None
        value = changes.pop("lifecycle_status")
        target = normalize_lifecycle_status(value)
        if target is None:
            raise InvalidValueError(
                f"lifecycleStatus must be one of: {', '.join(s.value for s in LifecycleStatus)} (got: {value})",
                field="lifecycle_status",
                actual_value=value,
                allowed=[s.value for s in LifecycleStatus],
            )
        return target

    @staticmethod
    def _assign(product: Product, changes: Dict[str, Any]) -> None:
        for name, value in changes.items():
            setattr(product, name, value)

    @staticmethod
    def _source_url_of(item: Dict[str, Any]) -> Optional[str]:
        return item.get("source_url") or item.get("sourceUrl")
