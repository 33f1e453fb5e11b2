from datetime import datetime
import uuid

from sqlalchemy import Boolean, DateTime, Float, ForeignKey, Integer, String, Text, Uuid
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from catalog.identity import new_product_id


class CatalogBase(DeclarativeBase):
    pass


class Product(CatalogBase):
    """
    스토어프론트 앱과 공유하는 상품 레코드.

    컬럼 소유권은 catalog.field_policy.FIELD_OWNERSHIP 에서 관리합니다.
    """
    __tablename__ = "products"

    id: Mapped[str] = mapped_column(String(24), primary_key=True, default=new_product_id)
    slug: Mapped[str | None] = mapped_column(Text, nullable=True, unique=True)

    # === Import-tool owned: content ===
    title: Mapped[str | None] = mapped_column(Text, nullable=True)
    name_mn: Mapped[str | None] = mapped_column(Text, nullable=True)
    name_original: Mapped[str | None] = mapped_column(Text, nullable=True)
    description_mn: Mapped[str | None] = mapped_column(Text, nullable=True)
    description_original: Mapped[str | None] = mapped_column(Text, nullable=True)
    short_description: Mapped[str | None] = mapped_column(Text, nullable=True)
    detailed_description: Mapped[str | None] = mapped_column(Text, nullable=True)
    brand: Mapped[str | None] = mapped_column(Text, nullable=True)
    category: Mapped[str | None] = mapped_column(Text, nullable=True)
    sub_category: Mapped[str | None] = mapped_column(Text, nullable=True)
    category_id: Mapped[str | None] = mapped_column(String(24), nullable=True)
    tags: Mapped[list[str] | None] = mapped_column(JSONB, nullable=True)
    colors: Mapped[list[str] | None] = mapped_column(JSONB, nullable=True)
    sizes: Mapped[list[str] | None] = mapped_column(JSONB, nullable=True)
    video_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    custom_specifications: Mapped[dict | None] = mapped_column(JSONB, nullable=True)
    custom_properties: Mapped[dict | None] = mapped_column(JSONB, nullable=True)
    import_meta: Mapped[dict | None] = mapped_column(JSONB, nullable=True)

    # === Import-tool owned: images ===
    images: Mapped[list | None] = mapped_column(JSONB, nullable=True)
    images_original: Mapped[list[str] | None] = mapped_column(JSONB, nullable=True)
    images_final: Mapped[list[str] | None] = mapped_column(JSONB, nullable=True)

    # === Import-tool owned: source tracking ===
    source_store: Mapped[str | None] = mapped_column(Text, nullable=True)  # gmarket, oliveyoung, auction
    source_url: Mapped[str | None] = mapped_column(Text, nullable=True, index=True)
    source_product_id: Mapped[str | None] = mapped_column(Text, nullable=True)
    price_krw: Mapped[int | None] = mapped_column(Integer, nullable=True)
    price_mnt: Mapped[int | None] = mapped_column(Integer, nullable=True)

    # === Import-tool owned: drift monitoring ===
    source_baseline_price_krw: Mapped[int | None] = mapped_column(Integer, nullable=True)
    source_last_checked_price_krw: Mapped[int | None] = mapped_column(Integer, nullable=True)
    source_last_checked_in_stock: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    source_last_checked_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    source_price_changed: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    source_out_of_stock: Mapped[bool | None] = mapped_column(Boolean, nullable=True)

    # === Import-tool owned: lifecycle / visibility / soft delete ===
    lifecycle_status: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        default="RAW",
        index=True,
        comment="RAW → DRAFT → READY → PUSHED"
    )
    visibility: Mapped[str] = mapped_column(Text, nullable=False, default="public")  # public, hidden
    is_deleted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    deleted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    # === Storefront owned (never written by updates) ===
    status: Mapped[str | None] = mapped_column(Text, nullable=True)  # Active, Pending, Draft
    shop_id: Mapped[str | None] = mapped_column(String(24), nullable=True)
    sale_price: Mapped[float | None] = mapped_column(Float, nullable=True)
    regular_price: Mapped[float | None] = mapped_column(Float, nullable=True)
    stock: Mapped[int | None] = mapped_column(Integer, nullable=True)
    ratings: Mapped[float | None] = mapped_column(Float, nullable=True)
    total_sales: Mapped[int | None] = mapped_column(Integer, nullable=True)
    discount_codes: Mapped[list[str] | None] = mapped_column(JSONB, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    # Import-tool bookkeeping, set by ProductService on every write
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    image_records: Mapped[list["ProductImage"]] = relationship(
        back_populates="product",
        order_by="ProductImage.sort",
    )


class ProductImage(CatalogBase):
    """배치 임포트 전용 이미지 레코드. 재임포트 시 상품 단위로 전체 교체됩니다."""
    __tablename__ = "product_images"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    product_id: Mapped[str] = mapped_column(String(24), ForeignKey("products.id"), nullable=False, index=True)
    url: Mapped[str] = mapped_column(Text, nullable=False)
    file_id: Mapped[str] = mapped_column(Text, nullable=False)
    provider: Mapped[str] = mapped_column(Text, nullable=False, default="gmarket")
    sort: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    product: Mapped[Product] = relationship(back_populates="image_records")
