from datetime import datetime
from typing import Any, List, Optional
import uuid

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(from_attributes=True, alias_generator=to_camel, populate_by_name=True)


class ProductImageResponse(CamelModel):
    id: uuid.UUID
    product_id: str
    url: str
    file_id: str
    provider: str
    sort: int


class ProductResponse(CamelModel):
    id: str
    slug: Optional[str] = None
    title: Optional[str] = None
    name_mn: Optional[str] = None
    name_original: Optional[str] = None
    description_mn: Optional[str] = None
    description_original: Optional[str] = None
    short_description: Optional[str] = None
    detailed_description: Optional[str] = None
    brand: Optional[str] = None
    category: Optional[str] = None
    sub_category: Optional[str] = None
    category_id: Optional[str] = None
    tags: Optional[List[str]] = None
    colors: Optional[List[str]] = None
    sizes: Optional[List[str]] = None
    video_url: Optional[str] = None
    custom_specifications: Optional[dict] = None
    custom_properties: Optional[dict] = None
    images: Optional[List[Any]] = None
    images_original: Optional[List[str]] = None
    images_final: Optional[List[str]] = None

    source_store: Optional[str] = None
    source_url: Optional[str] = None
    source_product_id: Optional[str] = None
    price_krw: Optional[int] = None
    price_mnt: Optional[int] = None
    source_baseline_price_krw: Optional[int] = None
    source_last_checked_price_krw: Optional[int] = None
    source_last_checked_in_stock: Optional[bool] = None
    source_last_checked_at: Optional[datetime] = None
    source_price_changed: Optional[bool] = None
    source_out_of_stock: Optional[bool] = None

    lifecycle_status: str
    visibility: str
    is_deleted: bool = False
    deleted_at: Optional[datetime] = None

    status: Optional[str] = None
    shop_id: Optional[str] = None
    sale_price: Optional[float] = None
    regular_price: Optional[float] = None
    stock: Optional[int] = None
    ratings: Optional[float] = None
    total_sales: Optional[int] = None
    discount_codes: Optional[List[str]] = None

    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class UpdateWarnings(BaseModel):
    blockedFields: List[str]
    message: str


class ProductUpdateResponse(ProductResponse):
    warnings: Optional[UpdateWarnings] = Field(default=None, alias="_warnings")


class BulkStatusIn(BaseModel):
    ids: List[str] = Field(min_length=1)
    lifecycleStatus: str


class BulkStatusOut(BaseModel):
    updated: int
    notFound: List[str]
    products: List[ProductResponse]


class ImportProductsOut(BaseModel):
    created: int
    skipped: int
    products: List[ProductResponse]


class DriftCheckOut(BaseModel):
    checked: int
    priceChanged: int
    outOfStock: int


class ImageSuggestOut(BaseModel):
    query: str
    queryFinal: str
    method: str
    images: List[str]
