"""Validation schemas for every write the storefront performs.

Each schema accepts both snake_case and camelCase keys so admin forms can
post either. Prices come in as decimal currency units and are stored as
integer cents (see ``to_cents``).
"""
import re
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import List, Literal, Optional

from pydantic import (
    AnyHttpUrl,
    BaseModel,
    ConfigDict,
    Field,
    TypeAdapter,
    ValidationError,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel

YOUTUBE_URL_RE = re.compile(r"^(https?://)?(www\.)?(youtube\.com|youtu\.be)/.+")

_http_url = TypeAdapter(AnyHttpUrl)


def to_cents(amount):
    if amount is None:
        return None
    return int((Decimal(str(amount)) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def is_http_url(value):
    try:
        _http_url.validate_python(value)
    except ValidationError:
        return False
    return True


def is_url_or_path(value):
    """True for absolute http(s) URLs and site-relative paths."""
    return value.startswith("/") or is_http_url(value)


class Schema(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
        extra="ignore",
    )


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------

class BrandCreate(Schema):
    name: str = Field(min_length=1, max_length=255)
    slug: Optional[str] = None
    logo_url: Optional[str] = None
    category_ids: List[int] = []


class BrandUpdate(Schema):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    slug: Optional[str] = None
    logo_url: Optional[str] = None
    category_ids: Optional[List[int]] = None


class CategoryCreate(Schema):
    name: str = Field(min_length=1, max_length=255)
    slug: Optional[str] = None
    parent_id: Optional[int] = None


class CategoryUpdate(Schema):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    slug: Optional[str] = None
    parent_id: Optional[int] = None


class VariantCreate(Schema):
    sku: str = Field(min_length=1, max_length=100)
    price: Decimal = Field(ge=0)
    sale_price: Optional[Decimal] = Field(default=None, ge=0)
    color_id: Optional[int] = None
    size_id: Optional[int] = None
    in_stock: int = Field(default=0, ge=0)
    weight: Optional[float] = Field(default=None, ge=0)
    dimensions: Optional[dict] = None


class VariantUpdate(Schema):
    sku: Optional[str] = Field(default=None, min_length=1, max_length=100)
    price: Optional[Decimal] = Field(default=None, ge=0)
    sale_price: Optional[Decimal] = Field(default=None, ge=0)
    color_id: Optional[int] = None
    size_id: Optional[int] = None
    in_stock: Optional[int] = Field(default=None, ge=0)
    weight: Optional[float] = Field(default=None, ge=0)
    dimensions: Optional[dict] = None


class ProductFields(Schema):
    description: Optional[str] = None
    brand_id: Optional[int] = None
    category_id: Optional[int] = None
    gender_id: Optional[int] = None
    manual_rating: Optional[Decimal] = Field(default=None, ge=0, le=5)
    manual_review_count: Optional[int] = Field(default=None, ge=0)
    seo_title: Optional[str] = None
    seo_description: Optional[str] = None
    seo_keywords: Optional[List[str]] = None
    amazon_url: Optional[str] = None

    @field_validator("amazon_url")
    @classmethod
    def _amazon_url_is_http(cls, value):
        if value and not is_http_url(value):
            raise ValueError("Must be a valid URL")
        return value or None

    @field_validator("manual_rating", mode="before")
    @classmethod
    def _blank_rating_is_none(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value


class ProductCreate(ProductFields):
    name: str = Field(min_length=1, max_length=255)
    slug: Optional[str] = None
    is_published: bool = False
    variant: VariantCreate
    image_url: Optional[str] = None


class ProductUpdate(ProductFields):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    slug: Optional[str] = None
    is_published: Optional[bool] = None
    default_variant_id: Optional[int] = None


class ImageCreate(Schema):
    url: str = Field(min_length=1)
    variant_id: Optional[int] = None
    sort_order: int = 0
    is_primary: bool = False

    @field_validator("url")
    @classmethod
    def _url_or_path(cls, value):
        if not is_url_or_path(value):
            raise ValueError("Must be a valid URL or a relative path starting with /")
        return value


# ---------------------------------------------------------------------------
# Reviews, price history, videos
# ---------------------------------------------------------------------------

class ReviewCreate(Schema):
    product_id: int
    user_id: Optional[int] = None
    reviewer_name: Optional[str] = None
    rating: int = Field(ge=1, le=5)
    comment: Optional[str] = None
    created_at: Optional[datetime] = None


class PriceHistoryCreate(Schema):
    product_id: int
    price: Decimal = Field(ge=0)
    sale_price: Optional[Decimal] = Field(default=None, ge=0)
    recorded_at: Optional[datetime] = None


class VideoCreate(Schema):
    product_id: int
    platform: Literal["tiktok", "youtube"] = "tiktok"
    video_url: str = Field(min_length=1)
    thumbnail_url: Optional[str] = None
    title: Optional[str] = None
    author: Optional[str] = None
    sort_order: int = 0

    @field_validator("thumbnail_url")
    @classmethod
    def _thumbnail_url_or_path(cls, value):
        if value and not is_url_or_path(value):
            raise ValueError("Must be a valid URL or a relative path starting with /")
        return value or None

    @model_validator(mode="after")
    def _video_url_matches_platform(self):
        if self.platform == "youtube":
            if not (YOUTUBE_URL_RE.match(self.video_url) or is_url_or_path(self.video_url)):
                raise ValueError("Must be a valid YouTube URL")
        elif not is_url_or_path(self.video_url):
            raise ValueError("Must be a valid URL or a relative path starting with /")
        return self


class VideoUpdate(Schema):
    product_id: Optional[int] = None
    platform: Optional[Literal["tiktok", "youtube"]] = None
    video_url: Optional[str] = Field(default=None, min_length=1)
    thumbnail_url: Optional[str] = None
    title: Optional[str] = None
    author: Optional[str] = None
    sort_order: Optional[int] = None


# ---------------------------------------------------------------------------
# Blog
# ---------------------------------------------------------------------------

class BlogPostCreate(Schema):
    title: str = Field(min_length=1, max_length=255)
    slug: Optional[str] = None
    excerpt: Optional[str] = None
    content: Optional[str] = None
    image_src: Optional[str] = None
    date: Optional[datetime] = None
    category: str = Field(min_length=1, max_length=100)
    is_published: bool = False
    author_id: Optional[int] = None
    seo_title: Optional[str] = None
    seo_description: Optional[str] = None
    seo_keywords: Optional[List[str]] = None


class BlogPostUpdate(Schema):
    title: Optional[str] = Field(default=None, min_length=1, max_length=255)
    slug: Optional[str] = None
    excerpt: Optional[str] = None
    content: Optional[str] = None
    image_src: Optional[str] = None
    date: Optional[datetime] = None
    category: Optional[str] = Field(default=None, min_length=1, max_length=100)
    is_published: Optional[bool] = None
    author_id: Optional[int] = None
    seo_title: Optional[str] = None
    seo_description: Optional[str] = None
    seo_keywords: Optional[List[str]] = None


# ---------------------------------------------------------------------------
# Cart, orders, roles
# ---------------------------------------------------------------------------

class CartItemAdd(Schema):
    variant_id: int
    quantity: int = Field(default=1, ge=1, le=99)


class CartItemUpdate(Schema):
    cart_item_id: int
    quantity: int = Field(ge=1, le=99)


class CheckoutRequest(Schema):
    shipping_address_id: Optional[int] = None
    billing_address_id: Optional[int] = None


class OrderStatusUpdate(Schema):
    status: Literal["pending", "paid", "shipped", "delivered", "cancelled"]


class RoleUpdate(Schema):
    user_id: int
    role: Literal["admin", "editor", "viewer"]
