from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime
from enum import Enum


class CouponSort(str, Enum):
    NEWEST = "newest"
    EXPIRING = "expiring"
    POPULAR = "popular"


class CategoryBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    slug: str = Field(..., min_length=1, max_length=100, pattern=r"^[a-z0-9-]+$")
    icon: str = Field(..., min_length=1, max_length=50)
    color: str = Field(..., min_length=1, max_length=30)


class CategoryCreate(CategoryBase):
    pass


class CategoryUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    slug: Optional[str] = Field(None, min_length=1, max_length=100, pattern=r"^[a-z0-9-]+$")
    icon: Optional[str] = Field(None, min_length=1, max_length=50)
    color: Optional[str] = Field(None, min_length=1, max_length=30)


class Category(CategoryBase):
    id: int

    class Config:
        from_attributes = True


class CategoryWithCount(Category):
    coupon_count: int = 0


class StoreBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    slug: str = Field(..., min_length=1, max_length=100, pattern=r"^[a-z0-9-]+$")
    logo: str
    website: str


class StoreCreate(StoreBase):
    pass


class StoreUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    slug: Optional[str] = Field(None, min_length=1, max_length=100, pattern=r"^[a-z0-9-]+$")
    logo: Optional[str] = None
    website: Optional[str] = None


class Store(StoreBase):
    id: int

    class Config:
        from_attributes = True


class StoreWithCount(Store):
    coupon_count: int = 0


class CouponBase(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: str
    code: str = Field(..., min_length=1, max_length=100)
    store_id: int
    category_id: int
    expires_at: datetime
    featured: bool = False
    verified: bool = False
    terms: Optional[str] = None


class CouponCreate(CouponBase):
    pass


class CouponUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = None
    code: Optional[str] = Field(None, min_length=1, max_length=100)
    store_id: Optional[int] = None
    category_id: Optional[int] = None
    expires_at: Optional[datetime] = None
    featured: Optional[bool] = None
    verified: Optional[bool] = None
    terms: Optional[str] = None


class Coupon(CouponBase):
    id: int
    used_count: int = 0

    class Config:
        from_attributes = True


class CouponWithRelations(Coupon):
    store: Store
    category: Category


class CategoryUsage(BaseModel):
    """카테고리별 쿠폰 사용 히트맵 항목"""

    category_id: int
    category: str
    usage_count: int = 0
    coupons: int = 0


class MonthlyUsage(BaseModel):
    """월별 쿠폰 사용 히트맵 항목 (month: YYYY-MM, 서비스 기준 시간대)"""

    month: str
    usage_count: int = 0
    coupons: int = 0
