"""
카탈로그 API 라우터 (카테고리 / 스토어 / 쿠폰)

조회는 공개, 생성/수정/삭제와 사용량 히트맵(/heatmap/category, /heatmap/time)은
관리자 전용입니다.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Path, Query, status

from dealapi.core.auth_middleware import require_admin
from dealapi.deps import get_catalog_service
from dealapi.schemas.catalog import (
    Category,
    CategoryCreate,
    CategoryUpdate,
    CategoryUsage,
    CategoryWithCount,
    CouponCreate,
    CouponSort,
    CouponUpdate,
    CouponWithRelations,
    MonthlyUsage,
    Store,
    StoreCreate,
    StoreUpdate,
    StoreWithCount,
)
from dealapi.schemas.pagination import PaginationLimits
from dealapi.schemas.user import User as UserSchema
from dealapi.services.catalog_service import CatalogService

router = APIRouter(tags=["catalog"])


# ============================================================================
# Categories
# ============================================================================


@router.get("/categories", response_model=List[Category])
async def list_categories(
    catalog_service: CatalogService = Depends(get_catalog_service),
) -> List[Category]:
    return catalog_service.list_categories()


@router.get("/categories/with-counts", response_model=List[CategoryWithCount])
async def list_categories_with_counts(
    catalog_service: CatalogService = Depends(get_catalog_service),
) -> List[CategoryWithCount]:
    """쿠폰 수가 많은 순으로 정렬"""
    return catalog_service.list_categories_with_counts()


@router.get("/categories/slug/{slug}", response_model=Category)
async def get_category_by_slug(
    slug: str, catalog_service: CatalogService = Depends(get_catalog_service)
) -> Category:
    return catalog_service.get_category_by_slug(slug)


@router.get("/categories/{category_id}", response_model=Category)
async def get_category(
    category_id: int = Path(..., gt=0),
    catalog_service: CatalogService = Depends(get_catalog_service),
) -> Category:
    return catalog_service.get_category(category_id)


@router.post("/categories", response_model=Category, status_code=status.HTTP_201_CREATED)
async def create_category(
    payload: CategoryCreate,
    _: UserSchema = Depends(require_admin),
    catalog_service: CatalogService = Depends(get_catalog_service),
) -> Category:
    return catalog_service.create_category(payload)


@router.put("/categories/{category_id}", response_model=Category)
async def update_category(
    payload: CategoryUpdate,
    category_id: int = Path(..., gt=0),
    _: UserSchema = Depends(require_admin),
    catalog_service: CatalogService = Depends(get_catalog_service),
) -> Category:
    return catalog_service.update_category(category_id, payload)


@router.delete("/categories/{category_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_category(
    category_id: int = Path(..., gt=0),
    _: UserSchema = Depends(require_admin),
    catalog_service: CatalogService = Depends(get_catalog_service),
) -> None:
    catalog_service.delete_category(category_id)


# ============================================================================
# Stores
# ============================================================================


@router.get("/stores", response_model=List[Store])
async def list_stores(
    catalog_service: CatalogService = Depends(get_catalog_service),
) -> List[Store]:
    return catalog_service.list_stores()


@router.get("/stores/with-counts", response_model=List[StoreWithCount])
async def list_stores_with_counts(
    catalog_service: CatalogService = Depends(get_catalog_service),
) -> List[StoreWithCount]:
    return catalog_service.list_stores_with_counts()


@router.get("/stores/slug/{slug}", response_model=Store)
async def get_store_by_slug(
    slug: str, catalog_service: CatalogService = Depends(get_catalog_service)
) -> Store:
    return catalog_service.get_store_by_slug(slug)


@router.get("/stores/{store_id}", response_model=Store)
async def get_store(
    store_id: int = Path(..., gt=0),
    catalog_service: CatalogService = Depends(get_catalog_service),
) -> Store:
    return catalog_service.get_store(store_id)


@router.post("/stores", response_model=Store, status_code=status.HTTP_201_CREATED)
async def create_store(
    payload: StoreCreate,
    _: UserSchema = Depends(require_admin),
    catalog_service: CatalogService = Depends(get_catalog_service),
) -> Store:
    return catalog_service.create_store(payload)


@router.put("/stores/{store_id}", response_model=Store)
async def update_store(
    payload: StoreUpdate,
    store_id: int = Path(..., gt=0),
    _: UserSchema = Depends(require_admin),
    catalog_service: CatalogService = Depends(get_catalog_service),
) -> Store:
    return catalog_service.update_store(store_id, payload)


@router.delete("/stores/{store_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_store(
    store_id: int = Path(..., gt=0),
    _: UserSchema = Depends(require_admin),
    catalog_service: CatalogService = Depends(get_catalog_service),
) -> None:
    catalog_service.delete_store(store_id)


# ============================================================================
# Coupons
# ============================================================================


@router.get("/coupons", response_model=List[CouponWithRelations])
async def list_coupons(
    category_id: Optional[int] = Query(None, gt=0),
    store_id: Optional[int] = Query(None, gt=0),
    featured: Optional[bool] = Query(None),
    search: Optional[str] = Query(None, max_length=100),
    sort_by: CouponSort = Query(CouponSort.NEWEST),
    limit: int = Query(
        PaginationLimits.COUPON_LIST["default"],
        ge=PaginationLimits.COUPON_LIST["min"],
        le=PaginationLimits.COUPON_LIST["max"],
    ),
    offset: int = Query(0, ge=0),
    catalog_service: CatalogService = Depends(get_catalog_service),
) -> List[CouponWithRelations]:
    """쿠폰 목록 - 카테고리/스토어/추천 필터, 제목·설명·스토어명 검색"""
    return catalog_service.search_coupons(
        category_id=category_id,
        store_id=store_id,
        featured=featured,
        search=search,
        sort_by=sort_by,
        limit=limit,
        offset=offset,
    )


@router.get("/coupons/{coupon_id}", response_model=CouponWithRelations)
async def get_coupon(
    coupon_id: int = Path(..., gt=0),
    catalog_service: CatalogService = Depends(get_catalog_service),
) -> CouponWithRelations:
    return catalog_service.get_coupon(coupon_id)


@router.post("/coupons/{coupon_id}/use", response_model=CouponWithRelations)
async def use_coupon(
    coupon_id: int = Path(..., gt=0),
    catalog_service: CatalogService = Depends(get_catalog_service),
) -> CouponWithRelations:
    """쿠폰 코드 복사/사용 횟수 증가"""
    return catalog_service.use_coupon(coupon_id)


@router.post("/coupons", response_model=CouponWithRelations, status_code=status.HTTP_201_CREATED)
async def create_coupon(
    payload: CouponCreate,
    _: UserSchema = Depends(require_admin),
    catalog_service: CatalogService = Depends(get_catalog_service),
) -> CouponWithRelations:
    return catalog_service.create_coupon(payload)


@router.put("/coupons/{coupon_id}", response_model=CouponWithRelations)
async def update_coupon(
    payload: CouponUpdate,
    coupon_id: int = Path(..., gt=0),
    _: UserSchema = Depends(require_admin),
    catalog_service: CatalogService = Depends(get_catalog_service),
) -> CouponWithRelations:
    return catalog_service.update_coupon(coupon_id, payload)


@router.delete("/coupons/{coupon_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_coupon(
    coupon_id: int = Path(..., gt=0),
    _: UserSchema = Depends(require_admin),
    catalog_service: CatalogService = Depends(get_catalog_service),
) -> None:
    catalog_service.delete_coupon(coupon_id)


# ============================================================================
# Usage heat maps
# ============================================================================


@router.get("/heatmap/category", response_model=List[CategoryUsage])
async def usage_heatmap_by_category(
    _: UserSchema = Depends(require_admin),
    catalog_service: CatalogService = Depends(get_catalog_service),
) -> List[CategoryUsage]:
    """카테고리별 쿠폰 사용 횟수 (사용 많은 순)"""
    return catalog_service.usage_by_category()


@router.get("/heatmap/time", response_model=List[MonthlyUsage])
async def usage_heatmap_by_month(
    _: UserSchema = Depends(require_admin),
    catalog_service: CatalogService = Depends(get_catalog_service),
) -> List[MonthlyUsage]:
    """월별 쿠폰 사용 횟수 (오래된 달부터)"""
    return catalog_service.usage_by_month()
