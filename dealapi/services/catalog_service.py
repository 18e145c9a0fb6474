import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from dealapi.core.exceptions import ConflictError, NotFoundError, ValidationError
from dealapi.repositories.catalog_repository import (
    CategoryRepository,
    CouponRepository,
    StoreRepository,
)
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
from dealapi.utils.timezone_utils import now_utc, to_local

logger = logging.getLogger(__name__)


class CatalogService:
    """카테고리/스토어/쿠폰 카탈로그 관리"""

    def __init__(self, db: Session):
        self.db = db
        self.category_repo = CategoryRepository(db)
        self.store_repo = StoreRepository(db)
        self.coupon_repo = CouponRepository(db)

    # ------------------------------------------------------------------
    # Categories
    # ------------------------------------------------------------------

    def list_categories(self) -> List[Category]:
        return self.category_repo.list_all()

    def list_categories_with_counts(self) -> List[CategoryWithCount]:
        return self.category_repo.list_with_counts()

    def get_category(self, category_id: int) -> Category:
        category = self.category_repo.get_by_id(category_id)
        if not category:
            raise NotFoundError(f"Category {category_id} not found")
        return category

    def get_category_by_slug(self, slug: str) -> Category:
        category = self.category_repo.get_by_slug(slug)
        if not category:
            raise NotFoundError(f"Category '{slug}' not found")
        return category

    def create_category(self, payload: CategoryCreate) -> Category:
        if self.category_repo.get_by_slug(payload.slug):
            raise ConflictError(f"Category slug '{payload.slug}' already exists")
        category = self._save(lambda: self.category_repo.create(**payload.model_dump()))
        logger.info(f"Created category {category.id} ({category.slug})")
        return category

    def update_category(self, category_id: int, payload: CategoryUpdate) -> Category:
        changes = payload.model_dump(exclude_unset=True)
        if "slug" in changes:
            other = self.category_repo.get_by_slug(changes["slug"])
            if other and other.id != category_id:
                raise ConflictError(f"Category slug '{changes['slug']}' already exists")
        category = self._save(lambda: self.category_repo.update(category_id, **changes))
        if not category:
            raise NotFoundError(f"Category {category_id} not found")
        return category

    def delete_category(self, category_id: int) -> None:
        self.get_category(category_id)
        if self.coupon_repo.exists({"category_id": category_id}):
            raise ConflictError(f"Category {category_id} still has coupons")
        self.category_repo.delete(category_id)
        logger.info(f"Deleted category {category_id}")

    # ------------------------------------------------------------------
    # Stores
    # ------------------------------------------------------------------

    def list_stores(self) -> List[Store]:
        return self.store_repo.list_all()

    def list_stores_with_counts(self) -> List[StoreWithCount]:
        return self.store_repo.list_with_counts()

    def get_store(self, store_id: int) -> Store:
        store = self.store_repo.get_by_id(store_id)
        if not store:
            raise NotFoundError(f"Store {store_id} not found")
        return store

    def get_store_by_slug(self, slug: str) -> Store:
        store = self.store_repo.get_by_slug(slug)
        if not store:
            raise NotFoundError(f"Store '{slug}' not found")
        return store

    def create_store(self, payload: StoreCreate) -> Store:
        if self.store_repo.get_by_slug(payload.slug):
            raise ConflictError(f"Store slug '{payload.slug}' already exists")
        store = self._save(lambda: self.store_repo.create(**payload.model_dump()))
        logger.info(f"Created store {store.id} ({store.slug})")
        return store

    def update_store(self, store_id: int, payload: StoreUpdate) -> Store:
        changes = payload.model_dump(exclude_unset=True)
        if "slug" in changes:
            other = self.store_repo.get_by_slug(changes["slug"])
            if other and other.id != store_id:
                raise ConflictError(f"Store slug '{changes['slug']}' already exists")
        store = self._save(lambda: self.store_repo.update(store_id, **changes))
        if not store:
            raise NotFoundError(f"Store {store_id} not found")
        return store

    def delete_store(self, store_id: int) -> None:
        self.get_store(store_id)
        if self.coupon_repo.exists({"store_id": store_id}):
            raise ConflictError(f"Store {store_id} still has coupons")
        self.store_repo.delete(store_id)
        logger.info(f"Deleted store {store_id}")

    # ------------------------------------------------------------------
    # Coupons
    # ------------------------------------------------------------------

    def search_coupons(
        self,
        category_id: Optional[int] = None,
        store_id: Optional[int] = None,
        featured: Optional[bool] = None,
        search: Optional[str] = None,
        sort_by: CouponSort = CouponSort.NEWEST,
        limit: int = 50,
        offset: int = 0,
    ) -> List[CouponWithRelations]:
        return self.coupon_repo.search(
            category_id=category_id,
            store_id=store_id,
            featured=featured,
            search=search,
            sort_by=sort_by,
            limit=max(1, min(limit, 100)),
            offset=max(0, offset),
        )

    def get_coupon(self, coupon_id: int) -> CouponWithRelations:
        coupon = self.coupon_repo.get_by_id(coupon_id)
        if not coupon:
            raise NotFoundError(f"Coupon {coupon_id} not found")
        return coupon

    def _ensure_references(self, store_id: Optional[int], category_id: Optional[int]) -> None:
        if store_id is not None and not self.store_repo.get_by_id(store_id):
            raise ValidationError(f"Store {store_id} does not exist")
        if category_id is not None and not self.category_repo.get_by_id(category_id):
            raise ValidationError(f"Category {category_id} does not exist")

    def create_coupon(self, payload: CouponCreate) -> CouponWithRelations:
        self._ensure_references(payload.store_id, payload.category_id)
        coupon = self._save(lambda: self.coupon_repo.create(**payload.model_dump()))
        logger.info(f"Created coupon {coupon.id} for store {coupon.store_id}")
        return coupon

    def update_coupon(self, coupon_id: int, payload: CouponUpdate) -> CouponWithRelations:
        changes = payload.model_dump(exclude_unset=True)
        self._ensure_references(changes.get("store_id"), changes.get("category_id"))
        coupon = self._save(lambda: self.coupon_repo.update(coupon_id, **changes))
        if not coupon:
            raise NotFoundError(f"Coupon {coupon_id} not found")
        return coupon

    def delete_coupon(self, coupon_id: int) -> None:
        if not self.coupon_repo.delete(coupon_id):
            raise NotFoundError(f"Coupon {coupon_id} not found")
        logger.info(f"Deleted coupon {coupon_id}")

    def use_coupon(
        self, coupon_id: int, now: Optional[datetime] = None
    ) -> CouponWithRelations:
        coupon = self.coupon_repo.increment_used_count(coupon_id, used_at=now or now_utc())
        if not coupon:
            raise NotFoundError(f"Coupon {coupon_id} not found")
        return coupon

    # ------------------------------------------------------------------
    # Usage heat maps
    # ------------------------------------------------------------------

    def usage_by_category(self) -> List[CategoryUsage]:
        return self.coupon_repo.usage_by_category()

    def usage_by_month(self) -> List[MonthlyUsage]:
        """월별 사용 횟수 - 서비스 기준 시간대의 달로 묶음"""
        return self.coupon_repo.usage_by_month(
            lambda used_at: to_local(used_at).strftime("%Y-%m")
        )

    def _save(self, operation):
        """유니크 제약 위반을 ConflictError 로 변환"""
        try:
            return operation()
        except IntegrityError as e:
            logger.warning(f"Catalog write rejected: {e.orig}")
            raise ConflictError("Resource already exists")
