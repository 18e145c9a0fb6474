from collections import defaultdict
from datetime import datetime
from typing import List, Optional

from sqlalchemy import asc, desc, func, or_
from sqlalchemy.orm import Session

from dealapi.models.catalog import (
    Category as CategoryModel,
    Coupon as CouponModel,
    CouponUsage as CouponUsageModel,
    Store as StoreModel,
)
from dealapi.repositories.base import BaseRepository
from dealapi.schemas.catalog import (
    Category as CategorySchema,
    CategoryUsage,
    CategoryWithCount,
    CouponSort,
    CouponWithRelations,
    MonthlyUsage,
    Store as StoreSchema,
    StoreWithCount,
)


class CategoryRepository(BaseRepository[CategoryModel, CategorySchema]):
    def __init__(self, db: Session):
        super().__init__(CategoryModel, CategorySchema, db)

    def get_by_slug(self, slug: str) -> Optional[CategorySchema]:
        return self.get_by_field("slug", slug)

    def list_all(self) -> List[CategorySchema]:
        return self.find_all(order_by="name")

    def list_with_counts(self) -> List[CategoryWithCount]:
        """쿠폰 수가 많은 순으로 정렬된 카테고리 목록"""
        coupon_count = func.count(CouponModel.id)
        rows = (
            self.db.query(self.model_class, coupon_count)
            .outerjoin(CouponModel, CouponModel.category_id == self.model_class.id)
            .group_by(self.model_class.id)
            .order_by(desc(coupon_count), asc(self.model_class.name))
            .all()
        )
        return [
            CategoryWithCount(
                **CategorySchema.model_validate(category).model_dump(),
                coupon_count=count,
            )
            for category, count in rows
        ]


class StoreRepository(BaseRepository[StoreModel, StoreSchema]):
    def __init__(self, db: Session):
        super().__init__(StoreModel, StoreSchema, db)

    def get_by_slug(self, slug: str) -> Optional[StoreSchema]:
        return self.get_by_field("slug", slug)

    def list_all(self) -> List[StoreSchema]:
        return self.find_all(order_by="name")

    def list_with_counts(self) -> List[StoreWithCount]:
        """쿠폰 수가 많은 순으로 정렬된 스토어 목록"""
        coupon_count = func.count(CouponModel.id)
        rows = (
            self.db.query(self.model_class, coupon_count)
            .outerjoin(CouponModel, CouponModel.store_id == self.model_class.id)
            .group_by(self.model_class.id)
            .order_by(desc(coupon_count), asc(self.model_class.name))
            .all()
        )
        return [
            StoreWithCount(
                **StoreSchema.model_validate(store).model_dump(),
                coupon_count=count,
            )
            for store, count in rows
        ]


class CouponRepository(BaseRepository[CouponModel, CouponWithRelations]):
    """쿠폰 리포지토리 - 스토어/카테고리 정보가 포함된 스키마 반환"""

    def __init__(self, db: Session):
        super().__init__(CouponModel, CouponWithRelations, db)

    def search(
        self,
        category_id: Optional[int] = None,
        store_id: Optional[int] = None,
        featured: Optional[bool] = None,
        search: Optional[str] = None,
        sort_by: CouponSort = CouponSort.NEWEST,
        limit: int = 50,
        offset: int = 0,
    ) -> List[CouponWithRelations]:
        query = self.db.query(self.model_class).join(
            StoreModel, StoreModel.id == self.model_class.store_id
        )

        if category_id is not None:
            query = query.filter(self.model_class.category_id == category_id)
        if store_id is not None:
            query = query.filter(self.model_class.store_id == store_id)
        if featured is not None:
            query = query.filter(self.model_class.featured == featured)
        if search:
            pattern = f"%{search.strip().lower()}%"
            query = query.filter(
                or_(
                    func.lower(self.model_class.title).like(pattern),
                    func.lower(self.model_class.description).like(pattern),
                    func.lower(StoreModel.name).like(pattern),
                )
            )

        if sort_by == CouponSort.EXPIRING:
            query = query.order_by(asc(self.model_class.expires_at))
        elif sort_by == CouponSort.POPULAR:
            query = query.order_by(desc(self.model_class.used_count))
        else:
            query = query.order_by(desc(self.model_class.id))

        return self._to_schemas(query.offset(offset).limit(limit).all())

    def increment_used_count(
        self, coupon_id: int, used_at: datetime
    ) -> Optional[CouponWithRelations]:
        """사용 횟수 증가 + 사용 기록 추가 (같은 트랜잭션)"""
        updated = (
            self.db.query(self.model_class)
            .filter(self.model_class.id == coupon_id)
            .update(
                {self.model_class.used_count: self.model_class.used_count + 1},
                synchronize_session=False,
            )
        )
        if not updated:
            return None
        self.db.add(CouponUsageModel(coupon_id=coupon_id, used_at=used_at))
        self.db.commit()
        instance = self._get_model(coupon_id)
        if instance is not None:
            self.db.refresh(instance)
        return self._to_schema(instance)

    def usage_by_category(self) -> List[CategoryUsage]:
        """카테고리별 누적 사용 횟수와 쿠폰 수 (사용 많은 순)"""
        usage_count = func.coalesce(func.sum(self.model_class.used_count), 0)
        coupon_count = func.count(self.model_class.id)
        rows = (
            self.db.query(CategoryModel.id, CategoryModel.name, usage_count, coupon_count)
            .outerjoin(self.model_class, self.model_class.category_id == CategoryModel.id)
            .group_by(CategoryModel.id, CategoryModel.name)
            .order_by(desc(usage_count), asc(CategoryModel.name))
            .all()
        )
        return [
            CategoryUsage(
                category_id=category_id,
                category=name,
                usage_count=usage,
                coupons=coupons,
            )
            for category_id, name, usage, coupons in rows
        ]

    def usage_by_month(self, month_of) -> List[MonthlyUsage]:
        """사용 기록을 월 단위로 집계 (오래된 달부터)

        month_of: used_at 을 'YYYY-MM' 키로 바꾸는 함수 (시간대 변환은 호출자 책임)
        """
        rows = self.db.query(CouponUsageModel.used_at, CouponUsageModel.coupon_id).all()

        usage = defaultdict(int)
        coupons = defaultdict(set)
        for used_at, coupon_id in rows:
            month = month_of(used_at)
            usage[month] += 1
            coupons[month].add(coupon_id)

        return [
            MonthlyUsage(month=month, usage_count=usage[month], coupons=len(coupons[month]))
            for month in sorted(usage)
        ]
