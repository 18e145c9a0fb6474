from datetime import datetime, timezone

import pytest

from dealapi.core.exceptions import NotFoundError
from dealapi.models.catalog import CouponUsage
from dealapi.schemas.catalog import CategoryCreate, CouponCreate, StoreCreate
from dealapi.services.catalog_service import CatalogService


@pytest.fixture
def catalog_service(db_session):
    return CatalogService(db_session)


@pytest.fixture
def coupon(catalog_service):
    category = catalog_service.create_category(
        CategoryCreate(name="Food", slug="food", icon="utensils", color="orange")
    )
    store = catalog_service.create_store(
        StoreCreate(
            name="Foodmandu",
            slug="foodmandu",
            logo="https://cdn.example.com/foodmandu.png",
            website="https://foodmandu.com",
        )
    )
    return catalog_service.create_coupon(
        CouponCreate(
            title="Momo deal",
            description="Momo deal for everyone",
            code="MOMO",
            store_id=store.id,
            category_id=category.id,
            expires_at=datetime(2030, 1, 1, tzinfo=timezone.utc),
        )
    )


class TestCouponUsage:
    def test_use_records_usage(self, catalog_service, coupon, db_session):
        used_at = datetime(2024, 3, 10, 6, 0, tzinfo=timezone.utc)

        result = catalog_service.use_coupon(coupon.id, now=used_at)

        assert result.used_count == 1
        usage = db_session.query(CouponUsage).filter_by(coupon_id=coupon.id).one()
        assert usage.used_at.replace(tzinfo=timezone.utc) == used_at

    def test_unknown_coupon(self, catalog_service, db_session):
        with pytest.raises(NotFoundError):
            catalog_service.use_coupon(999)

        assert db_session.query(CouponUsage).count() == 0

    def test_month_uses_local_timezone(self, catalog_service, coupon):
        # 2024-01-31 20:00 UTC = 2024-02-01 01:45 Asia/Kathmandu
        catalog_service.use_coupon(
            coupon.id, now=datetime(2024, 1, 31, 20, 0, tzinfo=timezone.utc)
        )
        catalog_service.use_coupon(
            coupon.id, now=datetime(2024, 1, 15, 8, 0, tzinfo=timezone.utc)
        )

        months = catalog_service.usage_by_month()

        assert [(m.month, m.usage_count, m.coupons) for m in months] == [
            ("2024-01", 1, 1),
            ("2024-02", 1, 1),
        ]

    def test_category_without_coupons_is_listed(self, catalog_service, coupon):
        catalog_service.create_category(
            CategoryCreate(name="Travel", slug="travel", icon="plane", color="blue")
        )
        catalog_service.use_coupon(coupon.id)

        usage = catalog_service.usage_by_category()

        assert [(u.category, u.usage_count, u.coupons) for u in usage] == [
            ("Food", 1, 1),
            ("Travel", 0, 0),
        ]
