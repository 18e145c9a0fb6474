"""
카탈로그 기본 데이터 시드 스크립트
카테고리, 스토어, 예시 쿠폰과 사이트 설정을 초기 데이터로 설정
"""

import sys
import os

sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from datetime import timedelta

from dealapi.database.session import get_db_context
from dealapi.models.catalog import Category, Coupon, Store
from dealapi.models.site_setting import SiteSetting
from dealapi.models.user import User
from dealapi.utils.timezone_utils import now_utc


DEFAULT_CATEGORIES = [
    # (name, slug, icon, color)
    ("Fashion", "fashion", "shirt", "#ec4899"),
    ("Electronics", "electronics", "laptop", "#3b82f6"),
    ("Food & Dining", "food-dining", "utensils", "#f97316"),
    ("Travel", "travel", "plane", "#14b8a6"),
    ("Groceries", "groceries", "shopping-basket", "#22c55e"),
]

DEFAULT_STORES = [
    # (name, slug, logo, website)
    ("Daraz", "daraz", "https://logo.clearbit.com/daraz.com.np", "https://www.daraz.com.np"),
    ("Foodmandu", "foodmandu", "https://logo.clearbit.com/foodmandu.com", "https://foodmandu.com"),
    ("Sastodeal", "sastodeal", "https://logo.clearbit.com/sastodeal.com", "https://www.sastodeal.com"),
]

DEFAULT_SETTINGS = {
    "header_verification_code": "",
}


def seed_catalog_data():
    """카테고리/스토어/예시 쿠폰 시드 (이미 있는 slug 는 건너뜀)"""
    try:
        with get_db_context() as db:
            categories = {}
            for name, slug, icon, color in DEFAULT_CATEGORIES:
                category = db.query(Category).filter(Category.slug == slug).first()
                if category is None:
                    category = Category(name=name, slug=slug, icon=icon, color=color)
                    db.add(category)
                categories[slug] = category

            stores = {}
            for name, slug, logo, website in DEFAULT_STORES:
                store = db.query(Store).filter(Store.slug == slug).first()
                if store is None:
                    store = Store(name=name, slug=slug, logo=logo, website=website)
                    db.add(store)
                stores[slug] = store
            db.flush()

            if db.query(Coupon).count() == 0:
                expires_at = now_utc() + timedelta(days=30)
                db.add_all(
                    [
                        Coupon(
                            title="10% off electronics",
                            description="Get 10% off on selected laptops and phones",
                            code="TECH10",
                            store_id=stores["daraz"].id,
                            category_id=categories["electronics"].id,
                            expires_at=expires_at,
                            featured=True,
                            verified=True,
                        ),
                        Coupon(
                            title="Free delivery",
                            description="Free delivery on orders above Rs. 500",
                            code="FREEDEL",
                            store_id=stores["foodmandu"].id,
                            category_id=categories["food-dining"].id,
                            expires_at=expires_at,
                            verified=True,
                        ),
                    ]
                )

            for key, value in DEFAULT_SETTINGS.items():
                if db.get(SiteSetting, key) is None:
                    db.add(SiteSetting(key=key, value=value))

        print(f"✅ 카탈로그 시드 완료: 카테고리 {len(categories)}개, 스토어 {len(stores)}개")

    except Exception as e:
        print(f"❌ 카탈로그 시드 실패: {str(e)}")
        raise


def promote_admin(external_id: str):
    """Firebase uid 로 등록된 사용자를 관리자로 지정"""
    with get_db_context() as db:
        user = db.query(User).filter(User.external_id == external_id).first()
        if user is None:
            print(f"❌ 사용자를 찾을 수 없습니다: {external_id}")
            return
        user.is_admin = True
        email = user.email
    print(f"✅ 관리자 지정 완료: {email}")


if __name__ == "__main__":
    seed_catalog_data()
    if len(sys.argv) > 1:
        promote_admin(sys.argv[1])
