import logging
from typing import List, Optional, Tuple

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from dealapi.config import Settings
from dealapi.core.exceptions import (
    ConflictError,
    InternalServerError,
    NotFoundError,
    ValidationError,
)
from dealapi.models.points import PointsAction
from dealapi.repositories.catalog_repository import CategoryRepository, StoreRepository
from dealapi.repositories.points_repository import PointsRepository
from dealapi.repositories.user_repository import UserRepository
from dealapi.repositories.withdrawal_repository import WithdrawalRepository
from dealapi.schemas.auth import TokenClaims
from dealapi.schemas.user import (
    AdminUserUpdate,
    User as UserSchema,
    UserCreate,
    UserPreferencesUpdate,
    UserProfileUpdate,
    UserWithSubmissionCount,
)

logger = logging.getLogger(__name__)


class UserService:
    """사용자 관련 비즈니스 로직"""

    def __init__(self, db: Session, settings: Settings):
        self.db = db
        self.settings = settings
        self.user_repo = UserRepository(db)
        self.points_repo = PointsRepository(db)
        self.withdrawal_repo = WithdrawalRepository(db)
        self.category_repo = CategoryRepository(db)
        self.store_repo = StoreRepository(db)

    def register(
        self, claims: TokenClaims, payload: Optional[UserCreate] = None
    ) -> Tuple[UserSchema, bool]:
        """인증된 외부 사용자를 로컬 사용자로 등록

        이미 등록된 uid 면 기존 사용자를 반환합니다 (created=False).
        신규 사용자는 가입 보너스가 포인트 내역과 함께 같은 트랜잭션에서 지급됩니다.
        """
        existing = self.user_repo.get_by_external_id(claims.uid)
        if existing:
            return existing, False

        email = claims.email or (payload.email if payload else None)
        if not email:
            raise ValidationError("email required")
        display_name = (payload.display_name if payload else None) or claims.name

        try:
            user = self.user_repo.create_user(
                external_id=claims.uid,
                email=email,
                display_name=display_name,
                commit=False,
            )
            result = self.points_repo.transact(
                user_id=user.id,
                points=self.settings.SIGNUP_BONUS_POINTS,
                action=PointsAction.SIGNUP_BONUS,
                description="Welcome bonus for signing up",
                ref_id=f"signup_bonus_{user.id}",
                commit=False,
            )
            if not result.success:
                raise InternalServerError(
                    "Signup bonus failed", details={"reason": result.message}
                )
            self.db.commit()
        except IntegrityError:
            # 동시에 같은 uid 로 가입한 경우
            self.db.rollback()
            existing = self.user_repo.get_by_external_id(claims.uid)
            if existing:
                return existing, False
            raise
        except Exception:
            self.db.rollback()
            raise

        created = self.user_repo.get_by_id(user.id)
        logger.info(
            f"Registered user {created.id} ({claims.uid}) with signup bonus {self.settings.SIGNUP_BONUS_POINTS}"
        )
        return created, True

    def get_user(self, user_id: int) -> UserSchema:
        user = self.user_repo.get_by_id(user_id)
        if not user:
            raise NotFoundError(f"User {user_id} not found")
        return user

    def get_by_external_id(self, external_id: str) -> UserSchema:
        user = self.user_repo.get_by_external_id(external_id)
        if not user:
            raise NotFoundError("User not found")
        return user

    def set_banned(self, user_id: int, is_banned: bool) -> UserSchema:
        user = self.user_repo.set_banned(user_id, is_banned)
        if not user:
            raise NotFoundError(f"User {user_id} not found")
        logger.info(f"User {user_id} ban status set to {is_banned}")
        return user

    def list_users(
        self, search: Optional[str] = None, limit: int = 50, offset: int = 0
    ) -> List[UserWithSubmissionCount]:
        return self.user_repo.list_users(search=search, limit=limit, offset=offset)

    def update_profile(self, user_id: int, payload: UserProfileUpdate) -> UserSchema:
        changes = payload.model_dump(exclude_unset=True)
        user = self.user_repo.update(user_id, **changes)
        if not user:
            raise NotFoundError(f"User {user_id} not found")
        logger.info(f"User {user_id} updated profile fields {sorted(changes)}")
        return user

    def _existing_ids(self, repo, ids: List[int], label: str) -> List[int]:
        """중복 제거 후 존재하지 않는 ID 가 있으면 ValidationError"""
        unique_ids = list(dict.fromkeys(ids))
        missing = [i for i in unique_ids if repo.get_by_id(i) is None]
        if missing:
            raise ValidationError(f"Unknown {label}", details={"ids": missing})
        return unique_ids

    def update_preferences(
        self, user_id: int, payload: UserPreferencesUpdate
    ) -> UserSchema:
        categories = self._existing_ids(
            self.category_repo, payload.preferred_categories, "categories"
        )
        stores = self._existing_ids(self.store_repo, payload.preferred_stores, "stores")

        user = self.user_repo.update(
            user_id,
            preferred_categories=categories,
            preferred_stores=stores,
            has_completed_onboarding=payload.has_completed_onboarding,
        )
        if not user:
            raise NotFoundError(f"User {user_id} not found")
        return user

    def admin_update(
        self, user_id: int, payload: AdminUserUpdate, admin: UserSchema
    ) -> UserSchema:
        """관리자 사용자 정보 수정 (부분 수정, 포인트 제외)"""
        changes = payload.model_dump(exclude_unset=True, exclude_none=True)
        if user_id == admin.id and changes.get("is_admin") is False:
            raise ValidationError("Admins cannot revoke their own admin role")

        user = self.user_repo.update(user_id, **changes)
        if not user:
            raise NotFoundError(f"User {user_id} not found")
        logger.info(f"Admin {admin.id} updated user {user_id}: {sorted(changes)}")
        return user

    def delete_user(self, user_id: int, admin: UserSchema) -> UserSchema:
        """사용자와 제보/출석/출금/포인트 내역을 함께 삭제

        처리 대기 중인 출금 요청이 있으면 삭제하지 않습니다 (ConflictError).
        """
        if user_id == admin.id:
            raise ValidationError("Admins cannot delete their own account")

        try:
            user = self.user_repo.lock_for_update(user_id)
            if user is None:
                raise NotFoundError(f"User {user_id} not found")
            pending_total = self.withdrawal_repo.get_pending_total(user_id)
            if pending_total > 0:
                raise ConflictError(
                    "User has pending withdrawal requests",
                    details={"pending_total": pending_total},
                )

            deleted = UserSchema.model_validate(user)
            self.user_repo.delete_with_history(user)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(f"Admin {admin.id} deleted user {user_id} ({deleted.external_id})")
        return deleted
