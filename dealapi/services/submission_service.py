import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from dealapi.config import Settings
from dealapi.core.exceptions import (
    AuthorizationError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from dealapi.models.points import PointsAction
from dealapi.repositories.catalog_repository import CategoryRepository
from dealapi.repositories.points_repository import PointsRepository
from dealapi.repositories.submission_repository import SubmissionRepository
from dealapi.schemas.submission import (
    SubmissionStatus,
    SubmittedCoupon,
    SubmittedCouponCreate,
    SubmittedCouponStatusUpdate,
    SubmittedCouponUpdate,
)
from dealapi.schemas.user import User as UserSchema
from dealapi.utils.timezone_utils import now_utc

logger = logging.getLogger(__name__)

# 수정 요청에서 null 로 비울 수 있는 필드
CLEARABLE_FIELDS = {"category_id", "expires_at"}


class SubmissionService:
    """사용자 쿠폰 제보 - 승인 시 포인트 지급"""

    def __init__(self, db: Session, settings: Settings):
        self.db = db
        self.settings = settings
        self.submission_repo = SubmissionRepository(db)
        self.category_repo = CategoryRepository(db)
        self.points_repo = PointsRepository(db)

    def _ensure_category(self, category_id: Optional[int]) -> None:
        if category_id is not None and not self.category_repo.get_by_id(category_id):
            raise ValidationError(f"Category {category_id} does not exist")

    def submit(
        self, current_user: UserSchema, payload: SubmittedCouponCreate
    ) -> SubmittedCoupon:
        if current_user.is_banned:
            raise AuthorizationError("Banned users cannot submit coupons")
        self._ensure_category(payload.category_id)

        submission = self.submission_repo.create(
            user_id=current_user.id,
            status=SubmissionStatus.PENDING.value,
            **payload.model_dump(),
        )
        logger.info(f"User {current_user.id} submitted coupon {submission.id}")
        return submission

    def list_submissions(
        self,
        current_user: UserSchema,
        status: Optional[SubmissionStatus] = None,
        user_id: Optional[int] = None,
    ) -> List[SubmittedCoupon]:
        """관리자는 전체(필터 가능), 일반 사용자는 본인 제보만 조회"""
        if not current_user.is_admin:
            user_id = current_user.id
        return self.submission_repo.list_submissions(user_id=user_id, status=status)

    def get_submission(self, current_user: UserSchema, submission_id: int) -> SubmittedCoupon:
        submission = self.submission_repo.get_by_id(submission_id)
        if submission is None or (
            submission.user_id != current_user.id and not current_user.is_admin
        ):
            raise NotFoundError(f"Submission {submission_id} not found")
        return submission

    def _lock_owned(self, current_user: UserSchema, submission_id: int):
        """수정/삭제 대상 제보를 잠금

        다른 사용자의 제보는 존재 여부를 드러내지 않도록 NotFoundError,
        작성자는 검토 전(pending) 제보만 변경할 수 있습니다.
        """
        submission = self.submission_repo.lock_for_update(submission_id)
        if submission is None or (
            submission.user_id != current_user.id and not current_user.is_admin
        ):
            raise NotFoundError(f"Submission {submission_id} not found")
        if (
            not current_user.is_admin
            and submission.status != SubmissionStatus.PENDING.value
        ):
            raise ConflictError(
                "Submission already reviewed",
                details={"id": submission_id, "status": submission.status},
            )
        return submission

    def update_submission(
        self,
        current_user: UserSchema,
        submission_id: int,
        payload: SubmittedCouponUpdate,
    ) -> SubmittedCoupon:
        changes = {
            key: value
            for key, value in payload.model_dump(exclude_unset=True).items()
            if value is not None or key in CLEARABLE_FIELDS
        }
        self._ensure_category(changes.get("category_id"))

        try:
            submission = self._lock_owned(current_user, submission_id)
            updated = self.submission_repo.apply_changes(submission, **changes)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(f"User {current_user.id} edited submission {submission_id}")
        return updated

    def delete_submission(self, current_user: UserSchema, submission_id: int) -> None:
        """제보 삭제 - 승인으로 지급된 포인트 내역은 유지"""
        try:
            submission = self._lock_owned(current_user, submission_id)
            self.submission_repo.remove(submission)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(f"User {current_user.id} deleted submission {submission_id}")

    def update_status(
        self, submission_id: int, update: SubmittedCouponStatusUpdate, admin: UserSchema
    ) -> SubmittedCoupon:
        try:
            new_status = SubmissionStatus((update.status or "").strip().lower())
        except ValueError:
            new_status = None
        if new_status not in (SubmissionStatus.APPROVED, SubmissionStatus.REJECTED):
            raise ValidationError(
                "status must be 'approved' or 'rejected'",
                details={"status": update.status},
            )

        try:
            submission = self.submission_repo.lock_for_update(submission_id)
            if submission is None:
                raise NotFoundError(f"Submission {submission_id} not found")
            if submission.status != SubmissionStatus.PENDING.value:
                raise ConflictError(
                    "Submission already reviewed",
                    details={"id": submission_id, "status": submission.status},
                )

            if new_status == SubmissionStatus.APPROVED:
                result = self.points_repo.transact(
                    user_id=submission.user_id,
                    points=self.settings.COUPON_APPROVAL_POINTS,
                    action=PointsAction.COUPON_APPROVED,
                    description=f"Coupon submission approved: {submission.title}",
                    ref_id=f"coupon_submission_{submission.id}",
                    commit=False,
                )
                if not result.success:
                    raise NotFoundError(f"User {submission.user_id} not found")

            updated = self.submission_repo.mark_reviewed(
                submission,
                status=new_status,
                reviewed_at=now_utc(),
                review_notes=update.review_notes,
            )
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(f"Submission {submission_id} {new_status.value} by admin {admin.id}")
        return updated
