from datetime import datetime
from typing import List, Optional

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from dealapi.models.check_in import CheckIn
from dealapi.models.points import PointsLog
from dealapi.models.submission import UserSubmittedCoupon
from dealapi.models.user import User as UserModel
from dealapi.models.withdrawal import WithdrawalRequest
from dealapi.repositories.base import BaseRepository
from dealapi.schemas.user import User as UserSchema, UserWithSubmissionCount


class UserRepository(BaseRepository[UserModel, UserSchema]):
    """사용자 리포지토리 - Pydantic 응답 보장"""

    def __init__(self, db: Session):
        super().__init__(UserModel, UserSchema, db)

    def get_by_external_id(self, external_id: str) -> Optional[UserSchema]:
        """외부 인증(Firebase uid)으로 사용자 조회"""
        return self.get_by_field("external_id", external_id)

    def lock_for_update(self, user_id: int) -> Optional[UserModel]:
        """사용자 행을 SELECT ... FOR UPDATE 로 잠그고 ORM 모델을 반환

        잔액을 읽고 변경하는 작업은 반드시 이 잠금 이후에 수행해야 합니다.
        같은 트랜잭션 안에서만 유효하므로 모델을 그대로 반환합니다.
        """
        return (
            self.db.query(self.model_class)
            .filter(self.model_class.id == user_id)
            .with_for_update()
            .populate_existing()
            .first()
        )

    def create_user(
        self,
        external_id: str,
        email: str,
        display_name: Optional[str] = None,
        is_admin: bool = False,
        commit: bool = True,
    ) -> Optional[UserSchema]:
        return self.create(
            commit=commit,
            external_id=external_id,
            email=email,
            display_name=display_name,
            is_admin=is_admin,
            points=0,
            streak=0,
        )

    def set_banned(self, user_id: int, is_banned: bool) -> Optional[UserSchema]:
        return self.update(user_id, is_banned=is_banned)

    def delete_with_history(self, user: UserModel) -> None:
        """사용자와 사용자에게 속한 모든 행을 삭제 (flush 만 수행)

        포인트 내역은 사용자 단위로만 함께 삭제되므로 전체 잔액 합계와
        내역 합계의 일치는 유지됩니다.
        """
        for owned in (UserSubmittedCoupon, CheckIn, WithdrawalRequest, PointsLog):
            self.db.query(owned).filter(owned.user_id == user.id).delete()
        self.db.delete(user)
        self.db.flush()

    def update_streak(
        self, user: UserModel, streak: int, last_check_in: datetime
    ) -> None:
        """잠긴 사용자 모델의 연속 출석 정보 갱신 (flush 만 수행)"""
        user.streak = streak
        user.last_check_in = last_check_in
        self.db.flush()

    def list_users(
        self, search: Optional[str] = None, limit: int = 50, offset: int = 0
    ) -> List[UserWithSubmissionCount]:
        """관리자용 사용자 목록 - 쿠폰 제보 건수 포함 (최신 가입순)"""
        submission_counts = (
            self.db.query(
                UserSubmittedCoupon.user_id.label("user_id"),
                func.count(UserSubmittedCoupon.id).label("submission_count"),
            )
            .group_by(UserSubmittedCoupon.user_id)
            .subquery()
        )

        query = self.db.query(
            self.model_class,
            func.coalesce(submission_counts.c.submission_count, 0),
        ).outerjoin(
            submission_counts, submission_counts.c.user_id == self.model_class.id
        )

        if search:
            pattern = f"%{search.lower()}%"
            query = query.filter(
                or_(
                    func.lower(self.model_class.email).like(pattern),
                    func.lower(self.model_class.display_name).like(pattern),
                )
            )

        rows = (
            query.order_by(self.model_class.id.desc()).offset(offset).limit(limit).all()
        )

        results = []
        for user, submission_count in rows:
            data = UserSchema.model_validate(user).model_dump()
            results.append(
                UserWithSubmissionCount(**data, submission_count=submission_count)
            )
        return results
