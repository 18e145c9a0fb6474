"""
포인트 시스템 데이터 모델

사용자 포인트의 모든 변동 내역을 저장하는 원장(points_log) 테이블을 정의합니다.
포인트의 추가/차감은 모두 이 테이블에 기록되며, users.points 는 이 원장의 합계입니다.
"""

from enum import Enum

from sqlalchemy import BigInteger, Column, ForeignKey, Index, String, Text
from sqlalchemy.schema import UniqueConstraint

from dealapi.models.base import BaseModel, BigIntPK


class PointsAction(str, Enum):
    """포인트 변동 사유 태그"""

    DAILY_CHECK_IN = "daily_check_in"
    STREAK_COMPLETE = "streak_complete"
    COUPON_APPROVED = "coupon_approved"
    WITHDRAWAL = "withdrawal"
    SIGNUP_BONUS = "signup_bonus"
    OTHER = "other"


class PointsLog(BaseModel):
    """
    포인트 원장 테이블 - 모든 포인트 변동 내역을 저장

    1. 불변성(Immutable): 한번 생성된 레코드는 수정/삭제되지 않음
    2. 멱등성(Idempotent): ref_id 유니크 제약으로 중복 지급 방지
    3. 정합성(Integrity): balance_after 와 users.points 가 항상 일치
    """

    __tablename__ = "points_log"
    __table_args__ = (
        UniqueConstraint("ref_id"),
        Index("idx_points_log_user", "user_id", "id"),
    )

    id = Column(BigIntPK, primary_key=True, autoincrement=True)

    user_id = Column(BigInteger, ForeignKey("users.id"), nullable=False)

    # 포인트 변동량 - 양수면 적립, 음수면 차감
    points = Column(BigInteger, nullable=False)

    # PointsAction 값
    action = Column(String(32), nullable=False)

    description = Column(Text, nullable=False, default="")

    # 형식 예시: "checkin_12_2025-03-01", "withdrawal_42", "signup_bonus_12"
    ref_id = Column(Text, nullable=False)

    # 이 기록 이후의 잔액
    balance_after = Column(BigInteger, nullable=False)
