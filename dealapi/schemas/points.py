from pydantic import BaseModel, Field, field_validator
from typing import Dict, List, Optional
from datetime import datetime

from dealapi.models.points import PointsAction

# 포인트 내역 화면에 표시할 아이콘 (lucide 아이콘 이름)
ACTION_ICONS: Dict[str, str] = {
    PointsAction.DAILY_CHECK_IN.value: "calendar",
    PointsAction.STREAK_COMPLETE.value: "award",
    PointsAction.COUPON_APPROVED.value: "check-circle",
    PointsAction.WITHDRAWAL.value: "send",
    PointsAction.SIGNUP_BONUS.value: "gift",
}
DEFAULT_ACTION_ICON = "coins"


def resolve_action_icon(action: Optional[str]) -> str:
    return ACTION_ICONS.get(action or "", DEFAULT_ACTION_ICON)


class PointsBalanceResponse(BaseModel):
    """포인트 잔액 응답"""

    balance: int = Field(..., description="현재 포인트 잔액")

    class Config:
        from_attributes = True


class PointsLogEntry(BaseModel):
    """포인트 내역 항목"""

    id: int = Field(..., description="내역 항목 ID")
    user_id: int = Field(..., description="사용자 ID")
    points: int = Field(..., description="포인트 변화량")
    action: str = Field(..., description="변동 사유 태그")
    description: str = Field("", description="설명")
    ref_id: str = Field(..., description="참조 ID")
    balance_after: int = Field(..., description="변동 후 잔액")
    icon: str = Field(DEFAULT_ACTION_ICON, description="표시 아이콘")
    created_at: Optional[datetime] = Field(None, description="생성 시간")

    class Config:
        from_attributes = True


class PointsLogResponse(BaseModel):
    """포인트 내역 조회 응답"""

    balance: int = Field(..., description="현재 잔액")
    entries: List[PointsLogEntry] = Field(..., description="내역 항목 목록")
    total_count: int = Field(..., description="전체 항목 수")
    has_next: bool = Field(..., description="다음 페이지 존재 여부")


class PointsTransactionResponse(BaseModel):
    """포인트 트랜잭션 응답"""

    success: bool = Field(..., description="성공 여부")
    transaction_id: Optional[int] = Field(None, description="내역 항목 ID")
    points: int = Field(..., description="포인트 변화량")
    balance_after: int = Field(..., description="트랜잭션 후 잔액")
    message: str = Field(..., description="응답 메시지")


class AdminPointsAdjustmentRequest(BaseModel):
    """관리자 포인트 조정 요청"""

    user_id: int = Field(..., gt=0, description="사용자 ID")
    amount: int = Field(..., description="조정할 포인트 (양수: 추가, 음수: 차감)")
    reason: str = Field(..., min_length=1, max_length=255, description="조정 사유")

    @field_validator("amount")
    @classmethod
    def amount_must_not_be_zero(cls, v: int) -> int:
        if v == 0:
            raise ValueError("Adjustment amount cannot be zero")
        return v


class PointsIntegrityCheckResponse(BaseModel):
    """포인트 정합성 검증 응답"""

    status: str = Field(..., description="검증 상태 (OK, MISMATCH)")
    user_id: Optional[int] = Field(None, description="사용자 ID (단일 사용자 검증 시)")
    calculated_balance: Optional[int] = Field(None, description="내역 합계로 계산된 잔액")
    recorded_balance: Optional[int] = Field(None, description="최신 내역의 balance_after")
    cached_balance: Optional[int] = Field(None, description="users.points 값")
    entry_count: Optional[int] = Field(None, description="항목 수")
    total_cached_balance: Optional[int] = Field(None, description="전체 사용자 잔액 합계")
    total_deltas: Optional[int] = Field(None, description="전체 변화량 합계")
    user_count: Optional[int] = Field(None, description="사용자 수")
    total_entries: Optional[int] = Field(None, description="전체 항목 수")
    verified_at: Optional[str] = Field(None, description="검증 시간")
