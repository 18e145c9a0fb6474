from pydantic import BaseModel, ConfigDict, Field
from typing import Optional
from datetime import datetime

from dealapi.models.withdrawal import PaymentMethod, WithdrawalStatus
from dealapi.schemas.user import UserSummary


class WithdrawalCreate(BaseModel):
    """출금 요청 생성 - 금액/결제 정보 검증은 서비스 계층에서 수행"""

    model_config = ConfigDict(populate_by_name=True)

    user_id: Optional[int] = Field(None, alias="userId")
    amount: int
    payment_method: str = Field("", alias="paymentMethod")
    account_details: str = Field("", alias="accountDetails")


class WithdrawalReview(BaseModel):
    status: str
    notes: Optional[str] = Field(None, max_length=1000)


class WithdrawalRequest(BaseModel):
    id: int
    user_id: int
    amount: int
    method: PaymentMethod
    account_details: str
    status: WithdrawalStatus
    requested_at: datetime
    processed_at: Optional[datetime] = None
    notes: Optional[str] = None

    class Config:
        from_attributes = True


class WithdrawalRequestWithUser(WithdrawalRequest):
    """관리자 목록용 - 요청자 정보 포함"""

    user: Optional[UserSummary] = None
