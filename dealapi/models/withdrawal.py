from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import BigInteger, DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from dealapi.models.base import BaseModel, BigIntPK
from dealapi.models.user import User


class WithdrawalStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"

    @classmethod
    def is_terminal(cls, status: str) -> bool:
        """승인/거절은 더 이상 상태 전이가 없는 최종 상태"""
        return str(status) in (cls.APPROVED.value, cls.REJECTED.value)


class PaymentMethod(str, Enum):
    ESEWA = "esewa"
    KHALTI = "khalti"
    BANK = "bank"


class WithdrawalRequest(BaseModel):
    __tablename__ = "withdrawal_requests"
    __table_args__ = (
        Index("idx_withdrawal_requests_user", "user_id"),
        Index("idx_withdrawal_requests_status", "status"),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("users.id"), nullable=False
    )
    amount: Mapped[int] = mapped_column(Integer, nullable=False)
    method: Mapped[str] = mapped_column(String(20), nullable=False)
    account_details: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), default=WithdrawalStatus.PENDING.value, nullable=False
    )
    requested_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )
    processed_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    user: Mapped[User] = relationship(User, lazy="joined")
