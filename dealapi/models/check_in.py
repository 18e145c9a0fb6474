from datetime import datetime

from sqlalchemy import BigInteger, DateTime, ForeignKey, Index, Integer
from sqlalchemy.orm import Mapped, mapped_column

from dealapi.models.base import BaseModel, BigIntPK


class CheckIn(BaseModel):
    """일일 출석 기록 (append-only)"""

    __tablename__ = "check_ins"
    __table_args__ = (Index("idx_check_ins_user", "user_id", "checked_in_at"),)

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("users.id"), nullable=False
    )
    checked_in_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )
    streak_day: Mapped[int] = mapped_column(Integer, nullable=False)  # 1~7
    points_earned: Mapped[int] = mapped_column(Integer, nullable=False)
