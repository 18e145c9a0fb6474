from datetime import datetime
from typing import List, Optional

from sqlalchemy import JSON, Boolean, DateTime, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from dealapi.models.base import BaseModel, BigIntPK


class User(BaseModel):
    __tablename__ = "users"
    __table_args__ = (Index("idx_users_email", "email"),)

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    external_id: Mapped[str] = mapped_column(
        String(128), unique=True, nullable=False, index=True
    )  # Firebase uid
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    display_name: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    photo_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    is_admin: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_banned: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    # 포인트 원장(points_log)의 합계를 캐시한 값. 원장 기록과 같은 트랜잭션에서만 변경
    points: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    streak: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    last_check_in: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    # 온보딩에서 선택한 관심 카테고리/스토어 ID 목록
    preferred_categories: Mapped[List[int]] = mapped_column(
        JSON, default=list, nullable=False
    )
    preferred_stores: Mapped[List[int]] = mapped_column(JSON, default=list, nullable=False)
    has_completed_onboarding: Mapped[bool] = mapped_column(
        Boolean, default=False, nullable=False
    )

    def __repr__(self):
        return f"<User(id={self.id}, email={self.email}, external_id={self.external_id})>"
