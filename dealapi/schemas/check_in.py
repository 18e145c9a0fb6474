from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime


class CheckIn(BaseModel):
    id: int
    user_id: int
    checked_in_at: datetime
    streak_day: int = Field(..., ge=1)
    points_earned: int

    class Config:
        from_attributes = True


class CheckInResult(BaseModel):
    """출석 체크 결과"""

    check_in: CheckIn
    current_streak: int
    points_earned: int
    balance: int
    next_check_in_time: datetime


class StreakStatus(BaseModel):
    current_streak: int
    last_check_in: Optional[datetime] = None
    can_check_in_now: bool
    next_check_in_time: Optional[datetime] = None
