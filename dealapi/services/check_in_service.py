import logging
from datetime import datetime, timedelta
from typing import List, Optional

from sqlalchemy.orm import Session

from dealapi.config import Settings
from dealapi.core.exceptions import (
    AuthorizationError,
    ConflictError,
    InternalServerError,
    NotFoundError,
)
from dealapi.models.points import PointsAction
from dealapi.repositories.check_in_repository import CheckInRepository
from dealapi.repositories.points_repository import PointsRepository
from dealapi.repositories.user_repository import UserRepository
from dealapi.schemas.check_in import CheckIn, CheckInResult, StreakStatus
from dealapi.utils.timezone_utils import ensure_aware, get_local_date, now_utc

logger = logging.getLogger(__name__)


class CheckInService:
    """일일 출석 체크 및 연속 출석(streak) 관리

    - 마지막 출석 후 CHECK_IN_INTERVAL_HOURS 가 지나야 다시 출석 가능
    - STREAK_RESET_HOURS 안에 출석하면 연속 기록 +1, 아니면 1 로 초기화
    - 연속 기록은 STREAK_CYCLE_DAYS 주기로 순환하며 주기의 마지막 날은 보너스 지급
    """

    def __init__(self, db: Session, settings: Settings):
        self.db = db
        self.settings = settings
        self.user_repo = UserRepository(db)
        self.check_in_repo = CheckInRepository(db)
        self.points_repo = PointsRepository(db)

    @property
    def _interval(self) -> timedelta:
        return timedelta(hours=self.settings.CHECK_IN_INTERVAL_HOURS)

    @property
    def _reset_after(self) -> timedelta:
        return timedelta(hours=self.settings.STREAK_RESET_HOURS)

    def streak_day_for(self, streak: int) -> int:
        """연속 출석 횟수를 주기 내 일차(1..STREAK_CYCLE_DAYS)로 변환"""
        return ((streak - 1) % self.settings.STREAK_CYCLE_DAYS) + 1

    def check_in(self, user_id: int, now: Optional[datetime] = None) -> CheckInResult:
        now = ensure_aware(now) if now else now_utc()

        try:
            user = self.user_repo.lock_for_update(user_id)
            if user is None:
                raise NotFoundError(f"User {user_id} not found")
            if user.is_banned:
                raise AuthorizationError("Banned users cannot check in")

            last_check_in = ensure_aware(user.last_check_in)
            if last_check_in and now - last_check_in < self._interval:
                next_time = last_check_in + self._interval
                raise ConflictError(
                    "Already checked in",
                    details={"next_check_in_time": next_time.isoformat()},
                )

            if last_check_in and now - last_check_in < self._reset_after:
                streak = (user.streak or 0) + 1
            else:
                streak = 1
            streak_day = self.streak_day_for(streak)

            if streak_day == self.settings.STREAK_CYCLE_DAYS:
                points = self.settings.STREAK_BONUS_POINTS
                action = PointsAction.STREAK_COMPLETE
                description = f"{self.settings.STREAK_CYCLE_DAYS}-day streak completed"
            else:
                points = self.settings.CHECK_IN_POINTS
                action = PointsAction.DAILY_CHECK_IN
                description = f"Daily check-in (day {streak_day})"

            check_in = self.check_in_repo.record(
                user_id=user_id,
                checked_in_at=now,
                streak_day=streak_day,
                points_earned=points,
            )
            result = self.points_repo.transact(
                user_id=user_id,
                points=points,
                action=action,
                description=description,
                ref_id=f"checkin_{user_id}_{get_local_date(now).isoformat()}",
                commit=False,
            )
            if not result.success:
                raise InternalServerError(
                    "Check-in points failed", details={"reason": result.message}
                )

            self.user_repo.update_streak(user, streak, now)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(
            f"User {user_id} checked in: streak {streak} (day {streak_day}), +{points} points"
        )
        return CheckInResult(
            check_in=check_in,
            current_streak=streak,
            points_earned=points,
            balance=result.balance_after,
            next_check_in_time=now + self._interval,
        )

    def get_streak(self, user_id: int, now: Optional[datetime] = None) -> StreakStatus:
        now = ensure_aware(now) if now else now_utc()
        user = self.user_repo.get_by_id(user_id)
        if user is None:
            raise NotFoundError(f"User {user_id} not found")

        last_check_in = ensure_aware(user.last_check_in)
        if last_check_in is None:
            return StreakStatus(
                current_streak=0,
                last_check_in=None,
                can_check_in_now=True,
                next_check_in_time=None,
            )

        elapsed = now - last_check_in
        next_time = last_check_in + self._interval
        return StreakStatus(
            current_streak=user.streak if elapsed < self._reset_after else 0,
            last_check_in=last_check_in,
            can_check_in_now=now >= next_time,
            next_check_in_time=next_time,
        )

    def get_history(self, user_id: int, limit: int = 30, offset: int = 0) -> List[CheckIn]:
        return self.check_in_repo.list_by_user(user_id, limit=limit, offset=offset)
