from datetime import datetime, timedelta, timezone
from unittest.mock import patch

import pytest

from dealapi.config import settings
from dealapi.core.exceptions import (
    AuthorizationError,
    ConflictError,
    InternalServerError,
    NotFoundError,
)
from dealapi.models.points import PointsAction, PointsLog
from dealapi.repositories.points_repository import PointsRepository
from dealapi.schemas.points import PointsTransactionResponse
from dealapi.services.check_in_service import CheckInService

START = datetime(2024, 1, 15, 3, 0, tzinfo=timezone.utc)


@pytest.fixture
def check_in_service(db_session):
    return CheckInService(db_session, settings)


class TestCheckIn:
    """일일 출석 체크 테스트"""

    def test_first_check_in(self, check_in_service, make_user, db_session):
        user = make_user("alice")

        result = check_in_service.check_in(user.id, now=START)

        assert result.current_streak == 1
        assert result.points_earned == settings.CHECK_IN_POINTS
        assert result.balance == settings.CHECK_IN_POINTS
        assert result.check_in.streak_day == 1
        assert result.next_check_in_time == START + timedelta(hours=24)

        entry = db_session.query(PointsLog).filter_by(user_id=user.id).one()
        assert entry.action == PointsAction.DAILY_CHECK_IN.value
        assert entry.ref_id == f"checkin_{user.id}_2024-01-15"

    def test_second_check_in_within_interval(self, check_in_service, make_user):
        user = make_user("alice")
        check_in_service.check_in(user.id, now=START)

        with pytest.raises(ConflictError) as exc_info:
            check_in_service.check_in(user.id, now=START + timedelta(hours=23))

        next_time = exc_info.value.details["next_check_in_time"]
        assert next_time == (START + timedelta(hours=24)).isoformat()
        assert PointsRepository(check_in_service.db).get_user_balance(user.id) == 5

    def test_consecutive_check_in_extends_streak(self, check_in_service, make_user):
        user = make_user("alice")
        check_in_service.check_in(user.id, now=START)

        result = check_in_service.check_in(user.id, now=START + timedelta(hours=30))

        assert result.current_streak == 2
        assert result.check_in.streak_day == 2

    def test_gap_resets_streak(self, check_in_service, make_user):
        user = make_user("alice")
        check_in_service.check_in(user.id, now=START)
        check_in_service.check_in(user.id, now=START + timedelta(hours=25))

        result = check_in_service.check_in(user.id, now=START + timedelta(hours=25 + 48))

        assert result.current_streak == 1
        assert result.check_in.streak_day == 1

    def test_seventh_day_awards_streak_bonus(self, check_in_service, make_user, db_session):
        """7일 연속 출석 시 마지막 날은 보너스 지급 후 주기가 다시 시작됨"""
        # Given
        user = make_user("alice")
        results = []

        # When
        for day in range(8):
            results.append(
                check_in_service.check_in(user.id, now=START + timedelta(hours=25 * day))
            )

        # Then
        assert [r.check_in.streak_day for r in results] == [1, 2, 3, 4, 5, 6, 7, 1]
        assert results[6].points_earned == settings.STREAK_BONUS_POINTS
        assert results[7].current_streak == 8
        assert results[7].points_earned == settings.CHECK_IN_POINTS

        bonus = db_session.query(PointsLog).filter_by(
            user_id=user.id, action=PointsAction.STREAK_COMPLETE.value
        ).all()
        assert len(bonus) == 1
        assert PointsRepository(db_session).get_user_balance(user.id) == 7 * 5 + 10

    def test_banned_user(self, check_in_service, make_user):
        user = make_user("alice", is_banned=True)

        with pytest.raises(AuthorizationError):
            check_in_service.check_in(user.id, now=START)

    def test_unknown_user(self, check_in_service):
        with pytest.raises(NotFoundError):
            check_in_service.check_in(999, now=START)


class TestStreakStatus:
    def test_never_checked_in(self, check_in_service, make_user):
        user = make_user("alice")

        status = check_in_service.get_streak(user.id, now=START)

        assert status.current_streak == 0
        assert status.can_check_in_now is True
        assert status.next_check_in_time is None

    def test_active_streak(self, check_in_service, make_user):
        user = make_user("alice")
        check_in_service.check_in(user.id, now=START)

        status = check_in_service.get_streak(user.id, now=START + timedelta(hours=10))

        assert status.current_streak == 1
        assert status.can_check_in_now is False

    def test_streak_expires_after_reset_window(self, check_in_service, make_user):
        user = make_user("alice")
        check_in_service.check_in(user.id, now=START)

        status = check_in_service.get_streak(user.id, now=START + timedelta(hours=48))

        assert status.current_streak == 0
        assert status.can_check_in_now is True

    def test_history_newest_first(self, check_in_service, make_user):
        user = make_user("alice")
        check_in_service.check_in(user.id, now=START)
        check_in_service.check_in(user.id, now=START + timedelta(hours=25))

        history = check_in_service.get_history(user.id)

        assert [c.streak_day for c in history] == [2, 1]


class TestCheckInPointsFailure:
    def test_failed_points_entry_rolls_back_check_in(
        self, check_in_service, make_user, db_session
    ):
        user = make_user("alice")
        failed = PointsTransactionResponse(
            success=False, points=0, balance_after=0, message="User not found"
        )

        with patch.object(check_in_service.points_repo, "transact", return_value=failed):
            with pytest.raises(InternalServerError) as exc_info:
                check_in_service.check_in(user.id, now=START)

        assert exc_info.value.status_code == 500
        assert exc_info.value.details == {"reason": "User not found"}
        assert check_in_service.get_history(user.id) == []
        assert check_in_service.get_streak(user.id, now=START).current_streak == 0
