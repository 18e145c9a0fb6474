import pytest

from dealapi.models.points import PointsAction, PointsLog
from dealapi.models.user import User
from dealapi.repositories.points_repository import PointsRepository


@pytest.fixture
def points_repo(db_session):
    return PointsRepository(db_session)


class TestPointsRepositoryTransact:
    """포인트 변동(transact) 테스트"""

    def test_credit_appends_entry_and_updates_balance(self, points_repo, make_user):
        user = make_user("alice")

        result = points_repo.transact(
            user_id=user.id,
            points=50,
            action=PointsAction.COUPON_APPROVED,
            description="Coupon approved",
            ref_id="coupon_submission_1",
        )

        assert result.success is True
        assert result.balance_after == 50
        assert points_repo.get_user_balance(user.id) == 50

        log = points_repo.get_user_log(user.id)
        assert log.total_count == 1
        assert log.entries[0].balance_after == 50
        assert log.entries[0].icon == "check-circle"

    def test_same_ref_id_is_applied_once(self, points_repo, make_user):
        user = make_user("alice")

        first = points_repo.transact(
            user.id, 5, PointsAction.DAILY_CHECK_IN, "Daily check-in", "checkin_1_2024-01-15"
        )
        second = points_repo.transact(
            user.id, 5, PointsAction.DAILY_CHECK_IN, "Daily check-in", "checkin_1_2024-01-15"
        )

        assert first.success and second.success
        assert second.transaction_id == first.transaction_id
        assert "idempotent" in second.message
        assert points_repo.get_user_balance(user.id) == 5
        assert points_repo.get_user_log(user.id).total_count == 1

    def test_debit_beyond_balance_is_rejected(self, points_repo, make_user, db_session):
        user = make_user("alice", points=100)

        result = points_repo.transact(
            user.id, -150, PointsAction.WITHDRAWAL, "Withdrawal", "withdrawal_1"
        )

        assert result.success is False
        assert result.message == "Insufficient balance"
        assert result.balance_after == 100
        assert points_repo.get_user_balance(user.id) == 100
        assert db_session.query(PointsLog).filter_by(ref_id="withdrawal_1").count() == 0

    def test_debit_to_exactly_zero_is_allowed(self, points_repo, make_user):
        user = make_user("alice", points=100)

        result = points_repo.transact(
            user.id, -100, PointsAction.WITHDRAWAL, "Withdrawal", "withdrawal_1"
        )

        assert result.success is True
        assert result.balance_after == 0

    def test_unknown_user(self, points_repo):
        result = points_repo.transact(999, 10, PointsAction.OTHER, "x", "ref_unknown")

        assert result.success is False
        assert result.message == "User not found"

    def test_log_is_newest_first(self, points_repo, make_user):
        user = make_user("alice")
        points_repo.transact(user.id, 10, PointsAction.SIGNUP_BONUS, "Welcome", "signup_bonus_1")
        points_repo.transact(user.id, 5, PointsAction.DAILY_CHECK_IN, "Check-in", "checkin_a")
        points_repo.transact(user.id, -3, PointsAction.OTHER, "Adjust", "adjust_a")

        log = points_repo.get_user_log(user.id, limit=2)

        assert [e.ref_id for e in log.entries] == ["adjust_a", "checkin_a"]
        assert [e.icon for e in log.entries] == ["coins", "calendar"]
        assert log.total_count == 3
        assert log.has_next is True
        assert log.balance == 12


class TestPointsIntegrity:
    """포인트 정합성 검증 테스트"""

    def test_balance_equals_sum_of_log(self, points_repo, make_user):
        user = make_user("alice", points=40)
        points_repo.transact(user.id, -15, PointsAction.OTHER, "Adjust", "adjust_1")

        result = points_repo.verify_integrity_for_user(user.id)

        assert result.status == "OK"
        assert result.calculated_balance == 25
        assert result.recorded_balance == 25
        assert result.cached_balance == 25
        assert result.entry_count == 2

    def test_detects_balance_changed_without_log(self, points_repo, make_user, db_session):
        user = make_user("alice", points=40)
        db_session.query(User).filter(User.id == user.id).update({"points": 1000})
        db_session.commit()

        user_result = points_repo.verify_integrity_for_user(user.id)
        global_result = points_repo.verify_global_integrity()

        assert user_result.status == "MISMATCH"
        assert global_result.status == "MISMATCH"
        assert global_result.total_cached_balance == 1000
        assert global_result.total_deltas == 40

    def test_global_integrity_ok(self, points_repo, make_user):
        make_user("alice", points=40)
        make_user("bob", points=60)

        result = points_repo.verify_global_integrity()

        assert result.status == "OK"
        assert result.total_cached_balance == 100
        assert result.user_count == 2
        assert result.total_entries == 2
