from unittest.mock import patch

import pytest

from dealapi.config import settings
from dealapi.core.exceptions import InternalServerError, NotFoundError, ValidationError
from dealapi.models.points import PointsAction, PointsLog
from dealapi.schemas.auth import TokenClaims
from dealapi.schemas.points import PointsTransactionResponse
from dealapi.schemas.user import UserCreate
from dealapi.services.user_service import UserService


@pytest.fixture
def user_service(db_session):
    return UserService(db_session, settings)


class TestRegister:
    """외부 인증 사용자 등록 테스트"""

    def test_new_user_gets_signup_bonus(self, user_service, db_session):
        claims = TokenClaims(uid="firebase-uid-1", email="alice@example.com", name="Alice")

        user, created = user_service.register(claims)

        assert created is True
        assert user.points == settings.SIGNUP_BONUS_POINTS
        assert user.display_name == "Alice"
        entry = db_session.query(PointsLog).filter_by(user_id=user.id).one()
        assert entry.action == PointsAction.SIGNUP_BONUS.value
        assert entry.ref_id == f"signup_bonus_{user.id}"

    def test_register_is_idempotent(self, user_service, db_session):
        claims = TokenClaims(uid="firebase-uid-1", email="alice@example.com")
        first, _ = user_service.register(claims)

        second, created = user_service.register(claims)

        assert created is False
        assert second.id == first.id
        assert db_session.query(PointsLog).filter_by(user_id=first.id).count() == 1

    def test_email_from_payload(self, user_service):
        claims = TokenClaims(uid="phone-user")

        user, _ = user_service.register(
            claims, UserCreate(email="bob@example.com", display_name="Bob")
        )

        assert user.email == "bob@example.com"
        assert user.display_name == "Bob"

    def test_email_required(self, user_service):
        with pytest.raises(ValidationError) as exc_info:
            user_service.register(TokenClaims(uid="phone-user"))

        assert exc_info.value.message == "email required"

    def test_failed_signup_bonus_rolls_back_user(self, user_service, db_session):
        failed = PointsTransactionResponse(
            success=False, points=0, balance_after=0, message="User not found"
        )

        with patch.object(user_service.points_repo, "transact", return_value=failed):
            with pytest.raises(InternalServerError) as exc_info:
                user_service.register(
                    TokenClaims(uid="firebase-uid-1", email="alice@example.com")
                )

        assert exc_info.value.status_code == 500
        assert exc_info.value.message == "Signup bonus failed"
        assert user_service.user_repo.get_by_external_id("firebase-uid-1") is None


class TestUserAdmin:
    def test_set_banned(self, user_service, make_user):
        user = make_user("alice")

        banned = user_service.set_banned(user.id, True)

        assert banned.is_banned is True

    def test_set_banned_unknown_user(self, user_service):
        with pytest.raises(NotFoundError):
            user_service.set_banned(999, True)

    def test_list_users_search(self, user_service, make_user):
        make_user("alice")
        make_user("bob")

        result = user_service.list_users(search="ALI")

        assert [u.external_id for u in result] == ["alice"]
        assert result[0].submission_count == 0
