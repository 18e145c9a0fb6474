from datetime import datetime, timedelta, timezone

from dealapi.config import settings
from dealapi.models.catalog import Category, Store
from dealapi.models.user import User

API = settings.API_V1_STR


def auth(uid):
    return {"Authorization": f"Bearer {uid}"}


def _register(client, uid, **body):
    return client.post(f"{API}/users", json=body or None, headers=auth(uid))


class TestRegisterUser:
    """POST /users 테스트"""

    def test_register_creates_user_with_bonus(self, client, fake_cache):
        response = _register(client, "alice")

        assert response.status_code == 201
        data = response.json()
        assert data["external_id"] == "alice"
        assert data["email"] == "alice@example.com"
        assert data["points"] == settings.SIGNUP_BONUS_POINTS
        assert f"points:balance:{data['id']}" in fake_cache.invalidated

    def test_register_twice_returns_existing(self, client):
        first = _register(client, "alice")
        second = _register(client, "alice")

        assert second.status_code == 200
        assert second.json()["id"] == first.json()["id"]
        assert second.json()["points"] == settings.SIGNUP_BONUS_POINTS

    def test_register_without_token(self, client):
        response = client.post(f"{API}/users")

        assert response.status_code == 401
        assert response.json()["error"]["code"] == "AUTH_001"
        assert response.headers["www-authenticate"] == "Bearer"

    def test_register_with_invalid_token(self, client):
        response = _register(client, "invalid")

        assert response.status_code == 401


class TestCurrentUser:
    def test_me(self, client):
        _register(client, "alice")

        response = client.get(f"{API}/users/me", headers=auth("alice"))

        assert response.status_code == 200
        assert response.json()["external_id"] == "alice"

    def test_unregistered_user(self, client):
        response = client.get(f"{API}/users/me", headers=auth("stranger"))

        assert response.status_code == 401
        assert response.json()["error"]["details"] == {"registered": False}

    def test_profile_of_other_user_forbidden(self, client):
        _register(client, "alice")
        _register(client, "bob")

        response = client.get(f"{API}/users/bob", headers=auth("alice"))

        assert response.status_code == 403

    def test_admin_can_view_other_profile(self, client, make_user):
        make_user("admin", is_admin=True)
        _register(client, "bob")

        response = client.get(f"{API}/users/bob", headers=auth("admin"))

        assert response.status_code == 200
        assert response.json()["external_id"] == "bob"


class TestPoints:
    def test_points_log_newest_first_with_icons(self, client):
        _register(client, "alice")
        client.post(f"{API}/users/alice/check-in", headers=auth("alice"))

        response = client.get(f"{API}/users/alice/points-log", headers=auth("alice"))

        assert response.status_code == 200
        data = response.json()
        assert data["balance"] == settings.SIGNUP_BONUS_POINTS + settings.CHECK_IN_POINTS
        assert [e["action"] for e in data["entries"]] == ["daily_check_in", "signup_bonus"]
        assert [e["icon"] for e in data["entries"]] == ["calendar", "gift"]

    def test_points_log_limit_validation(self, client):
        _register(client, "alice")

        response = client.get(
            f"{API}/users/alice/points-log?limit=0", headers=auth("alice")
        )

        assert response.status_code == 422
        assert response.json()["error"]["code"] == "VALIDATION_001"

    def test_points_balance_is_cached(self, client, fake_cache):
        created = _register(client, "alice").json()

        first = client.get(f"{API}/users/alice/points-balance", headers=auth("alice"))

        assert first.status_code == 200
        assert first.json() == {"balance": settings.SIGNUP_BONUS_POINTS}
        assert fake_cache.store[f"points:balance:{created['id']}"] == {
            "balance": settings.SIGNUP_BONUS_POINTS
        }


class TestCheckIn:
    def test_check_in_and_repeat(self, client, fake_cache):
        created = _register(client, "alice").json()

        first = client.post(f"{API}/users/alice/check-in", headers=auth("alice"))
        second = client.post(f"{API}/users/alice/check-in", headers=auth("alice"))

        assert first.status_code == 201
        assert first.json()["current_streak"] == 1
        assert first.json()["points_earned"] == settings.CHECK_IN_POINTS
        assert f"points:balance:{created['id']}" in fake_cache.invalidated

        assert second.status_code == 409
        assert "next_check_in_time" in second.json()["error"]["details"]

    def test_check_in_for_other_user_forbidden(self, client):
        _register(client, "alice")
        _register(client, "bob")

        response = client.post(f"{API}/users/bob/check-in", headers=auth("alice"))

        assert response.status_code == 403

    def test_banned_user_cannot_check_in(self, client, make_user):
        make_user("alice", is_banned=True)

        response = client.post(f"{API}/users/alice/check-in", headers=auth("alice"))

        assert response.status_code == 403
        assert response.json()["error"]["details"] == {"banned": True}

    def test_streak_and_history(self, client, db_session):
        _register(client, "alice")
        client.post(f"{API}/users/alice/check-in", headers=auth("alice"))

        streak = client.get(f"{API}/users/alice/streak", headers=auth("alice"))
        history = client.get(f"{API}/users/alice/check-ins", headers=auth("alice"))

        assert streak.json()["current_streak"] == 1
        assert streak.json()["can_check_in_now"] is False
        assert len(history.json()) == 1

        # 마지막 출석을 48시간 전으로 이동
        user = db_session.query(User).filter_by(external_id="alice").one()
        user.last_check_in = datetime.now(timezone.utc) - timedelta(hours=49)
        db_session.commit()

        expired = client.get(f"{API}/users/alice/streak", headers=auth("alice"))
        assert expired.json()["current_streak"] == 0


class TestHealth:
    def test_health(self, client):
        response = client.get(f"{API}/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"
        assert response.json()["database"] == "ok"


class TestProfileAndPreferences:
    """PUT /users/{id}, PUT /users/{id}/preferences 테스트"""

    def _catalog(self, db_session):
        food = Category(name="Food", slug="food", icon="utensils", color="orange")
        daraz = Store(
            name="Daraz",
            slug="daraz",
            logo="https://cdn.example.com/daraz.png",
            website="https://daraz.com.np",
        )
        db_session.add_all([food, daraz])
        db_session.commit()
        return food, daraz

    def test_update_own_profile(self, client, fake_cache):
        user_id = _register(client, "alice").json()["id"]

        response = client.put(
            f"{API}/users/{user_id}",
            json={"displayName": "Alice K", "photoURL": "https://cdn.example.com/a.png"},
            headers=auth("alice"),
        )

        assert response.status_code == 200
        assert response.json()["display_name"] == "Alice K"
        assert response.json()["photo_url"] == "https://cdn.example.com/a.png"
        assert response.json()["points"] == settings.SIGNUP_BONUS_POINTS
        assert "users:profile:alice" in fake_cache.invalidated

    def test_update_other_profile_forbidden(self, client, make_user):
        bob = make_user("bob")
        _register(client, "alice")

        response = client.put(
            f"{API}/users/{bob.id}", json={"displayName": "Hacked"}, headers=auth("alice")
        )

        assert response.status_code == 403

    def test_blank_display_name(self, client):
        user_id = _register(client, "alice").json()["id"]

        response = client.put(
            f"{API}/users/{user_id}", json={"displayName": "   "}, headers=auth("alice")
        )

        assert response.status_code == 422

    def test_save_preferences(self, client, db_session, fake_cache):
        food, daraz = self._catalog(db_session)
        user_id = _register(client, "alice").json()["id"]

        response = client.put(
            f"{API}/users/{user_id}/preferences",
            json={
                "preferredCategories": [food.id, food.id],
                "preferredStores": [daraz.id],
                "hasCompletedOnboarding": True,
            },
            headers=auth("alice"),
        )

        assert response.status_code == 200
        data = response.json()
        assert data["preferred_categories"] == [food.id]
        assert data["preferred_stores"] == [daraz.id]
        assert data["has_completed_onboarding"] is True
        assert "users:profile:alice" in fake_cache.invalidated

        me = client.get(f"{API}/users/me", headers=auth("alice"))
        assert me.json()["preferred_stores"] == [daraz.id]

    def test_unknown_preference_ids(self, client, db_session):
        food, _ = self._catalog(db_session)
        user_id = _register(client, "alice").json()["id"]

        response = client.put(
            f"{API}/users/{user_id}/preferences",
            json={"preferredCategories": [food.id, 999]},
            headers=auth("alice"),
        )

        assert response.status_code == 422
        assert response.json()["error"]["details"] == {"ids": [999]}

    def test_admin_sets_preferences_for_user(self, client, make_user):
        alice = make_user("alice")
        make_user("admin", is_admin=True)

        response = client.put(
            f"{API}/users/{alice.id}/preferences",
            json={"hasCompletedOnboarding": False},
            headers=auth("admin"),
        )

        assert response.status_code == 200
        assert response.json()["external_id"] == "alice"
        assert response.json()["preferred_categories"] == []
