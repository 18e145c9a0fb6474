import pytest

from dealapi.config import settings
from dealapi.utils.cache_utils import ADMIN_WITHDRAWALS_KEY

API = settings.API_V1_STR


def auth(uid):
    return {"Authorization": f"Bearer {uid}"}


@pytest.fixture
def alice(make_user):
    return make_user("alice", points=5000)


@pytest.fixture
def admin(make_user):
    return make_user("admin", is_admin=True)


def _withdraw(client, uid, amount=1000, method="esewa", details="9812345678", **extra):
    body = {"amount": amount, "paymentMethod": method, "accountDetails": details}
    body.update(extra)
    return client.post(f"{API}/withdrawals", json=body, headers=auth(uid))


class TestCreateWithdrawal:
    """POST /withdrawals 테스트"""

    def test_create_pending_request(self, client, alice, fake_cache):
        response = _withdraw(client, "alice")

        assert response.status_code == 201
        data = response.json()
        assert data["status"] == "pending"
        assert data["user_id"] == alice.id
        assert data["method"] == "esewa"
        assert set(fake_cache.invalidated) >= {
            f"withdrawals:user:{alice.id}",
            f"points:balance:{alice.id}",
            "users:profile:alice",
            ADMIN_WITHDRAWALS_KEY,
        }

        balance = client.get(f"{API}/users/alice/points-balance", headers=auth("alice"))
        assert balance.json()["balance"] == 5000

    def test_below_minimum(self, client, alice):
        response = _withdraw(client, "alice", amount=999)

        assert response.status_code == 422
        assert response.json()["error"]["message"] == "invalid amount"

    def test_invalid_payment_details(self, client, alice):
        response = _withdraw(client, "alice", method="khalti", details="abc")

        assert response.status_code == 422
        assert response.json()["error"]["message"] == "payment details required"

    @pytest.mark.parametrize("method", ["bank-transfer", "bank_transfer", "Bank"])
    def test_bank_transfer_alias_stored_as_bank(self, client, alice, method):
        response = _withdraw(
            client, "alice", method=method, details="Nabil Bank 0123456789 Alice"
        )

        assert response.status_code == 201
        assert response.json()["method"] == "bank"

    def test_insufficient_points(self, client, alice):
        response = _withdraw(client, "alice", amount=6000)

        assert response.status_code == 400
        assert response.json()["error"]["message"] == "insufficient points"

    def test_missing_amount(self, client, alice):
        response = client.post(
            f"{API}/withdrawals",
            json={"paymentMethod": "esewa", "accountDetails": "9812345678"},
            headers=auth("alice"),
        )

        assert response.status_code == 422
        assert response.json()["success"] is False

    def test_for_another_user_requires_admin(self, client, alice, make_user):
        bob = make_user("bob", points=5000)

        response = _withdraw(client, "alice", userId=bob.id)

        assert response.status_code == 403

    def test_admin_for_another_user(self, client, alice, admin, fake_cache):
        response = _withdraw(client, "admin", userId=alice.id)

        assert response.status_code == 201
        assert response.json()["user_id"] == alice.id
        assert "users:profile:alice" in fake_cache.invalidated

    def test_user_withdrawal_list(self, client, alice):
        _withdraw(client, "alice")
        _withdraw(client, "alice", amount=2000)

        response = client.get(f"{API}/users/{alice.id}/withdrawals", headers=auth("alice"))

        assert response.status_code == 200
        assert [w["amount"] for w in response.json()] == [2000, 1000]


class TestAdminWithdrawals:
    """관리자 출금 검토 테스트"""

    def test_list_with_user_info_and_search(self, client, alice, admin, make_user):
        make_user("bob", points=5000)
        _withdraw(client, "alice")
        _withdraw(client, "bob", method="bank", details="Nabil Bank 0123456789")

        everything = client.get(f"{API}/admin/withdrawals", headers=auth("admin"))
        by_method = client.get(f"{API}/admin/withdrawals?search=bank", headers=auth("admin"))
        by_email = client.get(
            f"{API}/admin/withdrawals?search=ALICE@", headers=auth("admin")
        )

        assert everything.status_code == 200
        assert len(everything.json()) == 2
        assert [w["user"]["email"] for w in by_method.json()] == ["bob@example.com"]
        assert [w["user_id"] for w in by_email.json()] == [alice.id]

    def test_non_admin_forbidden(self, client, alice):
        response = client.get(f"{API}/admin/withdrawals", headers=auth("alice"))

        assert response.status_code == 403
        assert response.json()["error"]["code"] == "AUTH_002"

    def test_approve_then_conflict(self, client, alice, admin):
        withdrawal_id = _withdraw(client, "alice").json()["id"]

        approved = client.patch(
            f"{API}/admin/withdrawals/{withdrawal_id}",
            json={"status": "approved", "notes": "sent"},
            headers=auth("admin"),
        )
        again = client.patch(
            f"{API}/admin/withdrawals/{withdrawal_id}",
            json={"status": "rejected"},
            headers=auth("admin"),
        )

        assert approved.status_code == 200
        assert approved.json()["status"] == "approved"
        assert again.status_code == 409

        log = client.get(f"{API}/users/alice/points-log", headers=auth("alice")).json()
        assert log["balance"] == 4000
        assert log["entries"][0]["action"] == "withdrawal"
        assert log["entries"][0]["points"] == -1000
        assert log["entries"][0]["icon"] == "send"

    def test_reject_keeps_balance(self, client, alice, admin):
        withdrawal_id = _withdraw(client, "alice").json()["id"]

        response = client.patch(
            f"{API}/admin/withdrawals/{withdrawal_id}",
            json={"status": "rejected"},
            headers=auth("admin"),
        )

        assert response.status_code == 200
        assert response.json()["status"] == "rejected"
        log = client.get(f"{API}/users/alice/points-log", headers=auth("alice")).json()
        assert log["balance"] == 5000
        assert all(e["action"] != "withdrawal" for e in log["entries"])

    def test_invalid_status(self, client, alice, admin):
        withdrawal_id = _withdraw(client, "alice").json()["id"]

        response = client.patch(
            f"{API}/admin/withdrawals/{withdrawal_id}",
            json={"status": "paid"},
            headers=auth("admin"),
        )

        assert response.status_code == 422

    def test_unknown_request(self, client, admin):
        response = client.patch(
            f"{API}/admin/withdrawals/999",
            json={"status": "approved"},
            headers=auth("admin"),
        )

        assert response.status_code == 404


class TestAdminUsersAndPoints:
    def test_list_users_and_ban(self, client, alice, admin, fake_cache):
        users = client.get(f"{API}/admin/users?search=alice", headers=auth("admin"))

        assert [u["external_id"] for u in users.json()] == ["alice"]
        assert users.json()[0]["submission_count"] == 0

        banned = client.post(
            f"{API}/admin/users/{alice.id}/ban",
            json={"is_banned": True},
            headers=auth("admin"),
        )
        assert banned.json()["is_banned"] is True
        assert "users:profile:alice" in fake_cache.invalidated
        assert ADMIN_WITHDRAWALS_KEY in fake_cache.invalidated
        assert f"withdrawals:user:{alice.id}" in fake_cache.invalidated

        blocked = _withdraw(client, "alice")
        assert blocked.status_code == 403

    def test_adjust_points_and_integrity(self, client, alice, admin):
        adjusted = client.post(
            f"{API}/admin/points/adjust",
            json={"user_id": alice.id, "amount": -500, "reason": "correction"},
            headers=auth("admin"),
        )
        overdraw = client.post(
            f"{API}/admin/points/adjust",
            json={"user_id": alice.id, "amount": -10000, "reason": "too much"},
            headers=auth("admin"),
        )

        assert adjusted.status_code == 200
        assert adjusted.json()["balance_after"] == 4500
        assert overdraw.status_code == 400

        user_check = client.get(
            f"{API}/admin/points/integrity/{alice.id}", headers=auth("admin")
        )
        global_check = client.get(f"{API}/admin/points/integrity", headers=auth("admin"))
        assert user_check.json()["status"] == "OK"
        assert user_check.json()["calculated_balance"] == 4500
        assert global_check.json()["status"] == "OK"

    def test_site_settings(self, client, admin):
        saved = client.put(
            f"{API}/admin/settings",
            json={"settings": {"site_name": "NepQue", "support_email": "help@example.com"}},
            headers=auth("admin"),
        )
        updated = client.put(
            f"{API}/admin/settings",
            json={"settings": {"site_name": "NepQue Deals"}},
            headers=auth("admin"),
        )
        current = client.get(f"{API}/admin/settings", headers=auth("admin"))

        assert saved.status_code == 200
        assert updated.status_code == 200
        assert current.json() == {
            "site_name": "NepQue Deals",
            "support_email": "help@example.com",
        }


class TestAdminUserManagement:
    """관리자 사용자 수정/삭제 테스트"""

    def test_ban_refreshes_cached_admin_list(self, client, alice, admin, fake_cache):
        _withdraw(client, "alice")
        client.get(f"{API}/admin/withdrawals", headers=auth("admin"))
        assert ADMIN_WITHDRAWALS_KEY in fake_cache.store

        client.post(
            f"{API}/admin/users/{alice.id}/ban",
            json={"is_banned": True},
            headers=auth("admin"),
        )

        assert ADMIN_WITHDRAWALS_KEY not in fake_cache.store

    def test_partial_update(self, client, alice, admin, fake_cache):
        response = client.patch(
            f"{API}/admin/users/{alice.id}",
            json={"displayName": "Alice Admin", "isAdmin": True, "points": 999999},
            headers=auth("admin"),
        )

        assert response.status_code == 200
        data = response.json()
        assert data["display_name"] == "Alice Admin"
        assert data["is_admin"] is True
        assert data["email"] == "alice@example.com"
        assert data["points"] == 5000
        assert ADMIN_WITHDRAWALS_KEY in fake_cache.invalidated

    def test_cannot_revoke_own_admin(self, client, admin):
        response = client.patch(
            f"{API}/admin/users/{admin.id}",
            json={"isAdmin": False},
            headers=auth("admin"),
        )

        assert response.status_code == 422

    def test_update_unknown_user(self, client, admin):
        response = client.patch(
            f"{API}/admin/users/999",
            json={"displayName": "Ghost"},
            headers=auth("admin"),
        )

        assert response.status_code == 404

    def test_update_requires_admin(self, client, alice):
        response = client.patch(
            f"{API}/admin/users/{alice.id}",
            json={"isAdmin": True},
            headers=auth("alice"),
        )

        assert response.status_code == 403

    def test_delete_removes_user_history(self, client, alice, admin, fake_cache):
        withdrawal_id = _withdraw(client, "alice").json()["id"]
        client.post(
            f"{API}/user-submitted-coupons",
            json={
                "title": "Free delivery",
                "description": "Free delivery on orders above Rs 500",
                "code": "FREEDEL",
                "store_name": "Foodmandu",
            },
            headers=auth("alice"),
        )

        blocked = client.delete(f"{API}/admin/users/{alice.id}", headers=auth("admin"))
        assert blocked.status_code == 409

        client.patch(
            f"{API}/admin/withdrawals/{withdrawal_id}",
            json={"status": "rejected"},
            headers=auth("admin"),
        )
        deleted = client.delete(f"{API}/admin/users/{alice.id}", headers=auth("admin"))

        assert deleted.status_code == 200
        assert deleted.json()["success"] is True
        assert "users:profile:alice" in fake_cache.invalidated

        users = client.get(f"{API}/admin/users?search=alice", headers=auth("admin"))
        withdrawals = client.get(f"{API}/admin/withdrawals", headers=auth("admin"))
        integrity = client.get(f"{API}/admin/points/integrity", headers=auth("admin"))
        assert users.json() == []
        assert withdrawals.json() == []
        assert integrity.json()["status"] == "OK"

    def test_cannot_delete_self(self, client, admin):
        response = client.delete(f"{API}/admin/users/{admin.id}", headers=auth("admin"))

        assert response.status_code == 422

    def test_delete_unknown_user(self, client, admin):
        response = client.delete(f"{API}/admin/users/999", headers=auth("admin"))

        assert response.status_code == 404
