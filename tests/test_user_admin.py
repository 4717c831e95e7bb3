"""
User admin tests: profile list with role filter and order stats, role and
activation changes, admin provisioning, first-login profile race.
"""

import pytest

from conftest import auth_headers, make_order, make_user
from modules.auth.deps import _create_profile
from modules.user.models import Profile

USERS = "/api/admin/users"


@pytest.fixture
def admin(db):
    make_user(db, "admin-1", is_admin=True)
    return auth_headers("admin-1")


class TestUserList:

    def test_requires_admin(self, client, db):
        make_user(db)
        assert client.get(USERS).status_code == 401
        assert client.get(USERS, headers=auth_headers()).status_code == 403

    def test_order_stats(self, client, db, admin):
        make_user(db, "user-1")
        make_user(db, "user-2")
        make_order(db, "user-1", total=3200)
        make_order(db, "user-1", total=800)

        users = {u["id"]: u for u in client.get(USERS, headers=admin).json()}
        assert (users["user-1"]["orders_count"], users["user-1"]["total_spent"]) == (2, 4000)
        assert (users["user-2"]["orders_count"], users["user-2"]["total_spent"]) == (0, 0)
        assert users["admin-1"]["is_admin"] is True

    def test_role_filter(self, client, db, admin):
        make_user(db, "user-1")
        admins = client.get(USERS, params={"role": "admin"}, headers=admin).json()
        customers = client.get(USERS, params={"role": "user"}, headers=admin).json()

        assert [u["id"] for u in admins] == ["admin-1"]
        assert [u["id"] for u in customers] == ["user-1"]
        assert client.get(USERS, params={"role": "owner"}, headers=admin).status_code == 400

    def test_search(self, client, db, admin):
        make_user(db, "asha")
        make_user(db, "ravi")
        found = client.get(USERS, params={"search": "ash"}, headers=admin).json()
        assert [u["id"] for u in found] == ["asha"]

    def test_detail(self, client, db, admin):
        make_user(db, "user-1")
        make_order(db, "user-1", total=1250)
        detail = client.get(f"{USERS}/user-1", headers=admin).json()
        assert detail["orders_count"] == 1
        assert client.get(f"{USERS}/nobody", headers=admin).status_code == 404


class TestRoleAndActivation:

    def test_promote_and_demote(self, client, db, admin):
        make_user(db, "user-1")

        resp = client.put(f"{USERS}/user-1/role", json={"is_admin": True}, headers=admin)
        assert resp.json()["is_admin"] is True
        assert client.get("/api/admin/orders", headers=auth_headers("user-1")).status_code == 200

        client.put(f"{USERS}/user-1/role", json={"is_admin": False}, headers=admin)
        assert client.get("/api/admin/orders", headers=auth_headers("user-1")).status_code == 403

    def test_cannot_demote_self(self, client, admin):
        resp = client.put(f"{USERS}/admin-1/role", json={"is_admin": False}, headers=admin)
        assert resp.status_code == 400

    def test_deactivated_user_is_logged_out(self, client, db, admin):
        make_user(db, "user-1")
        assert client.get("/api/orders", headers=auth_headers("user-1")).status_code == 200

        resp = client.put(f"{USERS}/user-1/active", json={"is_active": False}, headers=admin)
        assert resp.json()["is_active"] is False
        assert client.get("/api/orders", headers=auth_headers("user-1")).status_code == 401

    def test_cannot_deactivate_self(self, client, admin):
        resp = client.put(f"{USERS}/admin-1/active", json={"is_active": False}, headers=admin)
        assert resp.status_code == 400

    def test_provision_admin_before_first_login(self, client, db, admin):
        resp = client.post(USERS, json={"id": "chef-7", "full_name": "Chef Seven"}, headers=admin)
        assert resp.status_code == 201
        assert resp.json()["is_admin"] is True
        assert client.get("/api/admin/orders", headers=auth_headers("chef-7")).status_code == 200

    def test_provision_promotes_existing_profile(self, client, db, admin):
        make_user(db, "user-1")
        resp = client.post(USERS, json={"id": "user-1"}, headers=admin)
        assert resp.json()["is_admin"] is True
        db.expire_all()
        assert db.query(Profile).count() == 2


class TestFirstLogin:

    def test_profile_created_on_first_request(self, client, db):
        assert client.get("/api/orders", headers=auth_headers("new-user")).status_code == 200
        assert db.get(Profile, "new-user") is not None

    def test_concurrent_first_login_reuses_existing_row(self, app, db):
        make_user(db, "racer")
        other = app.state.session_factory()
        try:
            profile = _create_profile(other, "racer", "Racer")
            assert profile.id == "racer"
            assert other.query(Profile).filter(Profile.id == "racer").count() == 1
        finally:
            other.close()
