from app.models.user import User
from tests.conftest import create_entry


def register(client, headers, **overrides):
    payload = {
        "name": "New Person",
        "email": "new@a.test",
        "password": "long-enough-pw",
        "role": "STAFF",
    }
    payload.update(overrides)
    return client.post("/api/auth/register", headers=headers, json=payload)


class TestRegister:
    def test_admin_lini_registers_into_own_tenant(self, client, admin_a, branch_b, admin_a_headers):
        response = register(client, admin_a_headers, tenant_id=branch_b.id)
        assert response.status_code == 201
        data = response.json()["data"]
        assert data["tenant_id"] == admin_a.tenant_id
        assert data["role"] == "STAFF"
        assert "password" not in data and "password_hash" not in data

    def test_email_is_normalized_and_unique(self, client, staff_a, admin_a_headers):
        response = register(client, admin_a_headers, email="STAFF@a.test")
        assert response.status_code == 409
        assert response.json()["error"] == "Email is already registered"

    def test_staff_cannot_register(self, client, staff_a_headers):
        response = register(client, staff_a_headers)
        assert response.status_code == 403

    def test_admin_lini_cannot_grant_super_admin(self, client, admin_a_headers):
        response = register(client, admin_a_headers, role="SUPER_ADMIN")
        assert response.status_code == 403

    def test_super_admin_registers_into_any_tenant(self, client, branch_b, super_headers):
        response = register(client, super_headers, email="lead@b.test", role="ADMIN_LINI", tenant_id=branch_b.id)
        assert response.status_code == 201
        assert response.json()["data"]["tenant"]["slug"] == "branch-b"

    def test_super_admin_unknown_tenant(self, client, super_headers):
        response = register(client, super_headers, tenant_id=4242)
        assert response.status_code == 404
        assert response.json()["error"] == "Target tenant not found"

    def test_short_password_rejected(self, client, admin_a_headers):
        response = register(client, admin_a_headers, password="short")
        assert response.status_code == 422


class TestListAndGet:
    def test_list_is_tenant_scoped(self, client, staff_a, admin_a, staff_b, branch_b, admin_a_headers):
        body = client.get(f"/api/users?tenant_id={branch_b.id}", headers=admin_a_headers).json()
        assert {u["email"] for u in body["data"]} == {"staff@a.test", "admin@a.test"}

    def test_super_admin_lists_everyone(self, client, staff_a, staff_b, super_admin, super_headers):
        body = client.get("/api/users", headers=super_headers).json()
        assert body["meta"]["total"] == 3

    def test_filter_by_role_and_search(self, client, staff_a, admin_a, other_staff_a, admin_a_headers):
        body = client.get("/api/users?role=STAFF&search=staff2", headers=admin_a_headers).json()
        assert [u["email"] for u in body["data"]] == ["staff2@a.test"]

    def test_foreign_user_looks_missing(self, client, staff_b, admin_a_headers):
        assert client.get(f"/api/users/{staff_b.id}", headers=admin_a_headers).status_code == 404


class TestUpdateAndDelete:
    def test_admin_lini_promotes_staff(self, client, staff_a, admin_a_headers):
        response = client.put(f"/api/users/{staff_a.id}", headers=admin_a_headers, json={"role": "ADMIN_LINI"})
        assert response.status_code == 200
        assert response.json()["data"]["role"] == "ADMIN_LINI"

    def test_admin_lini_cannot_touch_foreign_user(self, client, staff_b, admin_a_headers):
        response = client.put(f"/api/users/{staff_b.id}", headers=admin_a_headers, json={"name": "Hijacked"})
        assert response.status_code == 404

    def test_staff_cannot_update_users(self, client, other_staff_a, staff_a_headers):
        response = client.put(f"/api/users/{other_staff_a.id}", headers=staff_a_headers, json={"name": "Renamed"})
        assert response.status_code == 403

    def test_cannot_delete_yourself(self, client, admin_a, admin_a_headers):
        response = client.delete(f"/api/users/{admin_a.id}", headers=admin_a_headers)
        assert response.status_code == 400
        assert response.json()["error"] == "Cannot delete yourself"

    def test_cannot_delete_an_author(self, client, db_session, staff_a, admin_a_headers):
        create_entry(db_session, staff_a)
        response = client.delete(f"/api/users/{staff_a.id}", headers=admin_a_headers)
        assert response.status_code == 400

    def test_delete_user(self, client, db_session, staff_a, admin_a_headers):
        user_id = staff_a.id
        response = client.delete(f"/api/users/{user_id}", headers=admin_a_headers)
        assert response.status_code == 200
        assert db_session.get(User, user_id) is None
