"""
Integration tests for Ledger Core API.

Tests complete workflows across multiple endpoints and the full stack
(routes → services → repositories → database).
"""

from datetime import timedelta

from tests.conftest import create_test_token


def login(client, email, password):
    response = client.post("/api/auth/login", json={"email": email, "password": password})
    assert response.status_code == 200
    return {"Authorization": f"Bearer {response.json()['data']['token']}"}


class TestOnboardingWorkflow:
    """A new branch goes from creation to its first report"""

    def test_new_branch_complete_workflow(self, client, clock, super_headers):
        # Step 1: HQ creates the branch
        branch = client.post(
            "/api/tenants",
            headers=super_headers,
            json={"name": "Bandung Branch", "slug": "bandung"},
        ).json()["data"]

        # Step 2: HQ registers the branch admin
        response = client.post(
            "/api/auth/register",
            headers=super_headers,
            json={
                "name": "Bandung Admin",
                "email": "admin@bandung.test",
                "password": "admin-password",
                "role": "ADMIN_LINI",
                "tenant_id": branch["id"],
            },
        )
        assert response.status_code == 201

        # Step 3: Branch admin logs in and registers a cashier
        admin_headers = login(client, "admin@bandung.test", "admin-password")
        response = client.post(
            "/api/auth/register",
            headers=admin_headers,
            json={"name": "Cashier", "email": "cashier@bandung.test", "password": "cashier-password"},
        )
        assert response.json()["data"]["tenant_id"] == branch["id"]

        # Step 4: Cashier records the day
        cashier_headers = login(client, "cashier@bandung.test", "cashier-password")
        sale = client.post(
            "/api/logs",
            headers=cashier_headers,
            json={
                "kind": "INCOME",
                "description": "Counter sales",
                "items": [
                    {"name": "Nasi Goreng", "quantity": "10", "unit_price": "25000"},
                    {"name": "Es Teh", "quantity": "12", "unit_price": "5000"},
                ],
            },
        ).json()["data"]
        assert sale["total_amount"] == 310000.0

        client.post(
            "/api/logs",
            headers=cashier_headers,
            json={"kind": "EXPENSE", "description": "Gas refill", "total_amount": "90000"},
        )

        # Step 5: The next day the cashier can no longer fix yesterday's entry
        clock.advance(hours=25)
        response = client.put(
            f"/api/logs/{sale['id']}", headers=cashier_headers, json={"description": "Counter sales (am)"}
        )
        assert response.status_code == 400

        # ... but the branch admin can
        response = client.put(
            f"/api/logs/{sale['id']}", headers=admin_headers, json={"description": "Counter sales (am)"}
        )
        assert response.status_code == 200

        # Step 6: Branch report
        summary = client.get("/api/dashboard/summary?period=week", headers=admin_headers).json()["data"]
        assert summary["overall"]["total_income"] == 310000.0
        assert summary["overall"]["net_balance"] == 220000.0

        rankings = client.get("/api/dashboard/rankings?kind=INCOME", headers=admin_headers).json()["data"]
        assert rankings[0]["name"] == "Nasi Goreng"

        # Step 7: HQ sees the branch in the comparison
        comparison = client.get("/api/dashboard/comparison", headers=super_headers).json()["data"]
        bandung = next(row for row in comparison["tenants"] if row["tenant_slug"] == "bandung")
        assert bandung["log_count"] == 2
        assert bandung["status"] == "ACTIVE"

        # Step 8: Branch cannot be removed while it has users
        assert client.delete(f"/api/tenants/{branch['id']}", headers=super_headers).status_code == 400


class TestCrossTenantIsolation:
    """Nothing written by one branch leaks into another branch's views"""

    def test_branch_views_never_include_other_branches(
        self, client, staff_a_headers, staff_b_headers, admin_a_headers
    ):
        for headers, amount in ((staff_a_headers, "100"), (staff_b_headers, "999")):
            client.post(
                "/api/logs",
                headers=headers,
                json={"kind": "INCOME", "description": "Daily sales", "total_amount": amount},
            )

        stats = client.get("/api/dashboard/stats", headers=admin_a_headers).json()["data"]
        assert stats["today"]["total_income"] == 100.0

        chart = client.get("/api/dashboard/chart?period=week", headers=admin_a_headers).json()["data"]
        assert sum(point["income"] for point in chart) == 100.0

        export = client.get("/api/dashboard/export", headers=admin_a_headers).text
        assert "999.00" not in export
        assert "branch-b" not in export

        insights = client.get("/api/dashboard/insights", headers=admin_a_headers).json()["data"]
        assert insights["ticket_size"]["max"] == 100.0

    def test_expired_session_must_log_in_again(self, client, staff_a):
        token = create_test_token(staff_a, expires_delta=timedelta(seconds=-1))
        response = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 401
