"""
HTTP API tests.

Verifies:
- Requests without a resolvable employee return 401
- Field staff are denied admin operations (403)
- Service errors map onto 400/404/409 JSON responses
- End-to-end collection, handover and reconciliation flow
- Body ids may be strings; settlements follow the same role rules
"""

import pytest

from conftest import LOC, employee_headers


# =============================================================================
# IDENTITY - 401
# =============================================================================


class TestIdentity:

    @pytest.mark.parametrize(
        "method,path",
        [
            ("GET", "/api/shops"),
            ("POST", "/api/shops"),
            ("POST", "/api/collections"),
            ("GET", "/api/collections/cash-in-bag"),
            ("GET", "/api/handovers/pending"),
            ("POST", "/api/settlements"),
            ("POST", "/api/reconciliations/verify"),
            ("POST", "/api/reconciliations/close-day"),
            ("POST", "/api/invoices"),
        ],
    )
    def test_requires_identity(self, client, db_session, method, path):
        resp = getattr(client, method.lower())(path)
        assert resp.status_code == 401, f"{method} {path} returned {resp.status_code}"

    def test_unknown_employee(self, client, db_session):
        resp = client.get("/api/shops", headers={"X-Employee-Id": "999"})
        assert resp.status_code == 401

    def test_inactive_employee(self, client, make_employee):
        inactive = make_employee(role="admin", status="inactive")
        resp = client.get("/api/shops", headers=employee_headers(inactive))
        assert resp.status_code == 401

    def test_garbage_header(self, client, db_session):
        resp = client.get("/api/shops", headers={"X-Employee-Id": "abc"})
        assert resp.status_code == 401

    def test_health_is_public(self, client, db_session):
        resp = client.get("/api/health")
        assert resp.status_code == 200
        assert resp.get_json()["status"] == "ok"


# =============================================================================
# ROLE CHECKS - 403
# =============================================================================


class TestFieldStaffDenied:

    def test_cannot_create_shop(self, client, agent):
        resp = client.post(
            "/api/shops",
            json={"name": "X", "address": "Y", "zone": "Z"},
            headers=employee_headers(agent),
        )
        assert resp.status_code == 403
        assert resp.get_json()["required_role"] == "admin"

    def test_cannot_override_balance(self, client, agent, make_shop):
        shop = make_shop(opening_balance_cents=1000)
        resp = client.put(
            f"/api/shops/{shop.id}/balance",
            json={"new_balance_cents": 0, "note": "x"},
            headers=employee_headers(agent),
        )
        assert resp.status_code == 403

    def test_cannot_verify_handover(self, client, agent):
        resp = client.post(f"/api/handovers/{agent.id}/verify", headers=employee_headers(agent))
        assert resp.status_code == 403

    def test_cannot_collect_for_someone_else(self, client, agent, make_employee, make_shop):
        other = make_employee(role="field_staff")
        shop = make_shop(opening_balance_cents=1000)
        resp = client.post(
            "/api/collections",
            json={"employee_id": other.id, "shop_id": shop.id, "amount_cents": 100, "payment_mode": "cash", "geolocation": LOC},
            headers=employee_headers(agent),
        )
        assert resp.status_code == 403

    def test_cannot_view_other_bag(self, client, agent, make_employee):
        other = make_employee(role="field_staff")
        resp = client.get(
            f"/api/collections/cash-in-bag?employee_id={other.id}",
            headers=employee_headers(agent),
        )
        assert resp.status_code == 403

    def test_admin_cannot_collect(self, client, admin, make_shop):
        shop = make_shop(opening_balance_cents=1000)
        resp = client.post(
            "/api/collections",
            json={"shop_id": shop.id, "amount_cents": 100, "payment_mode": "cash", "geolocation": LOC},
            headers=employee_headers(admin),
        )
        assert resp.status_code == 403


# =============================================================================
# SHOPS AND LEDGER
# =============================================================================


class TestShopsApi:

    def test_create_get_and_list(self, client, admin, agent):
        resp = client.post(
            "/api/shops",
            json={"name": "Sharma Store", "address": "12 Market Rd", "zone": "North", "opening_balance_cents": 500000},
            headers=employee_headers(admin),
        )
        assert resp.status_code == 201
        shop = resp.get_json()["shop"]
        assert shop["current_balance_cents"] == 500000

        resp = client.get(f"/api/shops/{shop['id']}", headers=employee_headers(agent))
        assert resp.status_code == 200

        resp = client.get("/api/shops?zone=North", headers=employee_headers(agent))
        assert [s["id"] for s in resp.get_json()["shops"]] == [shop["id"]]

    def test_create_requires_fields(self, client, admin):
        resp = client.post("/api/shops", json={"name": "X"}, headers=employee_headers(admin))
        assert resp.status_code == 400

    def test_correction_and_audit_log(self, client, admin, make_shop):
        shop = make_shop(opening_balance_cents=1000)

        resp = client.post(
            f"/api/shops/{shop.id}/corrections",
            json={"amount_cents": -250, "note": "Damaged goods"},
            headers=employee_headers(admin),
        )
        assert resp.status_code == 201
        assert resp.get_json()["current_balance_cents"] == 750

        resp = client.get(f"/api/shops/{shop.id}/audit-log", headers=employee_headers(admin))
        items = resp.get_json()["items"]
        assert len(items) == 1
        assert items[0]["note"] == "Damaged goods"
        assert items[0]["actor_employee_id"] == admin.id

    def test_override_requires_note(self, client, admin, make_shop):
        shop = make_shop(opening_balance_cents=1000)
        resp = client.put(
            f"/api/shops/{shop.id}/balance",
            json={"new_balance_cents": 0},
            headers=employee_headers(admin),
        )
        assert resp.status_code == 400

    def test_deleted_shop(self, client, admin, make_shop):
        shop = make_shop(opening_balance_cents=1000)
        resp = client.delete(f"/api/shops/{shop.id}", headers=employee_headers(admin))
        assert resp.status_code == 200
        assert resp.get_json()["shop"]["deleted_at"] is not None

        resp = client.post(
            f"/api/shops/{shop.id}/corrections",
            json={"amount_cents": 10, "note": "x"},
            headers=employee_headers(admin),
        )
        assert resp.status_code == 404

        resp = client.get("/api/shops", headers=employee_headers(admin))
        assert resp.get_json()["shops"] == []

    def test_missing_shop(self, client, admin):
        resp = client.get("/api/shops/4242", headers=employee_headers(admin))
        assert resp.status_code == 404


# =============================================================================
# END-TO-END DAY
# =============================================================================


class TestCollectionDay:

    def test_collect_handover_reconcile_close(self, client, admin, agent, make_shop):
        shop = make_shop(opening_balance_cents=500000)
        agent_h = employee_headers(agent)
        admin_h = employee_headers(admin)

        resp = client.post(
            "/api/collections",
            json={"shop_id": shop.id, "amount_cents": 200000, "payment_mode": "cash", "geolocation": LOC},
            headers=agent_h,
        )
        assert resp.status_code == 201
        txn = resp.get_json()["transaction"]
        today = txn["collected_at"][:10]

        resp = client.get(f"/api/shops/{shop.id}", headers=agent_h)
        assert resp.get_json()["shop"]["current_balance_cents"] == 300000

        resp = client.get("/api/collections/cash-in-bag", headers=agent_h)
        assert resp.get_json()["total_cents"] == 200000

        resp = client.get("/api/handovers/pending", headers=admin_h)
        assert resp.get_json()["pending"][0]["cash_amount_cents"] == 200000

        resp = client.post(f"/api/handovers/{agent.id}/verify", headers=admin_h)
        assert resp.status_code == 200
        assert resp.get_json()["verified_count"] == 1

        resp = client.get("/api/collections/cash-in-bag", headers=agent_h)
        assert resp.get_json()["total_cents"] == 0

        resp = client.post(
            "/api/reconciliations/verify",
            json={"employee_id": agent.id, "date": today, "actual_cash_cents": 200000},
            headers=admin_h,
        )
        assert resp.status_code == 200
        first = resp.get_json()["reconciliation"]
        assert first["status"] == "verified"

        resp = client.post(
            "/api/reconciliations/verify",
            json={"employee_id": agent.id, "date": today, "actual_cash_cents": 180000},
            headers=admin_h,
        )
        second = resp.get_json()["reconciliation"]
        assert second["id"] == first["id"]
        assert second["variance_cents"] == -20000
        assert second["status"] == "mismatch"

        resp = client.post("/api/reconciliations/close-day", json={"date": today}, headers=admin_h)
        assert resp.status_code == 200
        assert resp.get_json()["closed"] == 1

        resp = client.post(
            "/api/reconciliations/verify",
            json={"employee_id": agent.id, "date": today, "actual_cash_cents": 200000},
            headers=admin_h,
        )
        assert resp.status_code == 409

        resp = client.get(f"/api/reconciliations/{agent.id}/{today}", headers=admin_h)
        assert resp.get_json()["status"] == "closed"

    def test_pending_reconciliation(self, client, admin, agent):
        resp = client.get(f"/api/reconciliations/{agent.id}/2026-10-19", headers=employee_headers(admin))
        assert resp.status_code == 200
        assert resp.get_json()["status"] == "pending"
        assert resp.get_json()["reconciliation"] is None

    def test_malformed_date(self, client, admin, agent):
        resp = client.post(
            "/api/reconciliations/verify",
            json={"employee_id": agent.id, "date": "19/10/2026", "actual_cash_cents": 0},
            headers=employee_headers(admin),
        )
        assert resp.status_code == 400

    def test_invalid_amount(self, client, agent, make_shop):
        shop = make_shop(opening_balance_cents=1000)
        resp = client.post(
            "/api/collections",
            json={"shop_id": shop.id, "amount_cents": 0, "payment_mode": "cash", "geolocation": LOC},
            headers=employee_headers(agent),
        )
        assert resp.status_code == 400


# =============================================================================
# REQUEST BODY IDS AND LOCATION
# =============================================================================


class TestCollectionInput:

    def test_location_is_required(self, client, db_session, agent, make_shop):
        shop = make_shop(opening_balance_cents=1000)
        resp = client.post(
            "/api/collections",
            json={"shop_id": shop.id, "amount_cents": 100, "payment_mode": "cash"},
            headers=employee_headers(agent),
        )
        assert resp.status_code == 400
        assert "geolocation" in resp.get_json()["error"]

        resp = client.get(f"/api/shops/{shop.id}", headers=employee_headers(agent))
        assert resp.get_json()["shop"]["current_balance_cents"] == 1000

    def test_string_employee_id_matches_caller(self, client, agent, make_shop):
        shop = make_shop(opening_balance_cents=1000)
        resp = client.post(
            "/api/collections",
            json={
                "employee_id": str(agent.id),
                "shop_id": str(shop.id),
                "amount_cents": 100,
                "payment_mode": "cash",
                "geolocation": LOC,
            },
            headers=employee_headers(agent),
        )
        assert resp.status_code == 201
        assert resp.get_json()["transaction"]["employee_id"] == agent.id

    @pytest.mark.parametrize("bad_id", ["abc", "7.5", True])
    def test_malformed_employee_id(self, client, agent, make_shop, bad_id):
        shop = make_shop(opening_balance_cents=1000)
        resp = client.post(
            "/api/collections",
            json={"employee_id": bad_id, "shop_id": shop.id, "amount_cents": 100, "payment_mode": "cash", "geolocation": LOC},
            headers=employee_headers(agent),
        )
        assert resp.status_code == 400


class TestReconciliationInput:

    def test_malformed_employee_id(self, client, admin):
        h = employee_headers(admin)
        resp = client.post(
            "/api/reconciliations/verify",
            json={"employee_id": "abc", "date": "2026-10-19", "actual_cash_cents": 0},
            headers=h,
        )
        assert resp.status_code == 400

        resp = client.get("/api/reconciliations?date=2026-10-19", headers=h)
        assert resp.get_json()["reconciliations"] == []

    def test_unknown_employee(self, client, admin):
        h = employee_headers(admin)
        resp = client.post(
            "/api/reconciliations/verify",
            json={"employee_id": 424242, "date": "2026-10-19", "actual_cash_cents": 0},
            headers=h,
        )
        assert resp.status_code == 404

        resp = client.get("/api/reconciliations?date=2026-10-19", headers=h)
        assert resp.get_json()["reconciliations"] == []

    def test_string_employee_id(self, client, admin, agent):
        resp = client.post(
            "/api/reconciliations/verify",
            json={"employee_id": str(agent.id), "date": "2026-10-19", "actual_cash_cents": 0},
            headers=employee_headers(admin),
        )
        assert resp.status_code == 200
        assert resp.get_json()["reconciliation"]["employee_id"] == agent.id


# =============================================================================
# INVOICES
# =============================================================================


class TestInvoicesApi:

    def test_create_update_cancel(self, client, admin, make_shop):
        shop = make_shop(opening_balance_cents=0)
        h = employee_headers(admin)

        resp = client.post(
            "/api/invoices",
            json={"shop_id": shop.id, "amount_cents": 5000, "invoice_number": "INV-7", "invoice_date": "2026-10-19"},
            headers=h,
        )
        assert resp.status_code == 201
        invoice_id = resp.get_json()["invoice"]["id"]

        resp = client.post(
            "/api/invoices",
            json={"shop_id": shop.id, "amount_cents": 5000, "invoice_number": "INV-7", "invoice_date": "2026-10-19"},
            headers=h,
        )
        assert resp.status_code == 409

        resp = client.patch(f"/api/invoices/{invoice_id}", json={"amount_cents": 4500}, headers=h)
        assert resp.status_code == 200

        resp = client.post(f"/api/invoices/{invoice_id}/cancel", headers=h)
        assert resp.get_json()["invoice"]["status"] == "cancelled"

        resp = client.get(f"/api/shops/{shop.id}", headers=h)
        assert resp.get_json()["shop"]["current_balance_cents"] == 0


# =============================================================================
# SETTLEMENTS
# =============================================================================


class TestSettlementsApi:

    def _collect(self, client, agent, shop, amount):
        resp = client.post(
            "/api/collections",
            json={"shop_id": shop.id, "amount_cents": amount, "payment_mode": "cash", "geolocation": LOC},
            headers=employee_headers(agent),
        )
        assert resp.status_code == 201
        return resp.get_json()["transaction"]

    def test_open_receive_and_override(self, client, admin, agent, make_shop):
        shop = make_shop(opening_balance_cents=100000)
        agent_h = employee_headers(agent)
        admin_h = employee_headers(admin)
        txn = self._collect(client, agent, shop, 5000)

        resp = client.post("/api/settlements", json={"note": "Evening drop"}, headers=agent_h)
        assert resp.status_code == 201
        settlement = resp.get_json()["settlement"]
        assert settlement["status"] == "pending"
        assert settlement["expected_amount_cents"] == 5000
        assert settlement["transaction_ids"] == [txn["id"]]

        resp = client.post(f"/api/settlements/{settlement['id']}/receive", json={"received_amount_cents": 5000}, headers=agent_h)
        assert resp.status_code == 403

        resp = client.post(f"/api/settlements/{settlement['id']}/receive", json={"received_amount_cents": 4500}, headers=admin_h)
        assert resp.status_code == 200
        received = resp.get_json()["settlement"]
        assert received["status"] == "discrepancy"
        assert received["variance_cents"] == -500

        resp = client.get("/api/collections/cash-in-bag", headers=agent_h)
        assert resp.get_json()["total_cents"] == 0

        resp = client.post(f"/api/settlements/{settlement['id']}/receive", json={"received_amount_cents": 5000}, headers=admin_h)
        assert resp.status_code == 409

        resp = client.patch(f"/api/settlements/{settlement['id']}/status", json={"status": "received"}, headers=admin_h)
        assert resp.status_code == 400

        resp = client.patch(
            f"/api/settlements/{settlement['id']}/status",
            json={"status": "received", "note": "Agent paid the difference"},
            headers=admin_h,
        )
        assert resp.get_json()["settlement"]["status"] == "received"

    def test_one_step_verify(self, client, admin, agent, make_shop):
        shop = make_shop(opening_balance_cents=100000)
        self._collect(client, agent, shop, 3000)

        resp = client.post("/api/settlements/verify", json={"employee_id": agent.id}, headers=employee_headers(admin))
        assert resp.status_code == 201
        assert resp.get_json()["settlement"]["status"] == "received"
        assert resp.get_json()["settlement"]["received_amount_cents"] == 3000

        resp = client.post("/api/settlements/verify", json={"employee_id": agent.id}, headers=employee_headers(admin))
        assert resp.status_code == 400

    def test_field_staff_see_only_their_own(self, client, admin, agent, make_employee, make_shop):
        other = make_employee(role="field_staff")
        shop = make_shop(opening_balance_cents=100000)
        self._collect(client, agent, shop, 1000)
        self._collect(client, other, shop, 2000)

        mine = client.post("/api/settlements", json={}, headers=employee_headers(agent)).get_json()["settlement"]
        theirs = client.post("/api/settlements", json={}, headers=employee_headers(other)).get_json()["settlement"]

        resp = client.get("/api/settlements", headers=employee_headers(agent))
        assert [s["id"] for s in resp.get_json()["settlements"]] == [mine["id"]]

        resp = client.get(f"/api/settlements/{theirs['id']}", headers=employee_headers(agent))
        assert resp.status_code == 403

        resp = client.post("/api/settlements", json={"employee_id": other.id}, headers=employee_headers(agent))
        assert resp.status_code == 403

        resp = client.get("/api/settlements?status=pending", headers=employee_headers(admin))
        assert len(resp.get_json()["settlements"]) == 2
