"""
Daily reconciliation tests.

Verifies:
- expected cash is recomputed from the day's completed cash collections
- verify() replaces the (employee, date) record instead of adding one
- forced statuses need a note
- close_day() closes every record of the date; later verify() is rejected
  unless ALLOW_VERIFY_AFTER_CLOSE is set
"""

from datetime import date, datetime

import pytest

from conftest import LOC
from fieldcash import repositories
from fieldcash.models import DailyReconciliation
from fieldcash.services import collection_service, reconciliation_service
from fieldcash.services.permission_service import PermissionDeniedError
from fieldcash.validation import ConflictError, NotFoundError, ValidationError


D = date(2026, 10, 19)


@pytest.fixture
def collected(db_session, make_shop, agent, agent_ctx):
    """Agent collected 2000 cash on D from a shop that owed 5000."""
    shop = make_shop(opening_balance_cents=5000)
    collection_service.record_collection(
        agent_ctx, agent.id, shop.id, 2000, "cash", LOC, collected_at=datetime(2026, 10, 19, 10, 0)
    )
    return shop


# =============================================================================
# VERIFY
# =============================================================================


class TestVerify:

    def test_replaces_instead_of_appending(self, db_session, collected, agent, admin_ctx):
        first = reconciliation_service.verify(admin_ctx, agent.id, D, 2000)
        assert first.expected_cash_cents == 2000
        assert first.variance_cents == 0
        assert first.status == "verified"

        second = reconciliation_service.verify(admin_ctx, agent.id, "2026-10-19", 1800)
        assert second.id == first.id
        assert second.variance_cents == -200
        assert second.status == "mismatch"

        assert db_session.query(DailyReconciliation).filter_by(employee_id=agent.id).count() == 1

    def test_expected_ignores_non_cash_and_other_days(self, db_session, collected, agent, agent_ctx, admin_ctx):
        collection_service.record_collection(
            agent_ctx, agent.id, collected.id, 500, "upi", LOC, collected_at=datetime(2026, 10, 19, 11, 0)
        )
        collection_service.record_collection(
            agent_ctx, agent.id, collected.id, 100, "cash", LOC, collected_at=datetime(2026, 10, 20, 0, 0)
        )

        row = reconciliation_service.verify(admin_ctx, agent.id, D, 2100)

        assert row.expected_cash_cents == 2000
        assert row.variance_cents == 100

    def test_no_collections_means_zero_expected(self, db_session, agent, admin_ctx):
        row = reconciliation_service.verify(admin_ctx, agent.id, D, 0)
        assert row.expected_cash_cents == 0
        assert row.status == "verified"

    def test_forced_status_requires_note(self, db_session, collected, agent, admin_ctx):
        with pytest.raises(ValidationError):
            reconciliation_service.verify(admin_ctx, agent.id, D, 1500, forced_status="verified")

        row = reconciliation_service.verify(
            admin_ctx, agent.id, D, 1500, note="Short 500, paid next day", forced_status="verified"
        )
        assert row.status == "verified"
        assert row.variance_cents == -500

    def test_forced_status_cannot_be_closed(self, db_session, agent, admin_ctx):
        with pytest.raises(ValidationError):
            reconciliation_service.verify(admin_ctx, agent.id, D, 0, note="x", forced_status="closed")

    @pytest.mark.parametrize("bad_date", ["19-10-2026", "", None, datetime(2026, 10, 19, 1, 0)])
    def test_malformed_date(self, db_session, agent, admin_ctx, bad_date):
        with pytest.raises(ValidationError):
            reconciliation_service.verify(admin_ctx, agent.id, bad_date, 0)

    def test_negative_actual_rejected(self, db_session, agent, admin_ctx):
        with pytest.raises(ValidationError):
            reconciliation_service.verify(admin_ctx, agent.id, D, -1)

    def test_field_staff_cannot_verify(self, db_session, agent, agent_ctx):
        with pytest.raises(PermissionDeniedError):
            reconciliation_service.verify(agent_ctx, agent.id, D, 0)

    @pytest.mark.parametrize("bad_id", ["abc", "", 1.5, True, [1]])
    def test_malformed_employee_id(self, db_session, admin_ctx, bad_id):
        with pytest.raises(ValidationError):
            reconciliation_service.verify(admin_ctx, bad_id, D, 0)
        assert db_session.query(DailyReconciliation).count() == 0

    def test_unknown_employee(self, db_session, admin_ctx):
        with pytest.raises(NotFoundError):
            reconciliation_service.verify(admin_ctx, 424242, D, 0)
        assert db_session.query(DailyReconciliation).count() == 0

    def test_string_employee_id_is_the_same_row(self, db_session, collected, agent, admin_ctx):
        first = reconciliation_service.verify(admin_ctx, agent.id, D, 2000)
        second = reconciliation_service.verify(admin_ctx, str(agent.id), D, 1900)

        assert second.id == first.id
        assert second.employee_id == agent.id
        assert db_session.query(DailyReconciliation).count() == 1


# =============================================================================
# CONCURRENT INSERT OF THE SAME (EMPLOYEE, DATE)
# =============================================================================


def _hide_existing_row(monkeypatch, lookups):
    """Make the next `lookups` get_by_key calls miss, as if another request
    inserted the row after this one looked."""
    real = repositories.reconciliations.get_by_key
    calls = []

    def get_by_key(employee_id, business_date, *, for_update=False):
        calls.append(for_update)
        if lookups is None or len(calls) <= lookups:
            return None
        return real(employee_id, business_date, for_update=for_update)

    monkeypatch.setattr(repositories.reconciliations, "get_by_key", get_by_key)
    return calls


class TestConcurrentUpsert:

    def test_lost_insert_race_is_absorbed(self, db_session, monkeypatch, collected, agent, admin_ctx):
        first = reconciliation_service.verify(admin_ctx, agent.id, D, 2000)
        # verify() and replace() each look the row up once per attempt
        calls = _hide_existing_row(monkeypatch, lookups=2)

        row = reconciliation_service.verify(admin_ctx, agent.id, D, 50)

        assert len(calls) == 4
        assert row.id == first.id
        rows = db_session.query(DailyReconciliation).all()
        assert len(rows) == 1
        assert rows[0].actual_cash_cents == 50
        assert rows[0].variance_cents == -1950
        assert rows[0].status == "mismatch"

    def test_persistent_race_is_a_conflict(self, db_session, monkeypatch, collected, agent, admin_ctx):
        reconciliation_service.verify(admin_ctx, agent.id, D, 2000)
        calls = _hide_existing_row(monkeypatch, lookups=None)

        with pytest.raises(ConflictError):
            reconciliation_service.verify(admin_ctx, agent.id, D, 50)

        assert len(calls) == reconciliation_service.UPSERT_ATTEMPTS * 2
        monkeypatch.undo()
        rows = db_session.query(DailyReconciliation).all()
        assert len(rows) == 1
        assert rows[0].actual_cash_cents == 2000
        assert rows[0].status == "verified"


# =============================================================================
# STATUS OVERRIDE
# =============================================================================


class TestOverrideStatus:

    def test_override_with_new_actual(self, db_session, collected, agent, admin_ctx):
        row = reconciliation_service.verify(admin_ctx, agent.id, D, 1000)

        updated = reconciliation_service.override_status(
            admin_ctx, row.id, "verified", "Recounted", actual_cash_cents=2000
        )

        assert updated.status == "verified"
        assert updated.variance_cents == 0
        assert updated.note == "Recounted"

    def test_missing_row(self, db_session, admin_ctx):
        with pytest.raises(NotFoundError):
            reconciliation_service.override_status(admin_ctx, 999, "verified", "x")


# =============================================================================
# CLOSE DAY
# =============================================================================


class TestCloseDay:

    def test_closes_every_record_of_the_date(self, db_session, collected, agent, make_employee, admin, admin_ctx):
        other = make_employee(role="field_staff")
        reconciliation_service.verify(admin_ctx, agent.id, D, 2000)
        reconciliation_service.verify(admin_ctx, other.id, D, 50)
        reconciliation_service.verify(admin_ctx, agent.id, date(2026, 10, 20), 0)

        assert reconciliation_service.close_day(admin_ctx, D) == 2

        rows = reconciliation_service.list_reconciliations(business_date=D)
        assert {r.status for r in rows} == {"closed"}
        assert all(r.closed_by_employee_id == admin.id for r in rows)
        assert reconciliation_service.get_reconciliation(agent.id, date(2026, 10, 20)).status == "verified"

    def test_close_empty_day(self, db_session, admin_ctx):
        assert reconciliation_service.close_day(admin_ctx, D) == 0

    def test_verify_after_close_rejected(self, db_session, collected, agent, admin_ctx):
        reconciliation_service.verify(admin_ctx, agent.id, D, 2000)
        reconciliation_service.close_day(admin_ctx, D)

        with pytest.raises(ConflictError):
            reconciliation_service.verify(admin_ctx, agent.id, D, 1800)

        assert reconciliation_service.get_reconciliation(agent.id, D).status == "closed"

    def test_verify_after_close_when_allowed(self, app, db_session, collected, agent, admin_ctx):
        app.config["ALLOW_VERIFY_AFTER_CLOSE"] = True
        reconciliation_service.verify(admin_ctx, agent.id, D, 2000)
        reconciliation_service.close_day(admin_ctx, D)

        row = reconciliation_service.verify(admin_ctx, agent.id, D, 1800)

        assert row.status == "mismatch"
        assert row.closed_at is None

    def test_closed_row_cannot_be_overridden(self, db_session, collected, agent, admin_ctx):
        row = reconciliation_service.verify(admin_ctx, agent.id, D, 2000)
        reconciliation_service.close_day(admin_ctx, D)
        with pytest.raises(ConflictError):
            reconciliation_service.override_status(admin_ctx, row.id, "mismatch", "late")

    def test_close_does_not_touch_transactions(self, db_session, collected, agent, admin_ctx):
        from fieldcash.services import handover_service

        reconciliation_service.verify(admin_ctx, agent.id, D, 2000)
        reconciliation_service.close_day(admin_ctx, D)

        assert handover_service.cash_in_bag(agent.id, D).total_cents == 2000
