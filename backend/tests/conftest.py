"""
Pytest fixtures for fieldcash backend tests.

Provides the test app and client, a fresh database per test, employee/shop
factories and request context helpers.
"""

import itertools

import pytest
from fieldcash import create_app
from fieldcash.extensions import db
from fieldcash.models import Employee, Shop
from fieldcash.services.permission_service import context_for


_email_seq = itertools.count(1)


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        # Tests that flip config restore the defaults here
        app.config['OVERCOLLECTION_POLICY'] = 'floor'
        app.config['ALLOW_VERIFY_AFTER_CLOSE'] = False

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def make_employee(db_session):
    """Factory: make_employee(role="field_staff", name=None, status="active")."""
    def _make(role="field_staff", name=None, status="active"):
        n = next(_email_seq)
        employee = Employee(
            name=name or f"Employee {n}",
            email=f"employee{n}@fieldcash.test",
            role=role,
            status=status,
        )
        db_session.add(employee)
        db_session.commit()
        return employee
    return _make


@pytest.fixture(scope='function')
def make_shop(db_session):
    """Factory: make_shop(opening_balance_cents=0, zone="North")."""
    def _make(opening_balance_cents=0, name=None, zone="North"):
        shop = Shop(
            name=name or "Test Shop",
            address="1 Market Road",
            zone=zone,
            opening_balance_cents=opening_balance_cents,
            current_balance_cents=opening_balance_cents,
        )
        db_session.add(shop)
        db_session.commit()
        return shop
    return _make


@pytest.fixture(scope='function')
def admin(make_employee):
    return make_employee(role="admin", name="Office Admin")


@pytest.fixture(scope='function')
def agent(make_employee):
    return make_employee(role="field_staff", name="Field Agent")


@pytest.fixture(scope='function')
def admin_ctx(admin):
    return context_for(admin)


@pytest.fixture(scope='function')
def agent_ctx(agent):
    return context_for(agent)


# Where the test agents stand when they log a collection
LOC = {"lat": 19.07, "lng": 72.87}


def employee_headers(employee) -> dict:
    """Helper to create identity headers (as forwarded by the gateway)."""
    return {'X-Employee-Id': str(employee.id)}
