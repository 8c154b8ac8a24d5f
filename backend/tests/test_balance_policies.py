import pytest

from fieldcash.services.balance_policies import (
    floor_at_zero,
    get_policy,
    reject_overcollection,
    track_as_credit,
)
from fieldcash.validation import OvercollectionError, ValidationError


class TestPolicies:

    def test_floor_at_zero(self):
        assert floor_at_zero(5000, 2000) == 3000
        assert floor_at_zero(5000, 5000) == 0
        assert floor_at_zero(5000, 7000) == 0

    def test_reject_overcollection(self):
        assert reject_overcollection(5000, 5000) == 0
        with pytest.raises(OvercollectionError):
            reject_overcollection(5000, 5001)

    def test_reject_when_already_in_credit(self):
        with pytest.raises(OvercollectionError):
            reject_overcollection(-100, 1)

    def test_track_as_credit(self):
        assert track_as_credit(5000, 7000) == -2000


class TestGetPolicy:

    def test_by_name(self):
        assert get_policy("credit") is track_as_credit
        assert get_policy(" Reject ") is reject_overcollection

    def test_unknown_name(self):
        with pytest.raises(ValidationError):
            get_policy("forgive")

    def test_default_comes_from_config(self, app, db_session):
        assert get_policy() is floor_at_zero
        app.config["OVERCOLLECTION_POLICY"] = "credit"
        assert get_policy() is track_as_credit

