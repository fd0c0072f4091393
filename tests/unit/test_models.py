"""
Unit tests for scheduling value types.
"""

from datetime import date, time
from decimal import Decimal
from uuid import uuid4

import pytest

from scheduling.models import (
    Principal,
    Reservation,
    ReservationStatus,
    Role,
    ServiceSelection,
)

TODAY = date(2025, 3, 10)


def _reservation(status, booking_date=date(2025, 3, 11), customer_id=None):
    return Reservation(
        id=uuid4(),
        stylist_id=uuid4(),
        customer_id=customer_id or uuid4(),
        services=(),
        booking_date=booking_date,
        start_time=time(10, 0),
        end_time=time(11, 0),
        duration_minutes=60,
        price=Decimal("0"),
        status=status,
    )


class TestReservationPredicates:
    @pytest.mark.parametrize(
        "status,expected",
        [
            (ReservationStatus.PENDING, True),
            (ReservationStatus.CONFIRMED, True),
            (ReservationStatus.COMPLETED, False),
            (ReservationStatus.CANCELLED, False),
        ],
    )
    def test_is_cancellable(self, status, expected):
        assert _reservation(status).is_cancellable() is expected

    @pytest.mark.parametrize(
        "status,booking_date,expected",
        [
            (ReservationStatus.PENDING, date(2025, 3, 11), True),
            (ReservationStatus.CONFIRMED, date(2025, 4, 1), True),
            (ReservationStatus.CONFIRMED, TODAY, False),  # strictly future only
            (ReservationStatus.PENDING, date(2025, 3, 9), False),
            (ReservationStatus.CANCELLED, date(2025, 3, 11), False),
            (ReservationStatus.COMPLETED, date(2025, 3, 11), False),
        ],
    )
    def test_is_upcoming(self, status, booking_date, expected):
        assert _reservation(status, booking_date).is_upcoming(TODAY) is expected

    def test_is_owned_by(self):
        owner = Principal(user_id=uuid4())
        reservation = _reservation(ReservationStatus.PENDING, customer_id=owner.user_id)

        assert reservation.is_owned_by(owner) is True
        assert reservation.is_owned_by(Principal(user_id=uuid4())) is False


class TestServiceSelection:
    def test_dict_form_keeps_decimal_precision(self):
        selection = ServiceSelection(uuid4(), "Color", Decimal("45.50"), 45)
        data = selection.to_dict()

        assert data["price"] == "45.50"
        assert ServiceSelection.from_dict(data) == selection

    def test_is_immutable(self):
        selection = ServiceSelection(uuid4(), "Cut", Decimal("30"), 30)
        with pytest.raises(AttributeError):
            selection.price = Decimal("1")


class TestPrincipal:
    def test_roles(self):
        assert Principal(uuid4(), Role.ADMIN).is_admin is True
        assert Principal(uuid4()).is_admin is False

    def test_status_str_is_value(self):
        assert str(ReservationStatus.CONFIRMED) == "confirmed"
