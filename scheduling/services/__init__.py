"""
Scheduling services.

Services:
- availability_service: Slot Calculator (weekly window minus reservations)
- reservation_service: Status changes, cancellation, queries, schedule writes
"""

from scheduling.services.availability_service import compute_slots, get_available_slots
from scheduling.services.reservation_service import (
    add_schedule_window,
    cancel_booking,
    delete_booking,
    delete_schedule_window,
    get_booking,
    list_bookings,
    list_customer_bookings,
    list_schedule_windows,
    update_booking_status,
)

__all__ = [
    # Slot Calculator
    "compute_slots",
    "get_available_slots",
    # Reservations
    "add_schedule_window",
    "cancel_booking",
    "delete_booking",
    "delete_schedule_window",
    "get_booking",
    "list_bookings",
    "list_customer_bookings",
    "list_schedule_windows",
    "update_booking_status",
]
