"""
Transaction Validators for Booking Business Rules.

Validators that check booking constraints before the reservation is written.
Used by BookingTransaction; each one raises a SchedulingError subclass and
has no side effects.
"""

import logging
from collections.abc import Iterable, Sequence
from datetime import date, time
from decimal import Decimal
from uuid import UUID

from scheduling.errors import InvalidServiceError, SlotUnavailableError
from scheduling.models import ACTIVE_STATUSES, Reservation, ServiceSelection, WeeklyAvailabilityWindow
from scheduling.ports import ServiceCatalog, UnitOfWork
from scheduling.services.availability_service import select_window
from scheduling.utils.time_utils import (
    format_hhmm,
    intervals_overlap,
    to_minutes,
    weekday_sunday_first,
)

logger = logging.getLogger(__name__)


async def resolve_service_selections(
    catalog: ServiceCatalog, service_ids: Sequence[UUID]
) -> tuple[ServiceSelection, ...]:
    """
    Snapshot each requested service, preserving request order.

    Args:
        catalog: Service catalog lookup
        service_ids: Requested service UUIDs (at least one)

    Returns:
        Tuple of ServiceSelection snapshots

    Raises:
        InvalidServiceError: Empty request, or any id unknown or inactive
    """
    if not service_ids:
        raise InvalidServiceError("At least one service is required")

    selections = []
    for service_id in service_ids:
        service = await catalog.get_service(service_id)
        if service is None or not service.is_active:
            logger.warning(f"Invalid service ID requested: {service_id}")
            raise InvalidServiceError(
                f"Invalid service ID: {service_id}",
                details={"service_id": str(service_id)},
            )
        selections.append(
            ServiceSelection(
                id=service.id,
                name=service.name,
                price=service.price,
                duration_minutes=service.duration_minutes,
            )
        )
    return tuple(selections)


def summarize_selections(selections: Iterable[ServiceSelection]) -> tuple[int, Decimal]:
    """Total duration (minutes) and total price over a selection list."""
    total_duration = 0
    total_price = Decimal("0")
    for selection in selections:
        total_duration += selection.duration_minutes
        total_price += selection.price
    return total_duration, total_price


def validate_within_window(
    window: WeeklyAvailabilityWindow | None, start: time, end: time
) -> None:
    """Interval [start, end) must lie inside the stylist's working window."""
    if window is None:
        raise SlotUnavailableError(
            "Stylist does not work on this day",
            details={"reason": "no_schedule"},
        )
    if start < window.start_time or end > window.end_time:
        raise SlotUnavailableError(
            "Requested time is outside the stylist's working hours",
            details={
                "reason": "outside_working_hours",
                "window_start": format_hhmm(window.start_time),
                "window_end": format_hhmm(window.end_time),
            },
        )


def find_conflict(
    reservations: Iterable[Reservation], start: time, end: time
) -> Reservation | None:
    """First active reservation whose [start, end) overlaps the interval."""
    start_min, end_min = to_minutes(start), to_minutes(end)
    for reservation in reservations:
        if reservation.status not in ACTIVE_STATUSES:
            continue
        if intervals_overlap(
            start_min,
            end_min,
            to_minutes(reservation.start_time),
            to_minutes(reservation.end_time),
        ):
            return reservation
    return None


async def validate_slot_availability(
    uow: UnitOfWork,
    stylist_id: UUID,
    booking_date: date,
    start: time,
    end: time,
) -> None:
    """
    Re-check a single candidate interval against the window and reservations.

    Must run inside the booking unit of work so the reservation read is
    covered by the (stylist, date) lock; rows are read FOR UPDATE.

    Raises:
        SlotUnavailableError: Outside working window or overlapping a reservation
    """
    windows = await uow.schedules.get_active_windows_for_stylist(stylist_id)
    window = select_window(windows, weekday_sunday_first(booking_date))
    validate_within_window(window, start, end)

    reservations = await uow.reservations.list_by_stylist_and_date(
        stylist_id, booking_date, for_update=True
    )
    conflict = find_conflict(reservations, start, end)
    if conflict is not None:
        logger.warning(
            f"Slot conflict detected: {booking_date} {format_hhmm(start)}-{format_hhmm(end)}",
            extra={
                "stylist_id": str(stylist_id),
                "reservation_id": str(conflict.id),
            },
        )
        raise SlotUnavailableError(
            "The selected time is already booked, please choose another slot",
            details={
                "reason": "overlapping_reservation",
                "conflicting_reservation_id": str(conflict.id),
            },
        )
