"""
Slot Calculator.

Turns a stylist's recurring weekly window plus the reservations already on a
date into candidate booking start times.

Architecture:
- compute_slots() is pure: window + reservations + duration + granularity in,
  ordered Slot sequence out (lazily generated)
- get_available_slots() reads the Schedule and Reservation stores through an
  injected SchedulingStore and delegates to compute_slots()

The result is advisory: it reflects state at read time only. The booking
transaction re-validates the chosen interval under the booking lock.

Usage:
    from scheduling.services.availability_service import get_available_slots

    slots = await get_available_slots(
        store,
        stylist_id=uuid,
        booking_date=date(2025, 3, 10),
        duration_minutes=60,
    )
"""

import logging
from collections.abc import Iterable, Iterator
from datetime import date
from uuid import UUID

from scheduling.errors import InvalidStylistError, InvalidTimeError
from scheduling.models import ACTIVE_STATUSES, Reservation, Slot, WeeklyAvailabilityWindow
from scheduling.ports import SchedulingStore
from scheduling.utils.time_utils import (
    from_minutes,
    intervals_overlap,
    to_minutes,
    weekday_sunday_first,
)
from shared.config import get_settings

logger = logging.getLogger(__name__)


def select_window(
    windows: Iterable[WeeklyAvailabilityWindow], day_of_week: int
) -> WeeklyAvailabilityWindow | None:
    """
    Pick the active window for a weekday.

    Writes reject a second active window per weekday; if legacy data still
    holds several, the earliest-starting one wins.
    """
    matches = [w for w in windows if w.day_of_week == day_of_week and w.is_active]
    if not matches:
        return None
    if len(matches) > 1:
        logger.warning(
            f"{len(matches)} active windows for day_of_week={day_of_week}, using earliest",
            extra={"stylist_id": str(matches[0].stylist_id)},
        )
    return min(matches, key=lambda w: w.start_time)


def busy_intervals(reservations: Iterable[Reservation]) -> list[tuple[int, int]]:
    """[start, end) minute intervals of reservations that occupy time."""
    return [
        (to_minutes(r.start_time), to_minutes(r.end_time))
        for r in reservations
        if r.status in ACTIVE_STATUSES
    ]


def compute_slots(
    window: WeeklyAvailabilityWindow | None,
    reservations: Iterable[Reservation],
    duration_minutes: int,
    granularity_minutes: int,
) -> Iterator[Slot]:
    """
    Generate candidate slots inside a working window.

    Candidates start at window.start_time and step by granularity_minutes while
    candidate + duration fits before window.end_time. Trailing partial slots
    are dropped, not clipped. A candidate is unavailable when its half-open
    interval overlaps any active reservation.

    Args:
        window: The stylist's window for the weekday, or None (no slots)
        reservations: Reservations on that date; cancelled ones are ignored
        duration_minutes: Requested service duration (> 0)
        granularity_minutes: Step between candidate starts (> 0)

    Yields:
        Slot in ascending start order

    Example:
        Window 09:00-17:00, duration 60, granularity 30:
        09:00, 09:30, ..., 16:00 (16:30 + 60 > 17:00)
    """
    if duration_minutes <= 0:
        raise InvalidTimeError(
            f"Duration must be positive, got {duration_minutes}",
            details={"duration_minutes": duration_minutes},
        )
    if granularity_minutes <= 0:
        raise InvalidTimeError(
            f"Granularity must be positive, got {granularity_minutes}",
            details={"granularity_minutes": granularity_minutes},
        )
    if window is None:
        return

    busy = busy_intervals(reservations)
    window_end = to_minutes(window.end_time)
    candidate = to_minutes(window.start_time)

    while candidate + duration_minutes <= window_end:
        candidate_end = candidate + duration_minutes
        available = not any(
            intervals_overlap(candidate, candidate_end, busy_start, busy_end)
            for busy_start, busy_end in busy
        )
        yield Slot(start_time=from_minutes(candidate), available=available)
        candidate += granularity_minutes


async def get_available_slots(
    store: SchedulingStore,
    stylist_id: UUID,
    booking_date: date,
    duration_minutes: int,
    granularity_minutes: int | None = None,
) -> list[Slot]:
    """
    Compute slots for a stylist on a date from the stores.

    Args:
        store: Injected SchedulingStore
        stylist_id: Stylist UUID
        booking_date: Calendar date
        duration_minutes: Requested duration (> 0)
        granularity_minutes: Step between starts (default: settings.SLOT_GRANULARITY_MINUTES)

    Returns:
        Ordered list of slots; empty when the stylist does not work that weekday

    Raises:
        InvalidStylistError: Unknown or inactive stylist
        InvalidTimeError: Non-positive duration or granularity
    """
    if granularity_minutes is None:
        granularity_minutes = get_settings().SLOT_GRANULARITY_MINUTES
    if duration_minutes <= 0:
        raise InvalidTimeError(
            f"Duration must be positive, got {duration_minutes}",
            details={"duration_minutes": duration_minutes},
        )

    async with store.unit_of_work() as uow:
        stylist = await uow.stylists.get_stylist(stylist_id)
        if stylist is None or not stylist.is_active:
            raise InvalidStylistError(
                "Stylist not found", details={"stylist_id": str(stylist_id)}
            )

        day_of_week = weekday_sunday_first(booking_date)
        windows = await uow.schedules.get_active_windows_for_stylist(stylist_id)
        window = select_window(windows, day_of_week)
        if window is None:
            logger.debug(
                f"No active window on day_of_week={day_of_week} for {booking_date}",
                extra={"stylist_id": str(stylist_id)},
            )
            return []

        reservations = await uow.reservations.list_by_stylist_and_date(stylist_id, booking_date)

    slots = list(compute_slots(window, reservations, duration_minutes, granularity_minutes))
    logger.info(
        f"Computed {len(slots)} slots ({sum(s.available for s in slots)} available) "
        f"for {booking_date}",
        extra={"stylist_id": str(stylist_id)},
    )
    return slots
