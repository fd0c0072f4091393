"""
Reservation service - Lifecycle changes, queries and schedule writes.

Operations exposed to the API layer:
- update_booking_status: Admin status change through the lifecycle table
- cancel_booking: Owner (or admin) cancellation
- get_booking / list_bookings / list_customer_bookings: Role-based visibility
- delete_booking: Admin soft delete
- add_schedule_window / list_schedule_windows / delete_schedule_window:
  Weekly availability writes

Status changes are applied with a single UPDATE gated on the status that was
validated, so a concurrent confirm/cancel race resolves to exactly one winner;
the loser gets InvalidTransitionError.
"""

import logging
from datetime import date, datetime, time
from uuid import UUID
from zoneinfo import ZoneInfo

from scheduling.errors import (
    AccessDeniedError,
    InvalidStylistError,
    InvalidTimeError,
    InvalidTransitionError,
    NotFoundError,
    ScheduleConflictError,
)
from scheduling.fsm.reservation_fsm import ReservationLifecycle
from scheduling.models import (
    Principal,
    Reservation,
    ReservationStatus,
    WeeklyAvailabilityWindow,
)
from scheduling.ports import SchedulingStore, UnitOfWork
from shared.config import get_settings

logger = logging.getLogger(__name__)


def today_local() -> date:
    """Today's date in the configured salon timezone."""
    return datetime.now(ZoneInfo(get_settings().TIMEZONE)).date()


def _require_admin(principal: Principal) -> None:
    if not principal.is_admin:
        raise AccessDeniedError("Administrator role required")


def _ensure_visible(reservation: Reservation, principal: Principal) -> None:
    if not principal.is_admin and not reservation.is_owned_by(principal):
        raise AccessDeniedError(
            "Access denied", details={"reservation_id": str(reservation.id)}
        )


async def _get_or_404(uow: UnitOfWork, reservation_id: UUID) -> Reservation:
    reservation = await uow.reservations.get(reservation_id)
    if reservation is None:
        raise NotFoundError(
            "Booking not found", details={"reservation_id": str(reservation_id)}
        )
    return reservation


async def _apply_transition(
    uow: UnitOfWork,
    reservation: Reservation,
    requested: ReservationStatus,
    *,
    by_admin: bool,
) -> Reservation:
    ReservationLifecycle.ensure_transition(reservation.status, requested, by_admin=by_admin)

    updated = await uow.reservations.update_status(
        reservation.id, expected=reservation.status, new=requested
    )
    if updated is None:
        # Someone else changed the status between our read and the update
        current = await uow.reservations.get(reservation.id)
        current_status = current.status.value if current else "deleted"
        logger.warning(
            f"Concurrent status change on reservation {reservation.id}: "
            f"expected {reservation.status.value}, found {current_status}",
            extra={"reservation_id": str(reservation.id)},
        )
        raise InvalidTransitionError(
            "Booking status changed concurrently, please reload",
            details={
                "expected_status": reservation.status.value,
                "current_status": current_status,
                "requested_status": requested.value,
            },
        )

    await uow.commit()
    logger.info(
        f"Reservation {reservation.id}: {reservation.status.value} -> {requested.value}",
        extra={"reservation_id": str(reservation.id)},
    )
    return updated


async def update_booking_status(
    store: SchedulingStore,
    principal: Principal,
    reservation_id: UUID,
    new_status: ReservationStatus,
) -> Reservation:
    """
    Change a reservation's status (administrators only).

    Raises:
        AccessDeniedError: Caller is not an administrator
        NotFoundError: Unknown reservation
        InvalidTransitionError: Not allowed by the lifecycle table or lost a race
    """
    _require_admin(principal)
    async with store.unit_of_work() as uow:
        reservation = await _get_or_404(uow, reservation_id)
        return await _apply_transition(uow, reservation, new_status, by_admin=True)


async def cancel_booking(
    store: SchedulingStore,
    principal: Principal,
    reservation_id: UUID,
) -> Reservation:
    """
    Cancel a pending or confirmed reservation.

    The owning customer may cancel their own reservation; administrators may
    cancel any.
    """
    async with store.unit_of_work() as uow:
        reservation = await _get_or_404(uow, reservation_id)
        _ensure_visible(reservation, principal)
        return await _apply_transition(
            uow, reservation, ReservationStatus.CANCELLED, by_admin=principal.is_admin
        )


async def get_booking(
    store: SchedulingStore, principal: Principal, reservation_id: UUID
) -> Reservation:
    async with store.unit_of_work() as uow:
        reservation = await _get_or_404(uow, reservation_id)
    _ensure_visible(reservation, principal)
    return reservation


async def list_bookings(
    store: SchedulingStore,
    principal: Principal,
    status: ReservationStatus | None = None,
    start_date: date | None = None,
    end_date: date | None = None,
    limit: int = 20,
    offset: int = 0,
) -> tuple[list[Reservation], int]:
    """
    Paginated booking list, newest first.

    Non-administrators only ever see their own reservations.
    """
    customer_id = None if principal.is_admin else principal.user_id
    async with store.unit_of_work() as uow:
        return await uow.reservations.search(
            customer_id=customer_id,
            status=status,
            start_date=start_date,
            end_date=end_date,
            limit=limit,
            offset=offset,
        )


async def list_customer_bookings(
    store: SchedulingStore,
    principal: Principal,
    upcoming_only: bool = False,
    today: date | None = None,
) -> list[Reservation]:
    """The caller's own reservations, soonest first."""
    upcoming_after = (today or today_local()) if upcoming_only else None
    async with store.unit_of_work() as uow:
        return await uow.reservations.list_by_customer(
            principal.user_id, upcoming_after=upcoming_after
        )


async def delete_booking(
    store: SchedulingStore, principal: Principal, reservation_id: UUID
) -> None:
    """Soft-delete a reservation (administrators only)."""
    _require_admin(principal)
    async with store.unit_of_work() as uow:
        if not await uow.reservations.soft_delete(reservation_id):
            raise NotFoundError(
                "Booking not found", details={"reservation_id": str(reservation_id)}
            )
        await uow.commit()
    logger.info(
        f"Reservation {reservation_id} soft-deleted",
        extra={"reservation_id": str(reservation_id)},
    )


async def list_schedule_windows(
    store: SchedulingStore, stylist_id: UUID
) -> list[WeeklyAvailabilityWindow]:
    async with store.unit_of_work() as uow:
        stylist = await uow.stylists.get_stylist(stylist_id)
        if stylist is None:
            raise InvalidStylistError(
                "Stylist not found", details={"stylist_id": str(stylist_id)}
            )
        return await uow.schedules.get_active_windows_for_stylist(stylist_id)


async def add_schedule_window(
    store: SchedulingStore,
    principal: Principal,
    stylist_id: UUID,
    day_of_week: int,
    start_time: time,
    end_time: time,
) -> WeeklyAvailabilityWindow:
    """
    Add an active weekly window for a stylist (administrators only).

    A stylist has at most one active window per weekday; a second one is
    rejected rather than merged. The check below gives the friendly error;
    the store enforces the rule itself when two adds race. To change a
    weekday's hours, delete its window first.

    Raises:
        AccessDeniedError: Caller is not an administrator
        InvalidTimeError: day_of_week outside 0..6 or start >= end
        InvalidStylistError: Unknown stylist
        ScheduleConflictError: An active window already exists for that weekday
    """
    _require_admin(principal)
    if not 0 <= day_of_week <= 6:
        raise InvalidTimeError(
            f"day_of_week must be 0-6, got {day_of_week}",
            details={"day_of_week": day_of_week},
        )
    if start_time >= end_time:
        raise InvalidTimeError(
            "Window start must be before its end",
            details={"start_time": start_time.isoformat(), "end_time": end_time.isoformat()},
        )

    async with store.unit_of_work() as uow:
        stylist = await uow.stylists.get_stylist(stylist_id)
        if stylist is None:
            raise InvalidStylistError(
                "Stylist not found", details={"stylist_id": str(stylist_id)}
            )

        existing = await uow.schedules.get_active_windows_for_stylist(stylist_id)
        if any(w.day_of_week == day_of_week for w in existing):
            raise ScheduleConflictError(
                "Stylist already has an active window for this weekday",
                details={"stylist_id": str(stylist_id), "day_of_week": day_of_week},
            )

        window = await uow.schedules.add_window(
            WeeklyAvailabilityWindow(
                stylist_id=stylist_id,
                day_of_week=day_of_week,
                start_time=start_time,
                end_time=end_time,
            )
        )
        await uow.commit()

    logger.info(
        f"Added window day={day_of_week} {start_time:%H:%M}-{end_time:%H:%M}",
        extra={"stylist_id": str(stylist_id)},
    )
    return window


async def delete_schedule_window(
    store: SchedulingStore, principal: Principal, window_id: UUID
) -> WeeklyAvailabilityWindow:
    """
    Soft-delete a weekly window (administrators only).

    The window stops producing slots immediately and its weekday is free for
    a new window. Existing reservations on that weekday are left untouched.

    Raises:
        AccessDeniedError: Caller is not an administrator
        NotFoundError: Unknown or already deleted window
    """
    _require_admin(principal)
    async with store.unit_of_work() as uow:
        window = await uow.schedules.soft_delete(window_id)
        if window is None:
            raise NotFoundError(
                "Schedule window not found", details={"window_id": str(window_id)}
            )
        await uow.commit()

    logger.info(
        f"Deleted window {window_id} day={window.day_of_week}",
        extra={"stylist_id": str(window.stylist_id)},
    )
    return window
