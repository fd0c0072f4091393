"""
Booking Transaction Handler.

This module implements the creation of a multi-service reservation:
- Validation before any write (stylist, services, time arithmetic, customer)
- Re-validation of the requested interval against the stylist's window and
  the reservations already on that date
- Persistence with status PENDING

Steps 3-5 (availability re-check, contact resolution, insert) run inside the
store's booking unit of work, which is serialized per (stylist, date). Two
concurrent requests for overlapping intervals therefore cannot both succeed:
the loser sees the winner's row and gets SlotUnavailableError.

The BookingTransaction.execute() method is the single entry point for creating
reservations. It's called by the POST /api/bookings route.
"""

import logging
from collections.abc import Sequence
from datetime import date, time
from uuid import UUID

from scheduling.errors import InvalidStylistError, NotFoundError
from scheduling.models import CustomerProfile, NewReservation, Reservation, ReservationStatus
from scheduling.ports import SchedulingStore
from scheduling.utils.time_utils import add_minutes, format_hhmm
from scheduling.validators.transaction_validators import (
    resolve_service_selections,
    summarize_selections,
    validate_slot_availability,
)

logger = logging.getLogger(__name__)


def resolve_contact(
    profile: CustomerProfile,
    name: str | None,
    phone: str | None,
    email: str | None,
) -> tuple[str, str, str]:
    """Explicit request fields win; otherwise fall back to the customer profile."""
    return (
        name or profile.name,
        phone or profile.phone or "",
        email or profile.email or "",
    )


class BookingTransaction:
    """
    Atomic transaction handler for creating reservations.

    This class encapsulates the complete booking flow:
    1. Resolve service snapshots (InvalidServiceError)
    2. Compute total duration, price and end time (InvalidTimeError on midnight crossing)
    3. Re-check the interval under the booking lock (SlotUnavailableError)
    4. Resolve customer contact fields
    5. Insert the reservation as PENDING and commit
    """

    @staticmethod
    async def execute(
        store: SchedulingStore,
        customer_id: UUID,
        stylist_id: UUID,
        service_ids: Sequence[UUID],
        booking_date: date,
        start_time: time,
        notes: str = "",
        customer_name: str | None = None,
        customer_phone: str | None = None,
        customer_email: str | None = None,
    ) -> Reservation:
        """
        Execute atomic booking transaction.

        Args:
            store: Injected SchedulingStore
            customer_id: Customer UUID (owner of the reservation)
            stylist_id: Stylist UUID
            service_ids: Ordered service UUIDs; duplicates are booked twice
            booking_date: Calendar date
            start_time: Wall-clock start (minute precision)
            notes: Free-text notes
            customer_name / customer_phone / customer_email: Optional overrides
                of the customer profile contact fields

        Returns:
            The persisted Reservation (status PENDING)

        Raises:
            InvalidStylistError: Unknown or inactive stylist
            InvalidServiceError: Unknown or inactive service
            InvalidTimeError: End time would cross midnight
            NotFoundError: Unknown customer
            SlotUnavailableError: Outside working window, overlapping, or lost a race

        Example:
            >>> reservation = await BookingTransaction.execute(
            ...     store,
            ...     customer_id=UUID("..."),
            ...     stylist_id=UUID("..."),
            ...     service_ids=[UUID("..."), UUID("...")],
            ...     booking_date=date(2025, 3, 10),
            ...     start_time=time(14, 0),
            ... )
            >>> format_hhmm(reservation.end_time)
            '15:15'
        """
        trace_id = f"{customer_id}_{booking_date.isoformat()}T{format_hhmm(start_time)}"
        logger.info(
            f"[{trace_id}] Starting booking transaction",
            extra={
                "trace_id": trace_id,
                "customer_id": str(customer_id),
                "stylist_id": str(stylist_id),
            },
        )

        # Steps 1-2 and the customer lookup are reads; nothing is written yet
        async with store.unit_of_work() as uow:
            stylist = await uow.stylists.get_stylist(stylist_id)
            if stylist is None or not stylist.is_active:
                logger.warning(f"[{trace_id}] Stylist not found: {stylist_id}")
                raise InvalidStylistError(
                    "Invalid stylist", details={"stylist_id": str(stylist_id)}
                )

            selections = await resolve_service_selections(uow.services, service_ids)

            profile = await uow.customers.get_customer(customer_id)
            if profile is None:
                raise NotFoundError(
                    "Customer not found", details={"customer_id": str(customer_id)}
                )

        total_duration, total_price = summarize_selections(selections)
        end_time = add_minutes(start_time, total_duration)
        name, phone, email = resolve_contact(
            profile, customer_name, customer_phone, customer_email
        )

        # Steps 3-5 under the (stylist, date) booking lock
        async with store.booking_unit_of_work(stylist_id, booking_date) as uow:
            await validate_slot_availability(
                uow, stylist_id, booking_date, start_time, end_time
            )

            reservation = await uow.reservations.create(
                NewReservation(
                    stylist_id=stylist_id,
                    customer_id=customer_id,
                    services=selections,
                    booking_date=booking_date,
                    start_time=start_time,
                    end_time=end_time,
                    duration_minutes=total_duration,
                    price=total_price,
                    notes=notes or "",
                    customer_name=name,
                    customer_phone=phone,
                    customer_email=email,
                    status=ReservationStatus.PENDING,
                )
            )
            await uow.commit()

        logger.info(
            f"[{trace_id}] Reservation committed "
            f"({format_hhmm(start_time)}-{format_hhmm(end_time)}, {total_duration} min)",
            extra={
                "trace_id": trace_id,
                "reservation_id": str(reservation.id),
                "stylist_id": str(stylist_id),
            },
        )
        return reservation
