"""
Reservation lifecycle state machine.

Single chokepoint for status changes. Every (current, requested) pair is
looked up in a transition table; anything not listed is InvalidTransition.

    pending   -> confirmed | cancelled   (admin)
    confirmed -> completed | cancelled   (admin)
    pending | confirmed -> cancelled     (owning customer, via cancel)
    completed, cancelled                 terminal
"""

import logging
from typing import ClassVar

from scheduling.errors import InvalidTransitionError
from scheduling.models import ReservationStatus

logger = logging.getLogger(__name__)


class ReservationLifecycle:
    """
    Transition table for reservation statuses.

    Example:
        >>> ReservationLifecycle.can_transition(
        ...     ReservationStatus.PENDING, ReservationStatus.CONFIRMED, by_admin=True
        ... )
        True
        >>> ReservationLifecycle.can_transition(
        ...     ReservationStatus.PENDING, ReservationStatus.CONFIRMED, by_admin=False
        ... )
        False
    """

    ADMIN_TRANSITIONS: ClassVar[dict[ReservationStatus, frozenset[ReservationStatus]]] = {
        ReservationStatus.PENDING: frozenset(
            {ReservationStatus.CONFIRMED, ReservationStatus.CANCELLED}
        ),
        ReservationStatus.CONFIRMED: frozenset(
            {ReservationStatus.COMPLETED, ReservationStatus.CANCELLED}
        ),
        ReservationStatus.COMPLETED: frozenset(),
        ReservationStatus.CANCELLED: frozenset(),
    }

    # Customers may only cancel their own active reservations
    CUSTOMER_TRANSITIONS: ClassVar[dict[ReservationStatus, frozenset[ReservationStatus]]] = {
        ReservationStatus.PENDING: frozenset({ReservationStatus.CANCELLED}),
        ReservationStatus.CONFIRMED: frozenset({ReservationStatus.CANCELLED}),
        ReservationStatus.COMPLETED: frozenset(),
        ReservationStatus.CANCELLED: frozenset(),
    }

    TERMINAL_STATES: ClassVar[frozenset[ReservationStatus]] = frozenset(
        {ReservationStatus.COMPLETED, ReservationStatus.CANCELLED}
    )

    @classmethod
    def allowed_targets(
        cls, current: ReservationStatus, *, by_admin: bool
    ) -> frozenset[ReservationStatus]:
        table = cls.ADMIN_TRANSITIONS if by_admin else cls.CUSTOMER_TRANSITIONS
        return table.get(current, frozenset())

    @classmethod
    def can_transition(
        cls,
        current: ReservationStatus,
        requested: ReservationStatus,
        *,
        by_admin: bool,
    ) -> bool:
        return requested in cls.allowed_targets(current, by_admin=by_admin)

    @classmethod
    def ensure_transition(
        cls,
        current: ReservationStatus,
        requested: ReservationStatus,
        *,
        by_admin: bool,
    ) -> None:
        """
        Raises:
            InvalidTransitionError: If (current, requested) is not in the table
        """
        if cls.can_transition(current, requested, by_admin=by_admin):
            return
        logger.warning(
            f"Rejected transition {current.value} -> {requested.value} "
            f"({'admin' if by_admin else 'customer'})"
        )
        raise InvalidTransitionError(
            f"Cannot change status from {current.value} to {requested.value}",
            details={
                "current_status": current.value,
                "requested_status": requested.value,
                "allowed": sorted(
                    s.value for s in cls.allowed_targets(current, by_admin=by_admin)
                ),
            },
        )
