"""
Reservation lifecycle state machine.

Public exports:
    - ReservationLifecycle: Transition table and the ensure_transition() chokepoint
"""

from scheduling.fsm.reservation_fsm import ReservationLifecycle

__all__ = ["ReservationLifecycle"]
