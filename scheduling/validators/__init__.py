"""
Validators for booking business rules.

Validators:
- resolve_service_selections: Snapshot requested services, rejecting unknown/inactive ids
- validate_within_window: Interval must fit the stylist's weekly window
- validate_slot_availability: Interval must not overlap an active reservation
"""

from scheduling.validators.transaction_validators import (
    find_conflict,
    resolve_service_selections,
    summarize_selections,
    validate_slot_availability,
    validate_within_window,
)

__all__ = [
    "find_conflict",
    "resolve_service_selections",
    "summarize_selections",
    "validate_slot_availability",
    "validate_within_window",
]
