"""
Atomic transaction handlers.

Transaction handlers encapsulate multi-step writes that must execute
atomically (all succeed or nothing is written):

1. Every check that reads shared state runs inside the same unit of work as the write
2. Booking units of work are serialized per (stylist, date)
3. Exhaustive logging with trace_id for debugging

Transaction handlers:
- BookingTransaction: Create a PENDING reservation for one or more services
"""

from scheduling.transactions.booking_transaction import BookingTransaction

__all__ = ["BookingTransaction"]
