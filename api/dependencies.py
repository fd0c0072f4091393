"""Request-scoped dependencies shared by the routers."""

from database.repositories import SqlSchedulingStore
from scheduling.ports import SchedulingStore


def get_store() -> SchedulingStore:
    """Store used by every route; tests replace it via app.dependency_overrides."""
    return SqlSchedulingStore()
