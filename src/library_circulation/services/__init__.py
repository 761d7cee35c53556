"""
Library services.

- CatalogService: book management
- MembershipService: member management and status changes
- CirculationService: borrow and return, borrowing queries
- ReportService: aggregate statistics
"""

from .catalog import CatalogService
from .circulation import CirculationService, ReturnReceipt
from .locking import KeyedLocks, shared_locks
from .membership import MembershipService
from .reports import LibraryStatistics, ReportService

__all__ = [
    "CatalogService",
    "CirculationService",
    "KeyedLocks",
    "LibraryStatistics",
    "MembershipService",
    "ReportService",
    "ReturnReceipt",
    "shared_locks",
]
