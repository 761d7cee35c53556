"""
Common plumbing for the library services.

Each service owns a database manager, a clock and the shared lock registry.
The clock is a plain callable returning today's date, so tests can pin the
calendar instead of reading the system time.
"""

from collections.abc import Callable
from datetime import date

from ..config import LibraryConfig, get_config
from ..database.session import DatabaseManager, get_db_manager
from ..errors import ValidationFailed
from .locking import KeyedLocks, shared_locks


class LibraryService:
    """Base class for the catalog, membership, circulation and report services."""

    def __init__(
        self,
        db_manager: DatabaseManager | None = None,
        clock: Callable[[], date] = date.today,
        locks: KeyedLocks | None = None,
        config: LibraryConfig | None = None,
    ):
        self.db_manager = db_manager or get_db_manager()
        self.clock = clock
        self.locks = locks if locks is not None else shared_locks
        self.config = config or get_config()

    def today(self) -> date:
        return self.clock()

    def require_valid(self, entity_name: str, entity) -> None:
        """
        Raise ``ValidationFailed`` listing every rule ``entity`` breaks.

        Runs before any write, so invalid input never reaches the store.
        """
        violations = entity.violations(self.today())
        if violations:
            raise ValidationFailed(entity_name, violations)
