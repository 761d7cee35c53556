"""
Per-entity locks for the circulation services.

The copy counter of a book and the open-loan count of a member are read,
checked and then changed. Two callers doing that at the same time on the same
book or member must not interleave, so every mutating service operation holds
the lock of each entity it checks for the whole of its transaction.

Locks are always acquired in the order the caller lists them; the services
use ``book`` before ``member`` and ``borrowing`` before ``book``.
"""

import logging
import threading
import weakref
from collections.abc import Generator
from contextlib import ExitStack, contextmanager

logger = logging.getLogger(__name__)

LockKey = tuple[str, int]


class KeyedLocks:
    """A registry handing out one re-entrant lock per ``(kind, id)`` key.

    Only locks somebody still holds or waits on are kept; a key nobody
    references drops out of the registry and gets a fresh lock next time.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: weakref.WeakValueDictionary[LockKey, threading.RLock] = (
            weakref.WeakValueDictionary()
        )

    def __len__(self) -> int:
        return len(self._locks)

    def lock_for(self, key: LockKey) -> threading.RLock:
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = threading.RLock()
                self._locks[key] = lock
            return lock

    @contextmanager
    def hold(self, *keys: LockKey) -> Generator[None, None, None]:
        """
        Hold the locks of ``keys``, acquired left to right.

        ```python
        with locks.hold(("book", 3), ("member", 7)):
            ...
        ```
        """
        with ExitStack() as stack:
            for key in keys:
                stack.enter_context(self.lock_for(key))
                logger.debug("Acquired lock %s:%s", *key)
            yield


# Shared by every service in the process unless one is passed explicitly
shared_locks = KeyedLocks()
