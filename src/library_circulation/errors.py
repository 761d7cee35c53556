"""
Error taxonomy for the library circulation package.

Every failure raised by the entities, repositories and services derives from
``LibraryError`` and falls into one of five families:

1. **NotFoundError**: an id or unique key has no matching record
2. **ValidationFailed**: an entity breaks one or more field rules
3. **PreconditionFailed**: a business rule blocks the operation
4. **DuplicateError**: a unique key (ISBN, member code, email) is already taken
5. **StorageUnavailable**: the database itself failed

Callers can tell a rejected request from a broken store by the family alone.
"""

from .validation import FieldViolation


class LibraryError(Exception):
    """Base exception for library operations."""


# === Not found ===


class NotFoundError(LibraryError):
    """Raised when an entity is not found."""


class BookNotFound(NotFoundError):
    def __init__(self, book_id: int | str):
        self.book_id = book_id
        super().__init__(f"Book {book_id} not found")


class MemberNotFound(NotFoundError):
    def __init__(self, member_id: int | str):
        self.member_id = member_id
        super().__init__(f"Member {member_id} not found")


class BorrowingNotFound(NotFoundError):
    def __init__(self, borrowing_id: int):
        self.borrowing_id = borrowing_id
        super().__init__(f"Borrowing {borrowing_id} not found")


# === Validation ===


class ValidationFailed(LibraryError):
    """Raised when an entity fails its field validators.

    The message lists every violated field together with the reason so the
    caller never has to guess which rule rejected the input.
    """

    def __init__(self, entity: str, violations: list[FieldViolation]):
        self.entity = entity
        self.violations = violations
        details = "; ".join(str(v) for v in violations)
        super().__init__(f"Invalid {entity}: {details}")

    @property
    def fields(self) -> list[str]:
        return [v.field for v in self.violations]


# === Business rules ===


class PreconditionFailed(LibraryError):
    """Raised when a business rule prevents an operation."""


class NoCopiesAvailable(PreconditionFailed):
    """A copy was requested from a book whose available count is zero."""


class AllCopiesAlreadyAvailable(PreconditionFailed):
    """A copy was returned to a book that has none on loan."""


class BookUnavailable(PreconditionFailed):
    pass


class MemberNotActive(PreconditionFailed):
    pass


class BorrowingLimitReached(PreconditionFailed):
    pass


class AlreadyReturned(PreconditionFailed):
    pass


class CopiesOnLoan(PreconditionFailed):
    """A catalog edit would leave fewer copies owned than are out on loan."""


class HasOpenBorrowings(PreconditionFailed):
    """Deletion refused while borrowings still reference the entity."""


class ConstraintViolation(PreconditionFailed):
    """A database CHECK or foreign key constraint rejected a write."""


# === Conflicts ===


class DuplicateError(LibraryError):
    """Raised when attempting to create a duplicate entity."""

    def __init__(self, field: str, value: object, entity: str = "Record"):
        self.field = field
        self.value = value
        super().__init__(f"{entity} with {field} {value!r} already exists")


# === Storage ===


class StorageUnavailable(LibraryError):
    """Raised when the database cannot complete a request."""
