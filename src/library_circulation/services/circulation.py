"""
Circulation service for the library circulation package.

This is the only place where a book, a member and a borrowing change
together. Each borrow and return:

1. Holds the per-entity locks of everything it checks (see ``locking``)
2. Runs every check and write inside one ``session_scope()`` transaction
3. Moves the copy counter with a compare-and-swap UPDATE

so the availability check and the decrement can never be split by another
caller, and a failure at any step leaves neither the counter nor the
borrowing record changed.

Dates come from the service clock; a loan is due ``loan_period_days`` after
it starts and costs ``daily_fine_rate`` per day once overdue.
"""

import logging
from datetime import date, timedelta
from decimal import Decimal

from pydantic import BaseModel, Field

from ..database.book_repository import BookRepository
from ..database.borrowing_repository import BorrowingRepository, open_borrowing_criteria
from ..database.member_repository import MemberRepository
from ..errors import (
    AllCopiesAlreadyAvailable,
    AlreadyReturned,
    BookNotFound,
    BookUnavailable,
    BorrowingLimitReached,
    BorrowingNotFound,
    MemberNotActive,
    MemberNotFound,
    NoCopiesAvailable,
)
from ..models.borrowing import Borrowing
from .base import LibraryService

logger = logging.getLogger(__name__)


class ReturnReceipt(BaseModel):
    """Outcome of a successful return."""

    borrowing: Borrowing = Field(..., description="The closed borrowing record")

    fine_amount: Decimal = Field(..., description="Fine charged for this return")

    days_overdue: int = Field(0, description="Days past the due date at return time")


class CirculationService(LibraryService):
    """Borrow and return orchestration plus borrowing queries."""

    @property
    def loan_period_days(self) -> int:
        return self.config.loan_period_days

    @property
    def daily_fine_rate(self) -> Decimal:
        return self.config.daily_fine_rate

    def borrow_book(self, book_id: int, member_id: int) -> Borrowing:
        """
        Lend one copy of a book to a member.

        Returns:
            The stored borrowing, due ``loan_period_days`` from today

        Raises:
            BookNotFound: If the book does not exist
            BookUnavailable: If no copy is on the shelf
            MemberNotFound: If the member does not exist
            MemberNotActive: If the membership is SUSPENDED or EXPIRED
            BorrowingLimitReached: If the member already holds ``max_books_allowed`` books
            ValidationFailed: If the new borrowing breaks a field rule
        """
        today = self.today()

        with self.locks.hold(("book", book_id), ("member", member_id)):
            with self.db_manager.session_scope() as session:
                books = BookRepository(session)
                borrowings = BorrowingRepository(session)

                book = books.get_for_update(book_id)
                if book is None:
                    raise BookNotFound(book_id)
                if not book.is_available():
                    raise BookUnavailable(
                        f"Book {book_id} ('{book.title}') has no copies available"
                    )

                member = MemberRepository(session).get_for_update(member_id)
                if member is None:
                    raise MemberNotFound(member_id)
                if not member.can_borrow_books():
                    raise MemberNotActive(
                        f"Member {member_id} is {member.membership_status.value}; "
                        "only ACTIVE members may borrow"
                    )

                open_count = borrowings.count_open_for_member(member_id)
                if open_count >= member.max_books_allowed:
                    raise BorrowingLimitReached(
                        f"Member {member_id} already holds {open_count} of "
                        f"{member.max_books_allowed} allowed books"
                    )

                borrowing = Borrowing(
                    book_id=book_id,
                    member_id=member_id,
                    borrow_date=today,
                    due_date=today + timedelta(days=self.loan_period_days),
                )
                self.require_valid("borrowing", borrowing)

                if not books.decrement_available(book_id):
                    raise NoCopiesAvailable(f"No copies of book {book_id} are available")
                stored = borrowings.insert(borrowing)

        logger.info(
            "Member %s borrowed book %s (borrowing %s, due %s)",
            member_id,
            book_id,
            stored.borrowing_id,
            stored.due_date,
        )
        return stored

    def _book_of(self, borrowing_id: int) -> int:
        with self.db_manager.session_scope() as session:
            borrowing = BorrowingRepository(session).get_by_id(borrowing_id)
        if borrowing is None:
            raise BorrowingNotFound(borrowing_id)
        return borrowing.book_id

    def return_book(self, borrowing_id: int) -> ReturnReceipt:
        """
        Close a borrowing today and put the copy back on the shelf.

        Returns:
            A receipt with the closed borrowing and the fine charged

        Raises:
            BorrowingNotFound: If the borrowing does not exist
            AlreadyReturned: If the borrowing was closed before
            BookNotFound: If the book vanished from the catalog
        """
        today = self.today()
        # A borrowing never changes book, so the lock key can be read up front
        book_id = self._book_of(borrowing_id)

        with self.locks.hold(("borrowing", borrowing_id), ("book", book_id)):
            with self.db_manager.session_scope() as session:
                borrowings = BorrowingRepository(session)
                books = BookRepository(session)

                borrowing = borrowings.get_for_update(borrowing_id)
                if borrowing is None:
                    raise BorrowingNotFound(borrowing_id)
                if borrowing.is_returned():
                    raise AlreadyReturned(
                        f"Borrowing {borrowing_id} was already returned on {borrowing.return_date}"
                    )

                if books.get_for_update(borrowing.book_id) is None:
                    raise BookNotFound(borrowing.book_id)

                fine = borrowing.return_book(today, self.daily_fine_rate)
                borrowings.update(borrowing)
                if not books.increment_available(borrowing.book_id):
                    raise AllCopiesAlreadyAvailable(
                        f"All copies of book {borrowing.book_id} are already available"
                    )

        logger.info("Borrowing %s returned with fine %s", borrowing_id, fine)
        return ReturnReceipt(
            borrowing=borrowing,
            fine_amount=fine,
            days_overdue=borrowing.days_overdue(today),
        )

    def get_borrowing(self, borrowing_id: int) -> Borrowing:
        with self.db_manager.session_scope() as session:
            borrowing = BorrowingRepository(session).get_by_id(borrowing_id)
        if borrowing is None:
            raise BorrowingNotFound(borrowing_id)
        return borrowing

    def member_borrowings(self, member_id: int) -> list[Borrowing]:
        """Every borrowing of a member, newest first."""
        with self.db_manager.session_scope() as session:
            if not MemberRepository(session).exists(member_id):
                raise MemberNotFound(member_id)
            return BorrowingRepository(session).by_member(member_id)

    def book_borrowings(self, book_id: int) -> list[Borrowing]:
        """Every borrowing of a book, newest first."""
        with self.db_manager.session_scope() as session:
            if not BookRepository(session).exists(book_id):
                raise BookNotFound(book_id)
            return BorrowingRepository(session).by_book(book_id)

    def current_borrowings(self) -> list[Borrowing]:
        """Open borrowings, soonest due first."""
        with self.db_manager.session_scope() as session:
            return BorrowingRepository(session).current()

    def overdue_borrowings(self, as_of: date | None = None) -> list[Borrowing]:
        """Open borrowings past their due date on ``as_of`` (today by default)."""
        as_of = as_of or self.today()
        with self.db_manager.session_scope() as session:
            return BorrowingRepository(session).overdue(as_of)

    def all_borrowings(self, with_details: bool = True) -> list[Borrowing]:
        """Every borrowing, with book and member attached unless told otherwise."""
        with self.db_manager.session_scope() as session:
            repo = BorrowingRepository(session)
            if with_details:
                return repo.with_details()
            return repo.get_all(order_by="borrow_date", order_desc=True)

    def current_borrowings_with_details(self) -> list[Borrowing]:
        with self.db_manager.session_scope() as session:
            return BorrowingRepository(session).with_details(open_borrowing_criteria())
