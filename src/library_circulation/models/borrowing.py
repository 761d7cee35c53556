"""
Borrowing model for the library circulation package.

A borrowing records one loan of one book to one member. It starts BORROWED and
ends RETURNED; the return date and fine are fixed together at return time and
the record never goes back.

OVERDUE is not a separate stage of the lifecycle. Whether a loan is overdue is
always recomputed from the dates, so every date-dependent method takes the
reference date explicitly instead of reading the clock.
"""

from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from ..errors import AlreadyReturned
from ..validation import FieldViolation
from .book import Book
from .member import Member

DAILY_FINE_RATE = Decimal("1.00")
CENTS = Decimal("0.01")


class BorrowingStatus(str, Enum):
    """Status of a borrowing record."""

    BORROWED = "BORROWED"
    RETURNED = "RETURNED"
    OVERDUE = "OVERDUE"


class Borrowing(BaseModel):
    """
    Represents a book borrowing transaction.

    ``book`` and ``member`` are display-only copies filled in by detail
    queries. Changes to them are never written back.
    """

    borrowing_id: int | None = Field(
        default=None,
        description="Store-generated identifier, None until the borrowing is recorded",
    )

    book_id: int = Field(..., description="ID of the borrowed book")

    member_id: int = Field(..., description="ID of the borrowing member")

    borrow_date: date | None = Field(..., description="Date the book left the library")

    due_date: date | None = Field(..., description="Date the book should be back")

    return_date: date | None = Field(
        None,
        description="Date the book was actually returned",
    )

    status: BorrowingStatus = Field(
        default=BorrowingStatus.BORROWED,
        description="Stored status of the borrowing",
    )

    fine_amount: Decimal = Field(
        default=Decimal("0.00"),
        description="Fine charged for a late return",
        decimal_places=2,
    )

    created_at: datetime | None = None
    updated_at: datetime | None = None

    # Reference objects, loaded for display only
    book: Book | None = Field(default=None, exclude=True)
    member: Member | None = Field(default=None, exclude=True)

    def is_overdue(self, as_of: date) -> bool:
        """A returned loan is overdue if it came back late; an open one if ``as_of`` is past due."""
        if self.return_date is not None:
            return self.return_date > self.due_date
        return as_of > self.due_date

    def is_returned(self) -> bool:
        return self.status == BorrowingStatus.RETURNED and self.return_date is not None

    def is_currently_borrowed(self) -> bool:
        """An open borrowing: BORROWED, or OVERDUE without a return date."""
        return self.status == BorrowingStatus.BORROWED or (
            self.status == BorrowingStatus.OVERDUE and self.return_date is None
        )

    def days_overdue(self, as_of: date) -> int:
        """Calculate number of days overdue."""
        if self.return_date is not None:
            return max(0, (self.return_date - self.due_date).days)
        if self.is_overdue(as_of):
            return (as_of - self.due_date).days
        return 0

    def days_borrowed(self, as_of: date) -> int:
        end_date = self.return_date if self.return_date is not None else as_of
        return (end_date - self.borrow_date).days

    @property
    def loan_period_days(self) -> int:
        return (self.due_date - self.borrow_date).days

    def calculate_fine(self, as_of: date, daily_rate: Decimal = DAILY_FINE_RATE) -> Decimal:
        """
        Calculate fine based on overdue days.

        Args:
            as_of: Reference date used while the book is still out
            daily_rate: Fine amount per day (default $1.00)

        Returns:
            Total fine amount, rounded to cents
        """
        if not self.is_overdue(as_of):
            return Decimal("0.00")
        fine = daily_rate * self.days_overdue(as_of)
        return fine.quantize(CENTS, rounding=ROUND_HALF_UP)

    def return_book(self, as_of: date, daily_rate: Decimal = DAILY_FINE_RATE) -> Decimal:
        """
        Mark the borrowing as returned on ``as_of`` and fix its fine.

        The fine is computed before any field changes, so the record never
        shows a return date next to a stale fine.

        Returns:
            The fine charged for this return

        Raises:
            AlreadyReturned: If the borrowing is already closed
        """
        if self.is_returned():
            raise AlreadyReturned(f"Borrowing {self.borrowing_id} was already returned")

        fine = self.calculate_fine(as_of, daily_rate)
        self.return_date = as_of
        self.status = BorrowingStatus.RETURNED
        self.fine_amount = fine
        return fine

    def mark_as_overdue(self, as_of: date) -> None:
        """Label an open, late loan as OVERDUE. Returned records are left alone."""
        if self.is_overdue(as_of) and not self.is_returned():
            self.status = BorrowingStatus.OVERDUE

    def update_status(self, as_of: date) -> None:
        self.status = self.display_status(as_of)

    def display_status(self, as_of: date) -> BorrowingStatus:
        """Status as it should be shown on ``as_of``, without touching the record."""
        if self.is_returned():
            return BorrowingStatus.RETURNED
        if self.is_overdue(as_of):
            return BorrowingStatus.OVERDUE
        return BorrowingStatus.BORROWED

    def violations(self, today: date) -> list[FieldViolation]:
        """Return every broken field rule for this borrowing."""
        found: list[FieldViolation] = []

        if self.book_id is None or self.book_id <= 0:
            found.append(FieldViolation(field="book_id", reason="must be a positive id"))
        if self.member_id is None or self.member_id <= 0:
            found.append(
                FieldViolation(field="member_id", reason="must be a positive id")
            )

        if self.borrow_date is None:
            found.append(FieldViolation(field="borrow_date", reason="is required"))
        elif self.borrow_date > today:
            found.append(
                FieldViolation(field="borrow_date", reason="cannot be in the future")
            )

        if self.due_date is None:
            found.append(FieldViolation(field="due_date", reason="is required"))
        elif self.borrow_date is not None and self.due_date <= self.borrow_date:
            found.append(
                FieldViolation(field="due_date", reason="must be after the borrow date")
            )

        if (
            self.return_date is not None
            and self.borrow_date is not None
            and self.return_date <= self.borrow_date
        ):
            found.append(
                FieldViolation(
                    field="return_date", reason="must be after the borrow date"
                )
            )

        if self.fine_amount < 0:
            found.append(FieldViolation(field="fine_amount", reason="cannot be negative"))

        return found

    def is_valid(self, today: date) -> bool:
        return not self.violations(today)

    model_config = ConfigDict(
        validate_assignment=True,
        from_attributes=True,
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "borrowing_id": 1,
                "book_id": 1,
                "member_id": 1,
                "borrow_date": "2024-01-01",
                "due_date": "2024-01-15",
                "return_date": None,
                "status": "BORROWED",
                "fine_amount": "0.00",
            }
        },
    )
