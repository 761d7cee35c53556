"""
Aggregate library statistics.

Counts only: no history, trends or per-member breakdowns.
"""

import logging

from pydantic import BaseModel, Field

from ..database.book_repository import BookRepository
from ..database.borrowing_repository import BorrowingRepository, open_borrowing_criteria
from ..database.member_repository import MemberRepository
from ..database.schema import Member as MemberDB
from ..models.member import MembershipStatus
from .base import LibraryService

logger = logging.getLogger(__name__)


class LibraryStatistics(BaseModel):
    """Snapshot of catalog, membership and circulation counts."""

    total_books: int = Field(0, description="Distinct titles in the catalog")
    total_copies: int = Field(0, description="Copies owned across all titles")
    available_copies: int = Field(0, description="Copies on the shelf")
    borrowed_copies: int = Field(0, description="Copies out on loan")
    total_members: int = 0
    active_members: int = 0
    current_borrowings: int = Field(0, description="Open borrowings")
    overdue_borrowings: int = Field(0, description="Open borrowings past their due date")

    def lines(self) -> list[str]:
        return [
            f"Total Books: {self.total_books}",
            f"Total Copies: {self.total_copies}",
            f"Available Copies: {self.available_copies}",
            f"Borrowed Copies: {self.borrowed_copies}",
            f"Total Members: {self.total_members}",
            f"Active Members: {self.active_members}",
            f"Current Borrowings: {self.current_borrowings}",
            f"Overdue Books: {self.overdue_borrowings}",
        ]


class ReportService(LibraryService):
    def statistics(self) -> LibraryStatistics:
        """Count books, copies, members and open or overdue borrowings as of today."""
        today = self.today()

        with self.db_manager.session_scope() as session:
            books = BookRepository(session)
            members = MemberRepository(session)
            borrowings = BorrowingRepository(session)

            total_copies, available_copies = books.copy_totals()
            stats = LibraryStatistics(
                total_books=books.count(),
                total_copies=total_copies,
                available_copies=available_copies,
                borrowed_copies=total_copies - available_copies,
                total_members=members.count(),
                active_members=members.count(
                    MemberDB.membership_status == MembershipStatus.ACTIVE
                ),
                current_borrowings=borrowings.count(open_borrowing_criteria()),
                overdue_borrowings=borrowings.count_overdue(today),
            )

        logger.debug("Computed library statistics: %s", stats.model_dump())
        return stats
