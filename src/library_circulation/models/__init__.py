"""
Library circulation models.

Pydantic models for the three core entities:
- Book: catalog entry with total/available copy counters
- Member: registered borrower with a membership status and borrowing limit
- Borrowing: one loan of one book to one member, with overdue and fine logic
"""

from .book import Book, is_valid_isbn, is_valid_publication_year, normalize_isbn
from .borrowing import DAILY_FINE_RATE, Borrowing, BorrowingStatus
from .member import (
    Member,
    MembershipStatus,
    is_valid_email,
    is_valid_max_books,
    is_valid_member_code,
    is_valid_phone,
)

__all__ = [
    "DAILY_FINE_RATE",
    "Book",
    "Borrowing",
    "BorrowingStatus",
    "Member",
    "MembershipStatus",
    "is_valid_email",
    "is_valid_isbn",
    "is_valid_max_books",
    "is_valid_member_code",
    "is_valid_phone",
    "is_valid_publication_year",
    "normalize_isbn",
]
