"""
SQLAlchemy database schema for the library circulation package.

Three tables back the Pydantic models:

1. ``books``: catalog entries and their copy counters
2. ``members``: registered borrowers
3. ``borrowings``: loans linking one book to one member

CHECK constraints repeat the entity invariants so that a bug in the service
layer cannot leave the database in an impossible state.
"""

from sqlalchemy import (
    CheckConstraint,
    Column,
    Date,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
)
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.sql import func

from ..models.borrowing import BorrowingStatus
from ..models.member import MembershipStatus

# Base class for all SQLAlchemy models
Base = declarative_base()


class Book(Base):
    """
    Books table - stores the library's catalog.

    ``available_copies`` is the counter guarded by the circulation service;
    it only changes through the compare-and-swap updates in BookRepository
    or an explicit catalog edit.
    """

    __tablename__ = "books"

    book_id = Column(Integer, primary_key=True, autoincrement=True)
    isbn = Column(String(13), nullable=False, unique=True)
    title = Column(String(255), nullable=False)
    author = Column(String(255), nullable=False)
    publisher = Column(String(255), nullable=True)
    publication_year = Column(Integer, nullable=True)
    genre = Column(String(100), nullable=True)
    total_copies = Column(Integer, nullable=False, default=1)
    available_copies = Column(Integer, nullable=False, default=1)

    # Timestamps
    created_at = Column(DateTime, nullable=False, default=func.now())
    updated_at = Column(DateTime, nullable=False, default=func.now(), onupdate=func.now())

    # Relationships
    borrowings = relationship(
        "Borrowing", back_populates="book", cascade="all, delete-orphan", passive_deletes=True
    )

    __table_args__ = (
        Index("idx_books_title", "title"),
        Index("idx_books_author", "author"),
        CheckConstraint("total_copies >= 0", name="chk_total_copies_non_negative"),
        CheckConstraint("available_copies >= 0", name="chk_available_copies_non_negative"),
        CheckConstraint(
            "available_copies <= total_copies", name="chk_available_not_exceed_total"
        ),
        CheckConstraint(
            "publication_year IS NULL OR publication_year >= 1800",
            name="chk_publication_year",
        ),
    )


class Member(Base):
    """Members table - stores library member information."""

    __tablename__ = "members"

    member_id = Column(Integer, primary_key=True, autoincrement=True)
    member_code = Column(String(20), nullable=False, unique=True)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    email = Column(String(255), nullable=False, unique=True)
    phone = Column(String(20), nullable=True)
    address = Column(Text, nullable=True)
    membership_date = Column(Date, nullable=False)
    membership_status = Column(
        Enum(MembershipStatus), nullable=False, default=MembershipStatus.ACTIVE
    )
    max_books_allowed = Column(Integer, nullable=False, default=5)

    # Timestamps
    created_at = Column(DateTime, nullable=False, default=func.now())
    updated_at = Column(DateTime, nullable=False, default=func.now(), onupdate=func.now())

    # Relationships
    borrowings = relationship(
        "Borrowing", back_populates="member", cascade="all, delete-orphan", passive_deletes=True
    )

    __table_args__ = (
        Index("idx_members_last_name", "last_name", "first_name"),
        Index("idx_members_status", "membership_status"),
        CheckConstraint(
            "max_books_allowed >= 1 AND max_books_allowed <= 10", name="chk_max_books"
        ),
    )


class Borrowing(Base):
    """
    Borrowings table - tracks book loans.

    Only BORROWED and RETURNED are written by the circulation service;
    OVERDUE is accepted so that externally labelled records still load.
    """

    __tablename__ = "borrowings"

    borrowing_id = Column(Integer, primary_key=True, autoincrement=True)
    book_id = Column(Integer, ForeignKey("books.book_id", ondelete="CASCADE"), nullable=False)
    member_id = Column(
        Integer, ForeignKey("members.member_id", ondelete="CASCADE"), nullable=False
    )
    borrow_date = Column(Date, nullable=False)
    due_date = Column(Date, nullable=False)
    return_date = Column(Date, nullable=True)
    status = Column(Enum(BorrowingStatus), nullable=False, default=BorrowingStatus.BORROWED)
    fine_amount = Column(Numeric(10, 2), nullable=False, default=0)

    # Timestamps
    created_at = Column(DateTime, nullable=False, default=func.now())
    updated_at = Column(DateTime, nullable=False, default=func.now(), onupdate=func.now())

    # Relationships
    book = relationship("Book", back_populates="borrowings")
    member = relationship("Member", back_populates="borrowings")

    __table_args__ = (
        Index("idx_borrowings_book_id", "book_id"),
        Index("idx_borrowings_member_id", "member_id"),
        Index("idx_borrowings_status", "status"),
        Index("idx_borrowings_due_date", "due_date"),
        CheckConstraint("due_date > borrow_date", name="chk_due_date"),
        CheckConstraint(
            "return_date IS NULL OR return_date >= borrow_date", name="chk_return_date"
        ),
        CheckConstraint("fine_amount >= 0", name="chk_fine_amount"),
    )
