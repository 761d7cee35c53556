"""
Borrowing repository implementation for the library circulation package.

Provides the queries the circulation service and reports are built on:

1. **Open borrowings**: BORROWED, or OVERDUE without a return date
2. **Overdue borrowings**: open and past their due date on a given day
3. **History**: every borrowing of a member or of a book
4. **Details**: borrowings with their book and member attached for display

Overdue-ness is always computed from ``due_date``; the stored status is never
trusted for it.
"""

from datetime import date

from sqlalchemy import and_, or_, select
from sqlalchemy.orm import joinedload

from ..database.schema import Borrowing as BorrowingDB
from ..database.session import safe_query
from ..models.book import Book as BookModel
from ..models.borrowing import Borrowing as BorrowingModel
from ..models.borrowing import BorrowingStatus
from ..models.member import Member as MemberModel
from .repository import BaseRepository


def open_borrowing_criteria():
    """SQL form of ``Borrowing.is_currently_borrowed()``."""
    return or_(
        BorrowingDB.status == BorrowingStatus.BORROWED,
        and_(BorrowingDB.status == BorrowingStatus.OVERDUE, BorrowingDB.return_date.is_(None)),
    )


class BorrowingRepository(BaseRepository[BorrowingDB, BorrowingModel]):
    """Repository for borrowing records."""

    @property
    def model_class(self):
        return BorrowingDB

    @property
    def response_schema(self):
        return BorrowingModel

    @property
    def id_field(self) -> str:
        return "borrowing_id"

    def _to_response_model(self, db_obj: BorrowingDB, with_details: bool = False) -> BorrowingModel:
        """
        Convert a borrowing row explicitly, column by column.

        The ``book`` and ``member`` relationships are only read when the
        caller eager-loaded them, so no lazy load runs behind its back.
        """
        borrowing = BorrowingModel(
            borrowing_id=db_obj.borrowing_id,
            book_id=db_obj.book_id,
            member_id=db_obj.member_id,
            borrow_date=db_obj.borrow_date,
            due_date=db_obj.due_date,
            return_date=db_obj.return_date,
            status=db_obj.status,
            fine_amount=db_obj.fine_amount,
            created_at=db_obj.created_at,
            updated_at=db_obj.updated_at,
        )
        if with_details:
            if db_obj.book is not None:
                borrowing.book = BookModel.model_validate(db_obj.book, from_attributes=True)
            if db_obj.member is not None:
                borrowing.member = MemberModel.model_validate(db_obj.member, from_attributes=True)
        return borrowing

    def by_member(self, member_id: int) -> list[BorrowingModel]:
        return self.find_where(BorrowingDB.member_id == member_id, order_by="borrow_date", order_desc=True)

    def by_book(self, book_id: int) -> list[BorrowingModel]:
        return self.find_where(BorrowingDB.book_id == book_id, order_by="borrow_date", order_desc=True)

    def current(self) -> list[BorrowingModel]:
        """All open borrowings, soonest due first."""
        return self.find_where(open_borrowing_criteria(), order_by="due_date")

    def count_open_for_member(self, member_id: int) -> int:
        return self.count(open_borrowing_criteria(), BorrowingDB.member_id == member_id)

    def count_open_for_book(self, book_id: int) -> int:
        return self.count(open_borrowing_criteria(), BorrowingDB.book_id == book_id)

    def overdue(self, as_of: date) -> list[BorrowingModel]:
        """Open borrowings whose due date is before ``as_of``."""
        return self.find_where(
            open_borrowing_criteria(), BorrowingDB.due_date < as_of, order_by="due_date"
        )

    def count_overdue(self, as_of: date) -> int:
        return self.count(open_borrowing_criteria(), BorrowingDB.due_date < as_of)

    def with_details(self, *criteria) -> list[BorrowingModel]:
        """
        Borrowings matching ``criteria`` with their book and member attached,
        newest first.
        """
        query = (
            select(BorrowingDB)
            .where(*criteria)
            .options(joinedload(BorrowingDB.book), joinedload(BorrowingDB.member))
            .order_by(BorrowingDB.borrow_date.desc(), BorrowingDB.borrowing_id.desc())
        )
        results = safe_query(
            self.session,
            lambda s: s.execute(query).unique().scalars().all(),
            "Failed to load borrowings with details",
        )
        return [self._to_response_model(row, with_details=True) for row in results]
