"""
Book repository implementation for the library circulation package.

Besides the generic CRUD operations this repository owns every write to the
copy counters: taking a copy off the shelf, putting it back and resizing the
collection. Each is a single compare-and-swap UPDATE statement, so a stale read
of ``available_copies`` can never push the counter out of ``[0, total_copies]``.
"""

import logging

from sqlalchemy import func, select, update

from ..database.schema import Book as BookDB
from ..database.session import safe_flush, safe_query
from ..models.book import Book as BookModel
from ..models.book import normalize_isbn
from .repository import BaseRepository

logger = logging.getLogger(__name__)

# Everything a catalog edit may overwrite; the counters move only through the
# compare-and-swap methods below
DESCRIPTIVE_FIELDS = ("isbn", "title", "author", "publisher", "publication_year", "genre")


class BookRepository(BaseRepository[BookDB, BookModel]):
    """
    Repository for book data access.

    - Lookups by id and by normalized ISBN
    - Case-insensitive substring searches on title, author and genre
    - Atomic copy-counter updates used by borrow and return
    """

    @property
    def model_class(self):
        return BookDB

    @property
    def response_schema(self):
        return BookModel

    @property
    def id_field(self) -> str:
        return "book_id"

    def get_by_isbn(self, isbn: str) -> BookModel | None:
        """
        Get a book by ISBN.

        Separators are ignored, so ``978-0-13-235088-4`` finds ``9780132350884``.
        """
        books = self.find_where(BookDB.isbn == normalize_isbn(isbn))
        return books[0] if books else None

    def search_by_title(self, term: str) -> list[BookModel]:
        return self.find_where(BookDB.title.ilike(f"%{term}%"), order_by="title")

    def search_by_author(self, term: str) -> list[BookModel]:
        return self.find_where(BookDB.author.ilike(f"%{term}%"), order_by="author")

    def search_by_genre(self, term: str) -> list[BookModel]:
        return self.find_where(BookDB.genre.ilike(f"%{term}%"), order_by="title")

    def get_available(self) -> list[BookModel]:
        """Books with at least one copy on the shelf."""
        return self.find_where(BookDB.available_copies > 0, order_by="title")

    def update_details(self, book: BookModel) -> bool:
        """
        Write the descriptive fields of ``book`` over the stored row.

        Returns:
            True if updated, False if no such book exists
        """
        if book.book_id is None:
            return False
        db_obj = self._get_db_obj(book.book_id, for_update=True)
        if db_obj is None:
            return False

        for field in DESCRIPTIVE_FIELDS:
            setattr(db_obj, field, getattr(book, field))

        safe_flush(self.session, "update Book")
        return True

    def resize(self, book_id: int, total_copies: int) -> bool:
        """
        Change the number of copies owned, moving the shelf count by the same amount.

        Returns:
            True if the book now owns ``total_copies``, False if more copies
            than that are out on loan (or the book does not exist).
        """
        on_loan = BookDB.total_copies - BookDB.available_copies
        stmt = (
            update(BookDB)
            .where(BookDB.book_id == book_id, on_loan <= total_copies)
            # available_copies first: some backends evaluate SET left to right
            .ordered_values(
                (BookDB.available_copies, total_copies - on_loan),
                (BookDB.total_copies, total_copies),
            )
            .execution_options(synchronize_session=False)
        )
        result = safe_query(
            self.session, lambda s: s.execute(stmt), f"Failed to resize book {book_id}"
        )
        if result.rowcount != 1:
            logger.info("Resize of book %s to %s copies rejected", book_id, total_copies)
            return False
        return True

    def decrement_available(self, book_id: int) -> bool:
        """
        Take one copy of a book off the shelf.

        Returns:
            True if a copy was taken, False if none was available (or the book
            does not exist). Nothing changes in the False case.
        """
        stmt = (
            update(BookDB)
            .where(BookDB.book_id == book_id, BookDB.available_copies > 0)
            .values(available_copies=BookDB.available_copies - 1)
            .execution_options(synchronize_session=False)
        )
        result = safe_query(
            self.session, lambda s: s.execute(stmt), f"Failed to decrement copies of book {book_id}"
        )
        if result.rowcount != 1:
            logger.info("Decrement of book %s rejected: no copy available", book_id)
            return False
        return True

    def increment_available(self, book_id: int) -> bool:
        """
        Put one copy of a book back on the shelf.

        Returns:
            True if the counter moved, False if every copy was already available.
        """
        stmt = (
            update(BookDB)
            .where(BookDB.book_id == book_id, BookDB.available_copies < BookDB.total_copies)
            .values(available_copies=BookDB.available_copies + 1)
            .execution_options(synchronize_session=False)
        )
        result = safe_query(
            self.session, lambda s: s.execute(stmt), f"Failed to increment copies of book {book_id}"
        )
        if result.rowcount != 1:
            logger.warning("Increment of book %s rejected: all copies already available", book_id)
            return False
        return True

    def copy_totals(self) -> tuple[int, int]:
        """Return ``(total_copies, available_copies)`` summed over the catalog."""
        query = select(
            func.coalesce(func.sum(BookDB.total_copies), 0),
            func.coalesce(func.sum(BookDB.available_copies), 0),
        )
        total, available = safe_query(
            self.session, lambda s: s.execute(query).one(), "Failed to sum copy counts"
        )
        return int(total), int(available)
