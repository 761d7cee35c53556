"""
Catalog management for the library circulation package.

Adding, editing, removing and finding books. An edit may change how many
copies the library owns but never the shelf count directly; that moves only
with the borrow and return flows in ``circulation`` or with a change of total.
"""

import logging

from ..database.book_repository import BookRepository
from ..database.borrowing_repository import BorrowingRepository
from ..errors import BookNotFound, CopiesOnLoan, DuplicateError, HasOpenBorrowings
from ..models.book import Book
from .base import LibraryService

logger = logging.getLogger(__name__)


class CatalogService(LibraryService):
    """Book management operations."""

    def add_book(self, book: Book) -> Book:
        """
        Add a new book to the catalog.

        Returns:
            The stored book, with its generated ``book_id``

        Raises:
            ValidationFailed: If any book field is invalid
            DuplicateError: If a book with the same ISBN exists
        """
        self.require_valid("book", book)

        with self.db_manager.session_scope() as session:
            books = BookRepository(session)
            if books.get_by_isbn(book.isbn) is not None:
                raise DuplicateError("isbn", book.isbn, entity="Book")
            stored = books.insert(book)

        logger.info("Added book %s: '%s' (%s)", stored.book_id, stored.title, stored.isbn)
        return stored

    def get_book(self, book_id: int) -> Book:
        with self.db_manager.session_scope() as session:
            book = BookRepository(session).get_by_id(book_id)
        if book is None:
            raise BookNotFound(book_id)
        return book

    def get_book_by_isbn(self, isbn: str) -> Book:
        with self.db_manager.session_scope() as session:
            book = BookRepository(session).get_by_isbn(isbn)
        if book is None:
            raise BookNotFound(isbn)
        return book

    def list_books(self) -> list[Book]:
        """All books, ordered by title."""
        with self.db_manager.session_scope() as session:
            return BookRepository(session).get_all(order_by="title")

    def update_book(self, book: Book) -> Book:
        """
        Edit a stored book.

        The descriptive fields and ``total_copies`` are taken from ``book``.
        ``available_copies`` is not: it is recomputed from the stored row, so a
        change of total moves the shelf count by the same amount and copies
        out on loan stay on loan, even when ``book`` was read before a borrow.

        Raises:
            BookNotFound: If ``book.book_id`` is unset or unknown
            CopiesOnLoan: If the new total is below the number of copies on loan
            ValidationFailed: If any book field is invalid
            DuplicateError: If the new ISBN belongs to another book
        """
        if book.book_id is None:
            raise BookNotFound("(no id)")

        with self.locks.hold(("book", book.book_id)):
            with self.db_manager.session_scope() as session:
                books = BookRepository(session)
                stored = books.get_for_update(book.book_id)
                if stored is None:
                    raise BookNotFound(book.book_id)

                on_loan = stored.borrowed_copies
                if 0 <= book.total_copies < on_loan:
                    raise CopiesOnLoan(
                        f"Book {book.book_id} has {on_loan} copies on loan; "
                        f"total_copies cannot drop to {book.total_copies}"
                    )
                edited = book.model_copy(
                    update={"available_copies": book.total_copies - on_loan}
                )
                self.require_valid("book", edited)

                other = books.get_by_isbn(edited.isbn)
                if other is not None and other.book_id != edited.book_id:
                    raise DuplicateError("isbn", edited.isbn, entity="Book")

                books.update_details(edited)
                if edited.total_copies != stored.total_copies and not books.resize(
                    edited.book_id, edited.total_copies
                ):
                    raise CopiesOnLoan(
                        f"Book {edited.book_id} cannot be resized to "
                        f"{edited.total_copies} copies"
                    )
                stored = books.get_by_id(edited.book_id)

        logger.info("Updated book %s", book.book_id)
        return stored

    def delete_book(self, book_id: int) -> None:
        """
        Remove a book and its closed borrowing history.

        Raises:
            BookNotFound: If the book does not exist
            HasOpenBorrowings: While any copy is still out on loan
        """
        with self.locks.hold(("book", book_id)):
            with self.db_manager.session_scope() as session:
                books = BookRepository(session)
                if not books.exists(book_id):
                    raise BookNotFound(book_id)

                open_count = BorrowingRepository(session).count_open_for_book(book_id)
                if open_count:
                    raise HasOpenBorrowings(
                        f"Book {book_id} cannot be deleted: {open_count} borrowing(s) still open"
                    )

                books.delete(book_id)

        logger.info("Deleted book %s", book_id)

    def search_by_title(self, title: str) -> list[Book]:
        with self.db_manager.session_scope() as session:
            return BookRepository(session).search_by_title(title)

    def search_by_author(self, author: str) -> list[Book]:
        with self.db_manager.session_scope() as session:
            return BookRepository(session).search_by_author(author)

    def search_by_genre(self, genre: str) -> list[Book]:
        with self.db_manager.session_scope() as session:
            return BookRepository(session).search_by_genre(genre)

    def available_books(self) -> list[Book]:
        """Books with at least one copy on the shelf."""
        with self.db_manager.session_scope() as session:
            return BookRepository(session).get_available()
