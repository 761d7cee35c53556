"""Tests for catalog management."""

import pytest
from conftest import make_book, make_member

from library_circulation.errors import (
    BookNotFound,
    CopiesOnLoan,
    DuplicateError,
    HasOpenBorrowings,
    ValidationFailed,
)


class TestAddBook:
    def test_add_assigns_id(self, catalog):
        book = catalog.add_book(make_book())
        assert book.book_id is not None
        assert catalog.get_book(book.book_id).title == "Clean Code"

    def test_duplicate_isbn_with_different_punctuation(self, catalog):
        catalog.add_book(make_book(isbn="978-0-13-235088-4"))
        with pytest.raises(DuplicateError) as exc_info:
            catalog.add_book(make_book(isbn="9780132350884", title="Clean Code (copy)"))
        assert exc_info.value.field == "isbn"
        assert len(catalog.list_books()) == 1

    def test_invalid_book_lists_every_field(self, catalog):
        with pytest.raises(ValidationFailed) as exc_info:
            catalog.add_book(make_book(isbn="123", title="", total_copies=1, available_copies=2))
        assert set(exc_info.value.fields) == {"isbn", "title", "available_copies"}
        assert catalog.list_books() == []

    def test_future_publication_year_is_rejected(self, catalog, clock):
        with pytest.raises(ValidationFailed):
            catalog.add_book(make_book(publication_year=clock().year + 1))


class TestLookups:
    def test_get_missing_book(self, catalog):
        with pytest.raises(BookNotFound):
            catalog.get_book(404)

    def test_get_by_isbn(self, catalog, stored_book):
        assert catalog.get_book_by_isbn("978 0 13 235088 4").book_id == stored_book.book_id
        with pytest.raises(BookNotFound):
            catalog.get_book_by_isbn("9780000000002")

    def test_list_is_ordered_by_title(self, catalog):
        catalog.add_book(make_book(isbn="9780201633610", title="Design Patterns"))
        catalog.add_book(make_book(isbn="9780132350884", title="Clean Code"))
        assert [b.title for b in catalog.list_books()] == ["Clean Code", "Design Patterns"]

    def test_searches(self, catalog, stored_book, single_copy_book):
        assert [b.book_id for b in catalog.search_by_title("ALGORITHMS")] == [
            single_copy_book.book_id
        ]
        assert [b.book_id for b in catalog.search_by_author("martin")] == [stored_book.book_id]
        assert len(catalog.search_by_genre("programming")) == 2
        assert catalog.search_by_title("nothing like this") == []

    def test_available_books(self, catalog, circulation, single_copy_book, stored_book, stored_member):
        circulation.borrow_book(single_copy_book.book_id, stored_member.member_id)
        assert [b.book_id for b in catalog.available_books()] == [stored_book.book_id]


class TestUpdateBook:
    def test_update_fields(self, catalog, stored_book):
        stored_book.title = "Clean Code: A Handbook"
        stored_book.total_copies = 5
        stored_book.available_copies = 5

        updated = catalog.update_book(stored_book)
        assert updated.title == "Clean Code: A Handbook"
        assert catalog.get_book(stored_book.book_id).total_copies == 5

    def test_shelf_count_in_the_edit_is_ignored(self, catalog, stored_book):
        stored_book.available_copies = 0
        catalog.update_book(stored_book)
        assert catalog.get_book(stored_book.book_id).available_copies == 3

    def test_negative_total_is_rejected(self, catalog, stored_book):
        stored_book.total_copies = -1
        with pytest.raises(ValidationFailed) as exc_info:
            catalog.update_book(stored_book)
        assert "total_copies" in exc_info.value.fields()
        assert catalog.get_book(stored_book.book_id).total_copies == 3

    def test_edit_read_before_a_borrow_keeps_the_loan(
        self, catalog, circulation, stored_book, stored_member
    ):
        book = catalog.get_book(stored_book.book_id)
        circulation.borrow_book(stored_book.book_id, stored_member.member_id)

        book.title = "Clean Code (2nd printing)"
        updated = catalog.update_book(book)

        assert updated.title == "Clean Code (2nd printing)"
        assert (updated.total_copies, updated.available_copies) == (3, 2)
        assert len(circulation.current_borrowings()) == 1

    def test_total_cannot_drop_below_copies_on_loan(
        self, catalog, circulation, membership, stored_book, stored_member
    ):
        other = membership.register_member(
            make_member(member_code="MEM002", email="jane.smith@email.com")
        )
        circulation.borrow_book(stored_book.book_id, stored_member.member_id)
        circulation.borrow_book(stored_book.book_id, other.member_id)

        stored_book.total_copies = 1
        with pytest.raises(CopiesOnLoan):
            catalog.update_book(stored_book)
        book = catalog.get_book(stored_book.book_id)
        assert (book.total_copies, book.available_copies) == (3, 1)

    def test_shrinking_to_copies_on_loan_keeps_returns_working(
        self, catalog, circulation, stored_book, stored_member
    ):
        borrowing = circulation.borrow_book(stored_book.book_id, stored_member.member_id)

        stored_book.total_copies = 1
        updated = catalog.update_book(stored_book)
        assert (updated.total_copies, updated.available_copies) == (1, 0)

        circulation.return_book(borrowing.borrowing_id)
        book = catalog.get_book(stored_book.book_id)
        assert (book.total_copies, book.available_copies) == (1, 1)

    def test_growing_total_adds_shelf_copies(
        self, catalog, circulation, stored_book, stored_member
    ):
        circulation.borrow_book(stored_book.book_id, stored_member.member_id)

        stored_book.total_copies = 5
        updated = catalog.update_book(stored_book)
        assert (updated.total_copies, updated.available_copies) == (5, 4)

    def test_update_cannot_steal_an_isbn(self, catalog, stored_book, single_copy_book):
        single_copy_book.isbn = stored_book.isbn
        with pytest.raises(DuplicateError):
            catalog.update_book(single_copy_book)

    def test_update_unknown_book(self, catalog):
        with pytest.raises(BookNotFound):
            catalog.update_book(make_book(book_id=404))
        with pytest.raises(BookNotFound):
            catalog.update_book(make_book())


class TestDeleteBook:
    def test_delete_unused_book(self, catalog, stored_book):
        catalog.delete_book(stored_book.book_id)
        with pytest.raises(BookNotFound):
            catalog.get_book(stored_book.book_id)

    def test_delete_missing_book(self, catalog):
        with pytest.raises(BookNotFound):
            catalog.delete_book(404)

    def test_cannot_delete_while_on_loan(self, catalog, circulation, stored_book, stored_member):
        borrowing = circulation.borrow_book(stored_book.book_id, stored_member.member_id)

        with pytest.raises(HasOpenBorrowings):
            catalog.delete_book(stored_book.book_id)
        assert catalog.get_book(stored_book.book_id).available_copies == 2

        circulation.return_book(borrowing.borrowing_id)
        catalog.delete_book(stored_book.book_id)
        assert circulation.current_borrowings() == []
