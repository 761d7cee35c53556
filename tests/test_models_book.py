"""
Tests for the Book model.

These tests verify that the Book model correctly:
1. Normalizes and checks ISBNs
2. Moves copies between the shelf and loans without breaking the counters
3. Reports every broken field rule through ``violations()``
"""

from datetime import date

import pytest
from conftest import make_book

from library_circulation.errors import AllCopiesAlreadyAvailable, NoCopiesAvailable
from library_circulation.models.book import (
    is_valid_isbn,
    is_valid_publication_year,
    normalize_isbn,
)

TODAY = date(2024, 1, 20)


class TestIsbn:
    """ISBN normalization and shape checks."""

    def test_normalize_strips_separators(self):
        assert normalize_isbn("978-0-13-235088-4") == "9780132350884"
        assert normalize_isbn("978 0 13 235088 4") == "9780132350884"

    def test_normalize_uppercases_check_character(self):
        assert normalize_isbn("0-201-63361-x") == "020163361X"

    def test_normalize_none_is_empty(self):
        assert normalize_isbn(None) == ""

    @pytest.mark.parametrize(
        "isbn",
        ["9780132350884", "978-0-13-235088-4", "020163361X", "0-201-63361-X"],
    )
    def test_valid_lengths(self, isbn):
        assert is_valid_isbn(isbn)

    @pytest.mark.parametrize("isbn", ["", None, "123-456", "97801323508", "97801323508841"])
    def test_invalid_lengths(self, isbn):
        assert not is_valid_isbn(isbn)

    def test_checksum_is_not_verified(self):
        """Shape only: a wrong check digit still passes."""
        assert is_valid_isbn("9780132350880")

    def test_model_stores_normalized_isbn(self):
        book = make_book(isbn="978-0-13-235088-4")
        assert book.isbn == "9780132350884"


class TestPublicationYear:
    def test_missing_year_is_valid(self):
        assert is_valid_publication_year(None, 2024)

    def test_bounds(self):
        assert not is_valid_publication_year(1799, 2024)
        assert is_valid_publication_year(1800, 2024)
        assert is_valid_publication_year(2024, 2024)
        assert not is_valid_publication_year(2025, 2024)


class TestCopyCounters:
    """Borrowing and returning single copies."""

    def test_borrow_decrements_available(self):
        book = make_book(total_copies=3, available_copies=3)
        book.borrow()
        assert book.available_copies == 2
        assert book.borrowed_copies == 1
        assert book.is_available()

    @pytest.mark.parametrize("initial", [1, 2, 5])
    def test_borrowing_every_copy_then_one_more_fails(self, initial):
        book = make_book(total_copies=initial, available_copies=initial)
        for _ in range(initial):
            book.borrow()

        assert book.available_copies == 0
        assert not book.is_available()
        with pytest.raises(NoCopiesAvailable):
            book.borrow()
        assert book.available_copies == 0

    def test_single_copy_scenario(self):
        """One copy: the first borrow succeeds, the second is refused."""
        book = make_book(total_copies=1, available_copies=1)
        book.borrow()
        assert book.available_copies == 0
        with pytest.raises(NoCopiesAvailable):
            book.borrow()

    def test_borrow_then_return_restores_count(self):
        book = make_book(total_copies=4, available_copies=2)
        book.borrow()
        book.return_copy()
        assert book.available_copies == 2

    def test_return_with_nothing_on_loan_fails(self):
        book = make_book(total_copies=2, available_copies=2)
        with pytest.raises(AllCopiesAlreadyAvailable):
            book.return_copy()
        assert book.available_copies == 2


class TestBookViolations:
    def test_valid_book_has_no_violations(self):
        book = make_book()
        assert book.violations(TODAY) == []
        assert book.is_valid(TODAY)

    def test_blank_required_fields(self):
        book = make_book(isbn="", title="   ", author="")
        fields = {v.field for v in book.violations(TODAY)}
        assert fields == {"isbn", "title", "author"}

    def test_bad_isbn_shape(self):
        book = make_book(isbn="123-456")
        violations = book.violations(TODAY)
        assert [v.field for v in violations] == ["isbn"]
        assert "10 or 13" in violations[0].reason

    def test_available_cannot_exceed_total(self):
        book = make_book(total_copies=2, available_copies=3)
        assert [v.field for v in book.violations(TODAY)] == ["available_copies"]

    def test_negative_counts(self):
        book = make_book(total_copies=-1, available_copies=-1)
        fields = [v.field for v in book.violations(TODAY)]
        assert "total_copies" in fields
        assert "available_copies" in fields

    def test_future_publication_year(self):
        book = make_book(publication_year=2025)
        assert not book.is_valid(TODAY)
        assert book.is_valid(date(2025, 3, 1))

    def test_zero_copies_is_valid(self):
        book = make_book(total_copies=0, available_copies=0)
        assert book.is_valid(TODAY)
        assert not book.is_available()
