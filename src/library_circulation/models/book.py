"""
Book model for the library circulation package.

A book is a catalog entry with a pair of copy counters: ``total_copies`` is
what the library owns and ``available_copies`` is what can be lent right now.
Borrowing and returning move a single copy between the two states; every other
change to the counters is an explicit catalog edit.
"""

import re
from datetime import date, datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..errors import AllCopiesAlreadyAvailable, NoCopiesAvailable
from ..validation import FieldViolation, is_blank

MIN_PUBLICATION_YEAR = 1800

_ISBN_NOISE = re.compile(r"[^0-9X]")


def normalize_isbn(isbn: str | None) -> str:
    """Strip everything that is not a digit or an ``X`` check character."""
    if isbn is None:
        return ""
    return _ISBN_NOISE.sub("", isbn.upper())


def is_valid_isbn(isbn: str | None) -> bool:
    """Check ISBN shape only: 10 or 13 characters once normalized.

    Checksums are deliberately not verified.
    """
    return len(normalize_isbn(isbn)) in (10, 13)


def is_valid_publication_year(year: int | None, current_year: int) -> bool:
    """A missing year is fine; a present one must fall in 1800..current_year."""
    if year is None:
        return True
    return MIN_PUBLICATION_YEAR <= year <= current_year


class Book(BaseModel):
    """
    Represents a book in the library catalog.

    Books are referenced by borrowings through ``book_id`` and their copy
    counters are the main contended resource of the circulation service.
    """

    book_id: int | None = Field(
        default=None,
        description="Store-generated identifier, None until the book is inserted",
    )

    isbn: str = Field(
        ...,
        description="ISBN-10 or ISBN-13, stored without separators",
        examples=["978-0-13-235088-4", "9780132350884", "020163361X"],
    )

    title: str = Field(
        ...,
        description="The title of the book",
        max_length=255,
        examples=["Clean Code", "Design Patterns"],
    )

    author: str = Field(
        ...,
        description="Author or authors as printed on the cover",
        max_length=255,
        examples=["Robert C. Martin"],
    )

    publisher: str | None = Field(None, max_length=255)

    genre: str | None = Field(None, max_length=100, examples=["Programming"])

    publication_year: int | None = Field(None, examples=[2008])

    total_copies: int = Field(
        default=1,
        description="Total number of copies owned by the library",
    )

    available_copies: int = Field(
        default=1,
        description="Number of copies currently available for borrowing",
    )

    created_at: datetime | None = None
    updated_at: datetime | None = None

    @field_validator("isbn")
    @classmethod
    def normalize_isbn_field(cls, v: str) -> str:
        """Normalize ISBN for consistent storage and lookups."""
        return normalize_isbn(v)

    @field_validator("title", "author", "publisher", "genre")
    @classmethod
    def strip_text(cls, v: str | None) -> str | None:
        return v.strip() if v is not None else v

    def is_available(self) -> bool:
        """Check if the book has any available copies."""
        return self.available_copies > 0

    @property
    def borrowed_copies(self) -> int:
        """Number of copies currently out on loan."""
        return self.total_copies - self.available_copies

    def borrow(self) -> None:
        """
        Take one copy off the shelf.

        Raises:
            NoCopiesAvailable: If every copy is already on loan
        """
        if not self.is_available():
            raise NoCopiesAvailable(f"No copies of '{self.title}' are available")
        self.available_copies -= 1

    def return_copy(self) -> None:
        """
        Put one copy back on the shelf.

        Raises:
            AllCopiesAlreadyAvailable: If no copy is out on loan
        """
        if self.available_copies >= self.total_copies:
            raise AllCopiesAlreadyAvailable(
                f"All {self.total_copies} copies of '{self.title}' are already available"
            )
        self.available_copies += 1

    def violations(self, today: date) -> list[FieldViolation]:
        """Return every broken field rule for this book."""
        found: list[FieldViolation] = []

        if is_blank(self.isbn):
            found.append(FieldViolation(field="isbn", reason="is required"))
        elif not is_valid_isbn(self.isbn):
            found.append(
                FieldViolation(field="isbn", reason="must contain 10 or 13 digits")
            )

        if is_blank(self.title):
            found.append(FieldViolation(field="title", reason="is required"))
        if is_blank(self.author):
            found.append(FieldViolation(field="author", reason="is required"))

        if not is_valid_publication_year(self.publication_year, today.year):
            found.append(
                FieldViolation(
                    field="publication_year",
                    reason=f"must be between {MIN_PUBLICATION_YEAR} and {today.year}",
                )
            )

        if self.total_copies < 0:
            found.append(FieldViolation(field="total_copies", reason="cannot be negative"))
        if self.available_copies < 0:
            found.append(
                FieldViolation(field="available_copies", reason="cannot be negative")
            )
        elif self.available_copies > self.total_copies:
            found.append(
                FieldViolation(
                    field="available_copies", reason="cannot exceed total copies"
                )
            )

        return found

    def is_valid(self, today: date) -> bool:
        return not self.violations(today)

    model_config = ConfigDict(
        # Counters are reassigned by borrow()/return_copy()
        validate_assignment=True,
        # Load straight from ORM rows
        from_attributes=True,
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "book_id": 1,
                "isbn": "9780132350884",
                "title": "Clean Code",
                "author": "Robert C. Martin",
                "publisher": "Prentice Hall",
                "publication_year": 2008,
                "genre": "Programming",
                "total_copies": 3,
                "available_copies": 3,
            }
        },
    )
