"""
Member model for the library circulation package.

A member is a registered borrower. Membership status is set by explicit
administrative action (suspend, activate, expire) and any status may move to
any other. Only ACTIVE members may start new borrowings; how many books a
member already holds is checked by the circulation service, which has access
to the borrowing records.
"""

import re
from datetime import date, datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..validation import FieldViolation, is_blank

EMAIL_PATTERN = re.compile(r"^[A-Za-z0-9+_.-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}$")
PHONE_PATTERN = re.compile(r"^[\d\s\-()+]+$")
MEMBER_CODE_PATTERN = re.compile(r"^[A-Za-z0-9]{3,20}$")

# Column widths of the members table
MAX_EMAIL_LENGTH = 255
MAX_PHONE_LENGTH = 20

MIN_BOOKS_ALLOWED = 1
MAX_BOOKS_ALLOWED = 10


class MembershipStatus(str, Enum):
    """Enumeration of possible membership statuses."""

    ACTIVE = "ACTIVE"
    SUSPENDED = "SUSPENDED"
    EXPIRED = "EXPIRED"


def is_valid_email(email: str | None) -> bool:
    """Email is required and must look like ``local@domain.tld``."""
    return bool(email) and EMAIL_PATTERN.match(email) is not None


def is_valid_phone(phone: str | None) -> bool:
    """Phone is optional; when present only digits, spaces, ``-()+`` are allowed."""
    if not phone:
        return True
    return PHONE_PATTERN.match(phone) is not None


def is_valid_member_code(code: str | None) -> bool:
    """Member codes are 3 to 20 ASCII letters or digits."""
    return bool(code) and MEMBER_CODE_PATTERN.match(code) is not None


def is_valid_max_books(max_books: int | None) -> bool:
    return max_books is not None and MIN_BOOKS_ALLOWED <= max_books <= MAX_BOOKS_ALLOWED


class Member(BaseModel):
    """
    Represents a library member who can borrow books.

    Field rules are reported by ``violations()`` rather than raised on
    construction, so a partially filled registration form can be checked and
    every problem reported at once.
    """

    member_id: int | None = Field(
        default=None,
        description="Store-generated identifier, None until the member is registered",
    )

    member_code: str = Field(
        ...,
        description="Library card code, unique across members",
        examples=["MEM001", "abc"],
    )

    first_name: str = Field(..., max_length=100, examples=["John"])

    last_name: str = Field(..., max_length=100, examples=["Doe"])

    email: str = Field(
        ...,
        description="Email address, unique across members",
        examples=["john.doe@email.com"],
    )

    phone: str | None = Field(
        None,
        description="Optional phone number",
        examples=["555-0101", "+1 (555) 010-1234"],
    )

    address: str | None = Field(None, examples=["123 Main St, City, State"])

    membership_date: date | None = Field(
        default_factory=date.today,
        description="Date when the member joined the library",
    )

    membership_status: MembershipStatus = Field(
        default=MembershipStatus.ACTIVE,
        description="Current status of the membership",
    )

    max_books_allowed: int = Field(
        default=5,
        description="Maximum number of books the member can hold at once",
    )

    created_at: datetime | None = None
    updated_at: datetime | None = None

    @field_validator("member_code", "first_name", "last_name", "email", "phone", "address")
    @classmethod
    def strip_text(cls, v: str | None) -> str | None:
        return v.strip() if v is not None else v

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    def is_active(self) -> bool:
        """Check if the membership is currently active."""
        return self.membership_status == MembershipStatus.ACTIVE

    def can_borrow_books(self) -> bool:
        """Eligibility to start a new borrowing.

        The current loan count is not considered here; it needs the borrowing
        records and is enforced by the circulation service.
        """
        return self.is_active()

    def suspend(self) -> None:
        self.membership_status = MembershipStatus.SUSPENDED

    def activate(self) -> None:
        self.membership_status = MembershipStatus.ACTIVE

    def expire(self) -> None:
        self.membership_status = MembershipStatus.EXPIRED

    def set_status(self, status: MembershipStatus | str) -> None:
        self.membership_status = MembershipStatus(status)

    def violations(self, today: date) -> list[FieldViolation]:
        """Return every broken field rule for this member."""
        found: list[FieldViolation] = []

        if not is_valid_member_code(self.member_code):
            found.append(
                FieldViolation(
                    field="member_code",
                    reason="must be 3-20 letters or digits",
                )
            )
        if is_blank(self.first_name):
            found.append(FieldViolation(field="first_name", reason="is required"))
        if is_blank(self.last_name):
            found.append(FieldViolation(field="last_name", reason="is required"))

        if is_blank(self.email):
            found.append(FieldViolation(field="email", reason="is required"))
        elif not is_valid_email(self.email):
            found.append(
                FieldViolation(field="email", reason="must look like local@domain.tld")
            )
        elif len(self.email) > MAX_EMAIL_LENGTH:
            found.append(
                FieldViolation(
                    field="email", reason=f"cannot exceed {MAX_EMAIL_LENGTH} characters"
                )
            )

        if not is_valid_phone(self.phone):
            found.append(
                FieldViolation(
                    field="phone",
                    reason="may only contain digits, spaces, dashes, parentheses and plus",
                )
            )
        elif self.phone and len(self.phone) > MAX_PHONE_LENGTH:
            found.append(
                FieldViolation(
                    field="phone", reason=f"cannot exceed {MAX_PHONE_LENGTH} characters"
                )
            )

        if self.membership_date is None:
            found.append(FieldViolation(field="membership_date", reason="is required"))
        elif self.membership_date > today:
            found.append(
                FieldViolation(field="membership_date", reason="cannot be in the future")
            )

        if not is_valid_max_books(self.max_books_allowed):
            found.append(
                FieldViolation(
                    field="max_books_allowed",
                    reason=f"must be between {MIN_BOOKS_ALLOWED} and {MAX_BOOKS_ALLOWED}",
                )
            )

        return found

    def is_valid(self, today: date) -> bool:
        return not self.violations(today)

    model_config = ConfigDict(
        validate_assignment=True,
        from_attributes=True,
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "member_id": 1,
                "member_code": "MEM001",
                "first_name": "John",
                "last_name": "Doe",
                "email": "john.doe@email.com",
                "phone": "555-0101",
                "address": "123 Main St, City, State",
                "membership_date": "2023-01-15",
                "membership_status": "ACTIVE",
                "max_books_allowed": 5,
            }
        },
    )
