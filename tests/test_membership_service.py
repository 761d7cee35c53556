"""Tests for member management."""

from datetime import date

import pytest
from conftest import make_member

from library_circulation.errors import (
    DuplicateError,
    HasOpenBorrowings,
    MemberNotFound,
    ValidationFailed,
)
from library_circulation.models import MembershipStatus


class TestRegisterMember:
    def test_register_valid_member(self, membership):
        member = membership.register_member(make_member())
        assert member.member_id is not None
        assert member.membership_status == MembershipStatus.ACTIVE
        assert membership.get_member(member.member_id).email == "john.doe@email.com"

    def test_registration_always_starts_active(self, membership):
        member = membership.register_member(
            make_member(membership_status=MembershipStatus.SUSPENDED)
        )
        assert member.membership_status == MembershipStatus.ACTIVE

    def test_short_code_is_rejected_and_nothing_stored(self, membership):
        with pytest.raises(ValidationFailed) as exc_info:
            membership.register_member(make_member(member_code="ab"))
        assert exc_info.value.fields == ["member_code"]
        assert "member_code" in str(exc_info.value)
        assert membership.list_members() == []

    def test_three_character_code_is_accepted(self, membership):
        assert membership.register_member(make_member(member_code="abc")).member_code == "abc"

    def test_every_invalid_field_is_reported(self, membership):
        with pytest.raises(ValidationFailed) as exc_info:
            membership.register_member(
                make_member(email="nope", phone="call me", max_books_allowed=0)
            )
        assert set(exc_info.value.fields) == {"email", "phone", "max_books_allowed"}

    def test_membership_date_cannot_be_in_the_future(self, membership, clock):
        with pytest.raises(ValidationFailed):
            membership.register_member(make_member(membership_date=date(2024, 1, 21)))
        assert membership.register_member(make_member(membership_date=clock())).member_id

    def test_duplicate_code(self, membership, stored_member):
        with pytest.raises(DuplicateError) as exc_info:
            membership.register_member(make_member(email="someone.else@email.com"))
        assert exc_info.value.field == "member_code"

    def test_duplicate_email_ignores_case(self, membership, stored_member):
        with pytest.raises(DuplicateError) as exc_info:
            membership.register_member(
                make_member(member_code="MEM002", email="JOHN.DOE@EMAIL.COM")
            )
        assert exc_info.value.field == "email"


class TestLookups:
    def test_get_by_code_and_email(self, membership, stored_member):
        assert membership.get_member_by_code("MEM001").member_id == stored_member.member_id
        assert membership.get_member_by_email("john.doe@email.com").member_id == (
            stored_member.member_id
        )
        with pytest.raises(MemberNotFound):
            membership.get_member_by_code("NOPE01")
        with pytest.raises(MemberNotFound):
            membership.get_member(404)

    def test_list_and_search(self, membership, stored_member):
        membership.register_member(
            make_member(
                member_code="MEM002",
                first_name="Jane",
                last_name="Smith",
                email="jane.smith@email.com",
            )
        )
        assert [m.last_name for m in membership.list_members()] == ["Doe", "Smith"]
        assert [m.member_code for m in membership.search_by_name("jane")] == ["MEM002"]


class TestStatus:
    def test_suspend_activate_expire(self, membership, stored_member):
        member_id = stored_member.member_id

        assert membership.suspend(member_id).membership_status == MembershipStatus.SUSPENDED
        assert membership.active_members() == []

        assert membership.expire(member_id).membership_status == MembershipStatus.EXPIRED
        assert membership.activate(member_id).membership_status == MembershipStatus.ACTIVE
        assert [m.member_id for m in membership.active_members()] == [member_id]

    def test_update_status_by_name(self, membership, stored_member):
        member = membership.update_status(stored_member.member_id, "SUSPENDED")
        assert member.membership_status == MembershipStatus.SUSPENDED

    def test_unknown_status_name(self, membership, stored_member):
        with pytest.raises(ValueError):
            membership.update_status(stored_member.member_id, "BANNED")

    def test_status_of_missing_member(self, membership):
        with pytest.raises(MemberNotFound):
            membership.suspend(404)


class TestUpdateAndDelete:
    def test_update_member(self, membership, stored_member):
        stored_member.phone = "+1 (555) 010-9999"
        stored_member.max_books_allowed = 8
        updated = membership.update_member(stored_member)
        assert updated.phone == "+1 (555) 010-9999"
        assert updated.max_books_allowed == 8

    def test_update_cannot_take_another_email(self, membership, stored_member):
        other = membership.register_member(
            make_member(member_code="MEM002", email="jane.smith@email.com")
        )
        other.email = "john.doe@email.com"
        with pytest.raises(DuplicateError):
            membership.update_member(other)

    def test_update_missing_member(self, membership):
        with pytest.raises(MemberNotFound):
            membership.update_member(make_member(member_id=404))

    def test_delete_member(self, membership, stored_member):
        membership.delete_member(stored_member.member_id)
        with pytest.raises(MemberNotFound):
            membership.get_member(stored_member.member_id)

    def test_cannot_delete_member_holding_a_book(
        self, membership, circulation, stored_book, stored_member
    ):
        borrowing = circulation.borrow_book(stored_book.book_id, stored_member.member_id)
        with pytest.raises(HasOpenBorrowings):
            membership.delete_member(stored_member.member_id)

        circulation.return_book(borrowing.borrowing_id)
        membership.delete_member(stored_member.member_id)
        assert membership.list_members() == []
