"""
Member management for the library circulation package.

Members register ACTIVE and change status only by explicit administrative
action; any status may move to any other. Member code and email are the
unique keys and are checked before every insert or edit.
"""

import logging

from ..database.borrowing_repository import BorrowingRepository
from ..database.member_repository import MemberRepository
from ..errors import DuplicateError, HasOpenBorrowings, MemberNotFound
from ..models.member import Member, MembershipStatus
from .base import LibraryService

logger = logging.getLogger(__name__)


class MembershipService(LibraryService):
    """Member management operations."""

    def _check_unique_keys(self, members: MemberRepository, member: Member) -> None:
        by_code = members.get_by_code(member.member_code)
        if by_code is not None and by_code.member_id != member.member_id:
            raise DuplicateError("member_code", member.member_code, entity="Member")

        by_email = members.get_by_email(member.email)
        if by_email is not None and by_email.member_id != member.member_id:
            raise DuplicateError("email", member.email, entity="Member")

    def register_member(self, member: Member) -> Member:
        """
        Register a new member.

        Every field rule is checked first (code format, names, email, phone,
        membership date, borrowing limit), then both unique keys.

        Returns:
            The stored member, with its generated ``member_id``

        Raises:
            ValidationFailed: If any member field is invalid
            DuplicateError: If the member code or email is taken
        """
        self.require_valid("member", member)
        # New memberships always start ACTIVE
        if not member.is_active():
            member = member.model_copy(update={"membership_status": MembershipStatus.ACTIVE})

        with self.db_manager.session_scope() as session:
            members = MemberRepository(session)
            self._check_unique_keys(members, member)
            stored = members.insert(member)

        logger.info("Registered member %s (%s)", stored.member_id, stored.member_code)
        return stored

    def get_member(self, member_id: int) -> Member:
        with self.db_manager.session_scope() as session:
            member = MemberRepository(session).get_by_id(member_id)
        if member is None:
            raise MemberNotFound(member_id)
        return member

    def get_member_by_code(self, member_code: str) -> Member:
        with self.db_manager.session_scope() as session:
            member = MemberRepository(session).get_by_code(member_code)
        if member is None:
            raise MemberNotFound(member_code)
        return member

    def get_member_by_email(self, email: str) -> Member:
        with self.db_manager.session_scope() as session:
            member = MemberRepository(session).get_by_email(email)
        if member is None:
            raise MemberNotFound(email)
        return member

    def list_members(self) -> list[Member]:
        with self.db_manager.session_scope() as session:
            return MemberRepository(session).get_all(order_by="last_name")

    def update_member(self, member: Member) -> Member:
        """
        Overwrite a stored member with ``member``.

        Raises:
            ValidationFailed: If any member field is invalid
            MemberNotFound: If ``member.member_id`` is unset or unknown
            DuplicateError: If the code or email belongs to another member
        """
        self.require_valid("member", member)
        if member.member_id is None:
            raise MemberNotFound("(no id)")

        with self.locks.hold(("member", member.member_id)):
            with self.db_manager.session_scope() as session:
                members = MemberRepository(session)
                if members.get_for_update(member.member_id) is None:
                    raise MemberNotFound(member.member_id)
                self._check_unique_keys(members, member)
                members.update(member)
                stored = members.get_by_id(member.member_id)

        logger.info("Updated member %s", member.member_id)
        return stored

    def delete_member(self, member_id: int) -> None:
        """
        Remove a member and their closed borrowing history.

        Raises:
            MemberNotFound: If the member does not exist
            HasOpenBorrowings: While the member still holds a book
        """
        with self.locks.hold(("member", member_id)):
            with self.db_manager.session_scope() as session:
                members = MemberRepository(session)
                if not members.exists(member_id):
                    raise MemberNotFound(member_id)

                open_count = BorrowingRepository(session).count_open_for_member(member_id)
                if open_count:
                    raise HasOpenBorrowings(
                        f"Member {member_id} cannot be deleted: {open_count} borrowing(s) still open"
                    )

                members.delete(member_id)

        logger.info("Deleted member %s", member_id)

    def search_by_name(self, name: str) -> list[Member]:
        with self.db_manager.session_scope() as session:
            return MemberRepository(session).search_by_name(name)

    def active_members(self) -> list[Member]:
        with self.db_manager.session_scope() as session:
            return MemberRepository(session).get_active()

    def update_status(self, member_id: int, status: MembershipStatus | str) -> Member:
        """
        Set a member's status. No transition is forbidden.

        Raises:
            MemberNotFound: If the member does not exist
            ValueError: If ``status`` is not a membership status
        """
        status = MembershipStatus(status)

        with self.locks.hold(("member", member_id)):
            with self.db_manager.session_scope() as session:
                members = MemberRepository(session)
                if not members.update_status(member_id, status):
                    raise MemberNotFound(member_id)
                stored = members.get_by_id(member_id)

        logger.info("Member %s is now %s", member_id, status.value)
        return stored

    def suspend(self, member_id: int) -> Member:
        return self.update_status(member_id, MembershipStatus.SUSPENDED)

    def activate(self, member_id: int) -> Member:
        return self.update_status(member_id, MembershipStatus.ACTIVE)

    def expire(self, member_id: int) -> Member:
        return self.update_status(member_id, MembershipStatus.EXPIRED)
