"""
Member repository implementation for the library circulation package.

Members are looked up by id, by library card code and by email; the last two
are the unique keys checked before registration.
"""

from sqlalchemy import func, or_

from ..database.schema import Member as MemberDB
from ..models.member import Member as MemberModel
from ..models.member import MembershipStatus
from .repository import BaseRepository


class MemberRepository(BaseRepository[MemberDB, MemberModel]):
    """Repository for member data access."""

    @property
    def model_class(self):
        return MemberDB

    @property
    def response_schema(self):
        return MemberModel

    @property
    def id_field(self) -> str:
        return "member_id"

    def get_by_code(self, member_code: str) -> MemberModel | None:
        members = self.find_where(MemberDB.member_code == member_code.strip())
        return members[0] if members else None

    def get_by_email(self, email: str) -> MemberModel | None:
        """Email lookup ignores case, ``John@Email.com`` and ``john@email.com`` are one address."""
        members = self.find_where(func.lower(MemberDB.email) == email.strip().lower())
        return members[0] if members else None

    def search_by_name(self, term: str) -> list[MemberModel]:
        """
        Case-insensitive substring search over first name, last name and
        the full ``first last`` name.
        """
        pattern = f"%{term.strip()}%"
        full_name = MemberDB.first_name + " " + MemberDB.last_name
        return self.find_where(
            or_(
                MemberDB.first_name.ilike(pattern),
                MemberDB.last_name.ilike(pattern),
                full_name.ilike(pattern),
            ),
            order_by="last_name",
        )

    def get_by_status(self, status: MembershipStatus) -> list[MemberModel]:
        return self.find_where(MemberDB.membership_status == status, order_by="last_name")

    def get_active(self) -> list[MemberModel]:
        return self.get_by_status(MembershipStatus.ACTIVE)

    def update_status(self, member_id: int, status: MembershipStatus) -> bool:
        """
        Change only the membership status of a member.

        Returns:
            True if updated, False if the member does not exist
        """
        member = self.get_for_update(member_id)
        if member is None:
            return False
        member.set_status(status)
        return self.update(member)
