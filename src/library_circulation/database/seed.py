"""
Sample data for the library circulation package.

``init-db --sample-data`` loads:
- the fixed five-book catalog and five members every installation starts with
- a handful of extra members generated with Faker, with mixed membership
  statuses so that the status commands have something to show

Generation is seeded, so two databases seeded with the same arguments hold
the same people.
"""

import logging
import random
import re
from datetime import date, timedelta

from faker import Faker
from pydantic import BaseModel

from ..models.book import Book
from ..models.member import Member, MembershipStatus
from .book_repository import BookRepository
from .member_repository import MemberRepository
from .session import DatabaseManager

logger = logging.getLogger(__name__)

SAMPLE_BOOKS = [
    Book(
        isbn="9780132350884",
        title="Clean Code",
        author="Robert C. Martin",
        publisher="Prentice Hall",
        publication_year=2008,
        genre="Programming",
        total_copies=3,
        available_copies=3,
    ),
    Book(
        isbn="9780201633610",
        title="Design Patterns",
        author="Erich Gamma, Richard Helm, Ralph Johnson, John Vlissides",
        publisher="Addison-Wesley",
        publication_year=1994,
        genre="Programming",
        total_copies=2,
        available_copies=2,
    ),
    Book(
        isbn="9780262033848",
        title="Introduction to Algorithms",
        author="Thomas H. Cormen",
        publisher="MIT Press",
        publication_year=2009,
        genre="Computer Science",
        total_copies=1,
        available_copies=1,
    ),
    Book(
        isbn="9780596007126",
        title="Head First Java",
        author="Kathy Sierra, Bert Bates",
        publisher="O'Reilly Media",
        publication_year=2005,
        genre="Programming",
        total_copies=4,
        available_copies=4,
    ),
    Book(
        isbn="9780134685991",
        title="Effective Java",
        author="Joshua Bloch",
        publisher="Addison-Wesley",
        publication_year=2017,
        genre="Programming",
        total_copies=2,
        available_copies=2,
    ),
]

SAMPLE_MEMBERS = [
    Member(
        member_code="MEM001",
        first_name="John",
        last_name="Doe",
        email="john.doe@email.com",
        phone="555-0101",
        address="123 Main St, City, State",
        membership_date=date(2023, 1, 15),
        max_books_allowed=5,
    ),
    Member(
        member_code="MEM002",
        first_name="Jane",
        last_name="Smith",
        email="jane.smith@email.com",
        phone="555-0102",
        address="456 Oak Ave, City, State",
        membership_date=date(2023, 2, 20),
        max_books_allowed=5,
    ),
    Member(
        member_code="MEM003",
        first_name="Bob",
        last_name="Johnson",
        email="bob.johnson@email.com",
        phone="555-0103",
        address="789 Pine Rd, City, State",
        membership_date=date(2023, 3, 10),
        max_books_allowed=3,
    ),
    Member(
        member_code="MEM004",
        first_name="Alice",
        last_name="Brown",
        email="alice.brown@email.com",
        phone="555-0104",
        address="321 Elm St, City, State",
        membership_date=date(2023, 4, 5),
        max_books_allowed=5,
    ),
    Member(
        member_code="MEM005",
        first_name="Charlie",
        last_name="Wilson",
        email="charlie.wilson@email.com",
        phone="555-0105",
        address="654 Maple Dr, City, State",
        membership_date=date(2023, 5, 12),
        max_books_allowed=4,
    ),
]


class SeedSummary(BaseModel):
    """What a seeding run actually inserted."""

    books_added: int = 0
    members_added: int = 0
    skipped: int = 0


def _demo_email(first_name: str, last_name: str, number: int, domain: str) -> str:
    # Numbered local part keeps generated addresses unique
    local = re.sub(r"[^a-z.]", "", f"{first_name}.{last_name}".lower())
    return f"{local}{number}@{domain}"


def generate_members(count: int, today: date, seed: int = 42, first_number: int = 6) -> list[Member]:
    """
    Generate demo members with realistic names and contact details.

    Member codes continue the ``MEMnnn`` sequence of the fixed sample set.
    Roughly 70% are ACTIVE, the rest SUSPENDED or EXPIRED.
    """
    fake = Faker()
    fake.seed_instance(seed)
    rng = random.Random(seed)

    status_weights = {
        MembershipStatus.ACTIVE: 70,
        MembershipStatus.SUSPENDED: 10,
        MembershipStatus.EXPIRED: 20,
    }

    members = []
    for number in range(first_number, first_number + count):
        status = rng.choices(list(status_weights), weights=list(status_weights.values()))[0]
        first_name = fake.first_name()
        last_name = fake.last_name()
        members.append(
            Member(
                member_code=f"MEM{number:03d}",
                first_name=first_name,
                last_name=last_name,
                email=_demo_email(first_name, last_name, number, fake.free_email_domain()),
                phone=fake.numerify("555-####"),
                address=fake.address().replace("\n", ", "),
                membership_date=fake.date_between(
                    start_date=today - timedelta(days=5 * 365), end_date=today
                ),
                membership_status=status,
                max_books_allowed=rng.choice([3, 5, 5, 5, 10]),
            )
        )
    return members


def seed_database(
    db_manager: DatabaseManager,
    extra_members: int = 10,
    today: date | None = None,
    seed: int = 42,
) -> SeedSummary:
    """
    Insert the sample catalog and members.

    Rows whose ISBN, member code or email already exist are skipped, so
    seeding twice is harmless.
    """
    today = today or date.today()
    summary = SeedSummary()

    members = list(SAMPLE_MEMBERS) + generate_members(extra_members, today, seed=seed)

    with db_manager.session_scope() as session:
        books = BookRepository(session)
        for book in SAMPLE_BOOKS:
            if books.get_by_isbn(book.isbn) is not None:
                summary.skipped += 1
                continue
            books.insert(book)
            summary.books_added += 1

        member_repo = MemberRepository(session)
        for member in members:
            if (
                member_repo.get_by_code(member.member_code) is not None
                or member_repo.get_by_email(member.email) is not None
            ):
                summary.skipped += 1
                continue
            member_repo.insert(member)
            summary.members_added += 1

    logger.info(
        "Seeded %d books and %d members (%d skipped)",
        summary.books_added,
        summary.members_added,
        summary.skipped,
    )
    return summary
