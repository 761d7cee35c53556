"""Test configuration and fixtures for the library circulation package.

1. Isolated databases - each test gets its own in-memory SQLite database
2. A pinned calendar - services read the date from a clock the test controls
3. Configuration isolation - the global config singleton is reset around tests
"""

import os
from collections.abc import Generator
from datetime import date, timedelta
from pathlib import Path

import pytest

from library_circulation.config import LibraryConfig, reset_config
from library_circulation.database.session import DatabaseManager, reset_db_manager
from library_circulation.models import Book, Member
from library_circulation.services import (
    CatalogService,
    CirculationService,
    KeyedLocks,
    MembershipService,
    ReportService,
)

TODAY = date(2024, 1, 20)


class FixedClock:
    """A clock that stays put until a test moves it."""

    def __init__(self, today: date):
        self.current = today

    def __call__(self) -> date:
        return self.current

    def advance(self, days: int) -> date:
        self.current += timedelta(days=days)
        return self.current


# === Environment Fixtures ===


@pytest.fixture(autouse=True)
def clean_env(tmp_path: Path) -> Generator[None, None, None]:
    """Provide a clean environment without LIBRARY_* variables.

    The default database path points into the test's temporary directory so
    that building a config never creates files in the working tree.
    """
    original_env = os.environ.copy()
    for key in list(os.environ.keys()):
        if key.startswith("LIBRARY_"):
            del os.environ[key]
    os.environ["LIBRARY_DATABASE_PATH"] = str(tmp_path / "env_library.db")
    reset_config()
    reset_db_manager()

    yield

    reset_db_manager()
    reset_config()
    os.environ.clear()
    os.environ.update(original_env)


# === Configuration Fixtures ===


@pytest.fixture
def test_db_path(tmp_path: Path) -> Path:
    return tmp_path / "test_library.db"


@pytest.fixture
def test_config(test_db_path: Path) -> LibraryConfig:
    """Default circulation policy: 14-day loans, $1.00 per overdue day."""
    return LibraryConfig(database_path=test_db_path)


# === Database Fixtures ===


@pytest.fixture
def db_manager() -> Generator[DatabaseManager, None, None]:
    """Provide a fresh in-memory database with the schema created."""
    manager = DatabaseManager("sqlite:///:memory:")
    manager.init_database()
    yield manager
    manager.close()


@pytest.fixture
def db_session(db_manager: DatabaseManager):
    """A session whose work is rolled back after the test."""
    session = db_manager.create_session()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


# === Service Fixtures ===


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(TODAY)


@pytest.fixture
def locks() -> KeyedLocks:
    return KeyedLocks()


@pytest.fixture
def catalog(db_manager, clock, locks, test_config) -> CatalogService:
    return CatalogService(db_manager, clock=clock, locks=locks, config=test_config)


@pytest.fixture
def membership(db_manager, clock, locks, test_config) -> MembershipService:
    return MembershipService(db_manager, clock=clock, locks=locks, config=test_config)


@pytest.fixture
def circulation(db_manager, clock, locks, test_config) -> CirculationService:
    return CirculationService(db_manager, clock=clock, locks=locks, config=test_config)


@pytest.fixture
def reports(db_manager, clock, locks, test_config) -> ReportService:
    return ReportService(db_manager, clock=clock, locks=locks, config=test_config)


# === Sample Data ===


def make_book(**overrides) -> Book:
    data = {
        "isbn": "978-0-13-235088-4",
        "title": "Clean Code",
        "author": "Robert C. Martin",
        "publisher": "Prentice Hall",
        "genre": "Programming",
        "publication_year": 2008,
        "total_copies": 3,
        "available_copies": 3,
    }
    data.update(overrides)
    return Book(**data)


def make_member(**overrides) -> Member:
    data = {
        "member_code": "MEM001",
        "first_name": "John",
        "last_name": "Doe",
        "email": "john.doe@email.com",
        "phone": "555-0101",
        "address": "123 Main St, City, State",
        "membership_date": date(2023, 1, 15),
        "max_books_allowed": 5,
    }
    data.update(overrides)
    return Member(**data)


@pytest.fixture
def sample_book() -> Book:
    return make_book()


@pytest.fixture
def sample_member() -> Member:
    return make_member()


@pytest.fixture
def stored_book(catalog: CatalogService) -> Book:
    return catalog.add_book(make_book())


@pytest.fixture
def single_copy_book(catalog: CatalogService) -> Book:
    return catalog.add_book(
        make_book(
            isbn="9780262033848",
            title="Introduction to Algorithms",
            author="Thomas H. Cormen",
            total_copies=1,
            available_copies=1,
        )
    )


@pytest.fixture
def stored_member(membership: MembershipService) -> Member:
    return membership.register_member(make_member())
