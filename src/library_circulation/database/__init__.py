"""
Database package for the library circulation package.

This package provides:
- SQLAlchemy schema definitions (schema.py)
- Session management and the unit of work (session.py)
- Repositories returning Pydantic models (repository.py and friends)
- Sample data for demo databases (seed.py)
"""

from .book_repository import BookRepository
from .borrowing_repository import BorrowingRepository
from .member_repository import MemberRepository
from .repository import BaseRepository
from .schema import Base
from .session import (
    DatabaseManager,
    get_db_manager,
    reset_db_manager,
    safe_flush,
    safe_query,
)

__all__ = [
    "Base",
    "BaseRepository",
    "BookRepository",
    "BorrowingRepository",
    "DatabaseManager",
    "MemberRepository",
    "get_db_manager",
    "reset_db_manager",
    "safe_flush",
    "safe_query",
]
