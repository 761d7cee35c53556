"""
Library circulation package.

A library catalog and circulation tracker: books, members and the borrowings
that link them, with copy counts, borrowing limits and overdue fines enforced
by the services.

Key Components:
- models: Pydantic entities with their business rules and validators
- database: SQLAlchemy schema, session management and repositories
- services: catalog, membership, circulation and report operations
- config: Configuration management with pydantic-settings
- cli: the ``library-circulation`` command-line front-end
"""

__version__ = "0.1.0"

__all__ = [
    "__version__",
]
