"""
Repository pattern implementation for the library circulation package.

This module provides the data access layer between the services and the
SQLAlchemy tables. Every repository:

1. **Works inside the caller's session**: it flushes but never commits, so a
   service can group several writes into one ``session_scope()`` transaction
2. **Returns Pydantic models**: ORM rows never leak out of the repository
3. **Translates driver errors**: through ``safe_query`` / ``safe_flush``

The base repository provides the generic store contract (lookup by id, list,
filter, insert, update, delete); specialized repositories add the unique-key
lookups and domain queries each entity needs.
"""

from abc import ABC, abstractmethod
from typing import Any, Generic, TypeVar

from pydantic import BaseModel
from sqlalchemy import asc, desc, func, select
from sqlalchemy.orm import Session

from ..database.schema import Base
from ..database.session import safe_flush, safe_query

# Type variables for generic repository
ModelType = TypeVar("ModelType", bound=Base)
ResponseSchemaType = TypeVar("ResponseSchemaType", bound=BaseModel)

# Columns the database fills in; never copied from a Pydantic model
_GENERATED_FIELDS = {"created_at", "updated_at"}


class BaseRepository(ABC, Generic[ModelType, ResponseSchemaType]):
    """
    Abstract base repository providing common CRUD operations.

    Subclasses name the ORM class, the Pydantic schema and the primary key
    field; everything else is shared.
    """

    def __init__(self, session: Session):
        """Initialize repository with database session."""
        self.session = session

    @property
    @abstractmethod
    def model_class(self) -> type[ModelType]:
        """Return the SQLAlchemy model class."""

    @property
    @abstractmethod
    def response_schema(self) -> type[ResponseSchemaType]:
        """Return the Pydantic response schema."""

    @property
    @abstractmethod
    def id_field(self) -> str:
        """Name of the integer primary key column."""

    @property
    def entity_name(self) -> str:
        return self.model_class.__name__

    def _id_column(self):
        return getattr(self.model_class, self.id_field)

    def _to_response_model(self, db_obj: ModelType) -> ResponseSchemaType:
        """Convert database model to Pydantic response model."""
        return self.response_schema.model_validate(db_obj, from_attributes=True)

    def _column_values(self, entity: ResponseSchemaType) -> dict[str, Any]:
        """Values of ``entity`` that map onto writable columns."""
        return entity.model_dump(exclude={self.id_field, *_GENERATED_FIELDS})

    def _get_db_obj(self, id: int, for_update: bool = False) -> ModelType | None:
        # Counter updates bypass the identity map, so always reload the row
        query = (
            select(self.model_class)
            .where(self._id_column() == id)
            .execution_options(populate_existing=True)
        )
        if for_update:
            # Ignored by SQLite, row lock elsewhere
            query = query.with_for_update()
        return safe_query(
            self.session,
            lambda s: s.execute(query).scalar_one_or_none(),
            f"Failed to get {self.entity_name} {id}",
        )

    def get_by_id(self, id: int) -> ResponseSchemaType | None:
        """
        Get entity by ID.

        Returns:
            Pydantic model or None if not found

        Raises:
            StorageUnavailable: On database errors
        """
        db_obj = self._get_db_obj(id)
        if db_obj is None:
            return None
        return self._to_response_model(db_obj)

    def get_for_update(self, id: int) -> ResponseSchemaType | None:
        """Like ``get_by_id`` but locks the row for the rest of the transaction."""
        db_obj = self._get_db_obj(id, for_update=True)
        if db_obj is None:
            return None
        return self._to_response_model(db_obj)

    def get_all(self, order_by: str | None = None, order_desc: bool = False) -> list[ResponseSchemaType]:
        """
        Get all entities, ordered by primary key unless told otherwise.

        Args:
            order_by: Column name to order by
            order_desc: Whether to order descending
        """
        return self.find_where(order_by=order_by, order_desc=order_desc)

    def find_where(
        self, *criteria, order_by: str | None = None, order_desc: bool = False
    ) -> list[ResponseSchemaType]:
        """
        Get all entities matching every SQLAlchemy criterion given.

        ```python
        repo.find_where(BookDB.genre == "Fiction", BookDB.available_copies > 0)
        ```
        """
        query = (
            select(self.model_class).where(*criteria).execution_options(populate_existing=True)
        )

        order_field = self._id_column()
        if order_by and hasattr(self.model_class, order_by):
            order_field = getattr(self.model_class, order_by)
        query = query.order_by(desc(order_field) if order_desc else asc(order_field))

        results = safe_query(
            self.session,
            lambda s: s.execute(query).scalars().all(),
            f"Failed to list {self.entity_name} records",
        )
        return [self._to_response_model(item) for item in results]

    def count(self, *criteria) -> int:
        query = select(func.count()).select_from(self.model_class).where(*criteria)
        return (
            safe_query(
                self.session,
                lambda s: s.execute(query).scalar(),
                f"Failed to count {self.entity_name} records",
            )
            or 0
        )

    def insert(self, entity: ResponseSchemaType) -> ResponseSchemaType:
        """
        Insert a new entity and return it with its generated id.

        Raises:
            DuplicateError: If a unique column already holds the value
            StorageUnavailable: On other database errors
        """
        db_obj = self.model_class(**self._column_values(entity))
        self.session.add(db_obj)
        safe_flush(self.session, f"insert {self.entity_name}")
        self.session.refresh(db_obj)
        return self._to_response_model(db_obj)

    def update(self, entity: ResponseSchemaType) -> bool:
        """
        Write every column of ``entity`` over the stored row with the same id.

        Returns:
            True if updated, False if no such row exists
        """
        entity_id = getattr(entity, self.id_field)
        if entity_id is None:
            return False

        db_obj = self._get_db_obj(entity_id, for_update=True)
        if db_obj is None:
            return False

        for field, value in self._column_values(entity).items():
            setattr(db_obj, field, value)

        safe_flush(self.session, f"update {self.entity_name}")
        return True

    def delete(self, id: int) -> bool:
        """
        Delete entity by ID.

        Returns:
            True if deleted, False if not found
        """
        db_obj = self._get_db_obj(id)
        if db_obj is None:
            return False

        self.session.delete(db_obj)
        safe_flush(self.session, f"delete {self.entity_name}")
        return True

    def exists(self, id: int) -> bool:
        """Check if entity exists by ID."""
        return self.count(self._id_column() == id) > 0
