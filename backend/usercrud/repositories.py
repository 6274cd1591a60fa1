"""Repository classes encapsulating database operations.

`Repository[T]` implements the generic queries shared by every table
(paginated listing, lookups by id/column/name, upsert, update, delete).
Concrete repositories bind it to a model. Lookups return `None` when no
row matches; unexpected database errors are logged and re-raised.
"""

import logging
from typing import Any, Generic, List, Optional, Tuple, Type, TypeVar

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, SQLModel, select

from . import models
from .schemas import FilterParams, OrderParam, PaginationData, PaginationParam
from .utils import pagination

logger = logging.getLogger("usercrud.repositories")

T = TypeVar("T", bound=SQLModel)


class Repository(Generic[T]):
    """Generic CRUD operations for a single SQLModel table."""
    model: Type[T]
    # columns clients may filter and sort on; None allows every column
    filterable: Optional[Tuple[str, ...]] = None

    def __init__(self, session: Session):
        self.session = session

    def find_by_pagination(self, page: PaginationParam, order: OrderParam, filters: FilterParams) -> PaginationData:
        """Return one page of rows matching `filters`, sorted by `order`."""
        stmt = select(self.model)
        stmt = pagination.where(filters, stmt, self.model, self.filterable)
        stmt = pagination.order(order, stmt, self.model, self.filterable)
        try:
            return pagination.paginate(self.session, stmt, page.page, page.page_size)
        except SQLAlchemyError:
            logger.exception("failed to find by pagination on %s", self.model.__tablename__)
            raise

    def find(self, order: OrderParam, filters: FilterParams) -> List[T]:
        """Return every row matching `filters`, sorted by `order`."""
        stmt = select(self.model)
        stmt = pagination.where(filters, stmt, self.model, self.filterable)
        stmt = pagination.order(order, stmt, self.model, self.filterable)
        try:
            return list(self.session.exec(stmt).all())
        except SQLAlchemyError:
            logger.exception("failed to find all on %s", self.model.__tablename__)
            raise

    def find_by_id(self, id: str) -> Optional[T]:
        try:
            return self.session.get(self.model, id)
        except SQLAlchemyError:
            logger.exception("failed to find by id on %s", self.model.__tablename__)
            raise

    def find_by_column(self, column: str, value: Any) -> Optional[T]:
        """Return the first row whose `column` equals `value`."""
        col = self.model.__table__.columns[column]
        try:
            return self.session.exec(select(self.model).where(col == value)).first()
        except SQLAlchemyError:
            logger.exception("failed to find by column %s on %s", column, self.model.__tablename__)
            raise

    def find_by_name(self, column: str, value: str) -> Optional[T]:
        """Case-insensitive variant of `find_by_column` for text columns."""
        col = self.model.__table__.columns[column]
        try:
            return self.session.exec(select(self.model).where(func.lower(col) == value.lower())).first()
        except SQLAlchemyError:
            logger.exception("failed to find by name %s on %s", column, self.model.__tablename__)
            raise

    def create(self, obj: T) -> T:
        """Insert `obj`, or overwrite the existing row with the same id."""
        try:
            obj = self.session.merge(obj)
            self.session.commit()
        except SQLAlchemyError:
            self.session.rollback()
            logger.exception("failed to create on %s", self.model.__tablename__)
            raise
        self.session.refresh(obj)
        return obj

    def update(self, obj: T) -> T:
        try:
            self.session.add(obj)
            self.session.commit()
        except SQLAlchemyError:
            self.session.rollback()
            logger.exception("failed to update on %s", self.model.__tablename__)
            raise
        self.session.refresh(obj)
        return obj

    def delete_by_id(self, id: str) -> bool:
        """Delete the row with `id`; returns False when nothing was deleted."""
        obj = self.find_by_id(id)
        if obj is None:
            return False
        try:
            self.session.delete(obj)
            self.session.commit()
        except SQLAlchemyError:
            self.session.rollback()
            logger.exception("failed to delete on %s", self.model.__tablename__)
            raise
        return True


class UserRepository(Repository[models.User]):
    model = models.User
    filterable = ("id", "username", "email")


class ExampleRepository(Repository[models.Example]):
    model = models.Example
    filterable = ("id", "name", "year", "description")
