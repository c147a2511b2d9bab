import logging
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional, Type, TypeVar

from sqlalchemy import Table, func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from workhub.core.errors import Conflict, InternalError
from workhub.db.base import Base

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=Base)


class EntityStore:
    """
    Collection-style access to the persisted entities.

    Wraps one request-scoped SQLAlchemy session. Store failures are translated
    into the error taxonomy: a lost optimistic-version race or a duplicate
    unique value becomes ``Conflict``, anything else from the driver becomes
    ``InternalError``.
    """

    def __init__(self, db: Session):
        self.db = db

    def find(self, model: Type[ModelT], *criteria, order_by=None, **filters) -> List[ModelT]:
        query = self.db.query(model).filter(*criteria).filter_by(**filters)
        if order_by is not None:
            query = query.order_by(order_by)
        with self._translate_errors():
            return query.all()

    def find_one(self, model: Type[ModelT], *criteria, **filters) -> Optional[ModelT]:
        with self._translate_errors():
            return self.db.query(model).filter(*criteria).filter_by(**filters).first()

    def find_by_id(self, model: Type[ModelT], id: Any) -> Optional[ModelT]:
        if id is None:
            return None
        with self._translate_errors():
            return self.db.get(model, id)

    def insert(self, record: ModelT) -> ModelT:
        self.db.add(record)
        self.flush()
        return record

    def update_by_id(self, model: Type[ModelT], id: Any, patch: Dict[str, Any]) -> Optional[ModelT]:
        record = self.find_by_id(model, id)
        if record is None:
            return None
        for field, value in patch.items():
            setattr(record, field, value)
        self.flush()
        return record

    def delete(self, record: Base) -> None:
        self.db.delete(record)
        self.flush()

    def delete_by_id(self, model: Type[ModelT], id: Any) -> bool:
        record = self.find_by_id(model, id)
        if record is None:
            return False
        self.delete(record)
        return True

    def delete_where(self, model: Type[ModelT], **filters) -> int:
        with self._translate_errors():
            return self.db.query(model).filter_by(**filters).delete(synchronize_session="fetch")

    def unlink(self, table: Table, **filters) -> int:
        """Remove association rows, e.g. a user's team memberships"""
        statement = table.delete()
        for column, value in filters.items():
            statement = statement.where(table.c[column] == value)
        with self._translate_errors():
            return self.db.execute(statement).rowcount

    def count(self, model: Type[ModelT], *criteria, **filters) -> int:
        with self._translate_errors():
            return (
                self.db.query(func.count(model.id))
                .filter(*criteria)
                .filter_by(**filters)
                .scalar()
            )

    def flush(self) -> None:
        with self._translate_errors():
            self.db.flush()

    def commit(self) -> None:
        with self._translate_errors():
            self.db.commit()

    @contextmanager
    def _translate_errors(self) -> Iterator[None]:
        try:
            yield
        except StaleDataError as e:
            self.db.rollback()
            logger.info("Concurrent modification detected: %s", e)
            raise Conflict("The record was modified concurrently, please retry") from e
        except IntegrityError as e:
            self.db.rollback()
            raise Conflict(integrity_message(e)) from e
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error("Store failure: %s", e)
            raise InternalError("Data store failure") from e


def integrity_message(error: IntegrityError) -> str:
    """Describe a constraint violation without leaking driver text"""
    # SQLSTATE on Postgres, message text on SQLite
    code = getattr(error.orig, "pgcode", None)
    text = str(error.orig).lower()
    if code == "23503" or "foreign key" in text:
        return "The change would break a link between records"
    if code == "23505" or "unique" in text:
        return "A record with the same unique value already exists"
    return "The change violates a data integrity constraint"
