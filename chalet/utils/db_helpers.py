"""
Database Helper Utilities for Concurrency Control

Provides:
- Database dialect detection
- Row locking for the rooms involved in a booking write
- Translation of SQLAlchemy failures into StorageError
"""

import logging
from typing import Iterable, List, Optional, Type, TypeVar

from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session

from ..exceptions import StorageError

logger = logging.getLogger(__name__)

T = TypeVar('T')


def dialect_name(db: Session) -> Optional[str]:
    bind = db.get_bind()
    if bind is None:
        return None
    return bind.dialect.name


def is_postgres(db: Session) -> bool:
    """Check if the database is PostgreSQL"""
    return dialect_name(db) == 'postgresql'


def acquire_row_lock(
    db: Session,
    model: Type[T],
    filter_condition,
    nowait: bool = False,
) -> Optional[T]:
    """
    Acquire a row-level lock on a database record.

    On PostgreSQL this is SELECT ... FOR UPDATE. SQLite has no row locks;
    there the whole transaction already holds the write lock because every
    transaction starts with BEGIN IMMEDIATE (see database.build_engine).

    Raises:
        OperationalError: If nowait=True and row is locked by another transaction
    """
    query = db.query(model).filter(filter_condition)

    if is_postgres(db):
        query = query.with_for_update(nowait=nowait)

    return query.first()


def lock_rows_in_order(db: Session, model: Type[T], key_column, keys: Iterable) -> List[T]:
    """
    Lock every row whose key is in ``keys``, always in ascending key order.

    A fixed lock order means two writers touching overlapping room sets
    queue behind each other instead of deadlocking.
    """
    ordered = sorted(set(keys))
    if not ordered:
        return []

    query = db.query(model).filter(key_column.in_(ordered)).order_by(key_column)
    if is_postgres(db):
        query = query.with_for_update()

    try:
        return query.all()
    except OperationalError as e:
        logger.warning(f"Lock contention on {model.__name__}: {e}")
        raise StorageError(f"Could not lock {model.__name__} rows", original=e) from e


def wrap_storage_error(e: SQLAlchemyError, action: str) -> StorageError:
    """Build the StorageError raised after a failed (and rolled back) write"""
    logger.error(f"Storage failure while {action}: {e}")
    return StorageError(f"Storage failure while {action}", original=e)
