from sqlalchemy import (
    create_engine,
    select,
    update,
    insert,
    delete,
)
from sqlalchemy.orm import sessionmaker
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from datetime import datetime, timezone
import logging
import re
import secrets

from task_api.config import DATABASE_URL
from task_api.errors import DuplicateKeyError, SchemaValidationError
from task_api.models import metadata, tasks, TASK_COLUMNS, TASK_STATUSES
from task_api.query_builder import TaskQuery, ASCENDING
from task_api.schemas import DUE_DATE_FUTURE_MESSAGE, as_utc

logger = logging.getLogger(__name__)

_TASK_ID = re.compile(r"[0-9a-fA-F]{24}")

# largest OFFSET/LIMIT the drivers accept (signed 64-bit)
MAX_SQL_INTEGER = 2**63 - 1

# SQLite-specific settings
_connect_args = {"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}

engine = create_engine(
    DATABASE_URL,
    connect_args=_connect_args,
    future=True,
)

SessionLocal = sessionmaker(
    bind=engine,
    autocommit=False,
    autoflush=False,
    future=True,
)


def init_db():
    """Create the tasks table if it does not exist."""
    metadata.create_all(bind=engine)


def new_task_id() -> str:
    return secrets.token_hex(12)


def is_valid_task_id(task_id) -> bool:
    return isinstance(task_id, str) and _TASK_ID.fullmatch(task_id) is not None


def _utcnow() -> datetime:
    # stored naive, always UTC
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _to_storage(value: datetime) -> datetime:
    return as_utc(value).replace(tzinfo=None)


def _check_task_values(values: dict, partial: bool = False):
    """
    Document-level rules enforced on every write.

    values uses wire field names. With partial=True only the fields present
    are checked, as for a patch.
    """
    errors = {}

    for name in ("title", "description"):
        if partial and name not in values:
            continue
        value = values.get(name)
        if not isinstance(value, str) or not value:
            errors[name] = f"{name} is required."

    if not partial or "status" in values:
        if values.get("status") not in TASK_STATUSES:
            errors["status"] = "status must be either Pending, InProgress, or Completed"

    if not partial or "dueDate" in values:
        due_date = values.get("dueDate")
        if not isinstance(due_date, datetime):
            errors["dueDate"] = "dueDate is required."
        elif as_utc(due_date) <= datetime.now(timezone.utc):
            errors["dueDate"] = DUE_DATE_FUTURE_MESSAGE

    if errors:
        raise SchemaValidationError(errors)


def _to_row_values(values: dict) -> dict:
    row = {}
    for name, value in values.items():
        column = TASK_COLUMNS[name]
        if isinstance(value, datetime):
            value = _to_storage(value)
        row[column.name] = value
    return row


def _raise_write_error(session, task_id: str, exc: IntegrityError, values: dict):
    session.rollback()
    duplicate = DuplicateKeyError.from_integrity_error(exc, values)
    if duplicate is None:
        logger.error(f"Integrity error writing task {task_id}: {exc}", exc_info=True)
        raise exc
    logger.warning(f"Duplicate {duplicate.field} writing task {task_id}: {duplicate.value!r}")
    raise duplicate from exc


def insert_task(session, values: dict):
    """
    Insert a new task and return the stored row.

    values uses wire field names (title, description, status, dueDate).
    """
    values = {"status": TASK_STATUSES[0], **values}
    _check_task_values(values)

    task_id = new_task_id()
    row = _to_row_values(values)
    row["id"] = task_id
    row["created_at"] = _utcnow()

    try:
        session.execute(insert(tasks).values(**row))
        session.commit()
        logger.debug(f"Task {task_id} created successfully")
    except IntegrityError as e:
        _raise_write_error(session, task_id, e, values)
    except SQLAlchemyError as e:
        session.rollback()
        logger.error(f"Database error creating task {task_id}: {e}", exc_info=True)
        raise

    return get_task_by_id(session, task_id)


def get_task_by_id(session, task_id: str):
    stmt = select(tasks).where(tasks.c.id == task_id.lower())
    result = session.execute(stmt).first()
    return result


def find_tasks(session, query: TaskQuery):
    """Run a TaskQuery: filter, sort (id breaks ties), then skip/take."""
    if query.skip > MAX_SQL_INTEGER:
        logger.debug(f"Skip {query.skip} is past any stored data")
        return []

    try:
        stmt = select(tasks)
        for name, value in query.filter.items():
            stmt = stmt.where(TASK_COLUMNS[name] == value)

        sort_column = TASK_COLUMNS[query.sort_field]
        if query.sort_direction == ASCENDING:
            stmt = stmt.order_by(sort_column.asc(), tasks.c.id.asc())
        else:
            stmt = stmt.order_by(sort_column.desc(), tasks.c.id.desc())

        stmt = stmt.offset(query.skip).limit(min(query.take, MAX_SQL_INTEGER))
        return session.execute(stmt).all()
    except SQLAlchemyError as e:
        logger.error(f"Database error finding tasks: {e}", exc_info=True)
        raise


def update_task(session, task_id: str, values: dict):
    """
    Apply a partial update. Returns the updated row, or None if the task
    does not exist.
    """
    task_id = task_id.lower()
    if not values:
        return get_task_by_id(session, task_id)

    _check_task_values(values, partial=True)

    try:
        result = session.execute(
            update(tasks)
            .where(tasks.c.id == task_id)
            .values(**_to_row_values(values))
        )
        if result.rowcount == 0:
            session.rollback()
            logger.debug(f"Task {task_id} not found for update")
            return None
        session.commit()
        logger.debug(f"Task {task_id} updated: {sorted(values)}")
    except IntegrityError as e:
        _raise_write_error(session, task_id, e, values)
    except SQLAlchemyError as e:
        session.rollback()
        logger.error(f"Database error updating task {task_id}: {e}", exc_info=True)
        raise

    return get_task_by_id(session, task_id)


def delete_task(session, task_id: str):
    """
    Remove a task and return the removed row, or None if it was not there
    (including when a concurrent delete got to it first).
    """
    task_id = task_id.lower()
    try:
        row = get_task_by_id(session, task_id)
        if not row:
            return None

        result = session.execute(delete(tasks).where(tasks.c.id == task_id))
        if result.rowcount == 0:
            session.rollback()
            return None

        session.commit()
        logger.debug(f"Task {task_id} deleted")
        return row
    except SQLAlchemyError as e:
        session.rollback()
        logger.error(f"Database error deleting task {task_id}: {e}", exc_info=True)
        raise
