"""
Error taxonomy and the persistence error translator.

Every failure that escapes a request ends up in translate_error(), which
turns it into exactly one client-facing body of the shape
{statusCode, error?, message}. Internal details never reach the body.
"""

import logging
import re
from dataclasses import dataclass
from typing import Any, Mapping

from fastapi import status
from sqlalchemy.exc import IntegrityError
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)

TASK_NOT_FOUND_MESSAGE = "Task does not exist"
INTERNAL_ERROR_MESSAGE = "Internal server error"

FALLBACK_FIELD = "field"

# SQLite: "UNIQUE constraint failed: tasks.title"
_SQLITE_UNIQUE = re.compile(r"UNIQUE constraint failed: (?:\w+\.)?(\w+)")
# PostgreSQL: "Key (title)=(Buy milk) already exists."
_POSTGRES_UNIQUE = re.compile(r"Key \((\w+)\)=\((.*)\) already exists", re.DOTALL)
_POSTGRES_DUPLICATE = "duplicate key value violates unique constraint"

# column name -> wire name
_WIRE_FIELDS = {"due_date": "dueDate", "created_at": "createdAt"}


class TaskApiError(Exception):
    """Base class for every error the API knows how to describe."""


class DuplicateKeyError(TaskApiError):
    """A write would duplicate a value constrained to be unique."""

    def __init__(self, field: str, value: Any):
        self.field = field
        self.value = value
        super().__init__(f"Duplicate {field}: {value!r}")

    @classmethod
    def from_integrity_error(
        cls,
        exc: IntegrityError,
        values: Mapping[str, Any] | None = None,
    ) -> "DuplicateKeyError | None":
        """
        Build a DuplicateKeyError from a driver IntegrityError.

        Returns None when the integrity error is not a uniqueness violation.
        The attempted value comes from the driver message when it reports
        one, otherwise from the values that were being written.
        """
        message = str(exc.orig) if exc.orig is not None else str(exc)

        match = _POSTGRES_UNIQUE.search(message)
        if match:
            field = _WIRE_FIELDS.get(match.group(1), match.group(1))
            return cls(field, match.group(2))

        match = _SQLITE_UNIQUE.search(message)
        if match:
            column = match.group(1)
            field = _WIRE_FIELDS.get(column, column)
            if values is not None and field in values:
                return cls(field, values[field])
            if values is not None and column in values:
                return cls(field, values[column])
            logger.warning(f"Could not find attempted value for duplicate {field}")
            return cls(field, "")

        if "UNIQUE" in message or _POSTGRES_DUPLICATE in message:
            logger.warning(f"Could not extract field from duplicate key error: {message}")
            return cls(FALLBACK_FIELD, "")

        return None


class SchemaValidationError(TaskApiError):
    """The store refused a document; carries field -> message."""

    def __init__(self, errors: Mapping[str, str]):
        self.errors = dict(errors)
        super().__init__("; ".join(self.errors.values()))


class AppError(TaskApiError):
    """
    An already-structured application error.

    payload is returned to the client verbatim, or wrapped as
    {statusCode, message} when it is a bare string.
    """

    def __init__(self, status_code: int, payload: str | dict):
        self.status_code = status_code
        self.payload = payload
        super().__init__(payload if isinstance(payload, str) else repr(payload))


class ClientInputError(AppError):
    """Malformed or invalid request, rejected before the store is touched."""

    def __init__(self, messages: list[str]):
        self.messages = list(messages)
        super().__init__(
            status.HTTP_400_BAD_REQUEST,
            {
                "statusCode": status.HTTP_400_BAD_REQUEST,
                "error": "Bad Request",
                "message": self.messages,
            },
        )


class NotFoundError(AppError):
    def __init__(self, message: str = TASK_NOT_FOUND_MESSAGE):
        super().__init__(status.HTTP_404_NOT_FOUND, message)


@dataclass(frozen=True)
class TranslatedError:
    status_code: int
    body: dict


def _iter_chain(exc: BaseException):
    seen = set()
    while exc is not None and id(exc) not in seen:
        seen.add(id(exc))
        yield exc
        exc = exc.__cause__


def _find_duplicate(exc: BaseException) -> DuplicateKeyError | None:
    for link in _iter_chain(exc):
        if isinstance(link, DuplicateKeyError):
            return link
        if isinstance(link, IntegrityError):
            duplicate = DuplicateKeyError.from_integrity_error(link)
            if duplicate is not None:
                return duplicate
    return None


def _wrap_payload(status_code: int, payload: Any) -> dict:
    if isinstance(payload, dict):
        return payload
    return {"statusCode": status_code, "message": payload}


def _internal_error() -> TranslatedError:
    return TranslatedError(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        body={
            "statusCode": status.HTTP_500_INTERNAL_SERVER_ERROR,
            "message": INTERNAL_ERROR_MESSAGE,
        },
    )


def _translate(exc: BaseException) -> TranslatedError:
    duplicate = _find_duplicate(exc)
    if duplicate is not None:
        return TranslatedError(
            status_code=status.HTTP_409_CONFLICT,
            body={
                "statusCode": status.HTTP_409_CONFLICT,
                "error": "Conflict",
                "message": (
                    f"Duplicate {duplicate.field} error: "
                    f"'{duplicate.value}' already exists"
                ),
            },
        )

    if isinstance(exc, SchemaValidationError):
        return TranslatedError(
            status_code=status.HTTP_400_BAD_REQUEST,
            body={
                "statusCode": status.HTTP_400_BAD_REQUEST,
                "error": "Bad Request",
                "message": [str(message) for message in exc.errors.values()],
            },
        )

    if isinstance(exc, AppError):
        return TranslatedError(
            status_code=exc.status_code,
            body=_wrap_payload(exc.status_code, exc.payload),
        )

    if isinstance(exc, StarletteHTTPException):
        return TranslatedError(
            status_code=exc.status_code,
            body=_wrap_payload(exc.status_code, exc.detail),
        )

    logger.error(f"Unhandled {type(exc).__name__}: {exc}", exc_info=exc)
    return _internal_error()


def translate_error(exc: BaseException) -> TranslatedError:
    """Map any failure to a single structured error response. Never raises."""
    try:
        return _translate(exc)
    except Exception as e:
        logger.critical(f"Error translator failed on {type(exc).__name__}: {e}", exc_info=True)
        return _internal_error()
