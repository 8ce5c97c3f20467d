"""
Boundary validation.

Each validate_* function takes the raw wire data and returns a
ValidationResult: either the typed request object or a list of
human-readable messages. Nothing here touches the store or applies
defaults for pagination; that is the query builder's job.
"""

from dataclasses import dataclass, field
from typing import Any, Generic, List, Optional, TypeVar

from pydantic import BaseModel, ValidationError

from task_api.schemas import PaginationQuery, TaskCreateRequest, TaskUpdateRequest

T = TypeVar("T", bound=BaseModel)

NOT_AN_OBJECT_MESSAGE = "request body must be a JSON object"


@dataclass
class ValidationResult(Generic[T]):
    value: Optional[T] = None
    errors: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors


def _field_name(loc) -> str:
    return ".".join(str(part) for part in loc) if loc else "body"


def format_errors(errors: list[dict]) -> list[str]:
    """Turn pydantic error dicts into '<field> <reason>' messages."""
    messages = []
    for err in errors:
        if err.get("type") == "value_error" and "error" in err.get("ctx", {}):
            # our own validators already phrase the whole message
            messages.append(str(err["ctx"]["error"]))
            continue
        name = _field_name(err.get("loc", ()))
        reason = err.get("msg") or "Is invalid"
        if reason[1:2].islower():
            reason = reason[0].lower() + reason[1:]
        messages.append(f"{name} {reason}")
    return messages


def _validate(model: type[T], data: Any) -> ValidationResult[T]:
    if not isinstance(data, dict):
        return ValidationResult(errors=[NOT_AN_OBJECT_MESSAGE])
    try:
        return ValidationResult(value=model.model_validate(data))
    except ValidationError as e:
        return ValidationResult(errors=format_errors(e.errors()))


def validate_task_create(data: Any) -> ValidationResult[TaskCreateRequest]:
    return _validate(TaskCreateRequest, data)


def validate_task_update(data: Any) -> ValidationResult[TaskUpdateRequest]:
    return _validate(TaskUpdateRequest, data)


def validate_pagination_query(params: Any) -> ValidationResult[PaginationQuery]:
    """Validate query-string parameters; values arrive as strings."""
    return _validate(PaginationQuery, params)
