from datetime import datetime, timezone
from typing import List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, PositiveInt, field_validator

from task_api.models import TaskStatus

DUE_DATE_FUTURE_MESSAGE = "dueDate has to be a future date."
DUE_DATE_INVALID_MESSAGE = "dueDate is invalid"


def as_utc(value: datetime) -> datetime:
    """Interpret naive timestamps as UTC and normalise aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    try:
        return value.astimezone(timezone.utc)
    except OverflowError:
        # offset pushes the instant outside the datetime range
        raise ValueError(DUE_DATE_INVALID_MESSAGE)


def _check_future(value: datetime) -> datetime:
    value = as_utc(value)
    if value <= datetime.now(timezone.utc):
        raise ValueError(DUE_DATE_FUTURE_MESSAGE)
    return value


class TaskCreateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    title: str = Field(..., min_length=1, examples=["Buy milk"])
    description: str = Field(..., min_length=1, examples=["Two litres, semi-skimmed"])
    status: TaskStatus = TaskStatus.PENDING
    due_date: datetime = Field(..., alias="dueDate")

    @field_validator("due_date")
    @classmethod
    def due_date_in_future(cls, value: datetime) -> datetime:
        return _check_future(value)


class TaskUpdateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    title: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = Field(None, min_length=1)
    status: Optional[TaskStatus] = None
    due_date: Optional[datetime] = Field(None, alias="dueDate")

    @field_validator("due_date")
    @classmethod
    def due_date_in_future(cls, value: Optional[datetime]) -> Optional[datetime]:
        if value is None:
            return value
        return _check_future(value)


class PaginationQuery(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    page: Optional[PositiveInt] = None
    limit: Optional[PositiveInt] = None
    sort_by: Optional[Literal["createdAt", "dueDate"]] = Field(None, alias="sortBy")
    sort_order: Optional[Literal["asc", "desc"]] = Field(None, alias="sortOrder")
    status: Optional[TaskStatus] = None


class TaskResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    title: str
    description: str
    status: TaskStatus
    due_date: datetime = Field(..., alias="dueDate")
    created_at: datetime = Field(..., alias="createdAt")


class ErrorResponse(BaseModel):
    statusCode: int
    error: Optional[str] = None
    message: Union[str, List[str]]
