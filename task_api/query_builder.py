from dataclasses import dataclass, field
from typing import Optional

from task_api.schemas import PaginationQuery

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10
DEFAULT_SORT_BY = "createdAt"
DEFAULT_SORT_ORDER = "desc"

ASCENDING = 1
DESCENDING = -1


@dataclass(frozen=True)
class TaskQuery:
    filter: dict = field(default_factory=dict)
    sort_field: str = DEFAULT_SORT_BY
    sort_direction: int = DESCENDING
    skip: int = 0
    take: int = DEFAULT_LIMIT


def _positive_or(value: Optional[int], default: int) -> int:
    if value is None or value <= 0:
        return default
    return value


def build_task_query(query: PaginationQuery) -> TaskQuery:
    """
    Turn a validated pagination request into a concrete store query.

    Pure function. Missing or non-positive page/limit fall back to 1/10,
    sortBy to createdAt and sortOrder to desc. Pages past the end of the
    data are not an error, they just match nothing.
    """
    page = _positive_or(query.page, DEFAULT_PAGE)
    limit = _positive_or(query.limit, DEFAULT_LIMIT)
    sort_by = query.sort_by or DEFAULT_SORT_BY
    sort_order = query.sort_order or DEFAULT_SORT_ORDER

    task_filter = {}
    if query.status is not None:
        task_filter["status"] = query.status.value

    return TaskQuery(
        filter=task_filter,
        sort_field=sort_by,
        sort_direction=ASCENDING if sort_order == "asc" else DESCENDING,
        skip=(page - 1) * limit,
        take=limit,
    )
