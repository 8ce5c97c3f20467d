import logging
from datetime import timezone

from task_api.repository import SessionLocal
from task_api.schemas import (
    PaginationQuery,
    TaskCreateRequest,
    TaskResponse,
    TaskUpdateRequest,
)
from task_api.errors import NotFoundError
from task_api.query_builder import build_task_query
from task_api.repository import (
    insert_task,
    find_tasks,
    get_task_by_id,
    update_task,
    delete_task,
    is_valid_task_id,
)

logger = logging.getLogger(__name__)


def _to_response(row) -> TaskResponse:
    task = row._mapping
    return TaskResponse(
        id=task["id"],
        title=task["title"],
        description=task["description"],
        status=task["status"],
        due_date=task["due_date"].replace(tzinfo=timezone.utc),
        created_at=task["created_at"].replace(tzinfo=timezone.utc),
    )


def _wire_values(payload, exclude_unset: bool = False) -> dict:
    values = payload.model_dump(by_alias=True, exclude_unset=exclude_unset)
    if values.get("status") is not None:
        values["status"] = values["status"].value
    return values


def _require_valid_id(task_id: str):
    if not is_valid_task_id(task_id):
        logger.debug(f"Rejected malformed task id: {task_id!r}")
        raise NotFoundError()


def create_task_service(payload: TaskCreateRequest) -> TaskResponse:
    """Service function to create a new task."""
    logger.info(f"Creating task: {payload.title!r} (status: {payload.status.value})")

    with SessionLocal() as session:
        row = insert_task(session, _wire_values(payload))
        logger.info(f"Task {row.id} created successfully")
        return _to_response(row)


def list_tasks_service(query: PaginationQuery) -> list[TaskResponse]:
    """Service function to list one page of tasks."""
    task_query = build_task_query(query)
    logger.debug(f"Listing tasks: {task_query}")

    with SessionLocal() as session:
        rows = find_tasks(session, task_query)
        logger.debug(f"Found {len(rows)} task(s)")
        return [_to_response(row) for row in rows]


def get_task_service(task_id: str) -> TaskResponse:
    """Service function to get a task by ID."""
    _require_valid_id(task_id)
    logger.debug(f"Fetching task: {task_id}")

    with SessionLocal() as session:
        row = get_task_by_id(session, task_id)
        if not row:
            logger.debug(f"Task {task_id} not found")
            raise NotFoundError()
        return _to_response(row)


def update_task_service(task_id: str, payload: TaskUpdateRequest) -> TaskResponse:
    """Service function to apply a partial update to a task."""
    _require_valid_id(task_id)
    values = _wire_values(payload, exclude_unset=True)
    logger.info(f"Updating task {task_id}: fields {sorted(values)}")

    with SessionLocal() as session:
        row = update_task(session, task_id, values)
        if not row:
            logger.debug(f"Task {task_id} not found")
            raise NotFoundError()
        return _to_response(row)


def delete_task_service(task_id: str) -> TaskResponse:
    """Service function to delete a task, returning what was removed."""
    _require_valid_id(task_id)
    logger.info(f"Deleting task {task_id}")

    with SessionLocal() as session:
        row = delete_task(session, task_id)
        if not row:
            logger.debug(f"Task {task_id} not found")
            raise NotFoundError()
        return _to_response(row)
