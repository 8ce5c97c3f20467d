from typing import Any

from fastapi import APIRouter, Body, HTTPException, Request, status
import logging
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from task_api.errors import ClientInputError
from task_api.schemas import ErrorResponse, TaskResponse
from task_api.validation import (
    validate_pagination_query,
    validate_task_create,
    validate_task_update,
)
from task_api.services.tasks_service import (
    create_task_service,
    delete_task_service,
    get_task_service,
    list_tasks_service,
    update_task_service,
)
from task_api.repository import SessionLocal

logger = logging.getLogger(__name__)

router = APIRouter()

_ERRORS = {
    400: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    409: {"model": ErrorResponse},
}


def _validated(result):
    if not result.ok:
        raise ClientInputError(result.errors)
    return result.value


@router.get("/db-health")
def db_health():
    """Database health check endpoint."""
    try:
        with SessionLocal() as session:
            session.execute(text("SELECT 1"))
        logger.debug("Database health check passed")
        return {"db": "ok"}
    except SQLAlchemyError as e:
        logger.error(f"Database health check failed: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Database connection failed"
        )


@router.post("/tasks", response_model=TaskResponse, status_code=201, responses=_ERRORS)
def create_task_api(payload: Any = Body(...)):
    """API endpoint to create a new task."""
    task = _validated(validate_task_create(payload))
    logger.info(f"POST /tasks - Creating task: {task.title!r}")
    return create_task_service(task)


@router.get("/tasks", response_model=list[TaskResponse], responses=_ERRORS)
def list_tasks_api(request: Request):
    """API endpoint to list tasks with pagination, filtering and sorting."""
    query = _validated(validate_pagination_query(dict(request.query_params)))
    logger.debug(f"GET /tasks - {query}")
    return list_tasks_service(query)


@router.get("/tasks/{task_id}", response_model=TaskResponse, responses=_ERRORS)
def get_task_api(task_id: str):
    """API endpoint to get a task by ID."""
    logger.debug(f"GET /tasks/{task_id}")
    return get_task_service(task_id)


@router.patch("/tasks/{task_id}", response_model=TaskResponse, responses=_ERRORS)
def update_task_api(task_id: str, payload: Any = Body(...)):
    """API endpoint to partially update a task."""
    changes = _validated(validate_task_update(payload))
    logger.info(f"PATCH /tasks/{task_id}")
    return update_task_service(task_id, changes)


@router.delete("/tasks/{task_id}", response_model=TaskResponse, responses=_ERRORS)
def delete_task_api(task_id: str):
    """API endpoint to delete a task."""
    logger.info(f"DELETE /tasks/{task_id}")
    return delete_task_service(task_id)
