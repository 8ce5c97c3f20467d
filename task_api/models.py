from enum import Enum

from sqlalchemy import (
    Table,
    Column,
    String,
    DateTime,
    MetaData,
    UniqueConstraint,
)

metadata = MetaData()

class TaskStatus(str, Enum):
    PENDING = "Pending"
    IN_PROGRESS = "InProgress"
    COMPLETED = "Completed"


TASK_STATUSES = tuple(s.value for s in TaskStatus)


tasks = Table(
    "tasks",
    metadata,
    Column("id", String(24), primary_key=True),
    Column("title", String, nullable=False),
    Column("description", String, nullable=False),
    Column("status", String, nullable=False, default=TaskStatus.PENDING.value),
    Column("due_date", DateTime, nullable=False),
    Column("created_at", DateTime, nullable=False),
    UniqueConstraint("title", name="uq_tasks_title"),
)

# wire name -> column
TASK_COLUMNS = {
    "id": tasks.c.id,
    "title": tasks.c.title,
    "description": tasks.c.description,
    "status": tasks.c.status,
    "dueDate": tasks.c.due_date,
    "createdAt": tasks.c.created_at,
}
