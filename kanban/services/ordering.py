"""
Ordered collection maintenance for projects, columns and tasks.

``order`` is an integer compared among siblings (projects of a user, columns
of a project, tasks of a column). Inserts append; explicit moves write the
requested value as-is. Siblings are never renumbered, so gaps and duplicates
are allowed and ties fall back to ``created_at``.
"""
from __future__ import annotations

import logging
from typing import Iterable, List, Optional

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from kanban.database import Database
from kanban.errors import NotFound
from kanban.models import BoardColumn, Project, Task, utcnow
from kanban.services.ownership import COLUMN, PROJECT, TASK, model_for, ownership_predicate
from kanban.utils.validators import OrderUpdate

logger = logging.getLogger(__name__)

# Column holding the parent id of each sibling scope
SCOPE_COLUMNS = {
    PROJECT: Project.user_id,
    COLUMN: BoardColumn.project_id,
    TASK: Task.column_id,
}

LABELS = {
    PROJECT: "Project",
    COLUMN: "Column",
    TASK: "Task",
}


def next_order(session: Session, kind: str, scope_id: str) -> int:
    """Position for a new sibling: the current sibling count."""
    scope_column = SCOPE_COLUMNS[kind]
    return session.execute(
        select(func.count()).select_from(model_for(kind)).where(scope_column == scope_id)
    ).scalar_one()


def board_order(kind: str) -> tuple:
    """ORDER BY for sibling listings."""
    model = model_for(kind)
    if kind == TASK:
        return model.order.asc(), model.created_at.desc()
    return model.order.asc(), model.created_at.asc()


def _order_statement(kind: str, user_id: str, entity_id: str, order: int):
    model = model_for(kind)
    return (
        update(model)
        .where(model.id == entity_id, ownership_predicate(kind, user_id))
        .values({model.order: order})
        .execution_options(synchronize_session=False)
    )


def apply_order(session: Session, kind: str, user_id: str, entity_id: str, order: int) -> None:
    result = session.execute(_order_statement(kind, user_id, entity_id, order))
    if result.rowcount == 0:
        raise NotFound(f"{LABELS[kind]} not found: {entity_id}")


def move_task_statement(user_id: str, task_id: str, column_id: str, order: Optional[int] = None):
    """
    Single UPDATE re-parenting a task.

    Both the task and the target column must be owned by ``user_id``; the two
    conditions sit in the same WHERE clause. Without an explicit ``order`` the
    task is appended to the target column.
    """
    if order is None:
        siblings = Task.__table__.alias("siblings")
        order = (
            select(func.count())
            .select_from(siblings)
            .where(siblings.c.column_id == column_id)
            .scalar_subquery()
        )
    target_owned = (
        select(BoardColumn.id)
        .where(BoardColumn.id == column_id, ownership_predicate(COLUMN, user_id))
        .exists()
    )
    return (
        update(Task)
        .where(Task.id == task_id, ownership_predicate(TASK, user_id), target_owned)
        .values({Task.column_id: column_id, Task.order: order, Task.updated_at: utcnow()})
        .execution_options(synchronize_session=False)
    )


class OrderingService:
    """Reorder and move operations, each in its own transaction."""

    def __init__(self, db: Database):
        self.db = db

    def set_order(self, user_id: str, kind: str, entity_id: str, order: int) -> None:
        with self.db.session() as session:
            apply_order(session, kind, user_id, entity_id, order)
        logger.debug(f"Set {kind} {entity_id} order={order} for user {user_id}")

    def bulk_update_orders(self, user_id: str, kind: str, updates: Iterable[OrderUpdate]) -> int:
        """
        Apply every ``(id, order)`` pair or none of them.

        An id that is missing or owned by someone else aborts the batch with
        NotFound and rolls back the writes already issued.
        """
        batch: List[OrderUpdate] = list(updates)
        with self.db.session() as session:
            for item in batch:
                apply_order(session, kind, user_id, item.id, item.order)
        logger.info(f"Reordered {len(batch)} {kind}(s) for user {user_id}")
        return len(batch)

    def move_task(self, user_id: str, task_id: str, column_id: str, order: Optional[int] = None) -> Task:
        with self.db.session() as session:
            result = session.execute(move_task_statement(user_id, task_id, column_id, order))
            if result.rowcount == 0:
                raise NotFound("Task not found or unauthorized access")
            task = session.get(Task, task_id)
        logger.info(f"Moved task {task_id} to column {column_id} for user {user_id}")
        return task
