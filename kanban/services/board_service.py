"""
Project / column / task operations scoped to the calling user.

Every operation follows the same shape: the input is already validated, the
ownership predicate goes into the statement's WHERE clause, and an empty
result turns into NotFound. Creating a child under a parent the caller does
not own is the one case reported as Forbidden.
"""
from __future__ import annotations

import logging
from typing import Iterable, List, Optional

from sqlalchemy import case, delete, select, update

from kanban.database import Database
from kanban.errors import Forbidden, NotFound
from kanban.models import BoardColumn, Project, Task, utcnow
from kanban.services.ordering import OrderingService, board_order, next_order
from kanban.services.ownership import (
    COLUMN,
    PROJECT,
    TASK,
    model_for,
    owned_row_query,
    ownership_predicate,
    require_owned,
)
from kanban.utils.validators import ColumnInput, MoveInput, OrderUpdate, ProjectInput, TaskInput

logger = logging.getLogger(__name__)

# high < medium < low < none < unset
PRIORITY_RANK = case(
    (Task.priority == "high", 1),
    (Task.priority == "medium", 2),
    (Task.priority == "low", 3),
    (Task.priority == "none", 4),
    else_=5,
)


class BoardService:
    """CRUD engine for the project tree of one user at a time."""

    def __init__(self, db: Database, ordering: Optional[OrderingService] = None):
        self.db = db
        self.ordering = ordering or OrderingService(db)

    # Shared helpers -------------------------------------------------

    def _get_owned(self, kind: str, user_id: str, entity_id: str, message: str):
        with self.db.session() as session:
            row = session.execute(owned_row_query(kind, user_id, entity_id)).scalar_one_or_none()
        if row is None:
            raise NotFound(message)
        return row

    def _update_owned(self, kind: str, user_id: str, entity_id: str, values: dict, message: str):
        model = model_for(kind)
        with self.db.session() as session:
            result = session.execute(
                update(model)
                .where(model.id == entity_id, ownership_predicate(kind, user_id))
                .values(values)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                raise NotFound(message)
            return session.get(model, entity_id)

    def _delete_owned(self, kind: str, user_id: str, entity_id: str, message: str) -> None:
        model = model_for(kind)
        with self.db.session() as session:
            result = session.execute(
                delete(model)
                .where(model.id == entity_id, ownership_predicate(kind, user_id))
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                raise NotFound(message)
        logger.info(f"Deleted {kind} {entity_id} for user {user_id}")

    # Projects -------------------------------------------------------

    def list_projects(self, user_id: str) -> List[Project]:
        with self.db.session() as session:
            return list(session.execute(
                select(Project).where(Project.user_id == user_id).order_by(*board_order(PROJECT))
            ).scalars())

    def get_project(self, user_id: str, project_id: str) -> Project:
        return self._get_owned(PROJECT, user_id, project_id, "Project not found")

    def create_project(self, user_id: str, data: ProjectInput) -> Project:
        with self.db.session() as session:
            project = Project(
                title=data.title,
                description=data.description,
                user_id=user_id,
                order=next_order(session, PROJECT, user_id),
            )
            session.add(project)
            session.flush()
        logger.info(f"Created project {project.id} for user {user_id}")
        return project

    def update_project(self, user_id: str, project_id: str, data: ProjectInput) -> Project:
        values = {Project.title: data.title, Project.updated_at: utcnow()}
        if data.has_description:
            values[Project.description] = data.description
        return self._update_owned(PROJECT, user_id, project_id, values, "Project not found")

    def delete_project(self, user_id: str, project_id: str) -> None:
        # Columns and tasks go with it through ON DELETE CASCADE
        self._delete_owned(PROJECT, user_id, project_id, "Project not found")

    # Columns --------------------------------------------------------

    def list_columns(self, user_id: str, project_id: Optional[str] = None) -> List[BoardColumn]:
        query = select(BoardColumn).where(ownership_predicate(COLUMN, user_id))
        if project_id is not None:
            query = query.where(BoardColumn.project_id == project_id)
        with self.db.session() as session:
            return list(session.execute(
                query.order_by(BoardColumn.project_id, *board_order(COLUMN))
            ).scalars())

    def get_column(self, user_id: str, column_id: str) -> BoardColumn:
        return self._get_owned(COLUMN, user_id, column_id, "Column not found")

    def create_column(self, user_id: str, data: ColumnInput) -> BoardColumn:
        with self.db.session() as session:
            require_owned(session, PROJECT, user_id, data.project_id, Forbidden("Unauthorized"))
            column = BoardColumn(
                title=data.title,
                project_id=data.project_id,
                order=next_order(session, COLUMN, data.project_id),
            )
            session.add(column)
            session.flush()
        logger.info(f"Created column {column.id} in project {data.project_id} for user {user_id}")
        return column

    def update_column(self, user_id: str, column_id: str, title: str) -> BoardColumn:
        values = {BoardColumn.title: title, BoardColumn.updated_at: utcnow()}
        return self._update_owned(COLUMN, user_id, column_id, values, "Column not found")

    def delete_column(self, user_id: str, column_id: str) -> None:
        self._delete_owned(COLUMN, user_id, column_id, "Column not found")

    # Tasks ----------------------------------------------------------

    def list_tasks(self, user_id: str) -> List[Task]:
        """
        Flat listing across all of the user's columns.

        Sorted by priority rank, then due date (undated last), then newest
        first. This is independent of the drag-and-drop ``order`` field.
        """
        with self.db.session() as session:
            return list(session.execute(
                select(Task)
                .where(ownership_predicate(TASK, user_id))
                .order_by(
                    PRIORITY_RANK,
                    Task.due_date.is_(None),
                    Task.due_date.asc(),
                    Task.created_at.desc(),
                )
            ).scalars())

    def list_column_tasks(self, user_id: str, column_id: str) -> List[Task]:
        """Tasks of one column in board order."""
        with self.db.session() as session:
            column = session.execute(owned_row_query(COLUMN, user_id, column_id)).scalar_one_or_none()
            if column is None:
                raise NotFound("Column not found")
            return list(session.execute(
                select(Task).where(Task.column_id == column_id).order_by(*board_order(TASK))
            ).scalars())

    def get_task(self, user_id: str, task_id: str) -> Task:
        return self._get_owned(TASK, user_id, task_id, "Task not found")

    def create_task(self, user_id: str, data: TaskInput) -> Task:
        with self.db.session() as session:
            require_owned(
                session, COLUMN, user_id, data.column_id,
                Forbidden("Unauthorized - Invalid column access"),
            )
            task = Task(
                title=data.title,
                description=data.description,
                priority=data.priority,
                due_date=data.due_date,
                column_id=data.column_id,
                order=next_order(session, TASK, data.column_id),
            )
            session.add(task)
            session.flush()
        logger.info(f"Created task {task.id} in column {data.column_id} for user {user_id}")
        return task

    def update_task(self, user_id: str, task_id: str, data: TaskInput) -> Task:
        values = {
            Task.title: data.title,
            Task.description: data.description,
            Task.priority: data.priority,
            Task.due_date: data.due_date,
            Task.updated_at: utcnow(),
        }
        return self._update_owned(TASK, user_id, task_id, values, "Task not found")

    def delete_task(self, user_id: str, task_id: str) -> None:
        self._delete_owned(TASK, user_id, task_id, "Task not found")

    def move_task(self, user_id: str, task_id: str, data: MoveInput) -> Task:
        return self.ordering.move_task(user_id, task_id, data.column_id, data.order)

    # Ordering -------------------------------------------------------

    def set_order(self, user_id: str, kind: str, entity_id: str, order: int) -> None:
        self.ordering.set_order(user_id, kind, entity_id, order)

    def reorder(self, user_id: str, kind: str, updates: Iterable[OrderUpdate]) -> int:
        return self.ordering.bulk_update_orders(user_id, kind, updates)
