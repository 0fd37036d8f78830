"""
Whole-tree export and import.

Import replaces the caller's projects, columns and tasks inside a single
transaction. Rows get fresh ids; the ids in the payload are only used to
re-attach columns to projects and tasks to columns.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Dict, List, Optional

from sqlalchemy import delete, select

from kanban.database import Database
from kanban.errors import ValidationError
from kanban.models import BoardColumn, Project, Task, User, new_id
from kanban.services.ordering import board_order
from kanban.services.ownership import COLUMN, PROJECT, TASK, owned_column_ids, owned_project_ids
from kanban.utils.validators import (
    MAX_ORDER,
    normalize_description,
    normalize_priority,
    normalize_title,
    parse_due_date,
)

logger = logging.getLogger(__name__)


@dataclass
class _TaskRecord:
    title: str
    description: str
    priority: str
    due_date: Optional[date]
    order: Optional[int]


@dataclass
class _ColumnRecord:
    source_id: Optional[str]
    title: str
    order: Optional[int]
    tasks: List[_TaskRecord] = field(default_factory=list)


@dataclass
class _ProjectRecord:
    source_id: Optional[str]
    title: str
    description: str
    order: Optional[int]
    columns: List[_ColumnRecord] = field(default_factory=list)


def _source_id(value) -> Optional[str]:
    if value is None or isinstance(value, bool):
        return None
    return str(value)


def _source_order(value) -> Optional[int]:
    # Unusable values fall back to the position in the payload array
    if isinstance(value, bool) or not isinstance(value, int):
        return None
    if value < 0 or value > MAX_ORDER:
        return None
    return value


def _array(payload: dict, key: str, required: bool = False) -> List[dict]:
    items = payload.get(key)
    if items is None and not required:
        return []
    if not isinstance(items, list):
        raise ValidationError(f"Invalid data: {key} array is required")
    for item in items:
        if not isinstance(item, dict):
            raise ValidationError(f"Invalid data: every entry in {key} must be an object")
    return items


def parse_import_payload(payload) -> List[_ProjectRecord]:
    """
    Validate the whole payload up front and build the tree to insert.

    Columns whose ``project_id`` matches no project ``id`` (and tasks likewise
    for ``column_id``) are not part of the tree and are skipped.
    """
    if not isinstance(payload, dict):
        raise ValidationError("Invalid data: projects array is required")
    raw_projects = _array(payload, "projects", required=True)
    raw_columns = _array(payload, "columns")
    raw_tasks = _array(payload, "tasks")

    tasks_by_column: Dict[str, List[_TaskRecord]] = {}
    for raw in raw_tasks:
        record = _TaskRecord(
            title=normalize_title(raw.get("title"), "Task title"),
            description=normalize_description(raw.get("description")),
            priority=normalize_priority(raw.get("priority")),
            due_date=parse_due_date(raw.get("due_date")),
            order=_source_order(raw.get("order")),
        )
        column_ref = _source_id(raw.get("column_id"))
        if column_ref is not None:
            tasks_by_column.setdefault(column_ref, []).append(record)

    columns_by_project: Dict[str, List[_ColumnRecord]] = {}
    for raw in raw_columns:
        column_id = _source_id(raw.get("id"))
        record = _ColumnRecord(
            source_id=column_id,
            title=normalize_title(raw.get("title"), "Column title"),
            order=_source_order(raw.get("order")),
            tasks=list(tasks_by_column.get(column_id, [])) if column_id is not None else [],
        )
        project_ref = _source_id(raw.get("project_id"))
        if project_ref is not None:
            columns_by_project.setdefault(project_ref, []).append(record)

    projects = []
    for raw in raw_projects:
        project_id = _source_id(raw.get("id"))
        description = raw.get("description")
        projects.append(_ProjectRecord(
            source_id=project_id,
            title=normalize_title(raw.get("title"), "Project title"),
            description=normalize_description(description),
            order=_source_order(raw.get("order")),
            columns=list(columns_by_project.get(project_id, [])) if project_id is not None else [],
        ))
    return projects


class TransferService:
    """Bulk export/import of kanban data."""

    def __init__(self, db: Database):
        self.db = db

    def export_data(self, user_id: str, is_admin: bool) -> dict:
        """
        Regular users get their own tree; admins get every row of every
        table plus the user list, for backups.
        """
        with self.db.session() as session:
            if not is_admin:
                projects = session.execute(
                    select(Project).where(Project.user_id == user_id).order_by(*board_order(PROJECT))
                ).scalars().all()
                columns = session.execute(
                    select(BoardColumn)
                    .where(BoardColumn.id.in_(owned_column_ids(user_id)))
                    .order_by(BoardColumn.project_id, *board_order(COLUMN))
                ).scalars().all()
                tasks = session.execute(
                    select(Task)
                    .where(Task.column_id.in_(owned_column_ids(user_id)))
                    .order_by(Task.column_id, *board_order(TASK))
                ).scalars().all()
                return {
                    "projects": [p.to_dict() for p in projects],
                    "columns": [c.to_dict() for c in columns],
                    "tasks": [t.to_dict() for t in tasks],
                }

            users = session.execute(select(User).order_by(User.created_at)).scalars().all()
            projects = session.execute(
                select(Project).order_by(Project.user_id, *board_order(PROJECT))
            ).scalars().all()
            columns = session.execute(
                select(BoardColumn).order_by(BoardColumn.project_id, *board_order(COLUMN))
            ).scalars().all()
            tasks = session.execute(
                select(Task).order_by(Task.column_id, *board_order(TASK))
            ).scalars().all()
        logger.info(f"Admin export by user {user_id}: {len(users)} users, {len(projects)} projects")
        return {
            "users": [u.to_dict() for u in users],
            "projects": [p.to_dict() for p in projects],
            "columns": [c.to_dict() for c in columns],
            "tasks": [t.to_dict() for t in tasks],
        }

    def import_data(self, user_id: str, payload) -> dict:
        """
        Replace the caller's whole tree with ``payload``.

        Deletes tasks, then columns, then projects, then inserts the new tree.
        Any error rolls the transaction back and leaves the previous tree as
        it was.
        """
        tree = parse_import_payload(payload)
        counts = {"projects": 0, "columns": 0, "tasks": 0}

        with self.db.session() as session:
            session.execute(
                delete(Task)
                .where(Task.column_id.in_(owned_column_ids(user_id)))
                .execution_options(synchronize_session=False)
            )
            session.execute(
                delete(BoardColumn)
                .where(BoardColumn.project_id.in_(owned_project_ids(user_id)))
                .execution_options(synchronize_session=False)
            )
            session.execute(
                delete(Project)
                .where(Project.user_id == user_id)
                .execution_options(synchronize_session=False)
            )

            for p_index, p_record in enumerate(tree):
                project = Project(
                    id=new_id(),
                    title=p_record.title,
                    description=p_record.description,
                    user_id=user_id,
                    order=p_index if p_record.order is None else p_record.order,
                )
                session.add(project)
                counts["projects"] += 1

                for c_index, c_record in enumerate(p_record.columns):
                    column = BoardColumn(
                        id=new_id(),
                        title=c_record.title,
                        project_id=project.id,
                        order=c_index if c_record.order is None else c_record.order,
                    )
                    session.add(column)
                    counts["columns"] += 1

                    for t_index, t_record in enumerate(c_record.tasks):
                        session.add(Task(
                            id=new_id(),
                            title=t_record.title,
                            description=t_record.description,
                            priority=t_record.priority,
                            due_date=t_record.due_date,
                            column_id=column.id,
                            order=t_index if t_record.order is None else t_record.order,
                        ))
                        counts["tasks"] += 1

                # Parents must exist before their children for FK checks
                session.flush()

        logger.info(
            f"Imported data for user {user_id}: {counts['projects']} projects, "
            f"{counts['columns']} columns, {counts['tasks']} tasks"
        )
        return counts
