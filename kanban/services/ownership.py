"""
Ownership chain: task -> column -> project -> user.

Nothing here loads rows to decide access in Python. Each helper returns a
SQL expression that the caller embeds in the WHERE clause of the statement
doing the actual read or write, so authorization and mutation happen in one
statement.
"""
from __future__ import annotations

from typing import Type

from sqlalchemy import select
from sqlalchemy.orm import Session

from kanban.database import Database
from kanban.errors import KanbanError, ValidationError
from kanban.models import BoardColumn, Project, Task

PROJECT = "project"
COLUMN = "column"
TASK = "task"

MODELS = {
    PROJECT: Project,
    COLUMN: BoardColumn,
    TASK: Task,
}


def model_for(kind: str) -> Type:
    try:
        return MODELS[kind]
    except KeyError:
        raise ValidationError(f"Unknown entity kind: {kind}")


def owned_project_ids(user_id: str):
    return select(Project.id).where(Project.user_id == user_id)


def owned_column_ids(user_id: str):
    return (
        select(BoardColumn.id)
        .join(Project, BoardColumn.project_id == Project.id)
        .where(Project.user_id == user_id)
    )


def ownership_predicate(kind: str, user_id: str):
    """
    WHERE clause restricting ``kind``'s table to rows owned by ``user_id``.
    """
    if kind == PROJECT:
        return Project.user_id == user_id
    if kind == COLUMN:
        return BoardColumn.project_id.in_(owned_project_ids(user_id))
    if kind == TASK:
        return Task.column_id.in_(owned_column_ids(user_id))
    raise ValidationError(f"Unknown entity kind: {kind}")


def owned_row_query(kind: str, user_id: str, entity_id: str):
    model = model_for(kind)
    return select(model).where(model.id == entity_id, ownership_predicate(kind, user_id))


def require_owned(session: Session, kind: str, user_id: str, entity_id: str, error: KanbanError):
    """
    Lock and return the owned row, or raise ``error``.

    Used when creating children: the parent row stays locked until the
    surrounding transaction commits, so it cannot be deleted between the check
    and the insert.
    """
    row = session.execute(
        owned_row_query(kind, user_id, entity_id).with_for_update()
    ).scalar_one_or_none()
    if row is None:
        raise error
    return row


class OwnershipResolver:
    """Read-only access checks for callers that only need a yes/no."""

    def __init__(self, db: Database):
        self.db = db

    def can_access(self, user_id: str, is_admin: bool, kind: str, entity_id: str) -> bool:
        # Admins get no bypass here; only bulk transfer and settings are widened.
        if not user_id or not entity_id:
            return False
        model = model_for(kind)
        with self.db.session() as session:
            found = session.execute(
                select(model.id).where(model.id == entity_id, ownership_predicate(kind, user_id))
            ).first()
        return found is not None
