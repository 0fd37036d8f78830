"""
Validation of incoming request bodies into typed input objects.

Each ``from_payload`` raises ``ValidationError`` on bad input, so the service
layer only ever sees normalized values.
"""
from dataclasses import dataclass
from datetime import date, datetime
from typing import List, Optional

from kanban.errors import ValidationError
from kanban.models import PRIORITIES

MAX_TITLE_LENGTH = 255
MAX_DISPLAY_NAME_LENGTH = 128
# Largest value an INTEGER column holds on PostgreSQL
MAX_ORDER = 2 ** 31 - 1

_MISSING = object()


def _require_mapping(payload) -> dict:
    if not isinstance(payload, dict):
        raise ValidationError('Request body must be a JSON object')
    return payload


def normalize_title(raw_title, field: str = 'Title') -> str:
    """
    Trim a title and enforce presence + length.
    """
    if raw_title is None or not isinstance(raw_title, str):
        raise ValidationError(f'{field} is required')
    title = raw_title.strip()
    if not title:
        raise ValidationError(f'{field} is required')
    if len(title) > MAX_TITLE_LENGTH:
        raise ValidationError(f'{field} must be at most {MAX_TITLE_LENGTH} characters')
    return title


def normalize_identifier(raw_id, field: str) -> str:
    if raw_id is None or isinstance(raw_id, bool) or not isinstance(raw_id, (str, int)):
        raise ValidationError(f'{field} is required')
    value = str(raw_id).strip()
    if not value:
        raise ValidationError(f'{field} is required')
    return value


def normalize_priority(raw_priority) -> str:
    if raw_priority is None or raw_priority == '':
        return 'none'
    if raw_priority not in PRIORITIES:
        raise ValidationError(f'Priority must be one of: {", ".join(PRIORITIES)}')
    return raw_priority


def parse_due_date(raw_due) -> Optional[date]:
    """
    Accept ``YYYY-MM-DD`` or a full ISO datetime (only the date is kept).
    Empty values clear the due date.
    """
    if raw_due is None or raw_due == '':
        return None
    if not isinstance(raw_due, str):
        raise ValidationError('Due date must be an ISO date string')
    value = raw_due.strip()
    try:
        if len(value) == 10:
            return date.fromisoformat(value)
        # fromisoformat rejects a trailing Z before Python 3.11
        return datetime.fromisoformat(value.replace('Z', '+00:00')).date()
    except ValueError:
        raise ValidationError(f'Invalid due date: {raw_due}')


def normalize_order(raw_order) -> int:
    if isinstance(raw_order, bool) or not isinstance(raw_order, int):
        raise ValidationError('Order must be an integer')
    if raw_order < 0:
        raise ValidationError('Order must not be negative')
    if raw_order > MAX_ORDER:
        raise ValidationError('Order is out of range')
    return raw_order


def normalize_description(raw_description) -> str:
    if raw_description is None:
        return ''
    if not isinstance(raw_description, str):
        raise ValidationError('Description must be a string')
    return raw_description


@dataclass
class ProjectInput:
    title: str
    description: Optional[str] = None
    # False when the body had no description key: updates leave it untouched
    has_description: bool = False

    @classmethod
    def from_payload(cls, payload) -> 'ProjectInput':
        payload = _require_mapping(payload)
        description = payload.get('description', _MISSING)
        if description is _MISSING:
            return cls(title=normalize_title(payload.get('title')))
        if description is not None and not isinstance(description, str):
            raise ValidationError('Description must be a string')
        return cls(
            title=normalize_title(payload.get('title')),
            description=description,
            has_description=True,
        )


@dataclass
class ColumnInput:
    title: str
    project_id: Optional[str] = None

    @classmethod
    def from_payload(cls, payload, require_project: bool = True) -> 'ColumnInput':
        payload = _require_mapping(payload)
        title = normalize_title(payload.get('title'))
        if not require_project:
            return cls(title=title)
        return cls(title=title, project_id=normalize_identifier(payload.get('project_id'), 'project_id'))


@dataclass
class TaskInput:
    title: str
    description: str = ''
    priority: str = 'none'
    due_date: Optional[date] = None
    column_id: Optional[str] = None

    @classmethod
    def from_payload(cls, payload, require_column: bool = True) -> 'TaskInput':
        payload = _require_mapping(payload)
        task_input = cls(
            title=normalize_title(payload.get('title')),
            description=normalize_description(payload.get('description')),
            priority=normalize_priority(payload.get('priority')),
            due_date=parse_due_date(payload.get('due_date')),
        )
        if require_column:
            task_input.column_id = normalize_identifier(payload.get('column_id'), 'column_id')
        return task_input


@dataclass
class MoveInput:
    column_id: str
    order: Optional[int] = None

    @classmethod
    def from_payload(cls, payload) -> 'MoveInput':
        payload = _require_mapping(payload)
        order = payload.get('order')
        return cls(
            column_id=normalize_identifier(payload.get('column_id'), 'column_id'),
            order=normalize_order(order) if order is not None else None,
        )


@dataclass
class OrderUpdate:
    id: str
    order: int

    @classmethod
    def from_payload(cls, payload) -> 'OrderUpdate':
        payload = _require_mapping(payload)
        return cls(
            id=normalize_identifier(payload.get('id'), 'id'),
            order=normalize_order(payload.get('order')),
        )


def parse_order_updates(payload) -> List[OrderUpdate]:
    """
    Accept either a bare list of ``{id, order}`` objects or ``{"updates": [...]}``.
    """
    if isinstance(payload, dict):
        payload = payload.get('updates')
    if not isinstance(payload, list):
        raise ValidationError('An array of {id, order} updates is required')
    updates = [OrderUpdate.from_payload(item) for item in payload]
    seen = set()
    for update in updates:
        if update.id in seen:
            raise ValidationError(f'Duplicate id in updates: {update.id}')
        seen.add(update.id)
    return updates


def normalize_username(raw_username) -> str:
    """
    Normalize username strings while enforcing basic length + type checks.
    """
    if raw_username is None or not isinstance(raw_username, str):
        raise ValidationError('Username and password are required')
    username = raw_username.strip()
    if not username:
        raise ValidationError('Username and password are required')
    if len(username) > 64:
        raise ValidationError('Username must be at most 64 characters')
    return username


def normalize_password(raw_password) -> str:
    if raw_password is None or not isinstance(raw_password, str) or not raw_password.strip():
        raise ValidationError('Username and password are required')
    return raw_password


def normalize_display_name(raw_display_name, username: str) -> str:
    """Fall back to the username when no display name is given."""
    if raw_display_name is None:
        return username
    if not isinstance(raw_display_name, str):
        raise ValidationError('Display name must be a string')
    display_name = raw_display_name.strip() or username
    if len(display_name) > MAX_DISPLAY_NAME_LENGTH:
        raise ValidationError(f'Display name must be at most {MAX_DISPLAY_NAME_LENGTH} characters')
    return display_name
