"""
Kanban API routes: projects, columns, tasks and their ordering.
"""
from flask import Blueprint, current_app, g, jsonify, request

from kanban.auth import require_auth
from kanban.errors import ValidationError
from kanban.services.ownership import COLUMN, PROJECT, TASK
from kanban.utils.validators import (
    ColumnInput,
    MoveInput,
    ProjectInput,
    TaskInput,
    normalize_order,
    parse_order_updates,
)

api_bp = Blueprint('api', __name__, url_prefix='/api')


def _board():
    return current_app.extensions['kanban'].board


def _json_body():
    return request.get_json(silent=True)


def _set_order(kind: str, entity_id: str):
    payload = _json_body()
    if not isinstance(payload, dict):
        raise ValidationError('Order must be an integer')
    order = normalize_order(payload.get('order'))
    _board().set_order(g.identity.user_id, kind, entity_id, order)
    return jsonify({'id': entity_id, 'order': order})


def _reorder(kind: str):
    updates = parse_order_updates(_json_body())
    count = _board().reorder(g.identity.user_id, kind, updates)
    return jsonify({'updated': count})


# Projects

@api_bp.route('/projects', methods=['GET'])
@require_auth
def list_projects():
    projects = _board().list_projects(g.identity.user_id)
    return jsonify([p.to_dict() for p in projects])


@api_bp.route('/projects', methods=['POST'])
@require_auth
def create_project():
    data = ProjectInput.from_payload(_json_body())
    project = _board().create_project(g.identity.user_id, data)
    return jsonify(project.to_dict()), 201


@api_bp.route('/projects/order', methods=['PUT'])
@require_auth
def reorder_projects():
    return _reorder(PROJECT)


@api_bp.route('/projects/<project_id>', methods=['GET'])
@require_auth
def get_project(project_id):
    return jsonify(_board().get_project(g.identity.user_id, project_id).to_dict())


@api_bp.route('/projects/<project_id>', methods=['PUT'])
@require_auth
def update_project(project_id):
    data = ProjectInput.from_payload(_json_body())
    project = _board().update_project(g.identity.user_id, project_id, data)
    return jsonify(project.to_dict())


@api_bp.route('/projects/<project_id>/order', methods=['PUT'])
@require_auth
def set_project_order(project_id):
    return _set_order(PROJECT, project_id)


@api_bp.route('/projects/<project_id>', methods=['DELETE'])
@require_auth
def delete_project(project_id):
    _board().delete_project(g.identity.user_id, project_id)
    return jsonify({'message': 'Project deleted successfully'})


# Columns

@api_bp.route('/columns', methods=['GET'])
@require_auth
def list_columns():
    project_id = request.args.get('project_id') or None
    columns = _board().list_columns(g.identity.user_id, project_id)
    return jsonify([c.to_dict() for c in columns])


@api_bp.route('/columns', methods=['POST'])
@require_auth
def create_column():
    data = ColumnInput.from_payload(_json_body())
    column = _board().create_column(g.identity.user_id, data)
    return jsonify(column.to_dict()), 201


@api_bp.route('/columns/order', methods=['PUT'])
@require_auth
def reorder_columns():
    return _reorder(COLUMN)


@api_bp.route('/columns/<column_id>', methods=['GET'])
@require_auth
def get_column(column_id):
    return jsonify(_board().get_column(g.identity.user_id, column_id).to_dict())


@api_bp.route('/columns/<column_id>', methods=['PUT'])
@require_auth
def update_column(column_id):
    data = ColumnInput.from_payload(_json_body(), require_project=False)
    column = _board().update_column(g.identity.user_id, column_id, data.title)
    return jsonify(column.to_dict())


@api_bp.route('/columns/<column_id>/order', methods=['PUT'])
@require_auth
def set_column_order(column_id):
    return _set_order(COLUMN, column_id)


@api_bp.route('/columns/<column_id>', methods=['DELETE'])
@require_auth
def delete_column(column_id):
    _board().delete_column(g.identity.user_id, column_id)
    return jsonify({'message': 'Column deleted successfully'})


@api_bp.route('/columns/<column_id>/tasks', methods=['GET'])
@require_auth
def list_column_tasks(column_id):
    tasks = _board().list_column_tasks(g.identity.user_id, column_id)
    return jsonify([t.to_dict() for t in tasks])


# Tasks

@api_bp.route('/tasks', methods=['GET'])
@require_auth
def list_tasks():
    tasks = _board().list_tasks(g.identity.user_id)
    return jsonify([t.to_dict() for t in tasks])


@api_bp.route('/tasks', methods=['POST'])
@require_auth
def create_task():
    data = TaskInput.from_payload(_json_body())
    task = _board().create_task(g.identity.user_id, data)
    return jsonify(task.to_dict()), 201


@api_bp.route('/tasks/order', methods=['PUT'])
@require_auth
def reorder_tasks():
    return _reorder(TASK)


@api_bp.route('/tasks/<task_id>', methods=['GET'])
@require_auth
def get_task(task_id):
    return jsonify(_board().get_task(g.identity.user_id, task_id).to_dict())


@api_bp.route('/tasks/<task_id>', methods=['PUT'])
@require_auth
def update_task(task_id):
    data = TaskInput.from_payload(_json_body(), require_column=False)
    task = _board().update_task(g.identity.user_id, task_id, data)
    return jsonify(task.to_dict())


@api_bp.route('/tasks/<task_id>/order', methods=['PUT'])
@require_auth
def set_task_order(task_id):
    return _set_order(TASK, task_id)


@api_bp.route('/tasks/<task_id>/move', methods=['PUT'])
@require_auth
def move_task(task_id):
    data = MoveInput.from_payload(_json_body())
    task = _board().move_task(g.identity.user_id, task_id, data)
    return jsonify(task.to_dict())


@api_bp.route('/tasks/<task_id>', methods=['DELETE'])
@require_auth
def delete_task(task_id):
    _board().delete_task(g.identity.user_id, task_id)
    return jsonify({'message': 'Task deleted successfully'})
