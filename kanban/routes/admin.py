"""
Bulk export / import of kanban data.
"""
from flask import Blueprint, current_app, g, jsonify, request

from kanban.auth import require_auth

admin_bp = Blueprint('admin', __name__, url_prefix='/api/admin')


def _transfer():
    return current_app.extensions['kanban'].transfer


@admin_bp.route('/export', methods=['GET'])
@require_auth
def export_data():
    """Own tree for regular users, every table for admins."""
    return jsonify(_transfer().export_data(g.identity.user_id, g.identity.is_admin))


@admin_bp.route('/import', methods=['POST'])
@require_auth
def import_data():
    """Replace the caller's projects, columns and tasks."""
    counts = _transfer().import_data(g.identity.user_id, request.get_json(silent=True))
    return jsonify({'message': 'Data imported successfully', 'imported': counts})
