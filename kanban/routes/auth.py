"""
Account routes: registration, login, current user and signup settings.
"""
from flask import Blueprint, current_app, g, jsonify, request

from kanban.auth import clear_session_cookie, require_admin, require_auth, set_session_cookie
from kanban.errors import NotFound, ValidationError

auth_bp = Blueprint('auth', __name__, url_prefix='/api')


def _users():
    return current_app.extensions['kanban'].users


def _json_object() -> dict:
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        raise ValidationError('Request body must be a JSON object')
    return payload


@auth_bp.route('/users/count', methods=['GET'])
def user_count():
    return jsonify({'count': _users().count_users()})


@auth_bp.route('/auth/settings', methods=['GET'])
def get_settings():
    return jsonify(_users().get_settings().to_dict())


@auth_bp.route('/auth/settings', methods=['PUT'])
@require_admin
def update_settings():
    payload = _json_object()
    settings = _users().update_settings(payload.get('allowSignup'))
    return jsonify(settings.to_dict())


@auth_bp.route('/auth/register', methods=['POST'])
def register():
    payload = _json_object()
    user = _users().register(
        payload.get('username'),
        payload.get('password'),
        payload.get('displayName'),
    )
    response = jsonify({'user': user.to_public()})
    response.status_code = 201
    return set_session_cookie(response, user.id)


@auth_bp.route('/auth/login', methods=['POST'])
def login():
    payload = _json_object()
    user = _users().authenticate(payload.get('username'), payload.get('password'))
    return set_session_cookie(jsonify({'user': user.to_public()}), user.id)


@auth_bp.route('/auth/logout', methods=['POST'])
def logout():
    return clear_session_cookie(jsonify({'message': 'Logged out successfully'}))


@auth_bp.route('/auth/me', methods=['GET'])
@require_auth
def current_user():
    user = _users().get_user(g.identity.user_id)
    if user is None:
        raise NotFound('User not found')
    return jsonify({'user': user.to_public()})
