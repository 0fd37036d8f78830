"""
API token management for the calling user.
"""
from flask import Blueprint, current_app, g, jsonify, request

from kanban.auth import require_auth

tokens_bp = Blueprint('tokens', __name__, url_prefix='/api/tokens')


def _tokens():
    return current_app.extensions['kanban'].tokens


@tokens_bp.route('', methods=['POST'])
@require_auth
def create_token():
    payload = request.get_json(silent=True) or {}
    name = payload.get('name') if isinstance(payload, dict) else None
    token, secret = _tokens().create_token(g.identity.user_id, name)
    # The secret is returned only once
    body = token.to_dict()
    body['token'] = secret
    return jsonify(body), 201


@tokens_bp.route('', methods=['GET'])
@require_auth
def list_tokens():
    return jsonify([t.to_dict() for t in _tokens().list_tokens(g.identity.user_id)])


@tokens_bp.route('/<token_id>', methods=['DELETE'])
@require_auth
def delete_token(token_id):
    _tokens().delete_token(g.identity.user_id, token_id)
    return jsonify({'message': 'Token deleted successfully'})
