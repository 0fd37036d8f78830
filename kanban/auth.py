"""
Identity guard: resolve the caller from an API token or the session cookie.
"""
import hashlib
import hmac
import time
from dataclasses import dataclass
from functools import wraps
from typing import Optional

from flask import current_app, g, request

from kanban.errors import Forbidden, Unauthorized


@dataclass(frozen=True)
class Identity:
    user_id: str
    is_admin: bool


def _sign(payload: str, secret: str) -> str:
    return hmac.new(
        secret.encode('utf-8'),
        payload.encode('utf-8'),
        hashlib.sha256
    ).hexdigest()


def generate_session_token(user_id: str, secret: str, lifetime_seconds: int) -> str:
    """Generate an HMAC-signed ``user_id:expiry:signature`` credential."""
    expiry = int(time.time()) + lifetime_seconds
    payload = f"{user_id}:{expiry}"
    return f"{payload}:{_sign(payload, secret)}"


def validate_session_token(token: str, secret: str) -> Optional[str]:
    """Return the user id carried by a valid, unexpired credential."""
    if not token or not secret:
        return None
    try:
        user_id, expiry_str, signature = token.split(':')
        expiry = int(expiry_str)
    except ValueError:
        return None

    if time.time() > expiry:
        return None

    expected_signature = _sign(f"{user_id}:{expiry_str}", secret)
    if not hmac.compare_digest(signature, expected_signature):
        return None
    return user_id


def _bearer_secret() -> Optional[str]:
    header = request.headers.get('Authorization', '')
    if not header.startswith('Bearer '):
        return None
    return header[len('Bearer '):].strip() or None


def resolve_identity() -> Optional[Identity]:
    """
    Bearer token first, then the session cookie.

    The user row is read on every request so a revoked token, a deleted user
    or a changed admin flag takes effect immediately.
    """
    services = current_app.extensions['kanban']

    secret = _bearer_secret()
    if secret:
        user = services.tokens.resolve(secret)
        if user is not None:
            return Identity(user_id=user.id, is_admin=user.is_admin)

    cookie = request.cookies.get(current_app.config['AUTH_COOKIE_NAME'])
    user_id = validate_session_token(cookie, current_app.config['SECRET_KEY'])
    if not user_id:
        return None
    user = services.users.get_user(user_id)
    if user is None:
        return None
    return Identity(user_id=user.id, is_admin=user.is_admin)


def require_auth(f):
    """Decorator: reject requests without a valid credential."""
    @wraps(f)
    def decorated(*args, **kwargs):
        identity = resolve_identity()
        if identity is None:
            raise Unauthorized('Authentication required')
        g.identity = identity
        return f(*args, **kwargs)
    return decorated


def require_admin(f):
    """Decorator: authenticated admins only."""
    @require_auth
    @wraps(f)
    def decorated(*args, **kwargs):
        if not g.identity.is_admin:
            raise Forbidden('Admin access required')
        return f(*args, **kwargs)
    return decorated


def set_session_cookie(response, user_id: str):
    config = current_app.config
    token = generate_session_token(user_id, config['SECRET_KEY'], config['SESSION_LIFETIME_SECONDS'])
    response.set_cookie(
        config['AUTH_COOKIE_NAME'],
        token,
        max_age=config['SESSION_LIFETIME_SECONDS'],
        httponly=True,
        secure=config['AUTH_COOKIE_SECURE'],
        samesite='Strict',
        path='/api',
    )
    return response


def clear_session_cookie(response):
    response.delete_cookie(current_app.config['AUTH_COOKIE_NAME'], path='/api')
    return response
