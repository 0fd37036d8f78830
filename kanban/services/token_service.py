"""
Personal API tokens: an alternate credential to the session cookie.
"""
from __future__ import annotations

import hashlib
import logging
import secrets
from typing import List, Optional, Tuple

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError

from kanban.database import Database
from kanban.errors import Conflict, NotFound, ValidationError
from kanban.models import ApiToken, User, utcnow

logger = logging.getLogger(__name__)


def hash_token(secret: str) -> str:
    return hashlib.sha256(secret.encode('utf-8')).hexdigest()


def generate_token() -> str:
    return secrets.token_hex(32)


class TokenService:

    def __init__(self, db: Database):
        self.db = db

    def create_token(self, user_id: str, name) -> Tuple[ApiToken, str]:
        """
        Create a token and return it with its secret.

        The secret is not stored and cannot be retrieved again.
        """
        if not isinstance(name, str) or not name.strip():
            raise ValidationError('Token name is required')
        name = name.strip()
        if len(name) > 100:
            raise ValidationError('Token name must be at most 100 characters')

        secret = generate_token()
        try:
            with self.db.session() as session:
                existing = session.execute(
                    select(ApiToken.id).where(ApiToken.user_id == user_id, ApiToken.name == name)
                ).first()
                if existing:
                    raise Conflict('Token with this name already exists')
                token = ApiToken(user_id=user_id, name=name, token_hash=hash_token(secret))
                session.add(token)
                session.flush()
        except IntegrityError:
            raise Conflict('Token with this name already exists')
        logger.info(f"Created API token {token.id} for user {user_id}")
        return token, secret

    def list_tokens(self, user_id: str) -> List[ApiToken]:
        with self.db.session() as session:
            return list(session.execute(
                select(ApiToken)
                .where(ApiToken.user_id == user_id)
                .order_by(ApiToken.created_at.desc())
            ).scalars())

    def delete_token(self, user_id: str, token_id: str) -> None:
        with self.db.session() as session:
            result = session.execute(
                delete(ApiToken)
                .where(ApiToken.id == token_id, ApiToken.user_id == user_id)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                raise NotFound('Token not found')
        logger.info(f"Revoked API token {token_id} for user {user_id}")

    def resolve(self, secret: Optional[str]) -> Optional[User]:
        """
        Look up the owner of ``secret`` and stamp ``last_used_at``.

        Returns None for unknown tokens; a deleted token stops resolving on the
        very next request.
        """
        if not secret:
            return None
        digest = hash_token(secret)
        with self.db.session() as session:
            user = session.execute(
                select(User)
                .join(ApiToken, ApiToken.user_id == User.id)
                .where(ApiToken.token_hash == digest)
            ).scalar_one_or_none()
            if user is None:
                return None
            session.execute(
                update(ApiToken)
                .where(ApiToken.token_hash == digest)
                .values({ApiToken.last_used_at: utcnow()})
                .execution_options(synchronize_session=False)
            )
        return user
