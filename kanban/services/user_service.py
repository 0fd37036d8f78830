"""
User registration, login verification and the global settings row.
"""
from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from werkzeug.security import check_password_hash, generate_password_hash

from kanban.database import Database
from kanban.errors import Conflict, Forbidden, Unauthorized, ValidationError
from kanban.models import Setting, User
from kanban.utils.validators import normalize_display_name, normalize_password, normalize_username

logger = logging.getLogger(__name__)

SETTINGS_ROW_ID = 1


class UserService:
    """
    Accounts backed by SQLAlchemy. The first account ever created is an
    admin; later sign-ups depend on the ``allow_signup`` setting.
    """

    def __init__(self, db: Database):
        self.db = db

    def count_users(self) -> int:
        with self.db.session() as session:
            return session.execute(select(func.count()).select_from(User)).scalar_one()

    def get_user(self, user_id: str) -> Optional[User]:
        if not user_id:
            return None
        with self.db.session() as session:
            return session.get(User, user_id)

    def register(self, username, password, display_name=None) -> User:
        """
        Create an account.

        Raises ValidationError for missing fields, Forbidden when sign-ups are
        closed, Conflict when the username is taken.
        """
        username = normalize_username(username)
        password = normalize_password(password)
        display_name = normalize_display_name(display_name, username)

        try:
            with self.db.session() as session:
                is_first_user = session.execute(
                    select(func.count()).select_from(User)
                ).scalar_one() == 0
                if not is_first_user and not self._load_settings(session).allow_signup:
                    raise Forbidden('New user registration is currently disabled')

                existing = session.execute(
                    select(User.id).where(User.username == username)
                ).first()
                if existing:
                    raise Conflict('Username already exists')

                user = User(
                    username=username,
                    display_name=display_name,
                    password_hash=generate_password_hash(password),
                    is_admin=is_first_user,
                )
                session.add(user)
                session.flush()
        except IntegrityError:
            # Lost a race against a concurrent registration of the same name
            raise Conflict('Username already exists')

        logger.info(f"Registered user {user.id} ({user.username}), admin={user.is_admin}")
        return user

    def authenticate(self, username, password) -> User:
        username = normalize_username(username)
        password = normalize_password(password)
        with self.db.session() as session:
            user = session.execute(
                select(User).where(User.username == username)
            ).scalar_one_or_none()
        if user is None or not check_password_hash(user.password_hash, password):
            logger.info(f"Failed login for username '{username}'")
            raise Unauthorized('Invalid username or password')
        return user

    # Settings ---------------------------------------------------------

    def _load_settings(self, session) -> Setting:
        settings = session.get(Setting, SETTINGS_ROW_ID)
        if settings is None:
            settings = Setting(id=SETTINGS_ROW_ID, allow_signup=True)
            session.add(settings)
            session.flush()
        return settings

    def get_settings(self) -> Setting:
        with self.db.session() as session:
            return self._load_settings(session)

    def update_settings(self, allow_signup) -> Setting:
        if not isinstance(allow_signup, bool):
            raise ValidationError('allowSignup must be a boolean')
        with self.db.session() as session:
            settings = self._load_settings(session)
            settings.allow_signup = allow_signup
        logger.info(f"Settings updated: allow_signup={allow_signup}")
        return settings
