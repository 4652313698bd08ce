"""
Users Repository - Database access layer for staff accounts.
"""

import logging
from typing import Optional, Dict
from sqlalchemy.orm import Session
from werkzeug.security import generate_password_hash, check_password_hash

from database.models import User, utcnow

logger = logging.getLogger(__name__)


class UsersRepository:
    """Repository for user database operations."""

    def __init__(self, session: Session):
        self.session = session

    def get_user(self, user_id: str) -> Optional[User]:
        """Get a user by ID (returns model)."""
        return self.session.query(User).filter(User.id == user_id).first()

    def get_user_by_username(self, username: str) -> Optional[User]:
        """Get a user by username (returns model for auth)."""
        return self.session.query(User).filter(User.username == username).first()

    def create_user(self, data: Dict) -> User:
        """Create a new user with a pbkdf2 password hash."""
        user = User(
            username=data['username'],
            password_hash=generate_password_hash(data['password'], method='pbkdf2:sha256'),
            name=data['name'],
            role=data.get('role') or 'user',
            is_active=data.get('is_active', True)
        )
        self.session.add(user)
        self.session.flush()
        logger.info(f"Created user: {user.id} ({user.username})")
        return user

    def authenticate(self, username: str, password: str) -> Optional[User]:
        """Return the active user matching the credentials, or None."""
        user = self.get_user_by_username(username)
        if not user or not user.is_active:
            return None
        if not self.verify_password(user, password):
            return None
        return user

    def verify_password(self, user: User, password: str) -> bool:
        """Verify a user's password."""
        return check_password_hash(user.password_hash, password)

    def update_last_login(self, user: User) -> None:
        """Update user's last login timestamp."""
        user.last_login = utcnow()
        self.session.flush()
