"""User management utilities.

This module provides user management functionality including user storage,
password hashing and credential verification.
"""

import logging
from typing import Optional

import bcrypt
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from config import BCRYPT_ROUNDS, USER_ROLES
from core.exceptions import ConflictError, NotFoundError, ValidationError
from models.user import UserModel
from schemas.user import User
from utils.converters import model_to_user, user_to_model

logger = logging.getLogger(__name__)

# bcrypt only looks at the first 72 bytes of a password
BCRYPT_MAX_BYTES = 72


class UserManager:
    """Manages user data persistence and operations using SQLAlchemy."""

    def __init__(self, db: Session):
        """Initialize UserManager.

        Args:
            db: SQLAlchemy Session.
        """
        self.db = db

    def hash_password(self, password: str) -> str:
        """Hash a password using bcrypt.

        Args:
            password: Plain text password.

        Returns:
            Hashed password (bcrypt hash string).
        """
        password_bytes = password.encode("utf-8")[:BCRYPT_MAX_BYTES]
        salt = bcrypt.gensalt(rounds=BCRYPT_ROUNDS)
        return bcrypt.hashpw(password_bytes, salt).decode("utf-8")

    def verify_password(self, plain_password: str, hashed_password: str) -> bool:
        """Verify a password against a bcrypt hash.

        Args:
            plain_password: Plain text password to verify.
            hashed_password: Bcrypt hash string to verify against.

        Returns:
            True if password matches, False otherwise.
        """
        password_bytes = plain_password.encode("utf-8")[:BCRYPT_MAX_BYTES]
        try:
            return bcrypt.checkpw(password_bytes, hashed_password.encode("utf-8"))
        except ValueError as e:
            logger.error("Password verification error: %s", e)
            return False

    def create_user(
        self,
        username: str,
        password: str,
        role: str,
        name: str,
        email: Optional[str] = None,
    ) -> User:
        """Create a new user.

        Args:
            username: Username for the new user.
            password: Plain text password.
            role: User role ('teacher' or 'student').
            name: Display name.
            email: Optional email address.

        Returns:
            Created User object.

        Raises:
            ValidationError: If the role is unknown.
            ConflictError: If username already exists.
        """
        if role not in USER_ROLES:
            raise ValidationError(
                f"Invalid role: {role}. Must be one of {', '.join(USER_ROLES)}.",
                role=role,
            )

        existing = self.db.query(UserModel).filter(UserModel.username == username).first()
        if existing:
            raise ConflictError(f"User '{username}' already exists", username=username)

        user = User(
            username=username,
            password_hash=self.hash_password(password),
            role=role,
            name=name.strip(),
            email=email.lower().strip() if email else None,
        )

        # Two concurrent registrations can both pass the check above; the
        # unique constraint decides.
        try:
            model = user_to_model(user)
            self.db.add(model)
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            raise ConflictError(
                f"User '{username}' already exists", username=username
            ) from e

        logger.info("Created %s user: %s", role, username)
        return user

    def get_user_by_username(self, username: str) -> Optional[User]:
        """Get a user by username.

        Args:
            username: Username to look up.

        Returns:
            User object if found, None otherwise.
        """
        model = self.db.query(UserModel).filter(UserModel.username == username).first()
        if model:
            return model_to_user(model)
        return None

    def get_user_by_id(self, user_id: str) -> User:
        """Get a user by user ID.

        Args:
            user_id: User ID to look up.

        Returns:
            User object.

        Raises:
            NotFoundError: If no user has this id.
        """
        model = self.db.query(UserModel).filter(UserModel.user_id == user_id).first()
        if not model:
            raise NotFoundError("User", user_id)
        return model_to_user(model)

    def authenticate(self, username: str, password: str) -> Optional[User]:
        """Return the user if the credentials match, None otherwise."""
        user = self.get_user_by_username(username)
        if user is None:
            return None
        if not self.verify_password(password, user.password_hash):
            return None
        return user

