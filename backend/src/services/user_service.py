"""User account service."""

import logging

from models.user import User
from services.record_store import RecordStore, StoreError
from utils.id_utils import utc_now_iso

logger = logging.getLogger(__name__)


class UserExistsError(Exception):
    """Raised when registering an email that already has an account."""

    pass


class UserService:
    """Service for reading and writing user accounts."""

    def __init__(self, store: RecordStore):
        """Initialize the service with the users record store."""
        self.store = store

    def get_user(self, user_id: str) -> User | None:
        """Get user by ID."""
        record = self.store.get(user_id)
        return User.model_validate(record) if record else None

    def find_by_email(self, email: str) -> User | None:
        """Look up a user by login email (case-insensitive)."""
        matches = self.store.find(email=email.strip().lower())
        return User.model_validate(matches[0]) if matches else None

    def create_user(self, user: User) -> User:
        """Create a new user record.

        Raises:
            UserExistsError: If the email is already registered
        """
        user.email = user.email.strip().lower()
        if self.find_by_email(user.email):
            raise UserExistsError(f"User with email {user.email} already exists")

        try:
            self.store.append(user.to_api())
        except StoreError:
            logger.error("Failed to create user %s", user.id)
            raise

        logger.info("Created user %s with role %s", user.id, user.role.value)
        return user

    def update_last_login(self, user_id: str) -> User | None:
        """Update user's last login timestamp."""
        record = self.store.update(user_id, {"lastLogin": utc_now_iso()})
        return User.model_validate(record) if record else None

    def list_users(self, role: str | None = None) -> list[User]:
        """All accounts, oldest first, optionally for one role."""
        records = self.store.find(role=role) if role else self.store.list()
        users = [User.model_validate(r) for r in records]
        users.sort(key=lambda u: u.created_at)
        return users
