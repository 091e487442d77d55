import base64
import hashlib
import logging
from typing import Optional

import bcrypt
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlmodel import select

from . import seed
from .database import StoreHandle
from .errors import DuplicateUsername, InvalidCredentials, QueryFailed, StoreNotConfigured, StoreUnavailable
from .models import Task, User, utc_now
from .schemas.user import UserRead

logger = logging.getLogger(__name__)


def _prehash(password: str) -> bytes:
    # bcrypt only reads 72 bytes; a base64 SHA-256 digest is 44.
    return base64.b64encode(hashlib.sha256(password.encode('utf-8')).digest())


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against its hash."""
    hashed_bytes = hashed_password.encode('utf-8') if isinstance(hashed_password, str) else hashed_password
    try:
        return bcrypt.checkpw(_prehash(plain_password), hashed_bytes)
    except ValueError:
        # Stored value is not a bcrypt hash.
        return False


def get_password_hash(password: str, rounds: int = 12) -> str:
    """Hash a password with bcrypt over its SHA-256 digest."""
    salt = bcrypt.gensalt(rounds=rounds)
    hashed = bcrypt.hashpw(_prehash(password), salt)
    return hashed.decode('utf-8')


class CredentialStore:
    """Registers and authenticates users against the ``users`` table."""

    def __init__(self, store: Optional[StoreHandle], rounds: int = 12, store_error: Optional[str] = None):
        self.store = store
        self.rounds = rounds
        self.store_error = store_error

    def _require_store(self) -> StoreHandle:
        if self.store is None:
            if self.store_error:
                raise StoreUnavailable(self.store_error)
            raise StoreNotConfigured()
        return self.store

    def register(self, username: str, password: str) -> UserRead:
        """Create a user and seed their private checklist.

        Seeding failures are logged and do not fail the registration.
        """
        store = self._require_store()
        try:
            with store.session() as session:
                existing = session.exec(select(User.id).where(User.username == username)).first()
                if existing is not None:
                    raise DuplicateUsername(username)

                db_user = User(username=username, password_hash=get_password_hash(password, self.rounds))
                session.add(db_user)
                try:
                    session.commit()
                except IntegrityError:
                    session.rollback()
                    raise DuplicateUsername(username)
                session.refresh(db_user)
                user = UserRead.model_validate(db_user)
        except SQLAlchemyError as exc:
            logger.error("Registration of %r failed: %s", username, exc)
            raise QueryFailed(f"Registration failed: {exc}") from exc

        logger.info("Registered user %s (%s)", user.id, user.username)
        self.seed_user_tasks(user.id)
        return user

    def login(self, username: str, password: str) -> UserRead:
        """Authenticate, then give the user their checklist if they have none yet."""
        store = self._require_store()
        try:
            with store.session() as session:
                db_user = session.exec(select(User).where(User.username == username)).first()
                if db_user is None or not verify_password(password, db_user.password_hash):
                    raise InvalidCredentials()
                user = UserRead.model_validate(db_user)
        except SQLAlchemyError as exc:
            logger.error("Login lookup for %r failed: %s", username, exc)
            raise QueryFailed("Login failed") from exc

        self.ensure_user_tasks(user.id)
        return user

    def seed_user_tasks(self, user_id: int) -> bool:
        """Insert the user's own copy of the checklist. Returns False on failure."""
        store = self._require_store()
        try:
            with store.session() as session:
                now = utc_now()
                for task in seed.task_rows(user_id):
                    task.created_at = task.updated_at = now
                    session.add(task)
                session.commit()
        except SQLAlchemyError as exc:
            logger.error("Seeding tasks for user %s failed: %s", user_id, exc)
            return False
        return True

    def ensure_user_tasks(self, user_id: int) -> bool:
        """Seed the user's checklist if registration could not (no sections back then)."""
        store = self._require_store()
        try:
            with store.session() as session:
                if session.exec(select(Task.id).where(Task.user_id == user_id).limit(1)).first() is not None:
                    return True
        except SQLAlchemyError as exc:
            logger.warning("Checking tasks for user %s failed: %s", user_id, exc)
            return False
        logger.info("User %s has no tasks yet; seeding them", user_id)
        return self.seed_user_tasks(user_id)
