"""
Local user store.

The store exposes the three operations the login flow needs. Lookup and
creation are deliberately separate calls: the unique constraint on
``stytch_user_id`` is what stops a duplicate row when two first-time
logins race, and the losing insert surfaces as ``UserConflictError``.

All methods block on the database; async callers should go through
``run_in_threadpool``.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from otp_login.exceptions import UserConflictError, UserStoreError
from otp_login.users.models import User

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LocalUser:
    id: str
    external_auth_id: str

    @classmethod
    def from_row(cls, row: User) -> "LocalUser":
        return cls(id=row.id, external_auth_id=row.stytch_user_id)


class UserStore:
    """Thin repository over the ``users`` table."""

    def __init__(self, session_factory: sessionmaker[Session]):
        self._session_factory = session_factory

    def find_by_external_id(self, external_auth_id: str) -> Optional[LocalUser]:
        try:
            with self._session_factory() as db:
                row = db.scalars(
                    select(User).where(User.stytch_user_id == external_auth_id)
                ).first()
                return LocalUser.from_row(row) if row else None
        except SQLAlchemyError as e:
            raise UserStoreError(
                f"An unexpected error occurred when looking up the user account: {e}"
            ) from e

    def create(self, external_auth_id: str) -> LocalUser:
        """
        Insert a new user row.

        Raises:
            UserConflictError: a row for ``external_auth_id`` already exists
            UserStoreError: any other database failure
        """
        try:
            with self._session_factory() as db:
                row = User(stytch_user_id=external_auth_id)
                db.add(row)
                db.commit()
                user = LocalUser.from_row(row)
        except IntegrityError as e:
            logger.error(f"Duplicate user insert for {external_auth_id}: {e}")
            raise UserConflictError(external_auth_id) from e
        except SQLAlchemyError as e:
            raise UserStoreError(
                f"An unexpected error occurred when creating the new user account: {e}"
            ) from e

        logger.info(
            "Created local user",
            extra={"user_id": user.id, "stytch_user_id": external_auth_id},
        )
        return user

    def find_by_id(self, user_id: str) -> Optional[LocalUser]:
        try:
            with self._session_factory() as db:
                row = db.get(User, user_id)
                return LocalUser.from_row(row) if row else None
        except SQLAlchemyError as e:
            raise UserStoreError(
                f"An unexpected error occurred when retrieving the user account: {e}"
            ) from e

    def count(self) -> int:
        try:
            with self._session_factory() as db:
                return db.scalar(select(func.count()).select_from(User))
        except SQLAlchemyError as e:
            raise UserStoreError(f"Failed to count user accounts: {e}") from e
