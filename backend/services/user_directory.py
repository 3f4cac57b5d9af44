from __future__ import annotations

import hmac

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from models.user import UserDB
from services.errors import AuthError, ValidationError
from util.jsonlog import get_logger, log_event


logger = get_logger("auth")


def _require_credentials(username, password) -> tuple[str, str]:
    if not isinstance(username, str) or not username.strip():
        raise ValidationError("username and password are required")
    if not isinstance(password, str) or not password:
        raise ValidationError("username and password are required")
    return username.strip(), password


class UserDirectory:
    """Credential lookup over the users table."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def exists(self, username: str) -> bool:
        return self.db.get(UserDB, username) is not None

    def register(self, username, password) -> UserDB:
        username, password = _require_credentials(username, password)

        if self.exists(username):
            raise ValidationError("User already exists")

        user = UserDB(username=username, password=password)
        self.db.add(user)
        try:
            self.db.commit()
        except IntegrityError:
            # Lost a race with a concurrent register for the same name.
            self.db.rollback()
            raise ValidationError("User already exists")
        self.db.refresh(user)

        log_event(
            logger,
            level="INFO",
            event="user_registered",
            msg="user registered",
            user=username,
        )
        return user

    def verify(self, username, password) -> UserDB:
        try:
            username, password = _require_credentials(username, password)
        except ValidationError:
            raise AuthError("Invalid credentials")

        user = self.db.get(UserDB, username)
        if user is None or not hmac.compare_digest(
            user.password.encode("utf-8"), password.encode("utf-8")
        ):
            log_event(
                logger,
                level="WARNING",
                event="login_failed",
                msg="invalid credentials",
                user=username,
            )
            raise AuthError("Invalid credentials")
        return user


def seed_users(db: Session, users: list[dict[str, str]]) -> int:
    """Create configured demo users that do not exist yet. Returns how many were added."""
    directory = UserDirectory(db)
    added = 0
    for u in users:
        if directory.exists(u["username"]):
            continue
        directory.register(u["username"], u["password"])
        added += 1
    return added
