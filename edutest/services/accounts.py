"""User account helpers shared by the auth routes and the admin bootstrap script."""

import logging

from sqlalchemy.orm import Session

from edutest.core.security import hash_password
from edutest.db.models import RoleEnum, User

logger = logging.getLogger(__name__)


def find_by_user_name(db: Session, user_name: str) -> User | None:
    """User names are stored lower-cased; lookups are case-insensitive."""
    return db.query(User).filter(User.user_name == user_name.lower()).first()


def create_user(
    db: Session,
    user_name: str,
    full_name: str,
    password: str,
    role: RoleEnum = RoleEnum.USER,
) -> User:
    user = User(
        user_name=user_name.lower(),
        full_name=full_name.strip(),
        hashed_password=hash_password(password),
        role=role,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info("Created %s account %s", role.value, user.user_name)
    return user


def ensure_admin(
    db: Session, user_name: str, full_name: str, password: str
) -> tuple[User, bool]:
    """Return ``(admin, created)``. An existing account is returned unchanged."""
    existing = find_by_user_name(db, user_name)
    if existing is not None:
        return existing, False
    return create_user(db, user_name, full_name, password, role=RoleEnum.ADMIN), True
