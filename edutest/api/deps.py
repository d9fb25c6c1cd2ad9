"""Authentication dependencies for the routers.

``get_current_user`` resolves the bearer token to an active ``User``;
``require_role`` builds a dependency that additionally checks the role.
"""

import uuid
from typing import Callable

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session

from edutest.core.security import decode_access_token
from edutest.db.models import RoleEnum, User
from edutest.db.session import get_db

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login")


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def get_current_user(
    token: str = Depends(oauth2_scheme),
    db: Session = Depends(get_db),
) -> User:
    claims = decode_access_token(token)
    if claims is None:
        raise _unauthorized("Invalid or expired token")
    try:
        user_id = uuid.UUID(str(claims.get("sub")))
    except ValueError:
        raise _unauthorized("Invalid token payload")

    user = db.get(User, user_id)
    if user is None or not user.is_active:
        raise _unauthorized("User not found or inactive")
    return user


def require_role(role: RoleEnum) -> Callable[..., User]:
    """Dependency factory: the caller must be authenticated and hold *role*."""

    def dependency(current_user: User = Depends(get_current_user)) -> User:
        if current_user.role != role:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"{role.value.capitalize()} access required",
            )
        return current_user

    return dependency


require_admin = require_role(RoleEnum.ADMIN)
