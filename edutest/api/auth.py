"""Registration and login routes."""

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from edutest.core.security import create_access_token, verify_password
from edutest.db.models import User
from edutest.db.session import get_db
from edutest.schemas.user import AuthResponse, UserCreate, UserLogin, UserRead
from edutest.services import accounts

logger = logging.getLogger(__name__)
router = APIRouter()


def _auth_response(user: User) -> AuthResponse:
    token = create_access_token(subject=str(user.id), role=user.role.value)
    return AuthResponse(access_token=token, user=UserRead.model_validate(user))


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
def register(body: UserCreate, db: Session = Depends(get_db)):
    """Create a learner account. Admins are created with ``scripts/create_admin.py``."""
    if accounts.find_by_user_name(db, body.user_name):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="User name already taken",
        )
    try:
        user = accounts.create_user(db, body.user_name, body.full_name, body.password)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return _auth_response(user)


@router.post("/login", response_model=AuthResponse)
def login(body: UserLogin, db: Session = Depends(get_db)):
    """Authenticate and return a JWT access token + user profile."""
    user = accounts.find_by_user_name(db, body.user_name)
    if not user or not verify_password(body.password, user.hashed_password):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid user name or password",
        )
    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Account deactivated",
        )
    return _auth_response(user)
