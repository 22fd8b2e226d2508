"""Authentication router endpoints."""

from typing import Optional

from fastapi import APIRouter, Depends, Request, status
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.orm import Session

import authentication.auth as auth
import models.schemas as schemas
import repositories.db_models as db_models
from helpers.pagination import PaginationLimit, PaginationSkip
from helpers.rate_limiter import limiter
from repositories.database import get_db
from services import AuthService, PasswordResetService, UserService

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post(
    "/register",
    response_model=schemas.AuthResponse,
    status_code=status.HTTP_201_CREATED,
)
@limiter.limit("3/minute")
def register(
    request: Request, user: schemas.UserCreate, db: Session = Depends(get_db)
) -> schemas.AuthResponse:
    """
    Register a new citizen account and log it in.

    Rate limited to 3 per minute.
    """
    new_user = UserService.register_user(db=db, user_data=user)
    return AuthService.issue_token(new_user)


@router.post("/login", response_model=schemas.AuthResponse)
@limiter.limit("5/minute")
def login(
    request: Request,
    form_data: OAuth2PasswordRequestForm = Depends(),
    db: Session = Depends(get_db),
) -> schemas.AuthResponse:
    """
    Login with email (sent as ``username``) and password.

    Rate limited to 5 per minute. Five consecutive failures lock the
    account for an hour.
    """
    return AuthService.login(db, form_data.username, form_data.password)


@router.post("/forgot-password", response_model=schemas.ForgotPasswordResponse)
@limiter.limit("3/minute")
def forgot_password(
    request: Request,
    body: schemas.ForgotPasswordRequest,
    db: Session = Depends(get_db),
) -> schemas.ForgotPasswordResponse:
    """Start a password reset. The reply never reveals whether the email exists."""
    return PasswordResetService.forgot_password(db, body.email)


@router.patch("/reset-password/{token}", response_model=schemas.AuthResponse)
def reset_password(
    token: str,
    body: schemas.ResetPasswordRequest,
    db: Session = Depends(get_db),
) -> schemas.AuthResponse:
    """Set a new password with a reset token and log in."""
    return PasswordResetService.reset_password(db, token, body)


@router.get("/logout", response_model=schemas.MessageResponse)
async def logout(
    current_user: db_models.User = Depends(auth.get_current_user),
) -> schemas.MessageResponse:
    """Log out. Tokens are stateless, so the client discards its copy."""
    return AuthService.logout(current_user)


@router.get("/me", response_model=schemas.User)
async def read_users_me(
    current_user: db_models.User = Depends(auth.get_current_user),
) -> db_models.User:
    """Get current user."""
    return current_user


@router.patch("/update-profile", response_model=schemas.User)
async def update_profile(
    profile_update: schemas.UserProfileUpdate,
    current_user: db_models.User = Depends(auth.get_current_user),
    db: Session = Depends(get_db),
) -> db_models.User:
    """Update name, phone and address."""
    return UserService.update_profile(db, current_user.id, profile_update)


@router.patch("/change-password", response_model=schemas.AuthResponse)
async def change_password(
    password_change: schemas.PasswordChange,
    current_user: db_models.User = Depends(auth.get_current_user),
    db: Session = Depends(get_db),
) -> schemas.AuthResponse:
    """Change password. Earlier tokens stop working; a new one is returned."""
    return UserService.change_password(db, current_user.id, password_change)


@router.get("/users", response_model=schemas.UserListResponse)
async def list_users(
    role: Optional[db_models.UserRole] = None,
    skip: PaginationSkip = 0,
    limit: PaginationLimit = 50,
    current_user: db_models.User = Depends(auth.get_admin_user),
    db: Session = Depends(get_db),
) -> schemas.UserListResponse:
    """List users (admin only)."""
    return UserService.list_users(db, role=role, skip=skip, limit=limit)
