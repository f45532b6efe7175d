"""Authentication API router — register, login, password reset, me."""

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.orm import Session

from employdex.api.deps import get_auditor
from employdex.core.access import Claims
from employdex.core.config import settings
from employdex.core.rate_limiter import limiter
from employdex.core.security import get_current_claims
from employdex.db.session import get_db
from employdex.schemas.schemas import (
    ForgotPasswordRequest,
    LoginRequest,
    LoginResponse,
    MeResponse,
    MessageResponse,
    RegisterRequest,
    ResetPasswordRequest,
    UserOut,
)
from employdex.services.audit_service import Auditor
from employdex.services.auth_service import auth_service

router = APIRouter(prefix="/authentication", tags=["authentication"])


@router.post("/register", response_model=UserOut, status_code=status.HTTP_201_CREATED)
async def register(
    body: RegisterRequest,
    db: Session = Depends(get_db),
    auditor: Auditor = Depends(get_auditor),
):
    """Register a new account with the default role."""
    user = auth_service.register(db, auditor, body.model_dump())
    return UserOut.from_user(user)


@router.post("/login", response_model=LoginResponse)
@limiter.limit(settings.LOGIN_RATE_LIMIT)
async def login(
    request: Request,
    body: LoginRequest,
    db: Session = Depends(get_db),
    auditor: Auditor = Depends(get_auditor),
):
    """Authenticate by email or mobile number and return a claims token."""
    return auth_service.authenticate(db, auditor, body.identifier, body.password)


@router.post("/forgot-password", response_model=MessageResponse)
@limiter.limit(settings.LOGIN_RATE_LIMIT)
async def forgot_password(
    request: Request,
    body: ForgotPasswordRequest,
    db: Session = Depends(get_db),
    auditor: Auditor = Depends(get_auditor),
):
    return auth_service.request_password_reset(db, auditor, body.email)


@router.post("/reset-password", response_model=MessageResponse)
async def reset_password(
    body: ResetPasswordRequest,
    db: Session = Depends(get_db),
    auditor: Auditor = Depends(get_auditor),
):
    auth_service.reset_password(db, auditor, body.token, body.password)
    return MessageResponse(message="Password has been reset")


@router.get("/me", response_model=MeResponse)
async def get_me(
    db: Session = Depends(get_db),
    claims: Claims = Depends(get_current_claims),
):
    """Current user's profile with the roles and permissions in the token."""
    return auth_service.profile(db, claims)
