"""Auth service — credential checks, claims tokens, registration, password reset."""

import hmac
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Union

from sqlalchemy.orm import Session

from employdex.core.access import Claims
from employdex.core.exceptions import (
    AccountDisabledError,
    AuthenticationError,
    ResourceNotFoundError,
    ValidationError,
)
from employdex.core.security import (
    PASSWORD_RESET_TOKEN_TYPE,
    burn_password_check,
    create_access_token,
    create_password_reset_token,
    decode_token,
    hash_password,
    password_fingerprint,
    verify_password,
)
from employdex.db.session import transaction
from employdex.models import User
from employdex.schemas.schemas import EmailIdentifier, MobileIdentifier
from employdex.services import rbac_service
from employdex.services.audit_service import Auditor
from employdex.services.user_service import user_service

logger = logging.getLogger("employdex.auth")

INVALID_CREDENTIALS = "Invalid credentials"
ACCOUNT_DISABLED = "Account is disabled. Please contact an administrator."
RESET_REQUESTED = "If the account exists, a password reset link has been sent"


class AuthService:
    """Handles authentication and token issuance."""

    @staticmethod
    def find_by_identifier(db: Session, identifier: Union[EmailIdentifier, MobileIdentifier]) -> Optional[User]:
        if identifier.kind == "email":
            return db.query(User).filter(User.email == identifier.value).first()
        return db.query(User).filter(User.mobile_number == identifier.value).first()

    @staticmethod
    def authenticate(
        db: Session,
        auditor: Auditor,
        identifier: Union[EmailIdentifier, MobileIdentifier],
        password: str,
    ) -> Dict[str, Any]:
        """Verify credentials and issue a token carrying roles and permissions.

        Raises:
            AuthenticationError: unknown identifier or wrong password.
            AccountDisabledError: correct password on a deactivated account.
        """
        user = AuthService.find_by_identifier(db, identifier)
        if user is None:
            burn_password_check(password)
            raise AuthenticationError(INVALID_CREDENTIALS)
        if not verify_password(password, user.hashed_password):
            raise AuthenticationError(INVALID_CREDENTIALS)
        if not user.is_active:
            raise AccountDisabledError(ACCOUNT_DISABLED)

        claims = rbac_service.resolve_claims(db, user)
        token = create_access_token(claims)

        with transaction(db):
            user.last_login_at = datetime.now(timezone.utc)

        logger.info("User %s logged in", user.id)
        auditor.record("LOGIN", "user", user.id, {"identifier_kind": identifier.kind}, user_id=user.id)
        return {"token": token, "user": claims.to_payload()}

    @staticmethod
    def register(db: Session, auditor: Auditor, data: Dict[str, Any]) -> User:
        """Self-registration; the new account gets the default role only."""
        return user_service.create_user(
            db,
            auditor,
            mobile_number=data["mobile_number"],
            email=data["email"],
            password=data["password"],
            first_name=data["first_name"],
            last_name=data["last_name"],
            roles=None,
            is_active=True,
            action="REGISTER",
        )

    @staticmethod
    def request_password_reset(db: Session, auditor: Auditor, email: str) -> Dict[str, Any]:
        """Issue a reset token when the account exists; the reply never says."""
        user = db.query(User).filter(User.email == email).first()
        if user is not None and user.is_active:
            token = create_password_reset_token(user.id, user.hashed_password)
            auditor.record("PASSWORD_RESET_REQUESTED", "user", user.id, user_id=user.id)
            # Delivery (mail, SMS) subscribes to this event.
            auditor.emit(
                "user:password_reset_requested",
                {"user_id": user.id, "email": user.email, "token": token},
            )
        return {"message": RESET_REQUESTED}

    @staticmethod
    def reset_password(db: Session, auditor: Auditor, token: str, new_password: str) -> None:
        try:
            payload = decode_token(token, expected_type=PASSWORD_RESET_TOKEN_TYPE)
            user_id = int(payload["sub"])
        except (AuthenticationError, KeyError, ValueError):
            raise ValidationError("Invalid or expired reset token")

        user = db.query(User).filter(User.id == user_id).first()
        # A used token no longer matches the stored hash.
        if user is None or not hmac.compare_digest(
            str(payload.get("pwd", "")), password_fingerprint(user.hashed_password)
        ):
            raise ValidationError("Invalid or expired reset token")

        with transaction(db):
            user.hashed_password = hash_password(new_password)

        auditor.record("PASSWORD_RESET", "user", user.id, user_id=user.id)
        auditor.emit("user:password_reset", {"user_id": user.id})

    @staticmethod
    def profile(db: Session, claims: Claims) -> Dict[str, Any]:
        user = db.query(User).filter(User.id == claims.id).first()
        if not user:
            raise ResourceNotFoundError("User not found")
        return {
            "id": user.id,
            "email": user.email,
            "mobile_number": user.mobile_number,
            "first_name": user.first_name,
            "last_name": user.last_name,
            "is_active": user.is_active,
            "roles": sorted(claims.roles),
            "permissions": sorted(claims.permissions),
        }


auth_service = AuthService()
