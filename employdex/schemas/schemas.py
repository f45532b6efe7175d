"""Pydantic schemas for API request/response serialization."""

import re
from datetime import datetime
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field, field_validator

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
MOBILE_PATTERN = re.compile(r"^\+?[0-9]{7,15}$")
PERMISSION_NAME_PATTERN = r"^[a-z_]+$"
# bcrypt only accepts this many input bytes
MAX_PASSWORD_BYTES = 72


def check_password_strength(password: str) -> str:
    """8 characters to 72 bytes, with an upper-case letter, a lower-case letter and a digit."""
    if len(password) < 8:
        raise ValueError("Password must be at least 8 characters long")
    if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise ValueError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes long")
    if not re.search(r"[A-Z]", password):
        raise ValueError("Password must contain an uppercase letter")
    if not re.search(r"[a-z]", password):
        raise ValueError("Password must contain a lowercase letter")
    if not re.search(r"[0-9]", password):
        raise ValueError("Password must contain a digit")
    return password


def check_email(value: str) -> str:
    value = value.strip().lower()
    if not EMAIL_PATTERN.match(value):
        raise ValueError("Invalid email address")
    return value


def check_mobile(value: str) -> str:
    value = value.strip()
    if not MOBILE_PATTERN.match(value):
        raise ValueError("Invalid mobile number")
    return value


# ---- Auth ----
class EmailIdentifier(BaseModel):
    kind: Literal["email"]
    value: str

    @field_validator("value")
    @classmethod
    def normalize_value(cls, v):
        return check_email(v)


class MobileIdentifier(BaseModel):
    kind: Literal["mobile"]
    value: str

    @field_validator("value")
    @classmethod
    def normalize_value(cls, v):
        return check_mobile(v)


# Tagged union: the caller says which kind of identifier it is sending.
Identifier = Annotated[Union[EmailIdentifier, MobileIdentifier], Field(discriminator="kind")]


class LoginRequest(BaseModel):
    identifier: Identifier
    password: str = Field(..., min_length=1)


class ClaimsUserOut(BaseModel):
    id: int
    email: str
    first_name: str
    last_name: str
    roles: List[str]
    permissions: List[str]


class LoginResponse(BaseModel):
    token: str
    user: ClaimsUserOut


class RegisterRequest(BaseModel):
    mobile_number: str
    email: str
    password: str
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v):
        return check_email(v)

    @field_validator("mobile_number")
    @classmethod
    def normalize_mobile(cls, v):
        return check_mobile(v)

    @field_validator("password")
    @classmethod
    def password_strength(cls, v):
        return check_password_strength(v)


class ForgotPasswordRequest(BaseModel):
    email: str

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v):
        return check_email(v)


class ResetPasswordRequest(BaseModel):
    token: str = Field(..., min_length=1)
    password: str

    @field_validator("password")
    @classmethod
    def password_strength(cls, v):
        return check_password_strength(v)


class MeResponse(BaseModel):
    id: int
    email: str
    mobile_number: str
    first_name: str
    last_name: str
    is_active: bool
    roles: List[str]
    permissions: List[str]


# ---- User ----
class UserOut(BaseModel):
    id: int
    mobile_number: str
    email: str
    first_name: str
    last_name: str
    is_active: bool = True
    roles: List[str] = []
    last_login_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_user(cls, user) -> "UserOut":
        return cls(
            id=user.id,
            mobile_number=user.mobile_number,
            email=user.email,
            first_name=user.first_name,
            last_name=user.last_name,
            is_active=user.is_active,
            roles=user.role_names,
            last_login_at=user.last_login_at,
            created_at=user.created_at,
            updated_at=user.updated_at,
        )


class UserCreateRequest(BaseModel):
    mobile_number: str
    email: str
    password: str
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    roles: Optional[List[str]] = None
    is_active: bool = True

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v):
        return check_email(v)

    @field_validator("mobile_number")
    @classmethod
    def normalize_mobile(cls, v):
        return check_mobile(v)

    @field_validator("password")
    @classmethod
    def password_strength(cls, v):
        return check_password_strength(v)


class UserUpdateRequest(BaseModel):
    mobile_number: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None
    first_name: Optional[str] = Field(None, min_length=1, max_length=100)
    last_name: Optional[str] = Field(None, min_length=1, max_length=100)
    roles: Optional[List[str]] = None  # full replace when given
    is_active: Optional[bool] = None

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v):
        return check_email(v) if v is not None else v

    @field_validator("mobile_number")
    @classmethod
    def normalize_mobile(cls, v):
        return check_mobile(v) if v is not None else v

    @field_validator("password")
    @classmethod
    def password_strength(cls, v):
        return check_password_strength(v) if v is not None else v


class UserStatusRequest(BaseModel):
    is_active: bool


class UserListResponse(BaseModel):
    users: List[UserOut]
    total: int
    page: int
    limit: int
    pages: int


# ---- Role / Permission ----
class PermissionOut(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class PermissionDetailOut(PermissionOut):
    role_count: int = 0
    roles: List[Dict[str, Any]] = []


class PermissionCreateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=100, pattern=PERMISSION_NAME_PATTERN)
    description: Optional[str] = Field(None, max_length=255)


class PermissionUpdateRequest(BaseModel):
    description: Optional[str] = Field(None, max_length=255)


class AssignPermissionsRequest(BaseModel):
    role_id: int
    permission_ids: List[int]


class RoleOut(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    is_system: bool = False
    permissions: List[PermissionOut] = []
    user_count: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class RoleDetailOut(RoleOut):
    users: List[Dict[str, Any]] = []


class RoleCreateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=50)
    description: Optional[str] = Field(None, max_length=255)
    permission_ids: List[int] = []


class RoleUpdateRequest(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=50)
    description: Optional[str] = Field(None, max_length=255)
    permission_ids: Optional[List[int]] = None  # full replace when given


# ---- Feature toggles ----
class FeatureToggleOut(BaseModel):
    id: int
    feature_name: str
    is_enabled: bool
    description: Optional[str] = None
    feature: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class FeatureToggleCreateRequest(BaseModel):
    feature_name: str = Field(..., min_length=1, max_length=100)
    is_enabled: bool = False
    description: Optional[str] = Field(None, max_length=255)
    feature: Optional[str] = Field(None, max_length=100)


class FeatureToggleUpdateRequest(BaseModel):
    feature_name: Optional[str] = Field(None, min_length=1, max_length=100)
    is_enabled: Optional[bool] = None
    description: Optional[str] = Field(None, max_length=255)
    feature: Optional[str] = Field(None, max_length=100)


class FeatureToggleSwitchRequest(BaseModel):
    feature_name: str = Field(..., min_length=1)
    is_enabled: bool


# ---- Activity log ----
class ActivityLogOut(BaseModel):
    id: int
    user_id: Optional[int] = None
    user_email: Optional[str] = None
    user_name: Optional[str] = None
    action: str
    entity: str
    entity_id: Optional[str] = None
    details: Optional[Any] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    created_at: Optional[datetime] = None


# ---- Payment ----
class QrCodeOut(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    payment_type: str
    image_content_type: str
    image_url: str
    is_active: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_qr(cls, qr) -> "QrCodeOut":
        return cls(
            id=qr.id,
            name=qr.name,
            description=qr.description,
            payment_type=qr.payment_type,
            image_content_type=qr.image_content_type,
            image_url=f"/api/payment/qr-codes/{qr.id}/image",
            is_active=qr.is_active,
            created_at=qr.created_at,
            updated_at=qr.updated_at,
        )


class QrCodeUpdateRequest(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    payment_type: Optional[str] = Field(None, min_length=1, max_length=50)


class TransactionCreateRequest(BaseModel):
    qr_code_id: int
    transaction_ref: str = Field(..., min_length=1, max_length=100)
    amount: float = Field(..., gt=0)
    currency: str = Field("INR", min_length=3, max_length=3)
    notes: Optional[str] = None


class TransactionOut(BaseModel):
    id: int
    transaction_ref: str
    amount: float
    currency: str
    status: str
    notes: Optional[str] = None
    qr_code_id: int
    qr_code_name: Optional[str] = None
    user_id: int
    user_email: Optional[str] = None
    verified_by: Optional[int] = None
    verified_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    @classmethod
    def from_transaction(cls, tx) -> "TransactionOut":
        return cls(
            id=tx.id,
            transaction_ref=tx.transaction_ref,
            amount=tx.amount,
            currency=tx.currency,
            status=tx.status,
            notes=tx.notes,
            qr_code_id=tx.qr_code_id,
            qr_code_name=tx.qr_code.name if tx.qr_code else None,
            user_id=tx.user_id,
            user_email=tx.user.email if tx.user else None,
            verified_by=tx.verified_by,
            verified_at=tx.verified_at,
            created_at=tx.created_at,
        )


# ---- Bulk upload ----
class BulkUploadResult(BaseModel):
    total: int
    successful: int
    failed: int
    errors: List[Dict[str, Any]] = []


# ---- Generic ----
class MessageResponse(BaseModel):
    message: str
    detail: Optional[Any] = None
