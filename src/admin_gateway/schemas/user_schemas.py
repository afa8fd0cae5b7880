from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, model_validator


# --- Authorization Claims ---
class Permission(str, Enum):
    OWNER = "owner"
    EDITOR = "editor"


class AuthorizationClaims(BaseModel):
    """Authorization payload stored in the identity's ``app_metadata``.

    Serialized with the camelCase keys the dashboard reads
    (``admin``, ``permissions``, ``forcePasswordReset``).
    """

    admin: bool = False
    permissions: Optional[Permission] = None
    force_password_reset: bool = Field(False, alias="forcePasswordReset")

    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    @model_validator(mode="after")
    def admin_requires_permissions(self) -> "AuthorizationClaims":
        if self.admin and self.permissions is None:
            raise ValueError("permissions must be set when admin is true")
        return self

    def to_metadata(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


CLAIM_KEYS = ("admin", "permissions", "forcePasswordReset")


# --- Identity Schemas ---
class UserRecord(BaseModel):
    """Public view of an identity provider account."""

    uid: str
    email: Optional[str] = None
    display_name: Optional[str] = Field(None, alias="displayName")
    phone_number: Optional[str] = Field(None, alias="phoneNumber")
    email_verified: bool = Field(False, alias="emailVerified")
    custom_claims: Dict[str, Any] = Field(default_factory=dict, alias="customClaims")
    created_at: Optional[datetime] = Field(None, alias="createdAt")
    last_sign_in_at: Optional[datetime] = Field(None, alias="lastSignInAt")

    model_config = ConfigDict(populate_by_name=True)

    @classmethod
    def from_supabase_user(cls, user: Any) -> "UserRecord":
        app_metadata = getattr(user, "app_metadata", None) or {}
        user_metadata = getattr(user, "user_metadata", None) or {}
        return cls(
            uid=str(user.id),
            email=getattr(user, "email", None),
            display_name=user_metadata.get("display_name"),
            phone_number=getattr(user, "phone", None) or None,
            email_verified=bool(getattr(user, "email_confirmed_at", None)),
            custom_claims={k: app_metadata[k] for k in CLAIM_KEYS if k in app_metadata},
            created_at=getattr(user, "created_at", None),
            last_sign_in_at=getattr(user, "last_sign_in_at", None),
        )


# --- Request Schemas ---
class CreateUserRequest(BaseModel):
    email: EmailStr
    name: str = Field(..., min_length=1, max_length=100)
    phone_number: str = Field(..., min_length=1, max_length=32, alias="phoneNumber")

    model_config = ConfigDict(populate_by_name=True)


class AdminUpdateRequest(BaseModel):
    uid: Optional[str] = None
    phone_number: Optional[str] = Field(None, max_length=32, alias="phoneNumber")

    model_config = ConfigDict(populate_by_name=True)


class AdminLoginRequest(BaseModel):
    # Format and length rules are enforced by the auth gateway itself.
    email: str = ""
    password: str = ""


class PasswordResetRequest(BaseModel):
    email: EmailStr
    url: str = Field(..., min_length=1)


class EmailRequest(BaseModel):
    email: EmailStr


class VerifyEmailRequest(BaseModel):
    code: Optional[str] = None
    email: Optional[str] = None


class DeleteUserRequest(BaseModel):
    uid: str = Field(..., min_length=1)


class ContactUsRequest(BaseModel):
    email: EmailStr
    subject: str = Field(..., min_length=1)
    message: str = Field(..., min_length=1)
    first_name: str = Field(..., min_length=1, alias="firstName")
    last_name: str = Field(..., min_length=1, alias="lastName")

    model_config = ConfigDict(populate_by_name=True)


# --- Response Schemas ---
class UserRecordResponse(BaseModel):
    message: str
    user_record: UserRecord = Field(..., alias="userRecord")

    model_config = ConfigDict(populate_by_name=True)


class AdminLoginResponse(BaseModel):
    message: str
    force_password_change: bool = Field(False, alias="forcePasswordChange")
    permissions: Optional[Permission] = None

    model_config = ConfigDict(populate_by_name=True)


class EmailVerificationSentResponse(BaseModel):
    message: str
    link: str


class EmailVerificationStatusResponse(BaseModel):
    message: str
    verified: bool
    user_record: UserRecord = Field(..., alias="userRecord")

    model_config = ConfigDict(populate_by_name=True)


class ClaimsUpdatedResponse(BaseModel):
    message: str
    admin: bool
    permissions: Optional[Permission] = None
    force_password_reset: bool = Field(False, alias="forcePasswordReset")

    model_config = ConfigDict(populate_by_name=True)


class StatusResponse(BaseModel):
    status: str
