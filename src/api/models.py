"""
API request and response models.

Pydantic models for FastAPI endpoint validation and OpenAPI schema generation.
Fields are exchanged in camelCase; Python code uses snake_case names.
"""

from pydantic import BaseModel, ConfigDict, EmailStr, Field
from pydantic.alias_generators import to_camel

from src.domain.models import AuthSession, RegistrationProgress, User
from src.domain.ports import Step, UserType

CODE_FIELD = Field(
    ...,
    min_length=6,
    max_length=6,
    pattern=r"^\d{6}$",
    description="6-digit verification code",
)


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class RegisterStartRequest(CamelModel):
    """Request model for starting (or resuming) a registration."""

    name: str = Field(..., min_length=1)
    email: EmailStr
    username: str | None = None
    user_type: UserType = UserType.VENDOR
    password: str | None = Field(None, min_length=8, description="Buyer password (min 8 characters)")


class RegisterStatusRequest(CamelModel):
    user_id: str
    email: EmailStr


class VerifyEmailRequest(CamelModel):
    user_id: str
    email: EmailStr
    code: str = CODE_FIELD


class ResendEmailRequest(CamelModel):
    user_id: str
    email: EmailStr


class SetPhoneRequest(CamelModel):
    user_id: str
    phone: str = Field(..., min_length=1)
    country_code: str = Field(..., min_length=1, examples=["+971"])


class VerifyPhoneRequest(CamelModel):
    user_id: str
    phone: str = Field(..., min_length=1, description="Phone in international form, e.g. +971501234567")
    code: str = CODE_FIELD


class ResendPhoneRequest(CamelModel):
    user_id: str


class LoginStartRequest(CamelModel):
    email: EmailStr


class LoginVerifyRequest(CamelModel):
    email: EmailStr
    code: str = CODE_FIELD


class PasswordLoginRequest(CamelModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class UserResponse(CamelModel):
    id: str
    name: str
    email: str
    username: str | None = None
    user_type: UserType

    @classmethod
    def from_user(cls, user: User) -> "UserResponse":
        return cls(
            id=user.id,
            name=user.name,
            email=user.email,
            username=user.username,
            user_type=user.user_type,
        )


class RegistrationProgressResponse(CamelModel):
    """Server-authoritative registration progress."""

    user_id: str
    email: str
    name: str
    username: str | None = None
    status: str = Field(..., description='"fresh" or "resume"')
    completed_steps: list[Step] = Field(default_factory=list)
    continue_to_phone: bool | None = None
    phone: str | None = None

    @classmethod
    def from_progress(cls, progress: RegistrationProgress, **extra) -> "RegistrationProgressResponse":
        user = progress.user
        return cls(
            user_id=user.id,
            email=user.email,
            name=user.name,
            username=user.username,
            status=progress.status,
            completed_steps=sorted(progress.completed_steps, key=lambda s: s.value),
            continue_to_phone=progress.continue_to_phone or None,
            phone=user.phone,
            **extra,
        )


class RegisterStartResponse(RegistrationProgressResponse):
    resuming: bool | None = None
    debug_otp: str | None = None


class CodeSentResponse(CamelModel):
    ok: bool = True
    debug_otp: str | None = None


class SetPhoneResponse(CodeSentResponse):
    phone: str


class AuthSessionResponse(CamelModel):
    user: UserResponse
    access_token: str
    refresh_token: str
    expires_in: int

    @classmethod
    def from_session(cls, session: AuthSession) -> "AuthSessionResponse":
        return cls(
            user=UserResponse.from_user(session.user),
            access_token=session.access_token,
            refresh_token=session.refresh_token,
            expires_in=session.expires_in,
        )


class VerifyEmailResponse(CamelModel):
    """complete is true for buyers, whose registration ends with the email step."""

    ok: bool = True
    complete: bool = False
    user: UserResponse | None = None
    access_token: str | None = None
    refresh_token: str | None = None
    expires_in: int | None = None


class ErrorResponse(BaseModel):
    """Standard error response model."""

    error: str
