"""
API v1 routes.

Defines the REST endpoints of the OTP registration and login flow.
Domain errors are rendered by the RegistrationError handler in
src.api.main as {"error": message}; routes only translate between
request models, domain services and response models.

Handlers are plain functions: FastAPI runs them in its threadpool, which
keeps blocking provider calls, bcrypt and the psycopg pool off the event loop.
"""

from fastapi import APIRouter, Depends, status

from src.api.dependencies import (
    get_login_service,
    get_password_login_service,
    get_registration_service,
)
from src.api.models import (
    AuthSessionResponse,
    CodeSentResponse,
    ErrorResponse,
    LoginStartRequest,
    LoginVerifyRequest,
    PasswordLoginRequest,
    RegisterStartRequest,
    RegisterStartResponse,
    RegisterStatusRequest,
    RegistrationProgressResponse,
    ResendEmailRequest,
    ResendPhoneRequest,
    SetPhoneRequest,
    SetPhoneResponse,
    UserResponse,
    VerifyEmailRequest,
    VerifyEmailResponse,
    VerifyPhoneRequest,
)
from src.domain.login import LoginService, PasswordLoginService
from src.domain.registration import RegistrationService

router = APIRouter(prefix="/auth", tags=["v1"])

_CODE_ERRORS = {
    401: {"model": ErrorResponse, "description": "Invalid or expired code"},
    404: {"model": ErrorResponse, "description": "Registration not found"},
    422: {"description": "Validation error"},
}

_ISSUE_ERRORS = {
    429: {"model": ErrorResponse, "description": "Resend cooldown active"},
    502: {"model": ErrorResponse, "description": "Code delivery failed"},
}


@router.post(
    "/otp/register/start",
    response_model=RegisterStartResponse,
    response_model_exclude_none=True,
    responses={
        409: {"model": ErrorResponse, "description": "Email or username already registered"},
        422: {"description": "Validation error"},
        **_ISSUE_ERRORS,
    },
    summary="Start or resume a registration",
    description="Submit identity details. A 6-digit code is emailed unless the email "
    "is already verified, in which case continueToPhone is returned.",
)
def register_start(
    request_data: RegisterStartRequest,
    service: RegistrationService = Depends(get_registration_service),
) -> RegisterStartResponse:
    result = service.start(
        name=request_data.name,
        email=request_data.email,
        username=request_data.username,
        user_type=request_data.user_type,
        password=request_data.password,
    )
    return RegisterStartResponse.from_progress(
        result.progress,
        resuming=result.resuming or None,
        debug_otp=result.issue.debug_code if result.issue else None,
    )


@router.post(
    "/otp/register/status",
    response_model=RegistrationProgressResponse,
    response_model_exclude_none=True,
    responses={404: {"model": ErrorResponse, "description": "Registration not found"}},
    summary="Get registration progress",
    description="Read-only progress used to resume a registration without issuing a new code.",
)
def register_status(
    request_data: RegisterStatusRequest,
    service: RegistrationService = Depends(get_registration_service),
) -> RegistrationProgressResponse:
    progress = service.status(request_data.user_id, request_data.email)
    return RegistrationProgressResponse.from_progress(progress)


@router.post(
    "/otp/verify-email",
    response_model=VerifyEmailResponse,
    response_model_exclude_none=True,
    responses=_CODE_ERRORS,
    summary="Verify email code",
)
def verify_email(
    request_data: VerifyEmailRequest,
    service: RegistrationService = Depends(get_registration_service),
) -> VerifyEmailResponse:
    result = service.verify_email(request_data.user_id, request_data.email, request_data.code)
    if result.session is None:
        return VerifyEmailResponse(ok=True, complete=False)
    return VerifyEmailResponse(
        ok=True,
        complete=True,
        user=UserResponse.from_user(result.session.user),
        access_token=result.session.access_token,
        refresh_token=result.session.refresh_token,
        expires_in=result.session.expires_in,
    )


@router.post(
    "/otp/resend-email",
    response_model=CodeSentResponse,
    response_model_exclude_none=True,
    responses={404: {"model": ErrorResponse, "description": "Registration not found"}, **_ISSUE_ERRORS},
    summary="Resend email code",
)
def resend_email(
    request_data: ResendEmailRequest,
    service: RegistrationService = Depends(get_registration_service),
) -> CodeSentResponse:
    issue = service.resend_email(request_data.user_id, request_data.email)
    return CodeSentResponse(debug_otp=issue.debug_code)


@router.post(
    "/otp/set-phone",
    response_model=SetPhoneResponse,
    response_model_exclude_none=True,
    responses={
        400: {"model": ErrorResponse, "description": "Malformed phone number"},
        404: {"model": ErrorResponse, "description": "Registration not found"},
        409: {"model": ErrorResponse, "description": "Email not verified yet"},
        **_ISSUE_ERRORS,
    },
    summary="Add a phone number and send a code",
)
def set_phone(
    request_data: SetPhoneRequest,
    service: RegistrationService = Depends(get_registration_service),
) -> SetPhoneResponse:
    phone, issue = service.set_phone(
        request_data.user_id, request_data.phone, request_data.country_code
    )
    return SetPhoneResponse(phone=phone, debug_otp=issue.debug_code)


@router.post(
    "/otp/verify-phone",
    response_model=AuthSessionResponse,
    responses={**_CODE_ERRORS, 409: {"model": ErrorResponse, "description": "Phone not set"}},
    summary="Verify phone code and complete registration",
)
def verify_phone(
    request_data: VerifyPhoneRequest,
    service: RegistrationService = Depends(get_registration_service),
) -> AuthSessionResponse:
    session = service.verify_phone(request_data.user_id, request_data.phone, request_data.code)
    return AuthSessionResponse.from_session(session)


@router.post(
    "/otp/resend-phone",
    response_model=CodeSentResponse,
    response_model_exclude_none=True,
    responses={404: {"model": ErrorResponse, "description": "Registration not found"}, **_ISSUE_ERRORS},
    summary="Resend phone code",
)
def resend_phone(
    request_data: ResendPhoneRequest,
    service: RegistrationService = Depends(get_registration_service),
) -> CodeSentResponse:
    issue = service.resend_phone(request_data.user_id)
    return CodeSentResponse(debug_otp=issue.debug_code)


@router.post(
    "/otp/login/start",
    response_model=CodeSentResponse,
    response_model_exclude_none=True,
    responses=_ISSUE_ERRORS,
    summary="Send a login code",
    description="Always answers the same way, whether or not the email has an account.",
)
def login_start(
    request_data: LoginStartRequest,
    service: LoginService = Depends(get_login_service),
) -> CodeSentResponse:
    issue = service.start(request_data.email)
    return CodeSentResponse(debug_otp=issue.debug_code)


@router.post(
    "/otp/login/verify",
    response_model=AuthSessionResponse,
    responses={401: {"model": ErrorResponse, "description": "Invalid or expired code"}},
    summary="Log in with a code",
)
def login_verify(
    request_data: LoginVerifyRequest,
    service: LoginService = Depends(get_login_service),
) -> AuthSessionResponse:
    session = service.verify(request_data.email, request_data.code)
    return AuthSessionResponse.from_session(session)


@router.post(
    "/login",
    response_model=AuthSessionResponse,
    status_code=status.HTTP_200_OK,
    responses={401: {"model": ErrorResponse, "description": "Invalid email or password"}},
    summary="Log in with email and password",
)
def password_login(
    request_data: PasswordLoginRequest,
    service: PasswordLoginService = Depends(get_password_login_service),
) -> AuthSessionResponse:
    session = service.login(request_data.email, request_data.password)
    return AuthSessionResponse.from_session(session)
