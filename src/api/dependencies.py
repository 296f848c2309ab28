"""
FastAPI dependencies - Dependency injection factories.

This module provides Depends() factories for injecting domain services
into routes, plus the builders that wire infrastructure adapters from
settings during application startup.
"""

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timedelta

from fastapi import Request

from src.adapters.sms.console import ConsoleSmsSender
from src.adapters.sms.twilio import TwilioSmsSender
from src.adapters.smtp.console import ConsoleEmailSender
from src.adapters.smtp.resend import ResendEmailSender
from src.config.settings import Settings
from src.domain.channel import VerificationChannel
from src.domain.clock import utc_now
from src.domain.cooldown import CooldownController
from src.domain.login import LoginService, PasswordLoginService
from src.domain.ports import Channel, CodeRepository, CodeSender, IssuanceLog, UserRepository
from src.domain.registration import RegistrationService
from src.domain.session import SessionIssuer


@dataclass
class Infrastructure:
    """Adapters shared by every request, stored in app.state during lifespan."""

    users: UserRepository
    codes: CodeRepository
    issuances: IssuanceLog
    email_sender: CodeSender
    sms_sender: CodeSender
    clock: Callable[[], datetime] = field(default=utc_now)


def build_email_sender(settings: Settings) -> CodeSender:
    """Pick the email adapter configured by EMAIL_BACKEND."""
    if settings.email_backend == "resend":
        if not settings.resend_api_key:
            raise RuntimeError("EMAIL_BACKEND=resend requires RESEND_API_KEY")
        return ResendEmailSender(
            api_key=settings.resend_api_key,
            from_email=settings.email_from,
            ttl_minutes=settings.otp_ttl_seconds // 60,
        )
    return ConsoleEmailSender()


def build_sms_sender(settings: Settings) -> CodeSender:
    """Pick the SMS adapter configured by SMS_BACKEND."""
    if settings.sms_backend == "twilio":
        if not (settings.twilio_account_sid and settings.twilio_auth_token and settings.twilio_from_number):
            raise RuntimeError("SMS_BACKEND=twilio requires Twilio credentials")
        return TwilioSmsSender(
            account_sid=settings.twilio_account_sid,
            auth_token=settings.twilio_auth_token,
            from_number=settings.twilio_from_number,
        )
    return ConsoleSmsSender()


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_infrastructure(request: Request) -> Infrastructure:
    """
    Get adapters from app state.

    The adapters are created during app lifespan startup and stored in app.state.
    """
    return request.app.state.infrastructure


def build_channel(infra: Infrastructure, settings: Settings, channel: Channel) -> VerificationChannel:
    """
    Wire one verification channel.

    debug_mode is read from Settings.is_debug_mode here and nowhere else.
    """
    sender = infra.email_sender if channel == Channel.EMAIL else infra.sms_sender
    return VerificationChannel(
        channel=channel,
        repository=infra.codes,
        sender=sender,
        cooldown=CooldownController(
            log=infra.issuances,
            interval_seconds=settings.resend_cooldown_seconds,
            clock=infra.clock,
        ),
        ttl_seconds=settings.otp_ttl_seconds,
        code_length=settings.otp_length,
        debug_mode=settings.is_debug_mode,
        retention_seconds=settings.expired_code_retention_seconds,
        clock=infra.clock,
    )


def purge_expired_codes(infra: Infrastructure, settings: Settings) -> int:
    """Delete codes past the retention window, the same cutoff issue() applies."""
    cutoff = infra.clock() - timedelta(seconds=settings.expired_code_retention_seconds)
    return infra.codes.delete_expired(cutoff)


def build_session_issuer(settings: Settings, infra: Infrastructure) -> SessionIssuer:
    return SessionIssuer(
        secret=settings.jwt_secret,
        algorithm=settings.jwt_algorithm,
        access_ttl_seconds=settings.access_token_ttl_seconds,
        refresh_ttl_seconds=settings.refresh_token_ttl_seconds,
        clock=infra.clock,
    )


def get_registration_service(request: Request) -> RegistrationService:
    """
    Create registration service with injected dependencies.

    Wires together the repositories, both channels and the session issuer.
    """
    settings = get_app_settings(request)
    infra = get_infrastructure(request)
    return RegistrationService(
        users=infra.users,
        email_channel=build_channel(infra, settings, Channel.EMAIL),
        phone_channel=build_channel(infra, settings, Channel.PHONE),
        session_issuer=build_session_issuer(settings, infra),
        bcrypt_cost=settings.bcrypt_cost,
    )


def get_login_service(request: Request) -> LoginService:
    settings = get_app_settings(request)
    infra = get_infrastructure(request)
    return LoginService(
        users=infra.users,
        email_channel=build_channel(infra, settings, Channel.EMAIL),
        session_issuer=build_session_issuer(settings, infra),
    )


def get_password_login_service(request: Request) -> PasswordLoginService:
    settings = get_app_settings(request)
    infra = get_infrastructure(request)
    return PasswordLoginService(users=infra.users, session_issuer=build_session_issuer(settings, infra))
