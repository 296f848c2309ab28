"""
Domain layer - Pure business logic with zero web framework imports.

This package contains the core business logic for OTP-based registration
and login. It defines its own port interfaces for infrastructure
abstraction, ensuring true hexagonal architecture decoupling.
"""

from .channel import VerificationChannel
from .cooldown import CooldownController
from .exceptions import (
    CodeExpired,
    DeliveryFailed,
    EmailAlreadyRegistered,
    InvalidCode,
    InvalidCredentials,
    InvalidInput,
    RateLimited,
    RegistrationError,
    StepOutOfOrder,
    UserNotFound,
    UsernameTaken,
    VerificationFailed,
)
from .login import LoginService, PasswordLoginService
from .models import AuthSession, IssueResult, RegistrationProgress, StartResult, User
from .ports import (
    Channel,
    CodeRepository,
    CodeSender,
    IssuanceLog,
    Purpose,
    Step,
    UserRepository,
    UserType,
    VerifyResult,
)
from .registration import RegistrationService
from .session import SessionIssuer

__all__ = [
    "AuthSession",
    "Channel",
    "CodeExpired",
    "CodeRepository",
    "CodeSender",
    "CooldownController",
    "DeliveryFailed",
    "EmailAlreadyRegistered",
    "InvalidCode",
    "InvalidCredentials",
    "InvalidInput",
    "IssuanceLog",
    "IssueResult",
    "LoginService",
    "PasswordLoginService",
    "Purpose",
    "RateLimited",
    "RegistrationError",
    "RegistrationProgress",
    "RegistrationService",
    "SessionIssuer",
    "StartResult",
    "Step",
    "StepOutOfOrder",
    "User",
    "UserNotFound",
    "UserRepository",
    "UserType",
    "UsernameTaken",
    "VerificationChannel",
    "VerificationFailed",
    "VerifyResult",
]
