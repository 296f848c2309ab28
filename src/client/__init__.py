"""
Client-side registration flow.

Drives the OTP registration steps against the HTTP API, persists the
pending registration between page loads, and mirrors the resend cooldown.
"""

from .api import OtpApiClient
from .errors import FlowError, NetworkError, RateLimited, ServerError, ValidationError
from .flow import AuthTokens, FlowState, Notice, OtpLoginFlow, RegistrationFlow
from .session_store import (
    JsonFileStorage,
    MemoryStorage,
    RegistrationSession,
    RegistrationSessionStore,
)

__all__ = [
    "AuthTokens",
    "FlowError",
    "FlowState",
    "JsonFileStorage",
    "MemoryStorage",
    "NetworkError",
    "Notice",
    "OtpApiClient",
    "OtpLoginFlow",
    "RateLimited",
    "RegistrationFlow",
    "RegistrationSession",
    "RegistrationSessionStore",
    "ServerError",
    "ValidationError",
]
