"""
Verification channel - issue and verify one-time codes over email or phone.

Code Lifecycle
==============

    issue   -> code stored (previous active code for the address invalidated)
    verify  -> code consumed (single use)
    timeout -> code expired (10 minutes after issue by default)

Failure semantics (fail closed):
- A wrong code, a consumed code and "no code was ever issued" are all
  reported as InvalidCode, so callers cannot probe which addresses
  requested codes.
- An expired code is reported as CodeExpired.

There is no lockout after repeated failures; mismatches are only counted
by the repository.
"""

import logging
import secrets
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timedelta

from .clock import utc_now
from .cooldown import CooldownController
from .exceptions import CodeExpired, InvalidCode
from .models import IssueResult
from .ports import Channel, CodeRepository, CodeSender, Purpose, VerifyResult

logger = logging.getLogger(__name__)


@dataclass
class VerificationChannel:
    """
    One delivery channel (email or phone) bound to its sender.

    The debug_mode flag is resolved once from Settings.is_debug_mode when the
    channel is wired; it is the only place plaintext codes may leave the domain.
    """

    channel: Channel
    repository: CodeRepository
    sender: CodeSender
    cooldown: CooldownController
    ttl_seconds: int = 600
    code_length: int = 6
    debug_mode: bool = False
    retention_seconds: int = 60 * 60 * 24  # expired codes stay reportable as expired
    clock: Callable[[], datetime] = field(default=utc_now)

    def issue(
        self,
        address: str,
        purpose: Purpose,
        user_id: str | None = None,
        name: str | None = None,
    ) -> IssueResult:
        """
        Issue a fresh code for the address and dispatch it.

        Raises:
            RateLimited: If the resend cooldown for the address has not elapsed
            DeliveryFailed: If the sender could not deliver the code
        """
        self.cooldown.ensure_can_issue(address, self.channel)

        now = self.clock()
        self.repository.delete_expired(now - timedelta(seconds=self.retention_seconds))

        code = self._generate_code()
        self.repository.store_code(
            address=address,
            channel=self.channel,
            purpose=purpose,
            code=code,
            issued_at=now,
            expires_at=now + timedelta(seconds=self.ttl_seconds),
            user_id=user_id,
        )
        self.cooldown.record_issuance(address, self.channel, now)

        self.sender.send_verification_code(address, code, name)
        logger.info("Issued %s code (purpose=%s)", self.channel.value, purpose.value)

        return IssueResult(issued=True, debug_code=code if self.debug_mode else None)

    def ensure_can_issue(self, address: str) -> None:
        """
        Raises:
            RateLimited: If issue() for the address would be refused by the cooldown
        """
        self.cooldown.ensure_can_issue(address, self.channel)

    def verify(self, address: str, purpose: Purpose, code: str) -> None:
        """
        Consume the active code for the address.

        Raises:
            InvalidCode: Wrong code, already consumed, or never issued
            CodeExpired: Matching code is past its expiry
        """
        result = self.repository.consume_code(
            address, self.channel, purpose, code.strip(), self.clock()
        )

        if result == VerifyResult.SUCCESS:
            logger.info("Verified %s code (purpose=%s)", self.channel.value, purpose.value)
            return

        logger.info(
            "Rejected %s code (purpose=%s, reason=%s)",
            self.channel.value,
            purpose.value,
            result.value,
        )
        if result == VerifyResult.EXPIRED:
            raise CodeExpired()
        # NOT_FOUND and INVALID_CODE are indistinguishable to callers
        raise InvalidCode()

    def _generate_code(self) -> str:
        """
        Generate a cryptographically secure numeric code.

        Returns string to preserve leading zeros.
        """
        return "".join(secrets.choice("0123456789") for _ in range(self.code_length))
