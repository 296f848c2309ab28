"""
Resend cooldown - minimum interval between code issuances per address.

The cooldown is a cost control on the delivery providers, not a security
boundary. It applies per (address, channel) and does not care whether the
previous code was consumed.
"""

import logging
import math
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timedelta

from .clock import utc_now
from .exceptions import RateLimited
from .ports import Channel, IssuanceLog

logger = logging.getLogger(__name__)


@dataclass
class CooldownController:
    log: IssuanceLog
    interval_seconds: int = 60
    clock: Callable[[], datetime] = field(default=utc_now)

    def seconds_remaining(self, address: str, channel: Channel) -> int:
        last = self.log.last_issued_at(address, channel)
        if last is None:
            return 0
        elapsed = self.clock() - last
        remaining = timedelta(seconds=self.interval_seconds) - elapsed
        if remaining <= timedelta(0):
            return 0
        return math.ceil(remaining.total_seconds())

    def can_resend(self, address: str, channel: Channel) -> bool:
        return self.seconds_remaining(address, channel) == 0

    def ensure_can_issue(self, address: str, channel: Channel) -> None:
        """
        Raises:
            RateLimited: If the interval since the last issuance has not elapsed
        """
        remaining = self.seconds_remaining(address, channel)
        if remaining:
            logger.info("Cooldown active for %s channel, %ss remaining", channel.value, remaining)
            raise RateLimited(retry_after=remaining)

    def record_issuance(self, address: str, channel: Channel, at: datetime | None = None) -> None:
        self.log.record_issuance(address, channel, at or self.clock())
