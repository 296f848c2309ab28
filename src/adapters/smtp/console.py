"""
Console email sender adapter - Implements CodeSender protocol.

This module provides a console-based implementation of the domain's
sender port for the email channel, logging verification codes for
development environments without a configured provider.
"""

import logging

logger = logging.getLogger(__name__)


class ConsoleEmailSender:
    """
    Implements CodeSender protocol via console logging.

    Uses structural subtyping - no explicit inheritance from Protocol.
    """

    def send_verification_code(self, address: str, code: str, name: str | None = None) -> None:
        """
        Log verification code to console (simulates email delivery).

        The code is logged at INFO level to be visible in container logs.

        Args:
            address: Recipient email address (normalized by domain layer)
            code: 6-digit verification code
            name: Recipient display name (unused)
        """
        logger.info("[VERIFICATION] Email: %s Code: %s", address, code)
