"""Console SMS sender adapter - Implements CodeSender protocol for the phone channel."""

import logging

logger = logging.getLogger(__name__)


class ConsoleSmsSender:
    """Logs phone verification codes instead of sending an SMS."""

    def send_verification_code(self, address: str, code: str, name: str | None = None) -> None:
        logger.info("[VERIFICATION] Phone: %s Code: %s", address, code)
