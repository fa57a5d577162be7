"""Out-of-band delivery of one-time codes."""

import logging
from typing import Protocol

from atlas_api.models.user import User

logger = logging.getLogger(__name__)


class CodeNotifier(Protocol):
    """Delivers verification and reset codes to the account owner."""

    def send_verification_code(self, user: User, code: str) -> None: ...

    def send_password_reset_code(self, user: User, code: str) -> None: ...


class LoggingCodeNotifier:
    """Notifier that only records the delivery in the log.

    The code itself is logged only when `reveal_codes` is on (local development).
    """

    def __init__(self, *, reveal_codes: bool = False) -> None:
        self.reveal_codes = reveal_codes

    def _deliver(self, purpose: str, user: User, code: str) -> None:
        logger.info("%s code issued for user_id=%s", purpose, user.id)
        if self.reveal_codes:
            logger.debug("%s code for %s: %s", purpose, user.email, code)

    def send_verification_code(self, user: User, code: str) -> None:
        self._deliver("email verification", user, code)

    def send_password_reset_code(self, user: User, code: str) -> None:
        self._deliver("password reset", user, code)
