"""Account flows: registration, email verification, login and password reset.

Each public method is one independent flow over the credential store. A flow
commits once at its end and rolls back on any failure, so a consumed code and
the change it authorized are always persisted together.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from atlas_api.core.config import Settings
from atlas_api.core.security import IssuedSessionToken, SessionTokenService, utc_now
from atlas_api.errors import (
    AccountInactive,
    AtlasError,
    CODE_ERRORS,
    CodeAlreadyUsed,
    CodeExpired,
    CodeNotFound,
    DuplicateEmail,
    EmailMismatch,
    EmailNotVerified,
    InvalidPassword,
    UserNotFound,
)
from atlas_api.models.auth import AuthToken
from atlas_api.models.enums import TokenKind
from atlas_api.models.user import User
from atlas_api.repositories.credential_store import CredentialStore, normalize_email
from atlas_api.services.notifications import CodeNotifier
from atlas_api.services.passwords import hash_password, verify_password

logger = logging.getLogger(__name__)


@dataclass
class AuthResult:
    """Authenticated user plus the session token minted for it."""

    user: User
    session: IssuedSessionToken


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes read back from the database as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class AuthService:
    """Registration, verification, login and password reset over one credential store.

    Collaborators are injected; `clock` exists so tests can move time.
    """

    def __init__(
        self,
        store: CredentialStore,
        tokens: SessionTokenService,
        notifier: CodeNotifier,
        settings: Settings,
        *,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.store = store
        self.tokens = tokens
        self.notifier = notifier
        self.settings = settings
        self.clock = clock

    @property
    def code_ttl(self) -> timedelta:
        """Lifetime of a new one-time code."""
        return timedelta(seconds=self.settings.auth_code_ttl_seconds)

    def _hash(self, password: str) -> str:
        """PBKDF2 hash with the configured iteration count."""
        return hash_password(password, iterations=self.settings.auth_password_hash_iterations)

    def _issue_session(self, user: User) -> IssuedSessionToken:
        return self.tokens.issue(str(user.id), user.email, user.display_name, user.plan_id)

    def _run(self, flow: Callable[[], object]):
        """Run one flow as a single transaction: commit on success, roll back on any error."""
        try:
            result = flow()
            self.store.commit()
            return result
        except Exception:
            self.store.rollback()
            raise

    # registration

    def register(self, display_name: str, email: str, password: str) -> User:
        """Create an unverified account and send its verification code.

        No session token is issued; the account can log in only after verification.
        """
        email = normalize_email(email)
        display_name = display_name.strip()

        def flow() -> tuple[User, AuthToken]:
            now = self.clock()
            user = self.store.find_by_email(email)
            if user is not None and (user.email_verified or not user.active):
                raise DuplicateEmail()
            if user is None:
                user = self.store.create_user(
                    email=email,
                    display_name=display_name,
                    password_hash=self._hash(password),
                    plan_id=self.settings.plan_trial_id,
                    plan_started_at=now,
                    plan_ends_at=now + timedelta(days=self.settings.plan_trial_days),
                )
            else:
                # Unverified account registering again: refresh it and resend a new code.
                self.store.update_registration(user, display_name=display_name, password_hash=self._hash(password))
            token = self.store.create_token(user.id, TokenKind.EMAIL_VERIFICATION, now=now, ttl=self.code_ttl)
            return user, token

        try:
            user, token = self._run(flow)
        except DuplicateEmail:
            logger.info("registration rejected: duplicate email")
            raise
        self.notifier.send_verification_code(user, token.code)
        logger.info("user registered user_id=%s", user.id)
        return user

    # one-time codes

    def _resolve_code(self, email: str, code: str, kind: TokenKind) -> tuple[User, AuthToken]:
        """Find the valid token for (email, code, kind) or raise the specific reason it is unusable."""
        candidates = self.store.find_tokens(code, kind)
        if not candidates:
            raise CodeNotFound()

        user = self.store.find_by_email(email)
        owned = [token for token in candidates if user is not None and token.user_id == user.id]
        if not owned:
            raise EmailMismatch()

        now = self.clock()
        for token in owned:
            if not token.used and as_utc(token.expires_at) > now:
                return user, token
        if any(token.used for token in owned):
            raise CodeAlreadyUsed()
        raise CodeExpired()

    def _consume(self, token: AuthToken) -> None:
        if not self.store.mark_token_used(token.id, self.clock()):
            raise CodeAlreadyUsed()

    # email verification

    def verify_email(self, email: str, code: str) -> AuthResult:
        """Consume a verification code, mark the email verified and start a session."""
        email = normalize_email(email)

        def flow() -> AuthResult:
            user, token = self._resolve_code(email, code, TokenKind.EMAIL_VERIFICATION)
            self._consume(token)
            self.store.mark_email_verified(user)
            # Issued before commit so a signing misconfiguration leaves the code unconsumed.
            return AuthResult(user=user, session=self._issue_session(user))

        try:
            result = self._run(flow)
        except AtlasError as exc:
            logger.info("email verification rejected: %s", exc.code)
            raise
        logger.info("email verified user_id=%s", result.user.id)
        return result

    # login

    def login(self, email: str, password: str) -> AuthResult:
        """Check, in order: user exists, email verified, account active, password matches."""
        email = normalize_email(email)

        def flow() -> AuthResult:
            user = self.store.find_by_email(email)
            if user is None:
                raise UserNotFound()
            if not user.email_verified:
                raise EmailNotVerified()
            if not user.active:
                raise AccountInactive()
            if not verify_password(password, user.password_hash):
                raise InvalidPassword()
            self.store.update_last_access(user, self.clock())
            return AuthResult(user=user, session=self._issue_session(user))

        try:
            result = self._run(flow)
        except AtlasError as exc:
            logger.info("login rejected: %s", exc.code)
            raise
        logger.info("user logged in user_id=%s", result.user.id)
        return result

    # password reset

    def request_password_reset(self, email: str) -> None:
        """Send a reset code when an active account exists; silent otherwise."""
        email = normalize_email(email)

        def flow() -> tuple[User, AuthToken] | None:
            user = self.store.find_by_email(email)
            if user is None or not user.active:
                return None
            token = self.store.create_token(user.id, TokenKind.PASSWORD_RESET, now=self.clock(), ttl=self.code_ttl)
            return user, token

        issued = self._run(flow)
        if issued is None:
            logger.info("password reset requested for unknown or inactive account")
            return
        user, token = issued
        self.notifier.send_password_reset_code(user, token.code)
        logger.info("password reset requested user_id=%s", user.id)

    def validate_reset_code(self, email: str, code: str) -> bool:
        """Whether the reset code would currently be accepted; does not consume it."""
        try:
            self._resolve_code(normalize_email(email), code, TokenKind.PASSWORD_RESET)
        except CODE_ERRORS:
            return False
        return True

    def reset_password(self, email: str, code: str, new_password: str) -> User:
        """Set a new password and consume the reset code in one transaction."""
        email = normalize_email(email)

        def flow() -> User:
            user, token = self._resolve_code(email, code, TokenKind.PASSWORD_RESET)
            self._consume(token)
            self.store.update_password(user, self._hash(new_password))
            return user

        try:
            user = self._run(flow)
        except AtlasError as exc:
            logger.info("password reset rejected: %s", exc.code)
            raise
        logger.info("password changed user_id=%s", user.id)
        return user

    # sessions

    def current_user(self, session_token: str) -> User | None:
        """User behind a session token, if the token is valid and the account may still log in."""
        verification = self.tokens.verify(session_token)
        if not verification.valid or verification.payload is None:
            return None
        user = self.store.find_by_id(verification.payload.user_id)
        if user is None or not user.active or not user.email_verified:
            return None
        return user

    # maintenance

    def cleanup_expired_tokens(self) -> int:
        deleted = self._run(lambda: self.store.delete_expired_tokens(self.clock()))
        logger.info("expired auth tokens deleted: %s", deleted)
        return deleted
