"""Session token issuing and verification."""

import re
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any

import jwt
from fastapi import HTTPException, status
from jwt import InvalidTokenError

from atlas_api.core.config import Settings
from atlas_api.errors import ConfigurationError

UNAUTHORIZED = HTTPException(
    status_code=status.HTTP_401_UNAUTHORIZED,
    detail="unauthorized",
)
TOKEN_PLACEHOLDER_UNAUTHORIZED = HTTPException(
    status_code=status.HTTP_401_UNAUTHORIZED,
    detail={
        "code": "AUTH_TOKEN_PLACEHOLDER_NOT_RESOLVED",
        "message": "Falha de autenticação: o cabeçalho Authorization ainda contém um placeholder.",
        "details": {
            "reason": "authorization_placeholder_not_resolved",
            "suggestion": "Faça login para obter um token de sessão e envie-o como Bearer.",
        },
    },
)

_REQUIRED_CLAIMS = ("userId", "email", "iat", "exp")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class SessionClaims:
    """Identity claims carried by a session token."""

    user_id: str
    email: str
    display_name: str | None
    plan_id: str | None
    issued_at: int
    expires_at: int

    def to_payload(self) -> dict[str, Any]:
        return {
            "userId": self.user_id,
            "email": self.email,
            "displayName": self.display_name,
            "planId": self.plan_id,
            "iat": self.issued_at,
            "exp": self.expires_at,
        }


@dataclass(frozen=True)
class IssuedSessionToken:
    token: str
    expires_at: datetime
    expires_in: int


@dataclass(frozen=True)
class TokenVerification:
    """Result of `SessionTokenService.verify`; a bad token is `valid=False`, not an exception."""

    valid: bool
    payload: SessionClaims | None = None


class SessionTokenService:
    """Mints and validates HMAC-signed session tokens.

    Verification is stateless: there is no server-side session store, so a token
    stays valid until it expires.
    """

    def __init__(
        self,
        secret: str | None,
        *,
        algorithm: str = "HS256",
        ttl_seconds: int = 86400,
        leeway_seconds: int = 0,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._secret = secret
        self.algorithm = algorithm
        self.ttl_seconds = ttl_seconds
        self.leeway_seconds = leeway_seconds
        self._clock = clock

    @classmethod
    def from_settings(cls, settings: Settings, *, clock: Callable[[], datetime] = utc_now) -> "SessionTokenService":
        return cls(
            settings.auth_jwt_secret,
            algorithm=settings.auth_jwt_algorithm,
            ttl_seconds=settings.auth_session_ttl_seconds,
            leeway_seconds=settings.auth_jwt_leeway_seconds,
            clock=clock,
        )

    def _require_secret(self) -> str:
        if not self._secret:
            raise ConfigurationError("session token signing secret is not configured")
        return self._secret

    def issue(
        self,
        user_id: str,
        email: str,
        display_name: str | None = None,
        plan_id: str | None = None,
    ) -> IssuedSessionToken:
        """Sign a claim set that expires `ttl_seconds` from now."""
        secret = self._require_secret()
        now = self._clock()
        expires_at = now + timedelta(seconds=self.ttl_seconds)
        claims = SessionClaims(
            user_id=str(user_id),
            email=email,
            display_name=display_name,
            plan_id=plan_id,
            issued_at=int(now.timestamp()),
            expires_at=int(expires_at.timestamp()),
        )
        token = jwt.encode(claims.to_payload(), secret, algorithm=self.algorithm)
        return IssuedSessionToken(token=token, expires_at=expires_at, expires_in=self.ttl_seconds)

    def verify(self, token: str) -> TokenVerification:
        """Check signature, expiry and required claims."""
        secret = self._require_secret()
        if not token:
            return TokenVerification(valid=False)
        try:
            # Time claims are checked below against the injected clock, not PyJWT's wall clock.
            claims = jwt.decode(
                token,
                key=secret,
                algorithms=[self.algorithm],
                options={"verify_exp": False, "verify_iat": False, "require": list(_REQUIRED_CLAIMS)},
            )
        except InvalidTokenError:
            return TokenVerification(valid=False)

        user_id = claims.get("userId")
        email = claims.get("email")
        exp = claims.get("exp")
        iat = claims.get("iat")
        if not isinstance(user_id, str) or not user_id or not isinstance(email, str):
            return TokenVerification(valid=False)
        if not isinstance(exp, int) or not isinstance(iat, int):
            return TokenVerification(valid=False)
        if exp + self.leeway_seconds <= int(self._clock().timestamp()):
            return TokenVerification(valid=False)

        display_name = claims.get("displayName")
        plan_id = claims.get("planId")
        return TokenVerification(
            valid=True,
            payload=SessionClaims(
                user_id=user_id,
                email=email,
                display_name=display_name if isinstance(display_name, str) else None,
                plan_id=plan_id if isinstance(plan_id, str) else None,
                issued_at=iat,
                expires_at=exp,
            ),
        )


def _is_placeholder_token(token: str) -> bool:
    return ("{{" in token and "}}" in token) or ("${" in token and "}" in token)


def extract_bearer_token(authorization: str | None) -> str:
    """Pull the bearer token out of an Authorization header, tolerating comma-joined duplicates."""
    if not authorization:
        raise UNAUTHORIZED
    tokens = re.findall(r"Bearer\s+([^,\s]+)", authorization, flags=re.IGNORECASE)
    if not tokens:
        raise UNAUTHORIZED
    placeholder_seen = False
    for candidate in reversed(tokens):
        token = candidate.strip()
        if not token:
            continue
        if _is_placeholder_token(token):
            placeholder_seen = True
            continue
        return token
    if placeholder_seen:
        raise TOKEN_PLACEHOLDER_UNAUTHORIZED
    raise UNAUTHORIZED
