"""Credential store: data access for users and one-time auth codes.

Nothing here commits on its own. Services call `commit()` once per flow so the
effect and the code consumption that authorized it land together.
"""

from collections.abc import Mapping
from datetime import datetime, timedelta
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from atlas_api.errors import DuplicateEmail
from atlas_api.models.auth import AuthToken
from atlas_api.models.enums import TokenKind
from atlas_api.models.user import User
from atlas_api.services.passwords import generate_numeric_code

PROFILE_COLUMNS = frozenset(
    {"phone", "tax_id", "monthly_revenue", "address", "neighborhood", "postal_code", "person_type"}
)


def normalize_email(email: str) -> str:
    """Lowercase and trim an email address."""
    return email.strip().lower()


class CredentialStore:
    """SQLAlchemy-backed store for `User` and `AuthToken` rows."""

    def __init__(self, db: Session) -> None:
        self.db = db

    # users

    def find_by_email(self, email: str) -> User | None:
        normalized = normalize_email(email)
        stmt = select(User).where(User.email == normalized)
        return self.db.execute(stmt).scalar_one_or_none()

    def find_by_id(self, user_id: UUID | str) -> User | None:
        if not isinstance(user_id, UUID):
            try:
                user_id = UUID(str(user_id))
            except ValueError:
                return None
        return self.db.get(User, user_id)

    def create_user(
        self,
        *,
        email: str,
        display_name: str,
        password_hash: str,
        plan_id: str | None = None,
        plan_started_at: datetime | None = None,
        plan_ends_at: datetime | None = None,
    ) -> User:
        user = User(
            id=uuid4(),
            email=normalize_email(email),
            display_name=display_name,
            password_hash=password_hash,
            email_verified=False,
            active=True,
            profile_complete=False,
            plan_id=plan_id,
            plan_started_at=plan_started_at,
            plan_ends_at=plan_ends_at,
        )
        self.db.add(user)
        try:
            self.db.flush()
        except IntegrityError as exc:
            # A concurrent registration won the unique email index.
            raise DuplicateEmail() from exc
        return user

    def update_profile(self, user: User, fields: Mapping[str, Any]) -> User:
        unknown = set(fields) - PROFILE_COLUMNS - {"profile_complete"}
        if unknown:
            raise ValueError(f"not profile columns: {sorted(unknown)}")
        for name, value in fields.items():
            setattr(user, name, value)
        self.db.flush()
        return user

    def update_last_access(self, user: User, now: datetime) -> None:
        user.last_access_at = now
        self.db.flush()

    def mark_email_verified(self, user: User) -> None:
        user.email_verified = True
        self.db.flush()

    def update_password(self, user: User, password_hash: str) -> None:
        user.password_hash = password_hash
        self.db.flush()

    def update_registration(self, user: User, *, display_name: str, password_hash: str) -> None:
        user.display_name = display_name
        user.password_hash = password_hash
        self.db.flush()

    def set_bank_account_id(self, user: User, account_id: str) -> None:
        user.bank_account_id = account_id
        self.db.flush()

    # one-time codes

    def create_token(self, user_id: UUID, kind: TokenKind, *, now: datetime, ttl: timedelta) -> AuthToken:
        """Create a fresh code and supersede the user's older valid codes of the same kind."""
        # Superseded codes are expired in place; the cleanup sweep deletes them later.
        self.db.execute(
            update(AuthToken)
            .where(AuthToken.user_id == user_id)
            .where(AuthToken.kind == kind)
            .where(AuthToken.used.is_(False))
            .where(AuthToken.expires_at > now)
            .values(expires_at=now)
            .execution_options(synchronize_session="fetch")
        )
        token = AuthToken(
            id=uuid4(),
            user_id=user_id,
            code=generate_numeric_code(),
            kind=kind,
            expires_at=now + ttl,
            used=False,
        )
        self.db.add(token)
        self.db.flush()
        return token

    def find_tokens(self, code: str, kind: TokenKind) -> list[AuthToken]:
        """Every token carrying `code` for `kind`, valid or not."""
        stmt = select(AuthToken).where(AuthToken.code == code).where(AuthToken.kind == kind)
        return list(self.db.execute(stmt).scalars().all())

    def mark_token_used(self, token_id: UUID, now: datetime) -> bool:
        """Consume a token; False when it was already consumed."""
        # Conditional update: of two concurrent consumers only one sees rowcount == 1.
        result = self.db.execute(
            update(AuthToken)
            .where(AuthToken.id == token_id)
            .where(AuthToken.used.is_(False))
            .values(used=True, used_at=now)
            .execution_options(synchronize_session=False)
        )
        cached = self.db.identity_map.get(Session.identity_key(AuthToken, token_id))
        if cached is not None:
            self.db.expire(cached)
        return result.rowcount == 1

    def delete_expired_tokens(self, now: datetime) -> int:
        result = self.db.execute(
            delete(AuthToken).where(AuthToken.expires_at < now).execution_options(synchronize_session=False)
        )
        return result.rowcount or 0

    # transaction

    def commit(self) -> None:
        self.db.commit()

    def rollback(self) -> None:
        self.db.rollback()
