"""One-time auth code model."""

from datetime import datetime
from uuid import UUID

from sqlalchemy import Boolean, DateTime, Enum, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from atlas_api.models.base import Base, RecordMixin
from atlas_api.models.enums import TokenKind, enum_values


class AuthToken(Base, RecordMixin):
    """Short-lived single-use numeric code (email verification or password reset)."""

    __tablename__ = "auth_tokens"
    __table_args__ = (Index("ix_auth_tokens_code_kind", "code", "kind"),)

    # Owning user (logical reference to users.id, no database foreign key).
    user_id: Mapped[UUID] = mapped_column(nullable=False, index=True)
    # Six digits; not unique on its own, lookups go through (code, kind).
    code: Mapped[str] = mapped_column(String(6), nullable=False)
    kind: Mapped[TokenKind] = mapped_column(
        Enum(TokenKind, native_enum=False, length=32, values_callable=enum_values), nullable=False
    )
    # Superseded codes are expired in place by setting this to the supersede time.
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    # Flipped once by a conditional update; see `CredentialStore.mark_token_used`.
    used: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    used_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
