"""User account model."""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import Boolean, DateTime, Enum, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from atlas_api.models.base import Base, RecordMixin
from atlas_api.models.enums import PersonType, enum_values


class User(Base, RecordMixin):
    """Registered account plus the onboarding profile."""

    __tablename__ = "users"

    # Login email, stored lowercased so uniqueness is case-insensitive.
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    display_name: Mapped[str] = mapped_column(String(100), nullable=False)
    # PBKDF2 hash, never the plain password.
    password_hash: Mapped[str] = mapped_column(String(256), nullable=False)
    # False until a verification code is consumed; login requires True.
    email_verified: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    # Deactivated accounts cannot log in or re-register.
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    # Trial plan assigned at registration.
    plan_id: Mapped[str | None] = mapped_column(String(64))
    plan_started_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    plan_ends_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    # Profile fields, optional until onboarding completes. Digits only for phone/tax id/postal code.
    phone: Mapped[str | None] = mapped_column(String(16))
    tax_id: Mapped[str | None] = mapped_column(String(14))
    monthly_revenue: Mapped[Decimal | None] = mapped_column(Numeric(14, 2))
    address: Mapped[str | None] = mapped_column(String(500))
    neighborhood: Mapped[str | None] = mapped_column(String(100))
    postal_code: Mapped[str | None] = mapped_column(String(8))
    person_type: Mapped[PersonType | None] = mapped_column(
        Enum(PersonType, native_enum=False, length=16, values_callable=enum_values)
    )
    # True only while every required field is set and an account is linked.
    profile_complete: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    # Set once, when the profile is completed and the provider account exists.
    bank_account_id: Mapped[str | None] = mapped_column(String(128))

    # Updated on each successful login.
    last_access_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
