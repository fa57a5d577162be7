"""Schemas for the `data` field of success responses."""

from datetime import datetime
from uuid import UUID

from pydantic import Field

from atlas_api.models.enums import PersonType
from atlas_api.schemas.common import BaseSchema


class HealthStatusData(BaseSchema):
    status: str = Field(description="`ok`, `ready` or `degraded`.")
    problems: list[str] = Field(default_factory=list, description="Startup problems, if any.")


class UserData(BaseSchema):
    """Public view of an account."""

    id: UUID = Field(description="User id.")
    email: str = Field(description="Login email.")
    display_name: str = Field(description="Display name.")
    email_verified: bool = Field(description="Whether the email has been verified.")
    plan_id: str | None = Field(default=None, description="Current plan.")
    plan_ends_at: datetime | None = Field(default=None, description="Plan end (UTC).")
    profile_complete: bool = Field(description="Whether onboarding is complete.")
    last_access_at: datetime | None = Field(default=None, description="Last successful login.")


class RegisterData(BaseSchema):
    user: UserData = Field(description="Created account, still unverified.")
    verification_required: bool = Field(default=True, description="A code was sent to the email.")


class SessionData(BaseSchema):
    """Session issued by login or email verification."""

    access_token: str = Field(description="Signed session token.")
    token_type: str = Field(default="bearer", description="Token type.")
    expires_at: datetime = Field(description="Token expiry (UTC).")
    expires_in: int = Field(description="Seconds until expiry.")
    user: UserData = Field(description="Authenticated account.")


class LogoutData(BaseSchema):
    logged_out: bool = Field(description="Always true; sessions are stateless and expire on their own.")


class AcknowledgedData(BaseSchema):
    message: str = Field(description="Confirmation message.")


class CodeValidityData(BaseSchema):
    valid: bool = Field(description="Whether the code would currently be accepted.")


class ProfileStatusData(BaseSchema):
    is_complete: bool = Field(description="Whether the profile is complete.")
    missing_fields: list[str] = Field(default_factory=list, description="Required fields still empty.")


class ProfileData(BaseSchema):
    person_type: PersonType | None = Field(default=None, description="`individual` or `business`.")
    tax_id: str | None = Field(default=None, description="CPF/CNPJ digits.")
    monthly_revenue: float | None = Field(default=None, description="Monthly revenue in BRL.")
    address: str | None = Field(default=None, description="Street address.")
    neighborhood: str | None = Field(default=None, description="Neighborhood.")
    postal_code: str | None = Field(default=None, description="CEP digits.")
    phone: str | None = Field(default=None, description="Phone digits.")
    profile_complete: bool = Field(description="Whether onboarding is complete.")
    bank_account_linked: bool = Field(description="Whether the payments account exists.")


class BankAccountData(BaseSchema):
    """Linked payments account as reported by the provider."""

    id: str = Field(description="Provider account id.")
    name: str | None = Field(default=None, description="Account holder name.")
    email: str | None = Field(default=None, description="Account email.")
    tax_id: str | None = Field(default=None, description="CPF/CNPJ digits.")
    active: bool = Field(description="False once the provider has deleted the account.")
