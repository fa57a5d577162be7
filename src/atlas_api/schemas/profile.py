"""Profile request schemas.

The wire shape only. The profile gate validates it with `ProfileFields` or
`ProfileUpdate` against the stored profile, so missing and malformed fields come
back together in one field-level error.
"""

from pydantic import BaseModel, Field


class ProfileRequest(BaseModel):
    person_type: str | None = Field(default=None, description="`individual` or `business`.", examples=["individual"])
    tax_id: str | None = Field(default=None, description="CPF (11 digits) or CNPJ (14 digits).", examples=["123.456.789-09"])
    monthly_revenue: float | str | None = Field(default=None, description="Monthly revenue in BRL.", examples=[5000])
    address: str | None = Field(default=None, description="Street address.", examples=["Rua das Flores, 123"])
    neighborhood: str | None = Field(default=None, description="Neighborhood.", examples=["Centro"])
    postal_code: str | None = Field(default=None, description="CEP, XXXXX-XXX.", examples=["01001-000"])
    phone: str | None = Field(default=None, description="Digits only, 10 to 12. Required for businesses.")
