"""Required-field table and pydantic field rules for the onboarding profile.

`ProfileFields` validates a full profile for completion, `ProfileUpdate` the
partial payload of an update. Both drop blank values first, so an empty string
is reported as missing rather than as malformed.
"""

from decimal import Decimal
from typing import Annotated, Any

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator, model_validator
from pydantic import ValidationError as PydanticValidationError
from pydantic_core import PydanticCustomError

from atlas_api.errors import FieldIssue
from atlas_api.models.enums import PersonType

ALL_PERSON_TYPES = frozenset(PersonType)

# field -> person types for which the field is mandatory
PROFILE_FIELD_RULES: dict[str, frozenset[PersonType]] = {
    "person_type": ALL_PERSON_TYPES,
    "tax_id": ALL_PERSON_TYPES,
    "monthly_revenue": ALL_PERSON_TYPES,
    "address": ALL_PERSON_TYPES,
    "neighborhood": ALL_PERSON_TYPES,
    "postal_code": ALL_PERSON_TYPES,
    "phone": frozenset({PersonType.BUSINESS}),
}
PROFILE_FIELDS = tuple(PROFILE_FIELD_RULES)

TAX_ID_DIGITS = {PersonType.INDIVIDUAL: 11, PersonType.BUSINESS: 14}

MISSING_MESSAGE = "Campo obrigatório."
PROFILE_ERROR = "profile_field"

# Messages for pydantic's built-in constraint errors, per field.
FIELD_MESSAGES = {
    "person_type": "Tipo de pessoa deve ser individual ou business.",
    "tax_id": "CPF/CNPJ deve conter apenas números, pontos, traços e barras.",
    "monthly_revenue": "Faturamento mensal deve ser um número entre 0 e 999.999.999.",
    "address": "Endereço deve ter entre 10 e 500 caracteres.",
    "neighborhood": "Bairro deve ter entre 2 e 100 caracteres.",
    "postal_code": "CEP deve estar no formato XXXXX-XXX.",
    "phone": "Telefone deve conter apenas números e ter de 10 a 12 dígitos.",
}

TaxId = Annotated[str, Field(min_length=11, max_length=18, pattern=r"^[\d./-]+$")]
MonthlyRevenue = Annotated[Decimal, Field(ge=0, le=999999999)]
Address = Annotated[str, Field(min_length=10, max_length=500)]
Neighborhood = Annotated[str, Field(min_length=2, max_length=100)]
PostalCode = Annotated[str, Field(pattern=r"^\d{5}-?\d{3}$")]
Phone = Annotated[str, Field(pattern=r"^\d{10,12}$")]


def required_fields(person_type: PersonType | None) -> list[str]:
    """Mandatory fields for a person type; with no type, those mandatory for every type."""
    if person_type is None:
        return [field for field, types in PROFILE_FIELD_RULES.items() if types == ALL_PERSON_TYPES]
    return [field for field, types in PROFILE_FIELD_RULES.items() if person_type in types]


def is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    return False


def parse_person_type(value: Any) -> PersonType | None:
    if isinstance(value, PersonType):
        return value
    if isinstance(value, str):
        try:
            return PersonType(value.strip().lower())
        except ValueError:
            return None
    return None


def missing_fields(values: dict[str, Any]) -> list[str]:
    """Required fields that are empty, in table order."""
    person_type = parse_person_type(values.get("person_type"))
    return [field for field in required_fields(person_type) if is_blank(values.get(field))]


def _digits(value: str) -> str:
    return "".join(char for char in value if char.isdigit())


class ProfileUpdate(BaseModel):
    """Partial profile; only the provided fields are checked and normalized."""

    model_config = ConfigDict(str_strip_whitespace=True, frozen=True, extra="ignore")

    person_type: PersonType | None = None
    tax_id: TaxId | None = None
    monthly_revenue: MonthlyRevenue | None = None
    address: Address | None = None
    neighborhood: Neighborhood | None = None
    postal_code: PostalCode | None = None
    phone: Phone | None = None

    @model_validator(mode="before")
    @classmethod
    def drop_blank_values(cls, data: Any) -> Any:
        if isinstance(data, dict):
            return {key: value for key, value in data.items() if not is_blank(value)}
        return data

    @field_validator("person_type", mode="before")
    @classmethod
    def lowercase_person_type(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().lower()
        return value

    @field_validator("tax_id")
    @classmethod
    def tax_id_digits(cls, value: str | None, info: ValidationInfo) -> str | None:
        """Keep digits only; 11 for a CPF, 14 for a CNPJ."""
        if value is None:
            return value
        digits = _digits(value)
        person_type = info.data.get("person_type")
        if person_type is None:
            if len(digits) not in TAX_ID_DIGITS.values():
                raise PydanticCustomError(PROFILE_ERROR, "CPF deve ter 11 dígitos ou CNPJ deve ter 14 dígitos.")
            return digits
        expected = TAX_ID_DIGITS[person_type]
        if len(digits) != expected:
            label = "CPF" if person_type is PersonType.INDIVIDUAL else "CNPJ"
            raise PydanticCustomError(PROFILE_ERROR, f"{label} deve ter {expected} dígitos.")
        return digits

    @field_validator("postal_code")
    @classmethod
    def postal_code_digits(cls, value: str | None) -> str | None:
        return None if value is None else _digits(value)

    def as_columns(self) -> dict[str, Any]:
        """Column values for the fields that were provided."""
        return self.model_dump(exclude_unset=True)


class ProfileFields(ProfileUpdate):
    """A complete profile, as required to finish onboarding."""

    person_type: PersonType
    tax_id: TaxId
    monthly_revenue: MonthlyRevenue
    address: Address
    neighborhood: Neighborhood
    postal_code: PostalCode
    phone: Phone | None = Field(default=None, validate_default=True)

    @field_validator("phone")
    @classmethod
    def phone_required_for_business(cls, value: str | None, info: ValidationInfo) -> str | None:
        if value is None and info.data.get("person_type") is PersonType.BUSINESS:
            raise PydanticCustomError(PROFILE_ERROR, MISSING_MESSAGE)
        return value

    def as_columns(self) -> dict[str, Any]:
        return self.model_dump()


def field_issues(exc: PydanticValidationError) -> list[FieldIssue]:
    """One `FieldIssue` per failing field, in declaration order."""
    issues: dict[str, FieldIssue] = {}
    for error in exc.errors():
        field = str(error["loc"][0]) if error["loc"] else "profile"
        if field in issues:
            continue
        if error["type"] == "missing":
            message = MISSING_MESSAGE
        elif error["type"] == PROFILE_ERROR:
            message = error["msg"]
        else:
            message = FIELD_MESSAGES.get(field, "Valor inválido.")
        issues[field] = FieldIssue(field, message)
    return list(issues.values())
