"""Domain enums."""

from enum import StrEnum


class TokenKind(StrEnum):
    """What a one-time code authorizes."""

    EMAIL_VERIFICATION = "email_verification"
    PASSWORD_RESET = "password_reset"


class PersonType(StrEnum):
    """Legal classification that decides which profile fields are mandatory."""

    INDIVIDUAL = "individual"  # CPF holder.
    BUSINESS = "business"  # CNPJ holder.


def enum_values(enum_cls: type[StrEnum]) -> list[str]:
    """Persist enum values rather than member names."""
    return [member.value for member in enum_cls]
