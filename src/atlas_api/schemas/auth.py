"""Account request schemas."""

import re

from pydantic import BaseModel, Field, field_validator

EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"
CODE_PATTERN = r"^\d{6}$"

_PASSWORD_RULES = (
    (re.compile(r"[a-z]"), "a senha deve conter pelo menos uma letra minúscula"),
    (re.compile(r"[A-Z]"), "a senha deve conter pelo menos uma letra maiúscula"),
    (re.compile(r"\d"), "a senha deve conter pelo menos um número"),
    (re.compile(r"[@$!%*?&]"), "a senha deve conter pelo menos um caractere especial (@$!%*?&)"),
)


def check_password_policy(value: str) -> str:
    for pattern, message in _PASSWORD_RULES:
        if not pattern.search(value):
            raise ValueError(message)
    return value


class RegisterRequest(BaseModel):
    display_name: str = Field(min_length=2, max_length=100, description="Display name.", examples=["Maria Silva"])
    email: str = Field(max_length=255, pattern=EMAIL_PATTERN, description="Login email.", examples=["maria@example.com"])
    password: str = Field(min_length=8, max_length=100, description="Password.", examples=["Senha@123"])

    @field_validator("display_name")
    @classmethod
    def strip_display_name(cls, value: str) -> str:
        value = value.strip()
        if len(value) < 2:
            raise ValueError("o nome deve ter pelo menos 2 caracteres")
        return value

    @field_validator("password")
    @classmethod
    def password_policy(cls, value: str) -> str:
        return check_password_policy(value)


class VerifyEmailRequest(BaseModel):
    email: str = Field(max_length=255, pattern=EMAIL_PATTERN, description="Login email.")
    code: str = Field(pattern=CODE_PATTERN, description="6-digit verification code.", examples=["123456"])


class LoginRequest(BaseModel):
    email: str = Field(max_length=255, pattern=EMAIL_PATTERN, description="Login email.")
    # No policy check on login: accounts created under older rules must still be able to sign in.
    password: str = Field(min_length=1, max_length=100, description="Password.")


class ForgotPasswordRequest(BaseModel):
    email: str = Field(max_length=255, pattern=EMAIL_PATTERN, description="Account email.")


class ValidateResetCodeRequest(BaseModel):
    email: str = Field(max_length=255, pattern=EMAIL_PATTERN, description="Account email.")
    code: str = Field(pattern=CODE_PATTERN, description="6-digit reset code.")


class ResetPasswordRequest(BaseModel):
    email: str = Field(max_length=255, pattern=EMAIL_PATTERN, description="Account email.")
    code: str = Field(pattern=CODE_PATTERN, description="6-digit reset code.")
    new_password: str = Field(min_length=8, max_length=100, description="New password.")

    @field_validator("new_password")
    @classmethod
    def password_policy(cls, value: str) -> str:
        return check_password_policy(value)
