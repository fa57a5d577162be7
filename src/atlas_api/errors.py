"""Domain error taxonomy.

Services raise these; `atlas_api.exceptions` turns them into the error envelope.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class FieldIssue:
    """A single field-level validation problem."""

    field: str
    message: str


class AtlasError(Exception):
    """Base class for every named domain failure."""

    code = "APP_ERROR"
    status_code = 400
    message = "Não foi possível concluir a operação."

    def __init__(self, message: str | None = None, *, status_code: int | None = None) -> None:
        if message is not None:
            self.message = message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(self.message)

    def details(self) -> dict[str, object]:
        return {}


class ValidationError(AtlasError):
    code = "VALIDATION_ERROR"
    status_code = 422
    message = "Dados inválidos."

    def __init__(self, issues: list[FieldIssue], message: str | None = None) -> None:
        if not issues:
            raise ValueError("ValidationError requires at least one issue")
        self.issues = list(issues)
        super().__init__(message)

    @property
    def fields(self) -> list[str]:
        return [issue.field for issue in self.issues]

    def details(self) -> dict[str, object]:
        return {"errors": [{"field": issue.field, "message": issue.message} for issue in self.issues]}


class DuplicateEmail(AtlasError):
    code = "DUPLICATE_EMAIL"
    status_code = 409
    message = "Email já está em uso."


class UserNotFound(AtlasError):
    code = "USER_NOT_FOUND"
    status_code = 404
    message = "Usuário não encontrado."


class EmailNotVerified(AtlasError):
    code = "EMAIL_NOT_VERIFIED"
    status_code = 403
    message = "Email não verificado. Verifique sua caixa de entrada."


class AccountInactive(AtlasError):
    code = "ACCOUNT_INACTIVE"
    status_code = 403
    message = "Conta desativada. Entre em contato com o suporte."


class InvalidPassword(AtlasError):
    code = "INVALID_PASSWORD"
    status_code = 401
    message = "Senha incorreta."


class InvalidCredentials(AtlasError):
    code = "INVALID_CREDENTIALS"
    status_code = 401
    message = "Email ou senha incorretos."


class CodeNotFound(AtlasError):
    code = "CODE_NOT_FOUND"
    message = "Código inválido."


class CodeExpired(AtlasError):
    code = "CODE_EXPIRED"
    message = "Código expirado."


class CodeAlreadyUsed(AtlasError):
    code = "CODE_ALREADY_USED"
    message = "Código já utilizado."


class EmailMismatch(AtlasError):
    code = "EMAIL_MISMATCH"
    message = "Email não corresponde ao código."


class ProfileCompletionError(AtlasError):
    code = "PROFILE_COMPLETION_FAILED"
    status_code = 502
    message = "Não foi possível criar a conta bancária. Tente novamente mais tarde."


class ProfileIncomplete(AtlasError):
    code = "PROFILE_INCOMPLETE"
    status_code = 403
    message = "Complete seu perfil para continuar."

    def __init__(self, missing_fields: list[str], message: str | None = None) -> None:
        self.missing_fields = list(missing_fields)
        super().__init__(message)

    def details(self) -> dict[str, object]:
        return {"missing_fields": self.missing_fields}


class BankAccountNotLinked(AtlasError):
    code = "BANK_ACCOUNT_NOT_FOUND"
    status_code = 404
    message = "Usuário não possui conta bancária."


class BankingProviderError(AtlasError):
    code = "BANKING_PROVIDER_ERROR"
    status_code = 502
    message = "Não foi possível acessar a conta bancária. Tente novamente mais tarde."


class ConfigurationError(AtlasError):
    """Fatal misconfiguration; never shown verbatim to callers."""

    code = "CONFIGURATION_ERROR"
    status_code = 500
    message = "Configuração do servidor inválida."


class UnknownError(AtlasError):
    code = "UNKNOWN_ERROR"
    status_code = 500
    message = "Erro interno do servidor."


CODE_ERRORS = (CodeNotFound, CodeExpired, CodeAlreadyUsed, EmailMismatch)
LOGIN_ERRORS = (UserNotFound, EmailNotVerified, AccountInactive, InvalidPassword)
