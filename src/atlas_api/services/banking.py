"""Bank-account provisioning against the payments provider."""

import logging
from dataclasses import dataclass
from typing import Any, Protocol

import httpx

from atlas_api.core.config import Settings
from atlas_api.errors import AtlasError, BankingProviderError, ProfileCompletionError
from atlas_api.models.enums import PersonType
from atlas_api.models.user import User
from atlas_api.services.profile_rules import ProfileFields, ProfileUpdate

logger = logging.getLogger(__name__)

_PROVIDER_PERSON_TYPE = {PersonType.INDIVIDUAL: "FISICA", PersonType.BUSINESS: "JURIDICA"}
_PROVIDER_COMPANY_TYPE = {PersonType.INDIVIDUAL: "INDIVIDUAL", PersonType.BUSINESS: "MEI"}


@dataclass(frozen=True)
class BankAccount:
    """Provider-side view of a linked account."""

    id: str
    name: str | None
    email: str | None
    tax_id: str | None
    active: bool


class BankAccountProvisioner(Protocol):
    """Creates, updates and reads the user's account at the payments provider."""

    def create_account(self, user: User, profile: ProfileFields) -> str: ...

    def update_account(self, account_id: str, user: User, profile: ProfileUpdate) -> None: ...

    def get_account(self, account_id: str) -> BankAccount: ...


class UnconfiguredProvisioner:
    """Stand-in used when no provider credentials are configured."""

    def create_account(self, user: User, profile: ProfileFields) -> str:
        logger.error("bank account requested for user_id=%s but no provider is configured", user.id)
        raise ProfileCompletionError()

    def update_account(self, account_id: str, user: User, profile: ProfileUpdate) -> None:
        logger.error("bank account %s update requested but no provider is configured", account_id)
        raise BankingProviderError()

    def get_account(self, account_id: str) -> BankAccount:
        logger.error("bank account %s lookup requested but no provider is configured", account_id)
        raise BankingProviderError()


class AsaasProvisioner:
    """Asaas client: `POST /accounts` on completion, `/customers/{id}` afterwards."""

    def __init__(
        self,
        base_url: str,
        api_key: str,
        *,
        timeout: float = 15.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._api_key = api_key
        self.timeout = timeout
        self._transport = transport

    def build_payload(self, user: User, profile: ProfileUpdate) -> dict[str, Any]:
        """Map profile values to provider fields, leaving out the ones not set."""
        payload: dict[str, Any] = {
            "name": user.display_name,
            "email": user.email,
            "cpfCnpj": profile.tax_id,
            "address": profile.address,
            "addressNumber": "S/N",
            "province": profile.neighborhood,
            "postalCode": profile.postal_code,
        }
        if profile.person_type is not None:
            payload["personType"] = _PROVIDER_PERSON_TYPE[profile.person_type]
            payload["companyType"] = _PROVIDER_COMPANY_TYPE[profile.person_type]
        if profile.monthly_revenue is not None:
            payload["incomeValue"] = float(profile.monthly_revenue)
        phone = profile.phone or user.phone
        if phone:
            payload["mobilePhone"] = phone
        return {key: value for key, value in payload.items() if value is not None}

    def _request(self, method: str, path: str, error: type[AtlasError], **kwargs: Any) -> Any:
        """Send one request and return the decoded JSON object, raising `error` on any failure."""
        headers = {"access_token": self._api_key, "Content-Type": "application/json"}
        try:
            with httpx.Client(timeout=self.timeout, transport=self._transport) as client:
                response = client.request(method, f"{self.base_url}{path}", headers=headers, **kwargs)
        except httpx.HTTPError as exc:
            logger.error("provider request %s %s failed: %s", method, path, exc)
            raise error() from exc

        if response.is_error:
            # Provider text stays in the log; callers only see the generic message.
            logger.error(
                "provider rejected %s %s: status=%s body=%s",
                method,
                path,
                response.status_code,
                response.text[:500],
            )
            raise error()

        try:
            body = response.json()
        except ValueError:
            body = None
        if not isinstance(body, dict):
            logger.error("provider answered %s %s without a JSON object", method, path)
            raise error()
        return body

    def create_account(self, user: User, profile: ProfileFields) -> str:
        body = self._request("POST", "/accounts", ProfileCompletionError, json=self.build_payload(user, profile))
        account_id = body.get("id")
        if not isinstance(account_id, str) or not account_id:
            logger.error("bank account response without id for user_id=%s", user.id)
            raise ProfileCompletionError()
        logger.info("bank account %s created for user_id=%s", account_id, user.id)
        return account_id

    def update_account(self, account_id: str, user: User, profile: ProfileUpdate) -> None:
        self._request(
            "PUT",
            f"/customers/{account_id}",
            BankingProviderError,
            json=self.build_payload(user, profile),
        )
        logger.info("bank account %s updated for user_id=%s", account_id, user.id)

    def get_account(self, account_id: str) -> BankAccount:
        body = self._request("GET", f"/customers/{account_id}", BankingProviderError)
        return BankAccount(
            id=str(body.get("id") or account_id),
            name=body.get("name"),
            email=body.get("email"),
            tax_id=body.get("cpfCnpj"),
            active=not body.get("deleted", False),
        )


def build_provisioner(settings: Settings) -> BankAccountProvisioner:
    """Asaas client when credentials are configured, otherwise the failing stand-in."""
    if settings.banking_configured:
        return AsaasProvisioner(
            settings.banking_api_url,
            settings.banking_api_key,
            timeout=settings.banking_timeout_seconds,
        )
    return UnconfiguredProvisioner()
