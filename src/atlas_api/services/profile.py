"""Profile completeness gate.

Decides whether a user's onboarding profile is complete, which required fields
are missing, and links the payments-provider account on first completion.
"""

import logging
from dataclasses import dataclass, field
from typing import Any
from uuid import UUID

from pydantic import ValidationError as PydanticValidationError

from atlas_api.errors import BankAccountNotLinked, ProfileIncomplete, UserNotFound, ValidationError
from atlas_api.models.user import User
from atlas_api.repositories.credential_store import CredentialStore
from atlas_api.services.banking import BankAccount, BankAccountProvisioner
from atlas_api.services.profile_rules import (
    PROFILE_FIELDS,
    ProfileFields,
    ProfileUpdate,
    field_issues,
    is_blank,
    missing_fields,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProfileStatus:
    """Result of a completeness check."""

    is_complete: bool
    missing_fields: list[str] = field(default_factory=list)


def stored_profile(user: User) -> dict[str, Any]:
    """The user's profile columns keyed by field name."""
    return {name: getattr(user, name) for name in PROFILE_FIELDS}


def _validate(model: type[ProfileUpdate], values: dict[str, Any]) -> ProfileUpdate:
    try:
        return model.model_validate(values)
    except PydanticValidationError as exc:
        raise ValidationError(field_issues(exc)) from exc


class ProfileGate:
    """Profile checks and writes for one request's credential store."""

    def __init__(self, store: CredentialStore, provisioner: BankAccountProvisioner) -> None:
        self.store = store
        self.provisioner = provisioner

    def _get_user(self, user_id: UUID | str) -> User:
        user = self.store.find_by_id(user_id)
        if user is None:
            raise UserNotFound()
        return user

    def check(self, user_id: UUID | str) -> ProfileStatus:
        """Read-only completeness check."""
        user = self._get_user(user_id)
        missing = missing_fields(stored_profile(user))
        return ProfileStatus(is_complete=bool(user.profile_complete) and not missing, missing_fields=missing)

    def require_complete(self, user_id: UUID | str) -> None:
        """Raise `ProfileIncomplete` unless the profile is complete."""
        status = self.check(user_id)
        if not status.is_complete:
            raise ProfileIncomplete(status.missing_fields)

    def complete(self, user_id: UUID | str, data: dict[str, Any]) -> User:
        """Validate the full profile, link a bank account if none exists yet, and mark it complete.

        Every missing or malformed field is reported in one `ValidationError` before
        anything is written. The provider is called at most once per user: a user that
        already has `bank_account_id` only gets the fields re-saved.
        """
        user = self._get_user(user_id)
        profile = _validate(ProfileFields, {name: data.get(name) for name in PROFILE_FIELDS})

        try:
            if user.bank_account_id is None:
                account_id = self.provisioner.create_account(user, profile)
                self.store.set_bank_account_id(user, account_id)
            else:
                logger.info("profile re-completed user_id=%s, bank account already linked", user.id)
            self.store.update_profile(user, {**profile.as_columns(), "profile_complete": True})
            self.store.commit()
        except Exception:
            self.store.rollback()
            raise
        logger.info("profile completed user_id=%s", user.id)
        return user

    def update(self, user_id: UUID | str, partial: dict[str, Any]) -> User:
        """Merge the provided fields and recompute `profile_complete`.

        Never provisions an account. A linked account is re-synced when a profile
        field actually changed; a provider failure rolls the update back.
        """
        user = self._get_user(user_id)
        stored = stored_profile(user)
        provided = {name: value for name, value in partial.items() if name in PROFILE_FIELDS and not is_blank(value)}

        # Stored values may need re-checking when the person type changes (tax id length).
        to_check = dict(provided)
        if "person_type" in provided and "tax_id" not in provided and not is_blank(stored["tax_id"]):
            to_check["tax_id"] = stored["tax_id"]
        to_check.setdefault("person_type", stored["person_type"])
        checked = _validate(ProfileUpdate, to_check)

        changes = {name: value for name, value in checked.as_columns().items() if name in provided}
        changed = {name for name, value in changes.items() if value != stored[name]}
        merged = {**stored, **changes}
        changes["profile_complete"] = not missing_fields(merged) and user.bank_account_id is not None
        try:
            self.store.update_profile(user, changes)
            # Every profile field is mirrored at the provider.
            if user.bank_account_id is not None and changed:
                self.provisioner.update_account(
                    user.bank_account_id, user, ProfileUpdate.model_validate(stored_profile(user))
                )
            self.store.commit()
        except Exception:
            self.store.rollback()
            raise
        logger.info("profile updated user_id=%s fields=%s", user.id, sorted(provided))
        return user

    def bank_account(self, user_id: UUID | str) -> BankAccount:
        """The provider's view of the user's linked account."""
        user = self._get_user(user_id)
        if user.bank_account_id is None:
            raise BankAccountNotLinked()
        return self.provisioner.get_account(user.bank_account_id)
