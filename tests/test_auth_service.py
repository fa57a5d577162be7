from datetime import timedelta

import pytest
from sqlalchemy import select

from atlas_api.errors import (
    AccountInactive,
    CodeAlreadyUsed,
    CodeExpired,
    CodeNotFound,
    ConfigurationError,
    DuplicateEmail,
    EmailMismatch,
    EmailNotVerified,
    InvalidPassword,
    UserNotFound,
)
from atlas_api.core.security import SessionTokenService
from atlas_api.models.auth import AuthToken
from atlas_api.models.user import User
from atlas_api.repositories.credential_store import CredentialStore
from atlas_api.models.enums import TokenKind
from atlas_api.services.auth import AuthService, as_utc
from atlas_api.services.passwords import verify_password

from conftest import PASSWORD, T0, FakeNotifier


def _other_code(code: str) -> str:
    return "100000" if code != "100000" else "100001"


def test_register_verify_login_scenario(auth, notifier, clock, tokens):
    user = auth.register("Ana", "ana@x.com", "Secr3t!23")
    assert user.email_verified is False
    assert user.plan_id == "trial"
    assert as_utc(user.plan_ends_at) == T0 + timedelta(days=7)

    with pytest.raises(EmailNotVerified):
        auth.login("ana@x.com", "Secr3t!23")

    code = notifier.last_verification_code("ana@x.com")
    with pytest.raises(CodeNotFound):
        auth.verify_email("ana@x.com", _other_code(code))

    verified = auth.verify_email("ana@x.com", code)
    assert verified.user.email_verified is True
    assert tokens.verify(verified.session.token).valid

    clock.advance(minutes=5)
    result = auth.login("ana@x.com", "Secr3t!23")
    assert as_utc(result.user.last_access_at) == clock.now
    claims = tokens.verify(result.session.token).payload
    assert claims.user_id == str(result.user.id)
    assert claims.email == "ana@x.com"
    assert claims.plan_id == "trial"


def test_register_normalizes_email_and_rejects_verified_duplicate(auth, verified_user):
    with pytest.raises(DuplicateEmail):
        auth.register("Outra Maria", "  MARIA@Example.com ", PASSWORD)


def test_concurrent_registration_of_same_email_is_a_duplicate(session_factory, tokens, settings, clock, monkeypatch):
    first_db, second_db = session_factory(), session_factory()
    first = AuthService(CredentialStore(first_db), tokens, FakeNotifier(), settings, clock=clock)
    second_store = CredentialStore(second_db)
    second = AuthService(second_store, tokens, FakeNotifier(), settings, clock=clock)
    # Both requests passed the lookup before either inserted.
    monkeypatch.setattr(second_store, "find_by_email", lambda email: None)

    first.register("Ana", "ana@x.com", PASSWORD)
    with pytest.raises(DuplicateEmail):
        second.register("Ana Clara", "ana@x.com", PASSWORD)

    assert second.notifier.verification == []
    assert len(second_db.execute(select(User)).scalars().all()) == 1
    first_db.close()
    second_db.close()


def test_register_rejects_deactivated_account(auth, store, notifier):
    user = auth.register("Joao", "joao@example.com", PASSWORD)
    user.active = False
    store.commit()

    with pytest.raises(DuplicateEmail):
        auth.register("Joao", "joao@example.com", PASSWORD)


def test_reregistering_unverified_account_supersedes_previous_code(auth, notifier):
    auth.register("Joao", "joao@example.com", PASSWORD)
    first_code = notifier.last_verification_code("joao@example.com")
    auth.register("Joao Pedro", "joao@example.com", "Nova@Senha1")
    second_code = notifier.last_verification_code("joao@example.com")

    if first_code != second_code:
        with pytest.raises(CodeExpired):
            auth.verify_email("joao@example.com", first_code)

    result = auth.verify_email("joao@example.com", second_code)
    assert result.user.display_name == "Joao Pedro"
    assert auth.login("joao@example.com", "Nova@Senha1").user.id == result.user.id


def test_register_never_stores_plain_password(auth, store):
    user = auth.register("Ana", "ana@x.com", PASSWORD)
    assert PASSWORD not in user.password_hash
    assert verify_password(PASSWORD, user.password_hash)


def test_code_for_one_user_never_satisfies_another(auth, notifier):
    auth.register("Ana", "ana@x.com", PASSWORD)
    auth.register("Bia", "bia@x.com", PASSWORD)
    ana_code = notifier.last_verification_code("ana@x.com")

    with pytest.raises(EmailMismatch):
        auth.verify_email("bia@x.com", ana_code)
    with pytest.raises(EmailMismatch):
        auth.verify_email("nobody@x.com", ana_code)

    # The rejected attempts did not consume Ana's code.
    assert auth.verify_email("ana@x.com", ana_code).user.email == "ana@x.com"


def test_verification_code_can_be_used_once(auth, notifier):
    auth.register("Ana", "ana@x.com", PASSWORD)
    code = notifier.last_verification_code("ana@x.com")
    auth.verify_email("ana@x.com", code)

    with pytest.raises(CodeAlreadyUsed):
        auth.verify_email("ana@x.com", code)


def test_verification_code_expires_after_ttl(auth, notifier, clock):
    auth.register("Ana", "ana@x.com", PASSWORD)
    code = notifier.last_verification_code("ana@x.com")
    clock.advance(minutes=15)

    with pytest.raises(CodeExpired):
        auth.verify_email("ana@x.com", code)


def test_code_kind_is_not_interchangeable(auth, notifier, verified_user):
    auth.request_password_reset("maria@example.com")
    reset_code = notifier.last_reset_code("maria@example.com")

    with pytest.raises(CodeNotFound):
        auth.verify_email("maria@example.com", reset_code)


@pytest.mark.parametrize(
    ("email", "password", "error"),
    [
        ("missing@example.com", PASSWORD, UserNotFound),
        ("maria@example.com", "Errada@123", InvalidPassword),
    ],
)
def test_login_failures(auth, verified_user, email, password, error):
    with pytest.raises(error):
        auth.login(email, password)


def test_login_inactive_account(auth, store, verified_user):
    verified_user.active = False
    store.commit()

    with pytest.raises(AccountInactive):
        auth.login("maria@example.com", PASSWORD)


def test_login_checks_verification_before_password(auth):
    auth.register("Ana", "ana@x.com", PASSWORD)
    with pytest.raises(EmailNotVerified):
        auth.login("ana@x.com", "Errada@123")


def test_password_reset_request_for_unknown_email_is_silent(auth, notifier):
    auth.request_password_reset("missing@x.com")
    assert notifier.reset == []


def test_password_reset_flow(auth, notifier, verified_user):
    auth.request_password_reset("maria@example.com")
    code = notifier.last_reset_code("maria@example.com")

    assert auth.validate_reset_code("maria@example.com", code) is True
    # Validation does not consume the code.
    assert auth.validate_reset_code("maria@example.com", code) is True
    assert auth.validate_reset_code("other@example.com", code) is False
    assert auth.validate_reset_code("maria@example.com", _other_code(code)) is False

    auth.reset_password("maria@example.com", code, "Nova@Senha1")

    assert auth.validate_reset_code("maria@example.com", code) is False
    with pytest.raises(CodeAlreadyUsed):
        auth.reset_password("maria@example.com", code, "Outra@Senha2")
    with pytest.raises(InvalidPassword):
        auth.login("maria@example.com", PASSWORD)
    assert auth.login("maria@example.com", "Nova@Senha1").user.id == verified_user.id


def test_reset_password_expired_code(auth, notifier, clock, verified_user):
    auth.request_password_reset("maria@example.com")
    code = notifier.last_reset_code("maria@example.com")
    clock.advance(minutes=16)

    assert auth.validate_reset_code("maria@example.com", code) is False
    with pytest.raises(CodeExpired):
        auth.reset_password("maria@example.com", code, "Nova@Senha1")


def test_failed_reset_leaves_password_unchanged(auth, notifier, verified_user):
    auth.request_password_reset("maria@example.com")
    code = notifier.last_reset_code("maria@example.com")

    with pytest.raises(EmailMismatch):
        auth.reset_password("intruder@example.com", code, "Nova@Senha1")
    assert auth.login("maria@example.com", PASSWORD).user.id == verified_user.id


def test_token_consumption_is_conditional(auth, store, notifier, clock):
    auth.register("Ana", "ana@x.com", PASSWORD)
    token = store.find_tokens(notifier.last_verification_code("ana@x.com"), TokenKind.EMAIL_VERIFICATION)[0]

    assert store.mark_token_used(token.id, clock()) is True
    assert store.mark_token_used(token.id, clock()) is False
    store.commit()
    assert token.used is True


def test_missing_signing_secret_rolls_back_verification(store, notifier, settings, clock):
    unsigned = AuthService(store, SessionTokenService(None, clock=clock), notifier, settings, clock=clock)
    unsigned.register("Ana", "ana@x.com", PASSWORD)
    code = notifier.last_verification_code("ana@x.com")

    with pytest.raises(ConfigurationError):
        unsigned.verify_email("ana@x.com", code)

    user = store.find_by_email("ana@x.com")
    assert user.email_verified is False
    token = store.find_tokens(code, TokenKind.EMAIL_VERIFICATION)[0]
    assert token.used is False


def test_current_user_requires_valid_session(auth, tokens, store, verified_user):
    session = auth.login("maria@example.com", PASSWORD).session
    assert auth.current_user(session.token).id == verified_user.id
    assert auth.current_user("not-a-token") is None

    verified_user.active = False
    store.commit()
    assert auth.current_user(session.token) is None


def test_cleanup_expired_tokens_is_idempotent(auth, store, notifier, clock, db_session):
    auth.register("Ana", "ana@x.com", PASSWORD)
    auth.register("Bia", "bia@x.com", PASSWORD)
    clock.advance(minutes=20)

    assert auth.cleanup_expired_tokens() == 2
    assert auth.cleanup_expired_tokens() == 0
    assert auth.cleanup_expired_tokens() == 0
    assert db_session.execute(select(AuthToken)).scalars().all() == []


def test_cleanup_keeps_live_tokens(auth, notifier, clock):
    auth.register("Ana", "ana@x.com", PASSWORD)
    clock.advance(minutes=5)

    assert auth.cleanup_expired_tokens() == 0
    assert auth.verify_email("ana@x.com", notifier.last_verification_code("ana@x.com")).user.email_verified
