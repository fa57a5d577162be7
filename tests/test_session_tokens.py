import base64
import json
from datetime import timedelta

import jwt
import pytest
from fastapi import HTTPException

from atlas_api.core.security import SessionTokenService, extract_bearer_token
from atlas_api.errors import ConfigurationError

from conftest import FakeClock

SECRET = "unit-test-secret-key-at-least-32-bytes"


@pytest.fixture
def service(clock: FakeClock) -> SessionTokenService:
    return SessionTokenService(SECRET, ttl_seconds=86400, clock=clock)


def test_issue_and_verify_round_trip(service, clock):
    issued = service.issue("user-1", "ana@x.com", "Ana", "trial")

    assert issued.expires_in == 86400
    assert issued.expires_at == clock.now + timedelta(seconds=86400)
    result = service.verify(issued.token)
    assert result.valid is True
    assert result.payload.user_id == "user-1"
    assert result.payload.display_name == "Ana"
    assert result.payload.expires_at - result.payload.issued_at == 86400


def test_claims_are_exactly_the_session_contract(service):
    issued = service.issue("user-1", "ana@x.com", "Ana", None)
    claims = jwt.decode(issued.token, SECRET, algorithms=["HS256"], options={"verify_exp": False})
    assert set(claims) == {"userId", "email", "displayName", "planId", "iat", "exp"}
    assert claims["planId"] is None


def test_expired_token_is_invalid_not_an_error(service, clock):
    issued = service.issue("user-1", "ana@x.com")
    clock.advance(hours=23, minutes=59)
    assert service.verify(issued.token).valid is True

    clock.advance(minutes=1)
    assert service.verify(issued.token).valid is False


def test_leeway_extends_acceptance(clock):
    service = SessionTokenService(SECRET, ttl_seconds=60, leeway_seconds=30, clock=clock)
    issued = service.issue("user-1", "ana@x.com")
    clock.advance(seconds=75)
    assert service.verify(issued.token).valid is True
    clock.advance(seconds=20)
    assert service.verify(issued.token).valid is False


@pytest.mark.parametrize(
    "token",
    [
        "",
        "garbage",
        "a.b.c",
    ],
)
def test_malformed_tokens_are_invalid(service, token):
    assert service.verify(token).valid is False


def test_tampered_and_foreign_tokens_are_invalid(service, clock):
    issued = service.issue("user-1", "ana@x.com")
    head, body, signature = issued.token.split(".")
    claims = json.loads(base64.urlsafe_b64decode(body + "=" * (-len(body) % 4)))
    claims["userId"] = "user-2"
    forged = base64.urlsafe_b64encode(json.dumps(claims).encode()).rstrip(b"=").decode()
    tampered = f"{head}.{forged}.{signature}"
    assert service.verify(tampered).valid is False

    foreign = SessionTokenService("another-secret-key-at-least-32-bytes", clock=clock).issue("user-1", "ana@x.com")
    assert service.verify(foreign.token).valid is False


def test_token_missing_required_claims_is_invalid(service, clock):
    exp = int(clock.now.timestamp()) + 3600
    token = jwt.encode({"email": "ana@x.com", "iat": exp - 3600, "exp": exp}, SECRET, algorithm="HS256")
    assert service.verify(token).valid is False


def test_missing_secret_is_a_configuration_error(clock):
    service = SessionTokenService(None, clock=clock)
    with pytest.raises(ConfigurationError):
        service.issue("user-1", "ana@x.com")
    with pytest.raises(ConfigurationError):
        service.verify("anything")


def test_from_settings_uses_configured_ttl(settings, clock):
    settings.auth_session_ttl_seconds = 120
    service = SessionTokenService.from_settings(settings, clock=clock)
    assert service.issue("user-1", "ana@x.com").expires_in == 120


def test_extract_bearer_token_variants():
    assert extract_bearer_token("Bearer abc") == "abc"
    assert extract_bearer_token("bearer abc") == "abc"
    # Comma-joined duplicate headers: the last real token wins.
    assert extract_bearer_token("Bearer {{token}}, Bearer real-token") == "real-token"

    with pytest.raises(HTTPException) as missing:
        extract_bearer_token(None)
    assert missing.value.status_code == 401

    with pytest.raises(HTTPException) as placeholder:
        extract_bearer_token("Bearer {{access_token}}")
    assert placeholder.value.detail["code"] == "AUTH_TOKEN_PLACEHOLDER_NOT_RESOLVED"
