"""Request-scoped dependencies.

Services are assembled per request from the process-wide `AppServices` held on
`app.state` and a request-scoped database session.
"""

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from atlas_api.core.security import UNAUTHORIZED, extract_bearer_token
from atlas_api.core.startup import AppServices
from atlas_api.db.session import get_db
from atlas_api.models.user import User
from atlas_api.repositories.credential_store import CredentialStore
from atlas_api.services.auth import AuthService
from atlas_api.services.profile import ProfileGate

bearer_scheme = HTTPBearer(auto_error=False)


def get_app_services(request: Request) -> AppServices:
    return request.app.state.services


def get_credential_store(db: Session = Depends(get_db)) -> CredentialStore:
    return CredentialStore(db)


def get_auth_service(
    store: CredentialStore = Depends(get_credential_store),
    services: AppServices = Depends(get_app_services),
) -> AuthService:
    return AuthService(store, services.tokens, services.notifier, services.settings, clock=services.clock)


def get_profile_gate(
    store: CredentialStore = Depends(get_credential_store),
    services: AppServices = Depends(get_app_services),
) -> ProfileGate:
    return ProfileGate(store, services.provisioner)


def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    auth: AuthService = Depends(get_auth_service),
) -> User:
    """Resolve the bearer session to an active, verified user or answer 401."""
    authorization = None
    if credentials is not None and credentials.credentials:
        authorization = f"{credentials.scheme} {credentials.credentials}"
    token = extract_bearer_token(authorization)
    user = auth.current_user(token)
    if user is None:
        raise UNAUTHORIZED
    return user


def require_complete_profile(
    user: User = Depends(get_current_user),
    gate: ProfileGate = Depends(get_profile_gate),
) -> User:
    """Admit only users whose onboarding profile is complete.

    Routes that need a finished profile (company creation and similar) declare this
    instead of `get_current_user`; others get 403 `PROFILE_INCOMPLETE` with the
    missing fields in the error details.
    """
    gate.require_complete(user.id)
    return user
