from collections.abc import Generator
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from atlas_api.core.config import Settings, get_settings
from atlas_api.core.security import SessionTokenService
from atlas_api.db.base import Base
from atlas_api.models.user import User
from atlas_api.repositories.credential_store import CredentialStore
from atlas_api.services.auth import AuthService
from atlas_api.services.banking import BankAccount
from atlas_api.services.profile import ProfileGate

T0 = datetime(2026, 3, 2, 12, 0, tzinfo=timezone.utc)
PASSWORD = "Senha@123"


class FakeClock:
    """Manually advanced UTC clock."""

    def __init__(self, start: datetime = T0) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class FakeNotifier:
    """Captures delivered codes instead of sending them."""

    def __init__(self) -> None:
        self.verification: list[tuple[str, str]] = []
        self.reset: list[tuple[str, str]] = []

    def send_verification_code(self, user: User, code: str) -> None:
        self.verification.append((user.email, code))

    def send_password_reset_code(self, user: User, code: str) -> None:
        self.reset.append((user.email, code))

    def last_verification_code(self, email: str) -> str:
        return [code for sent_to, code in self.verification if sent_to == email][-1]

    def last_reset_code(self, email: str) -> str:
        return [code for sent_to, code in self.reset if sent_to == email][-1]


class FakeProvisioner:
    """Records provider calls; raises `error` from every call when set."""

    def __init__(self, account_id: str = "acc_0001", error: Exception | None = None) -> None:
        self.account_id = account_id
        self.error = error
        self.calls: list[tuple[str, object]] = []
        self.updates: list[tuple[str, object]] = []

    def create_account(self, user: User, profile) -> str:
        self.calls.append((user.email, profile))
        if self.error is not None:
            raise self.error
        return self.account_id

    def update_account(self, account_id: str, user: User, profile) -> None:
        self.updates.append((account_id, profile))
        if self.error is not None:
            raise self.error

    def get_account(self, account_id: str) -> BankAccount:
        if self.error is not None:
            raise self.error
        return BankAccount(id=account_id, name="Maria Silva", email="maria@example.com", tax_id=None, active=True)


def make_sqlite_session_factory():
    engine = create_engine(
        "sqlite+pysqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    Base.metadata.create_all(bind=engine)
    return engine, sessionmaker(bind=engine, autoflush=False, autocommit=False, class_=Session)


@pytest.fixture(autouse=True)
def _clear_settings_cache() -> Generator[None, None, None]:
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        auth_jwt_secret="unit-test-secret-key-at-least-32-bytes",
        auth_password_hash_iterations=1000,
        app_debug=False,
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def session_factory():
    engine, factory = make_sqlite_session_factory()
    yield factory
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db_session(session_factory) -> Generator[Session, None, None]:
    db = session_factory()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def store(db_session: Session) -> CredentialStore:
    return CredentialStore(db_session)


@pytest.fixture
def notifier() -> FakeNotifier:
    return FakeNotifier()


@pytest.fixture
def provisioner() -> FakeProvisioner:
    return FakeProvisioner()


@pytest.fixture
def tokens(settings: Settings, clock: FakeClock) -> SessionTokenService:
    return SessionTokenService.from_settings(settings, clock=clock)


@pytest.fixture
def auth(store: CredentialStore, tokens: SessionTokenService, notifier: FakeNotifier, settings: Settings, clock):
    return AuthService(store, tokens, notifier, settings, clock=clock)


@pytest.fixture
def gate(store: CredentialStore, provisioner: FakeProvisioner) -> ProfileGate:
    return ProfileGate(store, provisioner)


@pytest.fixture
def verified_user(auth: AuthService, notifier: FakeNotifier) -> User:
    """A registered, verified account using `PASSWORD`."""
    auth.register("Maria Silva", "maria@example.com", PASSWORD)
    result = auth.verify_email("maria@example.com", notifier.last_verification_code("maria@example.com"))
    return result.user
