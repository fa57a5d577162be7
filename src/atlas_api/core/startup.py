"""Process-wide collaborators and the startup check."""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime

from atlas_api.core.config import Settings
from atlas_api.core.security import SessionTokenService, utc_now
from atlas_api.services.banking import BankAccountProvisioner, build_provisioner
from atlas_api.services.notifications import CodeNotifier, LoggingCodeNotifier

logger = logging.getLogger(__name__)


@dataclass
class AppServices:
    """Collaborators shared by every request; built once in `create_app`."""

    settings: Settings
    tokens: SessionTokenService
    notifier: CodeNotifier
    provisioner: BankAccountProvisioner
    clock: Callable[[], datetime] = utc_now

    @classmethod
    def from_settings(cls, settings: Settings, *, clock: Callable[[], datetime] = utc_now) -> "AppServices":
        return cls(
            settings=settings,
            tokens=SessionTokenService.from_settings(settings, clock=clock),
            notifier=LoggingCodeNotifier(reveal_codes=settings.app_debug),
            provisioner=build_provisioner(settings),
            clock=clock,
        )


@dataclass(frozen=True)
class StartupReport:
    ok: bool
    problems: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


def check_startup(settings: Settings) -> StartupReport:
    """Report configuration that prevents (problems) or degrades (warnings) serving requests."""
    problems: list[str] = []
    warnings: list[str] = []
    if not settings.signing_configured:
        problems.append("ATLAS_AUTH_JWT_SECRET is not set; sessions cannot be issued or verified")
    if not settings.banking_configured:
        warnings.append("banking provider is not configured; profile completion will fail")

    for problem in problems:
        logger.error("startup check: %s", problem)
    for warning in warnings:
        logger.warning("startup check: %s", warning)
    return StartupReport(ok=not problems, problems=problems, warnings=warnings)
