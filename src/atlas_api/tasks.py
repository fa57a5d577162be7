"""Maintenance task: delete expired one-time codes.

Meant to be scheduled externally (cron, a Kubernetes CronJob). Each run is a
single idempotent sweep, so overlapping runs are harmless.
"""

import logging
from collections.abc import Callable
from datetime import datetime

from sqlalchemy.orm import Session

from atlas_api.core.config import get_settings
from atlas_api.core.logging import setup_logging
from atlas_api.core.security import utc_now
from atlas_api.db.session import SessionLocal
from atlas_api.repositories.credential_store import CredentialStore

logger = logging.getLogger("atlas_api.tasks")


def sweep_expired_tokens(
    session_factory: Callable[[], Session],
    clock: Callable[[], datetime] = utc_now,
) -> int:
    """Delete every auth token whose expiry has passed; returns how many were removed."""
    with session_factory() as db:
        store = CredentialStore(db)
        try:
            deleted = store.delete_expired_tokens(clock())
            store.commit()
        except Exception:
            store.rollback()
            raise
    return deleted


def main() -> None:
    settings = get_settings()
    setup_logging(settings.log_level)
    started_at = utc_now()
    deleted = sweep_expired_tokens(SessionLocal)
    logger.info("token sweep finished deleted=%s started_at=%s", deleted, started_at.isoformat())


if __name__ == "__main__":
    main()
