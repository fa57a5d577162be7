"""Declarative base export.

Only exposes `Base`; schema changes are applied by migrations, not at startup.
"""

import atlas_api.models  # noqa: F401
from atlas_api.models.base import Base

__all__ = ["Base"]
