"""ORM model exports."""

from atlas_api.models.auth import AuthToken
from atlas_api.models.user import User

__all__ = [
    "AuthToken",
    "User",
]
