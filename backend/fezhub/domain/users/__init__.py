"""User identity exports consumed by other domains."""

from .access import UserAccessLevel
from .cache import UserCache
from .models import UserHeader

__all__ = ["UserAccessLevel", "UserCache", "UserHeader"]
