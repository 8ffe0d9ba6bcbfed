"""Fez domain exports."""

from .models import FezType, SeaMonkey
from .service import FezService

__all__ = ["FezService", "FezType", "SeaMonkey"]
