"""Barrel domain exports."""

from .exceptions import AlreadyMember, BarrelError, Conflict, InvariantViolation, NotFound, NotMember, WrongCategory
from .models import Barrel, BarrelType, FezInfo, StringSet
from .service import BarrelService

__all__ = [
	"AlreadyMember",
	"Barrel",
	"BarrelError",
	"BarrelService",
	"BarrelType",
	"Conflict",
	"FezInfo",
	"InvariantViolation",
	"NotFound",
	"NotMember",
	"StringSet",
	"WrongCategory",
]
