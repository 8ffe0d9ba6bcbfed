"""Exceptions raised by fez lifecycle operations."""

from __future__ import annotations

from fezhub.domain.barrels.exceptions import (  # noqa: F401
	AlreadyMember,
	BarrelError,
	Conflict,
	InvariantViolation,
	NotFound,
	NotMember,
	WrongCategory,
)


class Forbidden(BarrelError):
	reason = "forbidden"
	status_code = 403


class FezHidden(Forbidden):
	"""A block between requester and owner hides the fez; reported as missing."""

	reason = "fez barrel is not available"
	status_code = 404


class TargetNotFound(BarrelError):
	reason = "user not found"
	status_code = 400
