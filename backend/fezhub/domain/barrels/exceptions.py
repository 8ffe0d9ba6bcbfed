"""Domain-level exceptions for barrels and the features built on them."""

from __future__ import annotations


class BarrelError(Exception):
	"""Base class for barrel errors; carries the HTTP status it maps to."""

	reason: str = "unknown"
	status_code: int = 400

	def __init__(self, reason: str | None = None) -> None:
		super().__init__(reason or self.reason)
		if reason:
			self.reason = reason


class NotFound(BarrelError):
	reason = "not_found"
	status_code = 404


class WrongCategory(BarrelError):
	reason = "wrong_barrel_type"
	status_code = 400


class InvariantViolation(BarrelError):
	"""A stored barrel is missing a value its category requires."""

	reason = "invariant_violation"
	status_code = 500


class AlreadyMember(BarrelError):
	reason = "already_member"
	status_code = 400


class NotMember(BarrelError):
	reason = "not_member"
	status_code = 400


class Conflict(BarrelError):
	"""The barrel changed since it was loaded; the save was discarded."""

	reason = "stale_version"
	status_code = 409
