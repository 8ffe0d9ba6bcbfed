"""Ordered access levels gating what an account may do.

Levels form a total order; every capability check is a comparison against a
threshold level. The string values are the canonical wire/storage form.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional


class UserAccessLevel(str, Enum):
	BANNED = "banned"
	UNVERIFIED = "unverified"
	QUARANTINED = "quarantined"
	VERIFIED = "verified"
	CLIENT = "client"
	MODERATOR = "moderator"
	TWITARRTEAM = "twitarrteam"
	THO = "tho"
	ADMIN = "admin"

	@property
	def rank(self) -> int:
		return _RANKS[self]

	@classmethod
	def from_raw_string(cls, value: str | None) -> Optional["UserAccessLevel"]:
		"""Case-insensitive lookup; returns None for unknown values."""
		if not value:
			return None
		try:
			return cls(value.strip().lower())
		except ValueError:
			return None

	def visible_name(self) -> str:
		return _VISIBLE_NAMES[self]

	def has_access(self, level: "UserAccessLevel") -> bool:
		return self >= level

	def can_create_content(self) -> bool:
		"""Post own content and edit or delete content this user created."""
		return self >= UserAccessLevel.VERIFIED

	def can_edit_others_content(self) -> bool:
		return self >= UserAccessLevel.MODERATOR

	def can_moderate_users(self) -> bool:
		return self >= UserAccessLevel.MODERATOR

	def __lt__(self, other: object) -> bool:
		if not isinstance(other, UserAccessLevel):
			return NotImplemented
		return self.rank < other.rank

	def __le__(self, other: object) -> bool:
		if not isinstance(other, UserAccessLevel):
			return NotImplemented
		return self.rank <= other.rank

	def __gt__(self, other: object) -> bool:
		if not isinstance(other, UserAccessLevel):
			return NotImplemented
		return self.rank > other.rank

	def __ge__(self, other: object) -> bool:
		if not isinstance(other, UserAccessLevel):
			return NotImplemented
		return self.rank >= other.rank


_RANKS = {level: idx for idx, level in enumerate(UserAccessLevel, start=1)}

_VISIBLE_NAMES = {
	UserAccessLevel.BANNED: "Banned",
	UserAccessLevel.UNVERIFIED: "Unverified",
	UserAccessLevel.QUARANTINED: "Quarantined",
	UserAccessLevel.VERIFIED: "Verified",
	UserAccessLevel.CLIENT: "Client",
	UserAccessLevel.MODERATOR: "Moderator",
	UserAccessLevel.TWITARRTEAM: "TwitarrTeam",
	UserAccessLevel.THO: "THO",
	UserAccessLevel.ADMIN: "Administrator",
}
