"""Domain models for cached user identity."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from fezhub.domain.users.access import UserAccessLevel


@dataclass(slots=True)
class UserHeader:
	"""Minimal public identity of a user, as held in the user cache."""

	user_id: str
	username: str
	display_name: Optional[str] = None
	access_level: UserAccessLevel = UserAccessLevel.VERIFIED

	def to_mapping(self) -> dict[str, str]:
		return {
			"user_id": self.user_id,
			"username": self.username,
			"display_name": self.display_name or "",
			"access_level": self.access_level.value,
		}

	@classmethod
	def from_mapping(cls, data: dict) -> "UserHeader":
		level = UserAccessLevel.from_raw_string(data.get("access_level")) or UserAccessLevel.VERIFIED
		return cls(
			user_id=str(data["user_id"]),
			username=str(data["username"]),
			display_name=data.get("display_name") or None,
			access_level=level,
		)
